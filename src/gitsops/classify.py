# src/gitsops/classify.py: Content-type selection for sops.
# sops needs an input/output type for every stream it encrypts. git-sops always
# uses the opaque "binary" type by default so ciphertext never reveals the
# JSON/YAML shape of a secret file. Structure-aware detection is available as
# an opt-in and is only used when `detect` is set.

import re
from enum import Enum
from pathlib import Path
from typing import Optional


class ContentType(str, Enum):
    BINARY = "binary"
    JSON = "json"
    YAML = "yaml"
    INI = "ini"
    DOTENV = "dotenv"


EXTENSIONS = {
    ".json": ContentType.JSON,
    ".yaml": ContentType.YAML,
    ".yml": ContentType.YAML,
    ".ini": ContentType.INI,
    ".env": ContentType.DOTENV,
}

INI_SECTION = re.compile(r"^\[[A-Za-z0-9_. -]+\]$")


def classify(
    path: str | Path,
    detect: bool = False,
    root: Optional[Path] = None,
    sniff: bool = True,
) -> ContentType:
    """
    Returns the sops content type to use for `path`.

    With `sniff`, files whose name says nothing are classified by the first
    line of their plaintext under `root`.
    """
    if not detect:
        return ContentType.BINARY

    path = Path(path)
    if path.name == ".env" or path.name.startswith(".env."):
        return ContentType.DOTENV
    by_extension = EXTENSIONS.get(path.suffix.lower())
    if by_extension is not None:
        return by_extension
    if not sniff:
        return ContentType.BINARY

    full = (root / path) if root is not None else path
    return _sniff(_first_line(full))


def _first_line(path: Path) -> str:
    try:
        with path.open("rb") as f:
            line = f.readline()
    except OSError:
        return ""
    return line.decode("utf-8", errors="replace").strip()


def _sniff(first_line: str) -> ContentType:
    if not first_line:
        return ContentType.BINARY
    if INI_SECTION.match(first_line):
        return ContentType.INI
    if first_line.startswith(("{", "[")):
        return ContentType.JSON
    if first_line.startswith("---") or ":" in first_line:
        return ContentType.YAML
    return ContentType.BINARY
