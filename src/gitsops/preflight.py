# src/gitsops/preflight.py: Startup precondition checks.
# Before any command touches a file, git-sops verifies that the age key, the
# sops binary, the git working tree and the recipient config are all in place.
# Any gap is fatal and reported with a hint on how to fix it.

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import Settings
from .gitwrap import git_is_inside_work_tree, git_toplevel
from .util.errors import PreconditionError
from .util.paths import resolve_age_key_file
from .util.shell import find_in_path


@dataclass
class Environment:
    root: Path
    sops_config: Path
    key_file: Path
    sops_binary: str


def check_environment(settings: Settings, cwd: Optional[Path] = None) -> Environment:
    """
    Resolve everything git-sops needs from its surroundings.

    Raises:
        PreconditionError: If the key file, sops, the repository or the
            recipient config cannot be found.
    """
    key_file = resolve_age_key_file()

    sops_binary = find_in_path(settings.sops_binary)
    if not sops_binary:
        raise PreconditionError(f"Not found: {settings.sops_binary}")

    cwd = cwd or Path.cwd()
    if not git_is_inside_work_tree(cwd):
        raise PreconditionError("Not inside a Git repository")
    root = git_toplevel(cwd)

    sops_config = settings.sops_config_path(root)
    if not sops_config.is_file():
        raise PreconditionError(f"Not found: {sops_config}")

    return Environment(root=root, sops_config=sops_config, key_file=key_file, sops_binary=sops_binary)
