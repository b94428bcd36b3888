# src/gitsops/gitwrap.py: Safe subprocess wrappers for Git.
# This module provides the version-control collaborator used by the filter and
# the repository-wide operations. Git is always driven through subprocess with
# binary output, since blob content must be compared and re-emitted byte for
# byte, and failures are mapped onto VersionControlError.

import os
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .util.errors import VersionControlError

# --- Core Git Execution ---

def run_git(
    args: List[str],
    cwd: Path,
    check: bool = True,
    config: Optional[Dict[str, str]] = None,
    input: Optional[bytes] = None,
    env: Optional[dict] = None,
) -> subprocess.CompletedProcess:
    """
    Runs a git command in a specified directory with error handling.

    Args:
        args: A list of arguments for the git command.
        cwd: The working directory for the command.
        check: If True, raises VersionControlError on a non-zero exit code.
        config: One-shot configuration overrides, passed as `-c key=value`.
        input: Bytes written to the command's standard input.
        env: An optional dictionary of environment variables.

    Returns:
        The CompletedProcess object, with stdout/stderr as bytes.

    Raises:
        VersionControlError: If git is not found or the command fails.
    """
    base_env = os.environ.copy()
    base_env["GIT_TERMINAL_PROMPT"] = "0"  # Disable interactive prompts
    if env:
        base_env.update(env)

    overrides: List[str] = []
    for key, value in (config or {}).items():
        overrides += ["-c", f"{key}={value}"]

    try:
        return subprocess.run(
            ["git"] + overrides + args,
            cwd=cwd,
            input=input,
            capture_output=True,
            check=check,
            env=base_env,
        )
    except FileNotFoundError:
        raise VersionControlError("The 'git' command was not found. Is it installed and in your PATH?")
    except subprocess.CalledProcessError as e:
        error_message = _decode(e.stderr).strip() or _decode(e.stdout).strip()
        raise VersionControlError(f"Git command '{' '.join(args)}' failed: {error_message}")


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


# --- Repository discovery ---

def git_is_inside_work_tree(cwd: Path) -> bool:
    """Checks whether `cwd` lies inside a git working tree."""
    try:
        result = run_git(["rev-parse", "--is-inside-work-tree"], cwd=cwd, check=False)
    except VersionControlError:
        return False
    return result.returncode == 0 and _decode(result.stdout).strip() == "true"


def git_toplevel(cwd: Path) -> Path:
    """Gets the root directory of the working tree containing `cwd`."""
    result = run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    return Path(_decode(result.stdout).strip())


# --- High-Level Git Operations ---

class GitRepo:
    """
    The operations git-sops needs from one working tree.

    All paths are relative to the repository root, as git passes them to
    filter commands.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def relpath(self, path: str | Path) -> str:
        """Normalise a user-supplied path to a root-relative POSIX path."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        try:
            rel = Path(os.path.relpath(candidate.resolve(), self.root.resolve()))
        except ValueError:
            return Path(path).as_posix()
        return rel.as_posix()

    def show_head(self, path: str) -> Optional[bytes]:
        """Returns the blob for `path` at HEAD, or None if there is none."""
        result = run_git(["cat-file", "-p", f"HEAD:{path}"], cwd=self.root, check=False)
        if result.returncode != 0:
            return None
        return result.stdout

    def exists_in_head(self, path: str) -> bool:
        result = run_git(["cat-file", "-e", f"HEAD:{path}"], cwd=self.root, check=False)
        return result.returncode == 0

    def read_working(self, path: str) -> Optional[bytes]:
        """Returns the working-tree bytes for `path`, or None if it is not a file."""
        full = self.root / path
        if not full.is_file():
            return None
        return full.read_bytes()

    def write_working(self, path: str, data: bytes) -> None:
        (self.root / path).write_bytes(data)

    def ls_files(self) -> List[str]:
        result = run_git(["ls-files", "-z"], cwd=self.root)
        return [p for p in _decode(result.stdout).split("\0") if p]

    def check_attr(self, attribute: str, paths: Iterable[str]) -> Dict[str, str]:
        """Maps each path onto the value git resolves for `attribute`."""
        paths = list(paths)
        if not paths:
            return {}
        payload = "\0".join(paths).encode("utf-8") + b"\0"
        result = run_git(["check-attr", "-z", "--stdin", attribute], cwd=self.root, input=payload)
        fields = _decode(result.stdout).split("\0")
        values = {}
        # -z output is a flat sequence of <path> NUL <attribute> NUL <value> NUL
        for i in range(0, len(fields) - 2, 3):
            values[fields[i]] = fields[i + 2]
        return values

    def rm_cached(self, paths: List[str], config: Optional[Dict[str, str]] = None) -> None:
        run_git(["rm", "--cached", "--quiet", "--"] + paths, cwd=self.root, config=config)

    def checkout(
        self,
        paths: List[str],
        ref: str = "HEAD",
        config: Optional[Dict[str, str]] = None,
    ) -> None:
        """Checks `paths` out of `ref`, updating both the index and the working tree."""
        run_git(["checkout", ref, "--quiet", "--"] + paths, cwd=self.root, config=config)

    def write_tree(self) -> str:
        """Writes the index as a tree object and returns its id."""
        result = run_git(["write-tree"], cwd=self.root)
        return _decode(result.stdout).strip()

    def add(self, paths: List[str], config: Optional[Dict[str, str]] = None) -> None:
        run_git(["add", "--"] + paths, cwd=self.root, config=config)

    def has_staged_changes(self) -> bool:
        result = run_git(["diff", "--cached", "--quiet"], cwd=self.root, check=False)
        if result.returncode not in (0, 1):
            raise VersionControlError(
                f"Git command 'diff --cached --quiet' failed: {_decode(result.stderr).strip()}"
            )
        return result.returncode == 1

    def commit(self, message: str) -> None:
        run_git(["commit", "--quiet", "-m", message], cwd=self.root)

    def config_get(self, key: str) -> Optional[str]:
        result = run_git(["config", "--local", "--get", key], cwd=self.root, check=False)
        if result.returncode != 0:
            return None
        return _decode(result.stdout).rstrip("\n")

    def config_set(self, key: str, value: str) -> None:
        run_git(["config", "--local", "--replace-all", key, value], cwd=self.root)
