# src/gitsops/util/shell.py: Subprocess execution wrapper.
# This module runs external tools with binary standard streams. Output is
# captured and returned as-is, since filter content must round-trip byte for
# byte. A missing executable is mapped onto a typed precondition error.

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from .errors import PreconditionError


def run_command(
    args: List[str],
    input: Optional[bytes] = None,
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
    capture: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run a command and return the completed process without checking its status.

    Args:
        args: The command and its arguments.
        input: Bytes fed to the command's standard input.
        cwd: The working directory for the command.
        env: Extra environment variables layered over the current environment.
        capture: If False, stdout/stderr are inherited from this process.

    Raises:
        PreconditionError: If the executable cannot be found.
    """
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    try:
        return subprocess.run(
            args,
            input=input,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            check=False,
        )
    except FileNotFoundError:
        raise PreconditionError(f"Not found: {args[0]}")


def find_in_path(name: str) -> Optional[str]:
    """Finds an executable in the system's PATH."""
    return shutil.which(name)
