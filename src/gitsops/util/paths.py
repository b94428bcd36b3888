# src/gitsops/util/paths.py: Path resolution.
# This module resolves the locations git-sops reads from outside the
# repository: its own optional settings file and the age private key file used
# by sops. Both follow the platform's user configuration directory.

import os
from pathlib import Path
from typing import Optional

import platformdirs

from .errors import PreconditionError

AGE_KEY_ENV = "SOPS_AGE_KEY_FILE"
CONFIG_ENV = "GIT_SOPS_CONFIG"


def expand_path(path: str | Path) -> Path:
    """Expand environment variables and user home directory in a path."""
    return Path(os.path.expandvars(os.path.expanduser(str(path)))).resolve()


def get_config_home() -> Path:
    """Get the git-sops configuration directory."""
    return Path(platformdirs.user_config_dir("git-sops"))


def get_settings_path() -> Path:
    """Path of the optional settings file, honouring GIT_SOPS_CONFIG."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return expand_path(override)
    return get_config_home() / "config.yaml"


def default_age_key_file() -> Path:
    """The location sops itself falls back to when SOPS_AGE_KEY_FILE is unset."""
    return Path(platformdirs.user_config_dir("sops")) / "age" / "keys.txt"


def resolve_age_key_file(env_value: Optional[str] = None) -> Path:
    """
    Resolve the age private key file from the environment or the default path.

    Raises:
        PreconditionError: If the resolved file does not exist.
    """
    raw = env_value if env_value is not None else os.environ.get(AGE_KEY_ENV)
    key_file = expand_path(raw) if raw else default_age_key_file()
    if not key_file.is_file():
        raise PreconditionError(
            f"Age key not found at {key_file}. "
            f"Generate one with 'age-keygen -o {key_file}' or point "
            f"{AGE_KEY_ENV} at an existing key file."
        )
    return key_file
