# src/gitsops/registration.py: Filter registration in git configuration.
# git only routes files through git-sops once four local configuration entries
# exist: the required flag, the smudge and clean commands, and the diff textconv
# command. This module reads and writes those entries through a small
# configuration-store interface, so registration is an explicit, idempotent
# operation rather than ambient global state.

import shlex
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from .gitwrap import GitRepo


class ConfigStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under `key`, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous values."""


class GitLocalConfig(ConfigStore):
    """The repository's `.git/config`."""

    def __init__(self, repo: GitRepo):
        self.repo = repo

    def get(self, key: str) -> Optional[str]:
        return self.repo.config_get(key)

    def set(self, key: str, value: str) -> None:
        self.repo.config_set(key, value)


def default_command() -> str:
    """The shell command git should run to reach this tool."""
    script = Path(sys.argv[0])
    if script.name.startswith("git-sops") and script.is_file():
        return shlex.quote(str(script.resolve()))
    return f"{shlex.quote(sys.executable)} -m gitsops"


class FilterRegistration:
    def __init__(self, name: str = "crypt", command: Optional[str] = None):
        self.name = name
        self.command = command or default_command()

    def entries(self) -> Dict[str, str]:
        return {
            f"filter.{self.name}.required": "true",
            f"filter.{self.name}.smudge": f"{self.command} smudge %f",
            f"filter.{self.name}.clean": f"{self.command} clean %f",
            f"diff.{self.name}.textconv": f"{self.command} textconv",
        }

    def is_initialized(self, store: ConfigStore) -> bool:
        return all(store.get(key) is not None for key in self.entries())

    def ensure(self, store: ConfigStore) -> bool:
        """Write the registration unless present. Returns True if anything was written."""
        if self.is_initialized(store):
            return False
        for key, value in self.entries().items():
            store.set(key, value)
        return True
