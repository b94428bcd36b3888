# tests/unit/conftest.py: Shared fakes for the filter and repository tests.

import base64
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from gitsops.classify import ContentType
from gitsops.engine import EncryptionEngine
from gitsops.gitwrap import GitRepo
from gitsops.registration import ConfigStore
from gitsops.util.errors import EngineError, VersionControlError


class FakeEngine(EncryptionEngine):
    """Reversible, non-deterministic stand-in for sops."""

    def __init__(self):
        super().__init__(b"ENC[AES256")
        self.calls = []
        self.rotated = []
        self.fail_rotation = set()
        self._nonce = 0

    def encrypt(self, data: bytes, path: str, content_type: ContentType) -> bytes:
        self.calls.append(("encrypt", path, content_type))
        self._nonce += 1
        return b"ENC[AES256_GCM,nonce=%d]:" % self._nonce + base64.b64encode(data)

    def decrypt(self, data: bytes, path: str, content_type: ContentType) -> bytes:
        self.calls.append(("decrypt", path, content_type))
        return base64.b64decode(data.split(b"]:", 1)[1])

    def update_keys(self, path: str) -> None:
        self.calls.append(("updatekeys", path, None))
        if path in self.fail_rotation:
            raise EngineError(f"Failed to update keys for {path}")
        self.rotated.append(path)


class FakeRepo(GitRepo):
    """In-memory working tree, HEAD and index bookkeeping."""

    def __init__(self, root: Path, head=None, working=None, attrs=None):
        super().__init__(root)
        self.head: Dict[str, bytes] = dict(head or {})
        self.working: Dict[str, bytes] = dict(working or {})
        self.attrs: Dict[str, str] = dict(attrs or {})
        self.operations: List[tuple] = []
        self.staged: List[str] = []
        self.commits: List[str] = []
        self.fail_rm = False
        self.fail_checkout_batch: Optional[int] = None
        self.config: Dict[str, str] = {}

    def relpath(self, path):
        return str(path)

    def show_head(self, path):
        return self.head.get(path)

    def exists_in_head(self, path):
        return path in self.head

    def read_working(self, path):
        return self.working.get(path)

    def write_working(self, path, data):
        self.working[path] = data

    def ls_files(self):
        return sorted(set(self.head) | set(self.working))

    def check_attr(self, attribute, paths):
        return {p: self.attrs.get(p, "unspecified") for p in paths}

    def rm_cached(self, paths, config=None):
        self.operations.append(("rm", list(paths), config))
        if self.fail_rm:
            raise VersionControlError("rm failed")

    def checkout(self, paths, ref="HEAD", config=None):
        self.operations.append(("checkout", list(paths), ref, config))
        checkouts = sum(1 for op in self.operations if op[0] == "checkout")
        if self.fail_checkout_batch == checkouts:
            raise VersionControlError("checkout failed")

    def write_tree(self):
        return "index-tree"

    def add(self, paths, config=None):
        self.operations.append(("add", list(paths), config))
        self.staged.extend(paths)

    def has_staged_changes(self):
        return bool(self.staged)

    def commit(self, message):
        self.commits.append(message)

    def config_get(self, key):
        return self.config.get(key)

    def config_set(self, key, value):
        self.config[key] = value


class MemoryStore(ConfigStore):
    def __init__(self):
        self.values = {}
        self.writes = 0

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.writes += 1
        self.values[key] = value


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def repo(tmp_path: Path) -> FakeRepo:
    return FakeRepo(tmp_path)


@pytest.fixture
def encrypted(engine: FakeEngine):
    """Encrypt outside of the recorded calls."""
    def _encrypt(data: bytes, path: str = "x") -> bytes:
        out = engine.encrypt(data, path, ContentType.BINARY)
        engine.calls.clear()
        return out
    return _encrypt


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
