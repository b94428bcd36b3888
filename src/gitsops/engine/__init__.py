# src/gitsops/engine/__init__.py: Encryption engine interface.
# The filter never performs cryptography itself. It drives an external engine
# through this interface, which the sops adapter implements and tests replace
# with an in-process fake.

from abc import ABC, abstractmethod

from ..classify import ContentType
from ..util.errors import UsageError

ACTIONS = ("encrypt", "decrypt")


class EncryptionEngine(ABC):
    def __init__(self, marker: bytes):
        self.marker = marker

    def is_encrypted(self, data: bytes) -> bool:
        """True if `data` carries the engine's encryption marker."""
        return self.marker in data

    def invoke(self, action: str, data: bytes, path: str, content_type: ContentType) -> bytes:
        """Dispatch an encrypt/decrypt request for one file."""
        if action not in ACTIONS:
            raise UsageError(f"Invalid action '{action}'. Use 'encrypt' or 'decrypt'")
        if action == "encrypt":
            return self.encrypt(data, path, content_type)
        return self.decrypt(data, path, content_type)

    @abstractmethod
    def encrypt(self, data: bytes, path: str, content_type: ContentType) -> bytes:
        """Encrypt plaintext destined for `path`."""

    @abstractmethod
    def decrypt(self, data: bytes, path: str, content_type: ContentType) -> bytes:
        """Decrypt ciphertext stored at `path`."""

    @abstractmethod
    def update_keys(self, path: str) -> None:
        """Re-key the encrypted file at `path` in place for the current recipients."""
