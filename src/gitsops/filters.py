# src/gitsops/filters.py: The git filter entry points.
# smudge, clean and textconv are each called once per file by git. They keep no
# state between calls and return the complete output, which the CLI writes to
# stdout only once the whole transformation has succeeded.

from typing import Optional

from .classify import ContentType, classify
from .detect import ChangeDetector
from .engine import EncryptionEngine
from .gitwrap import GitRepo
from .util.errors import UsageError, VersionControlError
from .util.log import get_logger, path_context

logger = get_logger(__name__)


class FilterCore:
    def __init__(
        self,
        repo: GitRepo,
        engine: EncryptionEngine,
        detector: Optional[ChangeDetector] = None,
        detect_content_type: bool = False,
    ):
        self.repo = repo
        self.engine = engine
        self.detect_content_type = detect_content_type
        self.detector = detector or ChangeDetector(repo, engine, detect_content_type)

    def content_type(self, path: str, sniff: bool = True) -> ContentType:
        return classify(path, self.detect_content_type, self.repo.root, sniff=sniff)

    def smudge(self, path: Optional[str], data: bytes) -> bytes:
        """Decrypt a blob on its way from the object store into the working tree."""
        _require_path(path, "smudge")
        path_context.set(path)

        if not self.engine.is_encrypted(data):
            logger.warning(f"{path} is not encrypted at rest; checking out as-is")
            return data

        plaintext = self.engine.decrypt(data, path, self.content_type(path))
        logger.debug(f"Decrypted: {path}")
        return plaintext

    def clean(self, path: Optional[str], data: bytes) -> bytes:
        """Encrypt working-tree content on its way into the index."""
        _require_path(path, "clean")
        path_context.set(path)

        if not self.detector.is_changed(path, data):
            committed = self.repo.show_head(path)
            if committed is None:
                raise VersionControlError(f"{path} vanished from HEAD while cleaning")
            return committed

        ciphertext = self.engine.encrypt(data, path, self.content_type(path))
        logger.debug(f"Encrypted: {path}")
        return ciphertext

    def textconv(self, path: Optional[str], data: bytes) -> bytes:
        """Render a blob as plaintext for `git diff`, leaving the index untouched."""
        _require_path(path, "textconv")
        path_context.set(path)

        if not self.engine.is_encrypted(data):
            return data
        # `path` is a temporary file holding ciphertext; only its name is meaningful.
        return self.engine.decrypt(data, path, self.content_type(path, sniff=False))


def _require_path(path: Optional[str], entry_point: str) -> None:
    if not path:
        raise UsageError(f"No file specified for {entry_point}")
