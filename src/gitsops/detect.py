# src/gitsops/detect.py: Working-tree change detection.
# sops output is non-deterministic: encrypting the same plaintext twice gives
# different bytes. Deciding whether a file changed therefore means comparing
# the working copy against the decrypted HEAD blob, never two ciphertexts.

from typing import Optional

from .classify import classify
from .engine import EncryptionEngine
from .gitwrap import GitRepo


class ChangeDetector:
    def __init__(self, repo: GitRepo, engine: EncryptionEngine, detect_content_type: bool = False):
        self.repo = repo
        self.engine = engine
        self.detect_content_type = detect_content_type

    def is_changed(self, path: str, working: Optional[bytes] = None) -> bool:
        """
        Whether the working copy of `path` differs from what HEAD holds.

        Args:
            path: Root-relative path of the managed file.
            working: The content to compare; read from the working tree if None.
        """
        committed = self.repo.show_head(path)
        if committed is None:
            # Not at HEAD yet: a new file.
            return True

        if working is None:
            working = self.repo.read_working(path)
            if working is None:
                return True

        if committed == working:
            return False

        if not self.engine.is_encrypted(committed):
            # Plaintext at rest that differs from the working copy.
            return True

        content_type = classify(path, self.detect_content_type, self.repo.root)
        return self.engine.decrypt(committed, path, content_type) != working
