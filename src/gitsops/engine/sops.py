# src/gitsops/engine/sops.py: sops encryption engine adapter.
# This module implements the EncryptionEngine interface on top of the 'sops'
# binary with age recipients. Content is streamed through sops' standard
# streams; the repository path is passed as a filename override so the
# creation rules in .sops.yaml still select the right recipients. Failed runs
# are retried a bounded number of times before the failure becomes fatal.

from pathlib import Path
from typing import List, Optional

from . import EncryptionEngine
from ..classify import ContentType
from ..util.errors import EngineError
from ..util.log import get_logger
from ..util.paths import AGE_KEY_ENV
from ..util.retry import retry_with_backoff
from ..util.shell import run_command

logger = get_logger(__name__)


class SopsEngine(EncryptionEngine):
    """
    Drives `sops` for single-file encrypt/decrypt and in-place key rotation.
    """

    def __init__(
        self,
        config_path: Path,
        key_file: Path,
        marker: str = "ENC[AES256",
        binary: str = "sops",
        attempts: int = 3,
        backoff_sec: float = 1.0,
        cwd: Optional[Path] = None,
        assume_yes: bool = False,
    ):
        super().__init__(marker.encode("utf-8"))
        self.config_path = config_path
        self.key_file = key_file
        self.binary = binary
        self.attempts = attempts
        self.backoff_sec = backoff_sec
        self.cwd = cwd
        self.assume_yes = assume_yes

    def encrypt(self, data: bytes, path: str, content_type: ContentType) -> bytes:
        return self._run_with_retry("encrypt", data, path, content_type)

    def decrypt(self, data: bytes, path: str, content_type: ContentType) -> bytes:
        return self._run_with_retry("decrypt", data, path, content_type)

    def update_keys(self, path: str) -> None:
        args = [self.binary, "--config", str(self.config_path), "updatekeys"]
        if self.assume_yes:
            args.append("--yes")
        args.append(path)
        # Inherited stdio: sops may ask the operator to confirm the new recipients.
        result = run_command(args, cwd=self.cwd, env=self._env(), capture=False)
        if result.returncode != 0:
            raise EngineError(f"Failed to update keys for {path}")

    def command(self, action: str, path: str, content_type: ContentType) -> List[str]:
        type_name = ContentType(content_type).value
        return [
            self.binary,
            "--config", str(self.config_path),
            "--input-type", type_name,
            "--output-type", type_name,
            "--filename-override", path,
            f"--{action}", "/dev/stdin",
        ]

    def _env(self) -> dict:
        return {AGE_KEY_ENV: str(self.key_file)}

    def _run_once(self, action: str, data: bytes, path: str, content_type: ContentType) -> bytes:
        result = run_command(
            self.command(action, path, content_type),
            input=data,
            cwd=self.cwd,
            env=self._env(),
        )
        if result.returncode != 0:
            diagnostics = (result.stderr or b"").decode("utf-8", errors="replace").strip()
            raise EngineError(f"SOPS {action} failed for {path}", diagnostics=diagnostics)
        return result.stdout

    def _run_with_retry(self, action: str, data: bytes, path: str, content_type: ContentType) -> bytes:
        def log_retry(attempt: int, attempts: int, error: BaseException) -> None:
            logger.warning(f"SOPS {action} failed for {path}, retrying ({attempt}/{attempts})...")
            if getattr(error, "diagnostics", ""):
                logger.warning(error.diagnostics)

        run = retry_with_backoff(
            attempts=self.attempts,
            backoff_in_seconds=self.backoff_sec,
            exceptions=(EngineError,),
            on_retry=log_retry,
        )(self._run_once)

        try:
            return run(action, data, path, content_type)
        except EngineError as e:
            logger.error(f"SOPS {action} failed for {path} after {self.attempts} attempts")
            if e.diagnostics:
                logger.error(f"SOPS error output:\n{e.diagnostics}")
            logger.debug(f"Debug info: {AGE_KEY_ENV}={self.key_file}, config={self.config_path}")
            raise EngineError(
                f"SOPS {action} failed for {path} after {self.attempts} attempts",
                diagnostics=e.diagnostics,
            ) from e
