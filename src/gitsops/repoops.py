# src/gitsops/repoops.py: Repository-wide operations.
# This module implements the operator-invoked commands that act on every
# filter-managed file at once: bulk decryption of the working tree, key
# rotation after the recipient config changed, and first-time initialization.
# Files are processed in fixed-size batches, strictly one batch after another.

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

from .config import Settings
from .detect import ChangeDetector
from .engine import EncryptionEngine
from .gitwrap import GitRepo
from .registration import ConfigStore, FilterRegistration
from .util.errors import EngineError, VersionControlError
from .util.log import get_logger

logger = get_logger(__name__)
console = Console(stderr=True)


def ask(question: str) -> bool:
    return Confirm.ask(question, default=False, console=console)


def batched(items: Sequence[str], size: int) -> Iterator[List[str]]:
    """Split `items` into consecutive lists of at most `size` entries."""
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


@dataclass
class DecryptReport:
    files: List[str] = field(default_factory=list)
    batches: List[int] = field(default_factory=list)


@dataclass
class UpdateReport:
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    committed: bool = False
    decrypt: Optional[DecryptReport] = None


class RepoOps:
    """
    Bulk operations over the filter-managed files of one repository.
    """

    def __init__(
        self,
        repo: GitRepo,
        engine: EncryptionEngine,
        settings: Settings,
        detector: Optional[ChangeDetector] = None,
        confirm: Callable[[str], bool] = ask,
    ):
        self.repo = repo
        self.engine = engine
        self.settings = settings
        self.detector = detector or ChangeDetector(repo, engine, settings.detect_content_type)
        self.confirm = confirm

    @property
    def filter_override(self) -> dict:
        """Makes the clean step a pass-through for a single git invocation."""
        return {f"filter.{self.settings.filter_name}.clean": "cat"}

    def managed_files(self) -> List[str]:
        """Tracked paths whose `filter` attribute routes them through git-sops."""
        attributes = self.repo.check_attr("filter", self.repo.ls_files())
        return [path for path, value in attributes.items() if value == self.settings.filter_name]

    def discover_encrypted(self) -> List[str]:
        """Managed files whose working-tree content is still ciphertext."""
        found = []
        for path in self.managed_files():
            content = self.repo.read_working(path)
            if content is not None and self.engine.is_encrypted(content):
                found.append(path)
        return found

    def decrypt_repo(self, ref: str = "HEAD") -> DecryptReport:
        """
        Replace ciphertext in the working tree with plaintext.

        Each batch is first evicted from the index and then checked out again
        from `ref`, both with the clean filter overridden to a pass-through.
        Eviction forces git to rewrite the files, and the rewrite runs the real
        smudge filter. `ref` may be any tree-ish; passing the tree written from
        the index restores staged blobs along with the files.

        Raises:
            VersionControlError: If a batch cannot be checked out.
        """
        files = self.discover_encrypted()
        report = DecryptReport(files=files)
        if not files:
            console.print("No encrypted files found to decrypt")
            return report

        console.print(f"Decrypting {len(files)} files...")
        batches = list(batched(files, self.settings.batch_size))
        for number, batch in enumerate(batches, start=1):
            console.print(f"Processing batch {number}/{len(batches)} ({len(batch)} files)...")
            try:
                self.repo.rm_cached(batch, config=self.filter_override)
            except VersionControlError as e:
                logger.warning(f"Failed to remove some files from cache in batch {number}: {e}")

            try:
                self.repo.checkout(batch, ref=ref, config=self.filter_override)
            except VersionControlError as e:
                raise VersionControlError(f"Failed to checkout files in batch {number}: {e}") from e
            report.batches.append(len(batch))

        console.print(f"[green]Successfully decrypted {len(files)} files[/green]")
        return report

    def update_keys(self, paths: Sequence[str] = (), assume_yes: bool = False) -> UpdateReport:
        """
        Re-key encrypted files after the recipient config changed.

        Files missing from HEAD or carrying uncommitted edits are skipped. All
        remaining files are attempted even if one fails; any failure aborts
        before committing.

        Raises:
            EngineError: If rotating at least one file failed.
        """
        report = UpdateReport()
        sops_config = self.settings.sops_config
        current = self.repo.read_working(sops_config)
        if current is not None and current == self.repo.show_head(sops_config):
            console.print("sops config is not changed, nothing to update")
            return report

        if paths:
            targets = [self.repo.relpath(p) for p in paths]
        else:
            console.print("Discovering encrypted files...")
            targets = self.discover_encrypted()
            if not targets:
                console.print("No encrypted files found to update")
                return report
            console.print(f"Found {len(targets)} encrypted files to update")

        console.print("Updating keys for encrypted files...")
        for path in targets:
            if not self.repo.exists_in_head(path):
                logger.warning(f"File {path} is not part of this repository, skipping")
                report.skipped.append(path)
                continue
            try:
                if self.detector.is_changed(path):
                    logger.warning(f"File {path} has uncommitted changes, skipping")
                    report.skipped.append(path)
                    continue

                console.print(f"Updating keys for: {escape(path)}")
                self._rotate(path)
            except (EngineError, VersionControlError) as e:
                logger.error(f"Failed to update keys for {path}: {e}")
                report.failed.append(path)
            else:
                report.updated.append(path)

        if report.failed:
            raise EngineError("Some files failed to update, aborting")

        if not self.repo.has_staged_changes():
            console.print("No changes to commit")
            return report

        if assume_yes or self.confirm("Commit the key updates?"):
            self.repo.commit(self.settings.commit_message)
            report.committed = True
            console.print("[green]Changes committed successfully[/green]")
        else:
            console.print("Changes staged but not committed. Use 'git commit' to commit manually.")

        console.print("Decrypting repository with updated keys...")
        # Uncommitted key updates live only in the index; check out from its tree.
        ref = "HEAD" if report.committed else self.repo.write_tree()
        report.decrypt = self.decrypt_repo(ref=ref)
        return report

    def _rotate(self, path: str) -> None:
        working = self.repo.read_working(path)
        if working is None or not self.engine.is_encrypted(working):
            # sops re-keys files in place, so put the committed ciphertext back first.
            committed = self.repo.show_head(path)
            if committed is None or not self.engine.is_encrypted(committed):
                raise EngineError(f"{path} is not encrypted at HEAD")
            self.repo.write_working(path, committed)
        self.engine.update_keys(path)
        # The file already holds fresh ciphertext; stage it without cleaning.
        self.repo.add([path], config=self.filter_override)

    def init(self, registration: FilterRegistration, store: ConfigStore, decrypt: Optional[bool] = None) -> bool:
        """
        Register the filter once, then optionally decrypt existing files.

        Returns:
            False if the repository was already initialized.
        """
        if not registration.ensure(store):
            console.print("Repository already initialized; skipping")
            return False

        console.print("[green]Repository initialized for use with sops[/green]")
        if decrypt is None:
            decrypt = self.confirm("Decrypt existing encrypted files?")
        if decrypt:
            self.decrypt_repo()
        return True
