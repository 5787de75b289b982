"""Scan, hash, diff and commit operations for Codemap."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .config import ScanConfig
from .diff import ChangeSet, diff_folder, is_clean
from .hashing import ScanResult, build_scan_result
from .ignore import IgnoreResolver
from .manifest import CodemapError, FolderEntry, IndexStore
from .scanner import scan_files

logger = logging.getLogger(__name__)


class FolderError(CodemapError):
    """The requested folder cannot be tracked."""


@dataclass
class ChangeReport:
    """Result of a read-only change query."""

    folder_key: str
    file_count: int
    folder_hash: str
    changes: ChangeSet = field(default_factory=ChangeSet)

    @property
    def has_changes(self) -> bool:
        return self.changes.has_changes


@dataclass
class UpdateResult:
    """Result of committing one folder."""

    updated: bool
    folder_key: str
    file_count: int = 0
    changes: ChangeSet = field(default_factory=ChangeSet)


class FolderTracker:
    """Tracks per-folder content digests in the index of one project root.

    Every folder is keyed by its path relative to ``project_root``. Commits
    are not aggregated across folders: callers updating a tree must commit
    child folders before their parents (see ``leaf_first``).
    """

    def __init__(
        self,
        project_root: Path,
        config: ScanConfig | None = None,
        store: IndexStore | None = None,
    ):
        self.project_root = project_root.resolve()
        self.config = config or ScanConfig()
        self.store = store or IndexStore.for_root(self.project_root)

    def resolve_folder(self, folder: Path | str | None = None) -> tuple[Path, str]:
        """
        Resolve a folder argument to an absolute path and its index key.

        Raises:
            FolderError: If the folder is missing, not a directory, or outside the root
        """
        if folder is None or str(folder) == "":
            path = self.project_root
        else:
            path = Path(folder)
            if not path.is_absolute():
                path = self.project_root / path
            path = path.resolve()

        if not path.exists():
            raise FolderError(f"Folder does not exist: {path}")
        if not path.is_dir():
            raise FolderError(f"Not a directory: {path}")

        try:
            relative = path.relative_to(self.project_root)
        except ValueError:
            raise FolderError(
                f"Folder {path} is outside the project root {self.project_root}"
            ) from None

        return path, relative.as_posix()

    def scan(self, folder: Path | str | None = None) -> list[str]:
        """List the tracked files of a folder, without hashing."""
        path, _ = self.resolve_folder(folder)
        return self._scan_path(path)

    def hash(self, folder: Path | str | None = None) -> ScanResult:
        """Compute file and composite digests, without touching the index."""
        path, folder_key = self.resolve_folder(folder)
        return self._hash_path(path, folder_key)

    def changes(self, folder: Path | str | None = None) -> ChangeReport:
        """Report what changed since the folder's last commit. Never writes."""
        path, folder_key = self.resolve_folder(folder)
        result = self._hash_path(path, folder_key)
        previous = self.store.load().get(folder_key)

        return ChangeReport(
            folder_key=folder_key,
            file_count=result.file_count,
            folder_hash=result.composite_digest,
            changes=diff_folder(result, previous),
        )

    def update(self, folder: Path | str | None = None) -> UpdateResult:
        """
        Commit the folder's current state if it differs from the index.

        Returns:
            UpdateResult with ``updated=False`` when the folder was clean

        Raises:
            IndexWriteError: If the index could not be written
        """
        path, folder_key = self.resolve_folder(folder)
        result = self._hash_path(path, folder_key)

        index = self.store.load()
        previous = index.get(folder_key)

        if is_clean(result, previous):
            logger.debug("Folder %s is clean", folder_key)
            return UpdateResult(updated=False, folder_key=folder_key, file_count=result.file_count)

        changes = diff_folder(result, previous)
        if previous is None and folder_key in index:
            logger.warning("Replacing malformed index entry for %s", folder_key)
        index.put(folder_key, FolderEntry.from_scan(result))
        self.store.save(index)

        logger.info(
            "Committed %s: %d added, %d modified, %d removed",
            folder_key,
            len(changes.added),
            len(changes.modified),
            len(changes.removed),
        )
        return UpdateResult(
            updated=True,
            folder_key=folder_key,
            file_count=result.file_count,
            changes=changes,
        )

    def update_many(self, folders: Iterable[Path | str]) -> list[UpdateResult]:
        """Commit several folders, children before parents."""
        keyed = {}
        for folder in folders:
            _, folder_key = self.resolve_folder(folder)
            keyed[folder_key] = folder
        return [self.update(keyed[key]) for key in leaf_first(keyed)]

    def _scan_path(self, path: Path) -> list[str]:
        ignorer = IgnoreResolver.for_folder(path, self.config.exclude_patterns)
        return scan_files(path, self.config.extensions, ignorer)

    def _hash_path(self, path: Path, folder_key: str) -> ScanResult:
        files = self._scan_path(path)
        return build_scan_result(
            path,
            folder_key,
            files,
            max_workers=self.config.hash_workers,
        )


def leaf_first(folder_keys: Iterable[str]) -> list[str]:
    """
    Order folder keys so every folder precedes its ancestors.

    Deeper folders come first; ties are broken by path so the order is stable.
    The root key "." always sorts last.
    """

    def depth(key: str) -> int:
        return 0 if key == "." else len(PurePosixPath(key).parts)

    return sorted(set(folder_keys), key=lambda key: (-depth(key), key))
