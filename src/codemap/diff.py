"""Comparison of a fresh folder scan against its committed entry."""

from __future__ import annotations

from dataclasses import dataclass, field

from .hashing import ScanResult
from .manifest import FolderEntry


@dataclass
class ChangeSet:
    """Files that differ between the committed entry and the filesystem."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes."""
        return bool(self.added or self.modified or self.removed)

    @property
    def changed(self) -> list[str]:
        """All changed paths, flattened and sorted."""
        return sorted({*self.added, *self.modified, *self.removed})

    @property
    def total_changes(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)


def is_clean(result: ScanResult, previous: FolderEntry | None) -> bool:
    """A folder is clean when its committed composite digest still matches."""
    return previous is not None and previous.composite_digest == result.composite_digest


def diff_folder(result: ScanResult, previous: FolderEntry | None) -> ChangeSet:
    """
    Classify the files of a fresh scan against the previous entry.

    Args:
        result: Current state of the folder
        previous: Last committed entry, or None if never committed

    Returns:
        ChangeSet with sorted added, modified and removed paths
    """
    current = result.digests()

    if previous is None:
        return ChangeSet(added=sorted(current))

    if is_clean(result, previous):
        return ChangeSet()

    old = {record.path: record.digest for record in previous.records()}

    return ChangeSet(
        added=sorted(path for path in current if path not in old),
        modified=sorted(
            path for path, digest in current.items()
            if path in old and old[path] != digest
        ),
        removed=sorted(path for path in old if path not in current),
    )
