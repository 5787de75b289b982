"""Content hashing for Codemap change detection.

File digests are MD5 over raw bytes; MD5 is used for fast equality checks,
not for integrity. A folder's composite digest is one MD5 fed with
``"{path}:{digest}|"`` for every file, in ascending path order, UTF-8 encoded.
Changing the order, the separator or the encoding changes every composite
digest already stored in an index.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class FileRecord:
    """Digest of one tracked file."""

    path: str  # Relative to the scanned folder, forward slashes
    digest: str


@dataclass
class ScanResult:
    """Freshly computed state of one folder."""

    folder_key: str
    files: list[FileRecord] = field(default_factory=list)
    composite_digest: str = ""

    @property
    def file_count(self) -> int:
        return len(self.files)

    def digests(self) -> dict[str, str]:
        """Map of relative path to file digest."""
        return {record.path: record.digest for record in self.files}


def compute_file_hash(filepath: Path) -> str:
    """Compute MD5 hash of file contents."""
    h = hashlib.md5(usedforsecurity=False)
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def compute_folder_hash(records: Iterable[FileRecord]) -> str:
    """Compute the composite digest from path-sorted file records."""
    h = hashlib.md5(usedforsecurity=False)
    for record in sorted(records, key=lambda r: r.path):
        h.update(f"{record.path}:{record.digest}|".encode())
    return h.hexdigest()


def _hash_one(folder: Path, relative_path: str) -> FileRecord | None:
    try:
        return FileRecord(relative_path, compute_file_hash(folder / relative_path))
    except OSError as e:
        # Permission denied or removed mid-scan
        logger.debug("Failed to hash %s: %s", relative_path, e)
        return None


def hash_files(
    folder: Path,
    paths: Iterable[str],
    max_workers: int = 1,
) -> list[FileRecord]:
    """
    Hash files relative to a folder.

    Files that cannot be read are left out of the result.

    Args:
        folder: Folder the paths are relative to
        paths: Relative file paths
        max_workers: Thread count; 1 hashes sequentially

    Returns:
        FileRecords sorted by path
    """
    paths = list(paths)
    if max_workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(paths))) as executor:
            results = list(executor.map(lambda p: _hash_one(folder, p), paths))
    else:
        results = [_hash_one(folder, p) for p in paths]

    return sorted(record for record in results if record is not None)


def build_scan_result(
    folder: Path,
    folder_key: str,
    paths: Iterable[str],
    max_workers: int = 1,
) -> ScanResult:
    """Hash the given files and fold them into a ScanResult."""
    records = hash_files(folder, paths, max_workers=max_workers)
    return ScanResult(
        folder_key=folder_key,
        files=records,
        composite_digest=compute_folder_hash(records),
    )
