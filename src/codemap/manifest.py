"""Index file management for Codemap."""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import CODEMAP_FILE
from .hashing import FileRecord, ScanResult

logger = logging.getLogger(__name__)


class CodemapError(Exception):
    """Base exception for Codemap errors."""


class IndexWriteError(CodemapError):
    """The index could not be persisted."""


class FileEntry(BaseModel):
    """Stored digest of one file."""

    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(alias="p")
    digest: str = Field(alias="h")


class FolderEntry(BaseModel):
    """Last committed state of one folder."""

    model_config = ConfigDict(populate_by_name=True)

    composite_digest: str = Field(alias="h")
    files: list[FileEntry] = Field(default_factory=list, alias="f")

    @classmethod
    def from_scan(cls, result: ScanResult) -> FolderEntry:
        """Create an entry from a fresh scan, files sorted by path."""
        return cls(
            composite_digest=result.composite_digest,
            files=[
                FileEntry(path=record.path, digest=record.digest)
                for record in sorted(result.files, key=lambda r: r.path)
            ],
        )

    def records(self) -> list[FileRecord]:
        return [FileRecord(entry.path, entry.digest) for entry in self.files]

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class CodemapIndex:
    """In-memory copy of the index document.

    Folder entries are kept as raw JSON and only validated on lookup, so
    entries for other folders are written back exactly as they were read.
    """

    def __init__(self, data: dict[str, Any] | None = None):
        self.data: dict[str, Any] = data if data is not None else {}
        if not isinstance(self.data.get("folders"), dict):
            self.data["folders"] = {}

    @property
    def folders(self) -> dict[str, Any]:
        return self.data["folders"]

    def keys(self) -> list[str]:
        return sorted(self.folders)

    def get(self, folder_key: str) -> FolderEntry | None:
        """Look up a folder entry; malformed entries count as missing."""
        raw = self.folders.get(folder_key)
        if raw is None:
            return None
        try:
            return FolderEntry.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring malformed index entry for %s", folder_key)
            return None

    def put(self, folder_key: str, entry: FolderEntry) -> None:
        """Replace one folder's entry, leaving all other keys untouched."""
        self.folders[folder_key] = entry.to_json()

    def __contains__(self, folder_key: str) -> bool:
        return folder_key in self.folders

    def __len__(self) -> int:
        return len(self.folders)


class IndexStore:
    """Reads and atomically rewrites the index document."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_root(cls, project_root: Path) -> IndexStore:
        return cls(get_index_path(project_root))

    def load(self) -> CodemapIndex:
        """Load the index, starting fresh if it is missing or unreadable."""
        if not self.path.exists():
            return CodemapIndex()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Index %s is unreadable, starting fresh: %s", self.path, e)
            return CodemapIndex()

        if not isinstance(data, dict) or not isinstance(data.get("folders"), dict):
            logger.warning("Index %s has no folders mapping, starting fresh", self.path)
            return CodemapIndex()

        return CodemapIndex(data)

    def save(self, index: CodemapIndex) -> None:
        """Write the whole index via a temp file and rename.

        Raises:
            IndexWriteError: If the document could not be written
        """
        content = json.dumps(index.data, indent=2) + "\n"
        temp_path: str | None = None
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".codemap-",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            # mkstemp creates 0600; keep the index's mode or follow the umask
            os.chmod(temp_path, self._file_mode())
            os.replace(temp_path, self.path)
        except OSError as e:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error("Failed to write index %s: %s", self.path, e)
            raise IndexWriteError(f"Failed to write index {self.path}: {e}") from e

    def _file_mode(self) -> int:
        """Permission bits for a rewritten index."""
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def delete(self) -> bool:
        """Remove the index file. Returns False if there was none."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True


def get_index_path(project_root: Path) -> Path:
    """Get the index file path."""
    return project_root / CODEMAP_FILE
