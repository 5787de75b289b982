"""Folder enumeration for Codemap."""

import logging
import os
from collections.abc import Collection
from pathlib import Path

from .ignore import IgnoreResolver

logger = logging.getLogger(__name__)


def scan_files(
    folder: Path,
    extensions: Collection[str],
    ignorer: IgnoreResolver,
) -> list[str]:
    """
    List the tracked files below a folder.

    Args:
        folder: Absolute path of the folder to scan
        extensions: Allowed file suffixes, including the dot (e.g. {".ts"})
        ignorer: Exclusion rules, applied to paths relative to ``folder``

    Returns:
        Forward-slash relative paths, sorted lexicographically
    """
    files: list[str] = []
    _walk(folder, "", frozenset(extensions), ignorer, files)
    return sorted(files)


def _walk(
    directory: Path,
    base: str,
    extensions: frozenset[str],
    ignorer: IgnoreResolver,
    files: list[str],
) -> None:
    """Recursively collect matching files into ``files``."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", directory, e)
        return

    for entry in entries:
        relative_path = f"{base}/{entry.name}" if base else entry.name

        try:
            if entry.is_symlink():
                continue
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file(follow_symlinks=False)
        except OSError:
            continue

        if ignorer.is_ignored(relative_path, is_dir=is_dir):
            continue

        if is_dir:
            _walk(Path(entry.path), relative_path, extensions, ignorer, files)
        elif is_file:
            suffix = Path(entry.name).suffix
            if suffix and suffix in extensions:
                files.append(relative_path)
