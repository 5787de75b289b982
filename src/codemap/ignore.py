"""Path exclusion rules for Codemap scans."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable
from pathlib import Path

import pathspec

from . import GITIGNORE_FILE

logger = logging.getLogger(__name__)

# Always excluded, regardless of .gitignore negations
DEFAULT_IGNORE = [
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    "coverage",
    ".turbo",
    "out",
    "*.log",
    ".DS_Store",
]


class IgnoreResolver:
    """Decides whether a path relative to the scanned folder is excluded.

    Built-in exclusions are matched against whole path components rather than
    as substrings of the path, so ``out`` excludes ``out/`` but not
    ``layout.ts``. They cannot be overridden. Patterns from the folder's ``.gitignore`` come next, followed by
    caller-supplied patterns; together they follow gitignore semantics, so a
    later ``!pattern`` re-includes what an earlier one excluded.
    """

    def __init__(self, patterns: Iterable[str] = (), builtin: Iterable[str] = DEFAULT_IGNORE):
        self.patterns = list(patterns)
        self.builtin = list(builtin)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    @classmethod
    def for_folder(cls, folder: Path, extra_patterns: Iterable[str] = ()) -> IgnoreResolver:
        """Build a resolver from the folder's .gitignore and extra patterns."""
        return cls(read_ignore_file(folder / GITIGNORE_FILE) + list(extra_patterns))

    def is_builtin_ignored(self, relative_path: str) -> bool:
        """Check the fixed exclusion list against each path component."""
        for part in relative_path.split("/"):
            for pattern in self.builtin:
                if part == pattern or fnmatch.fnmatchcase(part, pattern):
                    return True
        return False

    def is_ignored(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check if a forward-slash relative path is excluded."""
        relative_path = relative_path.strip("/")
        if not relative_path or relative_path == ".":
            return False

        if self.is_builtin_ignored(relative_path):
            return True

        if not self.patterns:
            return False

        # Directory-only patterns ("build/") need the trailing slash to match
        candidate = f"{relative_path}/" if is_dir else relative_path
        return self._spec.match_file(candidate)


def read_ignore_file(path: Path) -> list[str]:
    """Read gitignore-style lines, or nothing if the file is absent or unreadable."""
    try:
        content = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read ignore file %s: %s", path, e)
        return []
    return content.splitlines()
