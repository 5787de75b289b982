"""Shared test fixtures for codemap."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from codemap.config import ScanConfig
from codemap.tracker import FolderTracker


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


def write_files(root: Path, files: dict[str, str]) -> None:
    """Create files (and parent directories) under root.

    Args:
        root: Directory to write into
        files: Mapping of forward-slash relative path to text content
    """
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small TypeScript project.

    Structure:
        project/
        ├── index.ts
        ├── README.md
        ├── src/
        │   ├── app.ts
        │   └── utils/
        │       └── strings.ts
        └── node_modules/
            └── lib/index.ts
    """
    root = tmp_path / "project"
    write_files(root, {
        "index.ts": "export * from './src/app';\n",
        "README.md": "# Project\n",
        "src/app.ts": "export const app = 1;\n",
        "src/utils/strings.ts": "export const upper = (s: string) => s.toUpperCase();\n",
        "node_modules/lib/index.ts": "module.exports = {};\n",
    })
    return root


@pytest.fixture
def tracker(project: Path) -> FolderTracker:
    """Tracker rooted at the sample project, tracking .ts files."""
    return FolderTracker(project, ScanConfig(extensions=[".ts"]))
