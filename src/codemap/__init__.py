"""Codemap - Incremental change detection for hierarchical codebase maps."""

__version__ = "0.1.0"

# File and environment constants
CODEMAP_FILE = ".codemap.json"
GITIGNORE_FILE = ".gitignore"
ENV_PREFIX = "CODEMAP_"
