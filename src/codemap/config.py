"""Scan configuration for Codemap."""

import os
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import ENV_PREFIX

DEFAULT_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs"]


class ScanConfig(BaseModel):
    """Extensions and ignore patterns for one invocation."""

    model_config = ConfigDict(frozen=True)

    extensions: tuple[str, ...] = Field(default=tuple(DEFAULT_EXTENSIONS))
    exclude_patterns: tuple[str, ...] = ()
    hash_workers: int = Field(default=1, ge=1)

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Iterable[str]) -> tuple[str, ...]:
        if isinstance(value, str):
            value = split_list(value)
        normalized: list[str] = []
        for ext in value:
            ext = ext.strip().lstrip(".")
            if ext and f".{ext}" not in normalized:
                normalized.append(f".{ext}")
        if not normalized:
            raise ValueError("at least one file extension is required")
        return tuple(normalized)

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def _normalize_patterns(cls, value: Iterable[str]) -> tuple[str, ...]:
        if isinstance(value, str):
            value = split_list(value)
        return tuple(p.strip() for p in value if p.strip())

    @classmethod
    def from_strings(
        cls,
        extensions: str | None = None,
        exclude: str | None = None,
        hash_workers: int = 1,
    ) -> "ScanConfig":
        """Build a config from comma-separated CLI arguments.

        An empty or missing extension list falls back to the defaults.
        """
        data: dict = {"hash_workers": hash_workers}
        if extensions and split_list(extensions):
            data["extensions"] = extensions
        if exclude:
            data["exclude_patterns"] = exclude
        return cls.model_validate(data)


def split_list(value: str) -> list[str]:
    """Split a comma-separated argument, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    extensions: str | None = None,
    exclude: str | None = None,
    hash_workers: int | None = None,
) -> ScanConfig:
    """Load scan configuration.

    Environment variables provide defaults; explicit arguments win.
    """
    extensions = extensions or os.environ.get(f"{ENV_PREFIX}EXTENSIONS")
    exclude = exclude or os.environ.get(f"{ENV_PREFIX}EXCLUDE")

    if hash_workers is None:
        workers_env = os.environ.get(f"{ENV_PREFIX}HASH_WORKERS")
        hash_workers = int(workers_env) if workers_env else 1

    return ScanConfig.from_strings(extensions, exclude, hash_workers=hash_workers)
