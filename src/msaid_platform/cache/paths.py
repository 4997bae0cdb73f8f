"""Module to derive local cache paths from remote object paths."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

# Every remote partition path lives below this prefix
REMOTE_PATH_PREFIX: Final[str] = "result-db/"

# Hive segments delimiting the span we collapse
ORGANIZATION_MARKER: Final[str] = "/organization_uuid="
EXPERIMENT_MARKER: Final[str] = "/experiment_uuid="

# Partition columns that only exist because of the remote layout
INTERNAL_PARTITION_COLUMNS: Final[tuple[str, ...]] = ("organization_uuid", "account_uuid")

# Partition columns of the remote layout, in path order
PARTITION_COLUMNS: Final[tuple[str, ...]] = (*INTERNAL_PARTITION_COLUMNS, "experiment_uuid")


class InvalidPathError(ValueError):
    """Error emitted when a remote or cache path is malformed."""


def sanitize_remote_path(path: str) -> str:
    """
    Shorten a remote partition path so it is safe to use inside the cache.

    The `organization_uuid=.../account_uuid=...` span is removed so that the
    result starts from the first `experiment_uuid=` segment following it. This
    keeps local paths below the path length limit of some operating systems
    while keeping them unique per experiment and dataset version.

    Example:

        >>> sanitize_remote_path(
        ...     "result-db/v1/psms.parquet/organization_uuid=abc123"
        ...     "/account_uuid=def456/experiment_uuid=ghi789"
        ... )
        'result-db/v1/psms.parquet/experiment_uuid=ghi789'

    Paths without an organization segment, or without an experiment segment
    after it, are returned unchanged.

    Raises:
        InvalidPathError if the path does not start with `result-db/`.
    """
    if not path.startswith(REMOTE_PATH_PREFIX):
        raise InvalidPathError(
            f"Invalid cache path: path must start with '{REMOTE_PATH_PREFIX}', got: {path}"
        )

    org_index = path.find(ORGANIZATION_MARKER)
    if org_index < 0:
        return path

    exp_index = path.find(EXPERIMENT_MARKER, org_index)
    if exp_index < 0:
        return path

    return path[:org_index] + path[exp_index:]


def normalize_cache_path(base: Path, *parts: str) -> Path:
    """
    Join the given parts to base and normalize the result.

    Redundant separators and `..` components are resolved lexically so
    the path does not need to exist.
    """
    return Path(os.path.normpath(base.joinpath(*parts)))


def cache_root_or_default(cache_root: str | Path | None) -> Path:
    """
    Return cache_root as an absolute Path if not empty. Otherwise return
    the default cache root (i.e., `~/.msaid/platform/cache/experiments`).
    """
    if cache_root is None:
        return Path.home() / ".msaid" / "platform" / "cache" / "experiments"
    return Path(cache_root).expanduser().absolute()


def is_hidden_path(relative: Path) -> bool:
    """Return whether dataset discovery ignores the given relative path."""
    return any(part.startswith((".", "_")) for part in relative.parts)


def experiment_uuid_from_path(relative: Path) -> str | None:
    """Return the value of the `experiment_uuid=` segment, if any."""
    for part in relative.parts:
        key, sep, value = part.partition("=")
        if sep and key == "experiment_uuid":
            return value
    return None
