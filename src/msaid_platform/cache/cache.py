"""Module implementing PlatformCache."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from pathlib import Path

import requests

from . import prune
from .fetch import fetch_to_path
from .level import AggregationLevel, parse_level
from .paths import InvalidPathError, cache_root_or_default, normalize_cache_path
from .view import QualityColumns, ResultsView, read_results_view

log = logging.getLogger("cache/cache")


class PlatformCache:
    """
    Component managing the on-disk cache of experiment results.

    The cache contains one subtree per aggregation level. Each file lives at
    `<cache_root>/<level>/<sanitized_path>` where the sanitized path comes
    from `sanitize_remote_path`.
    """

    def __init__(
        self,
        cache_root: str | Path | None = None,
        *,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize cache with the cache root path.

        Parameters:
            cache_root: Path to the directory containing cached files.
                If None, defaults to ~/.msaid/platform/cache/experiments.
            session: Optional requests session used to download partitions.
        """
        self.cache_root = cache_root_or_default(cache_root)
        self.session = session if session is not None else requests.Session()

    def level_dir(self, level: AggregationLevel | str) -> Path:
        """Return the directory containing the files of the given level."""
        return normalize_cache_path(self.cache_root, parse_level(level).value)

    def local_path(self, level: AggregationLevel | str, relative_path: str) -> Path:
        """Return the normalized local path for the given cache-relative path."""
        return normalize_cache_path(self.level_dir(level), relative_path)

    def exists(self, level: AggregationLevel | str, relative_path: str) -> bool:
        """Return True if the given cache-relative path exists, False otherwise."""
        return self.local_path(level, relative_path).exists()

    def fetch(self, level: AggregationLevel | str, relative_path: str, source_url: str) -> None:
        """
        Download source_url and store it at the given cache-relative path.

        Raises:
            InvalidPathError: the path escapes the level directory.
            DownloadError: the remote fetch does not succeed.
            WriteError: the file cannot be written.
        """
        level_dir = self.level_dir(level)
        dest_path = self.local_path(level, relative_path)
        if not dest_path.is_relative_to(level_dir) or dest_path == level_dir:
            raise InvalidPathError(f"Invalid cache path: escapes {level_dir}, got: {relative_path}")
        log.info("fetching %s... start", dest_path)
        try:
            fetch_to_path(self.session, source_url, dest_path)
        except Exception as exc:
            log.warning("fetching %s... failure: %s", dest_path, exc)
            raise
        log.info("fetching %s... ok", dest_path)

    def open_view(
        self,
        level: AggregationLevel | str,
        *,
        max_q_value: float | None = 1.0,
        max_global_q_value: float | None = 1.0,
        include_decoys: bool = False,
        include_columns: list[str] | None = None,
        exclude_columns: Collection[str] = (),
        exclude_array_columns: bool = False,
        quality_columns: QualityColumns | None = None,
    ) -> ResultsView:
        """
        Open the cached results of a level as a lazy view.

        See `read_results_view` for the meaning of the arguments.
        """
        level = parse_level(level)
        return read_results_view(
            self.level_dir(level),
            level,
            max_q_value=max_q_value,
            max_global_q_value=max_global_q_value,
            include_decoys=include_decoys,
            include_columns=include_columns,
            exclude_columns=exclude_columns,
            exclude_array_columns=exclude_array_columns,
            quality_columns=quality_columns,
        )

    def prune(self, experiment_uuids: Iterable[str], level: AggregationLevel | str) -> list[Path]:
        """
        Delete the cached files of the given experiments at the given level.

        Returns the list of deleted files. See `prune.prune_experiments`.
        """
        return prune.prune_experiments(self, experiment_uuids, level)

    def prune_level(self, level: AggregationLevel | str) -> None:
        """Delete the whole subtree of the given level."""
        prune.prune_level(self, level)

    def prune_all(self) -> None:
        """Delete the whole cache root."""
        prune.prune_all(self)
