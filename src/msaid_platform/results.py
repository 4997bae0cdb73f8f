"""Module to read and clear experiment results through the local cache."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from pathlib import Path

from .api import PresignedUrlProvider
from .cache import AggregationLevel, PlatformCache, parse_level, sanitize_remote_path
from .cache.view import QualityColumns, ResultsView

log = logging.getLogger("results")


def read_experiment_results(
    cache: PlatformCache,
    provider: PresignedUrlProvider,
    level: AggregationLevel | str,
    experiment_uuids: Iterable[str],
    *,
    max_q_value: float | None = 0.01,
    max_global_q_value: float | None = 0.01,
    include_decoys: bool = False,
    include_columns: list[str] | None = None,
    exclude_columns: Collection[str] = (),
    exclude_array_columns: bool = False,
    quality_columns: QualityColumns | None = None,
) -> ResultsView:
    """
    Ensure the results of the given experiments are cached and return a view.

    Partitions already on disk are not downloaded again. The returned view
    is lazy and restricted to the given experiments; use `to_pandas` or
    `to_table` to materialize it.

    Arguments:
        cache: the local cache.
        provider: the source of presigned URLs (e.g., PlatformApiClient).
        level: the aggregation level.
        experiment_uuids: the experiments to read.

    The remaining arguments are documented in `read_results_view`.

    Raises:
        ValueError: no experiment UUID was given.
        ApiError: we cannot obtain the presigned URLs.
        InvalidPathError: the API returned a malformed partition path.
        FetchError: we cannot download or write a partition.
    """
    level = parse_level(level)
    uuids = list(dict.fromkeys(experiment_uuids))
    if not uuids:
        raise ValueError("at least one experiment uuid must be provided")

    for experiment_uuid in uuids:
        log.info("syncing %s/%s... start", level.value, experiment_uuid)
        for entry in provider.presigned_urls(experiment_uuid, level):
            relative_path = sanitize_remote_path(entry.path)
            if cache.exists(level, relative_path):
                log.debug("cache hit: %s", relative_path)
                continue
            cache.fetch(level, relative_path, entry.presignedUrl)
        log.info("syncing %s/%s... ok", level.value, experiment_uuid)

    view = cache.open_view(
        level,
        max_q_value=max_q_value,
        max_global_q_value=max_global_q_value,
        include_decoys=include_decoys,
        include_columns=include_columns,
        exclude_columns=exclude_columns,
        exclude_array_columns=exclude_array_columns,
        quality_columns=quality_columns,
    )
    return view.filter_experiments(uuids)


def clear_experiment_cache(
    cache: PlatformCache,
    experiment_uuids: Iterable[str] | None = None,
    levels: Iterable[AggregationLevel | str] | None = None,
) -> list[Path]:
    """
    Remove cached files for the given experiments and levels.

    The cache is cleared at the intersection of experiments and levels:

    - experiments and levels given: only those combinations are removed;
    - only experiments given: those experiments are removed from all levels;
    - only levels given: those levels are removed entirely;
    - neither given: the entire cache is removed.

    An empty (rather than None) collection of experiments removes nothing.

    Returns:
        The list of deleted files (empty for whole-directory removals).
    """
    parsed = [parse_level(level) for level in levels] if levels is not None else None

    if experiment_uuids is None:
        if parsed is None:
            cache.prune_all()
            return []
        for level in parsed:
            cache.prune_level(level)
        return []

    uuids = set(experiment_uuids)
    deleted: list[Path] = []
    for level in parsed if parsed is not None else list(AggregationLevel):
        deleted.extend(cache.prune(uuids, level))
    return deleted
