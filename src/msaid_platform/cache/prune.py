"""Module to delete files from the on-disk cache."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Final

from .level import AggregationLevel, parse_level
from .paths import experiment_uuid_from_path, is_hidden_path
from .view import read_results_view

if TYPE_CHECKING:
    from .cache import PlatformCache

log = logging.getLogger("cache/prune")

# Extension of the files we are allowed to delete
CACHE_FILE_SUFFIX: Final[str] = ".parquet"


def prune_all(cache: PlatformCache) -> None:
    """Recursively delete the whole cache root, regardless of the level."""
    log.info("removing %s... start", cache.cache_root)
    shutil.rmtree(cache.cache_root, ignore_errors=True)
    log.info("removing %s... ok", cache.cache_root)


def prune_level(cache: PlatformCache, level: AggregationLevel | str) -> None:
    """Recursively delete the subtree of a single level."""
    level_dir = cache.level_dir(level)
    log.info("removing %s... start", level_dir)
    shutil.rmtree(level_dir, ignore_errors=True)
    log.info("removing %s... ok", level_dir)


def prune_experiments(
    cache: PlatformCache,
    experiment_uuids: Iterable[str],
    level: AggregationLevel | str,
) -> list[Path]:
    """
    Delete the cached files of the given experiments at the given level.

    An empty set of experiments deletes nothing. We discover the files to
    delete by querying the cached dataset, hence failures to read the cache
    are logged and treated as nothing to delete. When the whole level cannot
    be read, we retry one file at a time, so that a single corrupt partition
    does not hide the files we could still delete.

    Only files ending in `.parquet` are deleted. Other files inside the
    partition tree are logged and skipped.

    Returns:
        The list of deleted files.
    """
    uuids = set(experiment_uuids)
    if not uuids:
        return []

    level = parse_level(level)
    level_dir = cache.level_dir(level)
    if not level_dir.exists():
        return []

    try:
        paths = _collect_paths(level_dir, level, uuids)
    except Exception as exc:
        log.warning("reading %s for cleanup... failure: %s", level_dir, exc)
        log.warning("cache may be empty or corrupted; retrying one file at a time")
        paths = _collect_paths_per_file(level_dir, level, uuids)

    return _delete_files(paths)


def _collect_paths(level_dir: Path, level: AggregationLevel, uuids: set[str]) -> set[Path]:
    # Quality thresholds are irrelevant to deletion, so read everything
    view = read_results_view(
        level_dir,
        level,
        max_q_value=None,
        max_global_q_value=None,
        include_decoys=True,
    )
    if view.is_empty:
        return set()
    return view.filter_experiments(uuids).file_paths()


def _collect_paths_per_file(
    level_dir: Path,
    level: AggregationLevel,
    uuids: set[str],
) -> set[Path]:
    result: set[Path] = set()
    for path in sorted(level_dir.rglob("*")):
        if not path.is_file() or is_hidden_path(path.relative_to(level_dir)):
            continue
        try:
            view = read_results_view(
                [path],
                level,
                max_q_value=None,
                max_global_q_value=None,
                include_decoys=True,
                partition_base_dir=level_dir,
            )
            if not view.is_empty:
                result |= view.filter_experiments(uuids).file_paths()
        except Exception as exc:
            log.warning("reading %s for cleanup... failure: %s", path, exc)
            # The partition path still tells us which experiment owns the file
            if experiment_uuid_from_path(path.relative_to(level_dir)) in uuids:
                result.add(path)
    return result


def _delete_files(paths: Iterable[Path]) -> list[Path]:
    deleted: list[Path] = []
    for path in sorted(paths):
        if not path.exists():
            continue
        if path.suffix != CACHE_FILE_SUFFIX:
            log.warning("skipping non-parquet file: %s", path)
            continue
        log.info("deleting: %s", path)
        path.unlink()
        deleted.append(path)
    return deleted
