"""Package managing the local cache of experiment results.

The `PlatformCache` class checks whether partitions are cached, downloads
them, opens each level as a lazy `ResultsView`, and deletes cached files.

The `sanitize_remote_path` function turns a remote partition path into
the path used inside the cache.

Cache Root Convention
---------------------

If a cache root is specified, we use it. Otherwise, we use
`~/.msaid/platform/cache/experiments`.

On-Disk Format
--------------

We store files named after the following pattern:

    $cache_root/{level}/result-db/{version}/{dataset}/experiment_uuid={uuid}/{file}.parquet

The `{level}` is one of the `AggregationLevel` values (e.g., `psms` or
`sample_rollup_protein_groups`). Levels are independent: operations on
one level never touch the subtree of another level.

Everything below `{level}` comes from the remote partition path, where
we collapse the `organization_uuid=.../account_uuid=...` segments to stay
below the path length limits of some operating systems. For example:

    result-db/v1/psms.parquet/organization_uuid=o/account_uuid=a/experiment_uuid=e/part-0.parquet

is stored as

    $cache_root/psms/result-db/v1/psms.parquet/experiment_uuid=e/part-0.parquet

The `key=value` segments follow the hive partitioning convention, so that
reading a `{level}` directory as a dataset reconstitutes `experiment_uuid`
(and any other partition key) as a column.

A file is cached if and only if it exists. Files are never modified in
place: we download into a dot-prefixed temporary directory, which dataset
discovery ignores, and atomically rename the result. Files are removed
either by experiment (see `PlatformCache.prune`) or wholesale.

The cache assumes a single writer: do not download into a level while
another process reads or prunes the same level.
"""

from .cache import PlatformCache
from .fetch import DownloadError, FetchError, WriteError
from .level import AggregationLevel, parse_level
from .paths import InvalidPathError, cache_root_or_default, sanitize_remote_path
from .view import DEFAULT_QUALITY_COLUMNS, QualityColumns, ResultsView, read_results_view

__all__ = [
    "AggregationLevel",
    "DEFAULT_QUALITY_COLUMNS",
    "DownloadError",
    "FetchError",
    "InvalidPathError",
    "PlatformCache",
    "QualityColumns",
    "ResultsView",
    "WriteError",
    "cache_root_or_default",
    "parse_level",
    "read_results_view",
    "sanitize_remote_path",
]
