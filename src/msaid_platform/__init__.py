"""MSAID platform results library.

This library caches parquet experiment results downloaded from the
MSAID platform and serves filtered, lazily-evaluated views of them.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _package_version

from .api import ApiError, PlatformApiClient, PresignedUrlEntry, PresignedUrlProvider
from .cache import (
    AggregationLevel,
    DownloadError,
    InvalidPathError,
    PlatformCache,
    QualityColumns,
    ResultsView,
    WriteError,
    sanitize_remote_path,
)
from .config import PlatformSettings
from .results import clear_experiment_cache, read_experiment_results
from .timestamp import normalize_timestamp

try:
    __version__ = _package_version("msaid-platform")
except PackageNotFoundError:  # pragma: no cover - running from a source tree
    __version__ = "0.0.0"

__all__ = [
    "AggregationLevel",
    "ApiError",
    "DownloadError",
    "InvalidPathError",
    "PlatformApiClient",
    "PlatformCache",
    "PlatformSettings",
    "PresignedUrlEntry",
    "PresignedUrlProvider",
    "QualityColumns",
    "ResultsView",
    "WriteError",
    "__version__",
    "clear_experiment_cache",
    "normalize_timestamp",
    "read_experiment_results",
    "sanitize_remote_path",
]
