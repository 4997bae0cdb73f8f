"""Shared pytest fixtures for msaid_platform tests."""

from collections.abc import Callable
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
import pytest


def _write_parquet(path: Path, data: dict[str, list]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(pa.table(data), path)
    return path


@pytest.fixture
def write_parquet() -> Callable[[Path, dict[str, list]], Path]:
    """Return a function writing a dict of columns as a parquet file."""
    return _write_parquet


@pytest.fixture
def parquet_bytes(tmp_path_factory: pytest.TempPathFactory) -> Callable[[dict[str, list]], bytes]:
    """Return a function serializing a dict of columns to parquet bytes."""

    def _serialize(data: dict[str, list]) -> bytes:
        path = tmp_path_factory.mktemp("serialized") / "data.parquet"
        return _write_parquet(path, data).read_bytes()

    return _serialize


def partition_path(
    level_dir: Path,
    experiment_uuid: str,
    *,
    dataset: str = "psms.parquet",
    name: str = "part-0.parquet",
) -> Path:
    """Return the cache path of an experiment partition within level_dir."""
    return level_dir / "result-db" / "v1" / dataset / f"experiment_uuid={experiment_uuid}" / name


@pytest.fixture
def make_partition_path() -> Callable[..., Path]:
    """Return a function computing partition paths within a level directory."""
    return partition_path
