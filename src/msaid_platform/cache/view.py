"""Module to read a cache level as one lazily-filtered dataset."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Final

import pandas as pd
import pyarrow as pa
import pyarrow.dataset as ds

from .level import AggregationLevel, parse_level
from .paths import INTERNAL_PARTITION_COLUMNS, PARTITION_COLUMNS

log = logging.getLogger("cache/view")

# Name of the column identifying the backing file of each row
LOCAL_FILE_PATH_COLUMN: Final[str] = "local_file_path"

# Name of the column identifying the experiment of each row
EXPERIMENT_UUID_COLUMN: Final[str] = "experiment_uuid"

# Name of the column flagging decoy rows
DECOY_COLUMN: Final[str] = "DECOY"

# Hive partitioning with string keys, so that UUIDs such as `00123` are
# not inferred as integers. Other `key=value` segments are ignored.
PARTITIONING: Final[ds.Partitioning] = ds.partitioning(
    pa.schema([(name, pa.string()) for name in PARTITION_COLUMNS]),
    flavor="hive",
)


@dataclass(frozen=True, kw_only=True)
class QualityColumns:
    """
    Columns used to apply the quality filters of a level.

    Attributes:
        q_value: column compared against max_q_value or None to skip
        global_q_value: column compared against max_global_q_value or None to skip
    """

    q_value: str | None
    global_q_value: str | None


_RUN_LEVEL = QualityColumns(q_value="Q_VALUE", global_q_value="GLOBAL_Q_VALUE")
_GLOBAL_ONLY = QualityColumns(q_value=None, global_q_value="GLOBAL_Q_VALUE")

DEFAULT_QUALITY_COLUMNS: Final[dict[AggregationLevel, QualityColumns]] = {
    AggregationLevel.PSMS: QualityColumns(q_value="Q_VALUE", global_q_value=None),
    AggregationLevel.PRECURSORS: _RUN_LEVEL,
    AggregationLevel.PEPTIDES: _RUN_LEVEL,
    AggregationLevel.MODIFIED_PEPTIDES: _RUN_LEVEL,
    AggregationLevel.PROTEIN_GROUPS: _GLOBAL_ONLY,
    # Sample rollups also carry SAMPLE_Q_VALUE; pass a custom QualityColumns
    # to filter on it instead of relying on the global q-value only.
    AggregationLevel.SAMPLE_ROLLUP_PRECURSORS: _GLOBAL_ONLY,
    AggregationLevel.SAMPLE_ROLLUP_PEPTIDES: _GLOBAL_ONLY,
    AggregationLevel.SAMPLE_ROLLUP_MODIFIED_PEPTIDES: _GLOBAL_ONLY,
    AggregationLevel.SAMPLE_ROLLUP_PROTEIN_GROUPS: _GLOBAL_ONLY,
}


@dataclass(frozen=True, kw_only=True)
class ResultsView:
    """
    Lazy view over the cached results of a level.

    Filters and projections are recorded but rows are only read when
    calling a method such as `to_table` or `to_pandas`.

    Attributes:
        level: the aggregation level of the view
        dataset: the underlying dataset or None when the cache is empty
        filter: the filter expression or None to select all rows
        columns: the projected column names (without `local_file_path`)
    """

    level: AggregationLevel
    dataset: ds.Dataset | None
    filter: ds.Expression | None = None
    columns: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Whether the view is backed by no data at all."""
        return self.dataset is None

    @property
    def column_names(self) -> list[str]:
        """Names of the columns produced when evaluating the view."""
        if self.dataset is None:
            return []
        return [*self.columns, LOCAL_FILE_PATH_COLUMN]

    def projection(self) -> dict[str, ds.Expression]:
        """Return the projection mapping output names to expressions."""
        projection = {name: ds.field(name) for name in self.columns}
        projection[LOCAL_FILE_PATH_COLUMN] = ds.field("__filename")
        return projection

    def scanner(self) -> ds.Scanner:
        """
        Return a scanner evaluating the view.

        Raises:
            ValueError if the view is empty.
        """
        if self.dataset is None:
            raise ValueError(f"cannot scan empty view for level {self.level.value}")
        return self.dataset.scanner(columns=self.projection(), filter=self.filter)

    def to_table(self) -> pa.Table:
        """Materialize the view as a pyarrow Table."""
        if self.dataset is None:
            return pa.table({})
        return self._materialize(self.projection())

    def to_pandas(self) -> pd.DataFrame:
        """Materialize the view as a pandas DataFrame."""
        return self.to_table().to_pandas()

    def count_rows(self) -> int:
        """Count the rows selected by the view."""
        if self.dataset is None:
            return 0
        return self.dataset.count_rows(filter=self.filter)

    def filter_experiments(self, experiment_uuids: Iterable[str]) -> ResultsView:
        """
        Return a new view restricted to rows of the given experiments.

        The experiment column does not need to be part of the projection.
        Files outside of any `experiment_uuid=` partition are never selected.
        """
        if self.dataset is None:
            return self
        uuids = sorted(set(experiment_uuids))
        expr = ds.field(EXPERIMENT_UUID_COLUMN).isin(uuids)
        return replace(self, filter=_and(self.filter, expr))

    def file_paths(self) -> set[Path]:
        """Return the distinct files backing the rows selected by the view."""
        if self.dataset is None:
            return set()
        table = self._materialize({LOCAL_FILE_PATH_COLUMN: ds.field("__filename")})
        return {Path(value) for value in table.column(LOCAL_FILE_PATH_COLUMN).to_pylist()}

    def _materialize(self, projection: dict[str, ds.Expression]) -> pa.Table:
        assert self.dataset is not None
        empty = self._schema(projection).empty_table()
        if next(iter(self.dataset.get_fragments(filter=self.filter)), None) is None:
            return empty
        try:
            return self.dataset.to_table(columns=projection, filter=self.filter)
        except pa.ArrowInvalid:
            # __filename cannot be bound when the filter prunes every row group
            if self.dataset.count_rows(filter=self.filter) > 0:
                raise
            return empty

    def _schema(self, projection: dict[str, ds.Expression]) -> pa.Schema:
        assert self.dataset is not None
        return pa.schema(
            [
                pa.field(name, pa.string())
                if name == LOCAL_FILE_PATH_COLUMN
                else self.dataset.schema.field(name)
                for name in projection
            ]
        )


def read_results_view(
    source: Path | list[Path],
    level: AggregationLevel | str,
    *,
    max_q_value: float | None = 1.0,
    max_global_q_value: float | None = 1.0,
    include_decoys: bool = False,
    include_columns: list[str] | None = None,
    exclude_columns: Collection[str] = (),
    exclude_array_columns: bool = False,
    quality_columns: QualityColumns | None = None,
    partition_base_dir: Path | None = None,
) -> ResultsView:
    """
    Open cached parquet partitions as a single lazily-filtered view.

    The partition tree is read using hive partitioning, therefore the
    `organization_uuid`, `account_uuid` and `experiment_uuid` path segments
    become string columns of the view.

    Arguments:
        source: the level directory or a list of parquet files.
        level: the aggregation level of the data.
        max_q_value: maximum local q-value or None to disable the filter.
        max_global_q_value: maximum global q-value or None to disable the filter.
        include_decoys: whether to keep rows flagged as decoys.
        include_columns: columns to keep (None means all the columns).
        exclude_columns: columns to drop even when explicitly included.
        exclude_array_columns: whether to drop list-typed columns unless
            they are explicitly included.
        quality_columns: override the per-level quality filter columns.
        partition_base_dir: directory where hive partitioning starts when
            source is a list of files.

    Returns:
        A ResultsView, which is empty when there is nothing cached.
    """
    level = parse_level(level)

    # 1. open the dataset and short circuit when there is no data since
    # we cannot inspect the schema of an empty or missing tree
    if isinstance(source, Path) and not source.exists():
        return ResultsView(level=level, dataset=None)
    dataset = ds.dataset(
        str(source) if isinstance(source, Path) else [str(path) for path in source],
        format="parquet",
        partitioning=PARTITIONING,
        partition_base_dir=str(partition_base_dir) if partition_base_dir is not None else None,
    )
    if dataset.count_rows() == 0:
        return ResultsView(level=level, dataset=None)

    # 2. resolve the columns to project
    columns = resolve_columns(
        dataset.schema,
        include_columns=include_columns,
        exclude_columns=exclude_columns,
        exclude_array_columns=exclude_array_columns,
    )

    # 3. build the quality filter
    qcols = quality_columns if quality_columns is not None else DEFAULT_QUALITY_COLUMNS[level]
    names = set(dataset.schema.names)
    conditions: list[tuple[str, ds.Expression]] = []
    if not include_decoys:
        conditions.append((DECOY_COLUMN, ds.field(DECOY_COLUMN) == False))  # noqa: E712
    if qcols.q_value is not None and max_q_value is not None:
        conditions.append((qcols.q_value, ds.field(qcols.q_value) <= max_q_value))
    if qcols.global_q_value is not None and max_global_q_value is not None:
        conditions.append(
            (qcols.global_q_value, ds.field(qcols.global_q_value) <= max_global_q_value)
        )

    expr: ds.Expression | None = None
    for column, condition in conditions:
        if column not in names:
            log.debug("skipping filter on missing column %s", column)
            continue
        expr = _and(expr, condition)

    log.debug("view for %s: columns=%s filter=%s", level.value, columns, expr)
    return ResultsView(level=level, dataset=dataset, filter=expr, columns=columns)


def resolve_columns(
    schema: pa.Schema,
    *,
    include_columns: list[str] | None = None,
    exclude_columns: Collection[str] = (),
    exclude_array_columns: bool = False,
) -> list[str]:
    """
    Resolve the final projection given the schema and user settings.

    Explicit inclusion wins over the array-columns exclusion but not over
    explicit exclusion. The internal partition columns are always dropped.
    Names missing from the schema are ignored.
    """
    explicit = set(include_columns) if include_columns is not None else set()
    if include_columns is None:
        include_columns = list(schema.names)

    array_columns: set[str] = set()
    if exclude_array_columns:
        array_columns = {f.name for f in schema if _is_array_type(f.type)}
    array_columns -= explicit

    excluded = set(exclude_columns) | array_columns | set(INTERNAL_PARTITION_COLUMNS)
    available = set(schema.names)
    result: list[str] = []
    for name in include_columns:
        if name in available and name not in excluded and name not in result:
            result.append(name)
    return result


def _is_array_type(dtype: pa.DataType) -> bool:
    return (
        pa.types.is_list(dtype)
        or pa.types.is_large_list(dtype)
        or pa.types.is_fixed_size_list(dtype)
    )


def _and(lhs: ds.Expression | None, rhs: ds.Expression | None) -> ds.Expression | None:
    if lhs is None:
        return rhs
    if rhs is None:
        return lhs
    return lhs & rhs
