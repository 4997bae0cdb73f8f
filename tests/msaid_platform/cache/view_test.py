"""Tests for the msaid_platform.cache.view module."""

from collections.abc import Callable
from pathlib import Path

import pyarrow as pa
import pytest

from msaid_platform.cache.level import AggregationLevel
from msaid_platform.cache.view import (
    LOCAL_FILE_PATH_COLUMN,
    QualityColumns,
    read_results_view,
    resolve_columns,
)

_PSMS = {
    "PSM_ID": [1, 2, 3],
    "Q_VALUE": [0.001, 0.02, 0.005],
    "DECOY": [False, False, True],
    "FRAGMENT_MZ": [[1.0, 2.0], [3.0], [4.0]],
}


@pytest.fixture
def psms_dir(
    tmp_path: Path,
    write_parquet: Callable[..., Path],
    make_partition_path: Callable[..., Path],
) -> Path:
    level_dir = tmp_path / "psms"
    write_parquet(make_partition_path(level_dir, "exp1"), _PSMS)
    return level_dir


class TestEmptyView:
    """Views over missing or empty levels."""

    def test_missing_directory(self, tmp_path: Path):
        view = read_results_view(tmp_path / "psms", AggregationLevel.PSMS)
        assert view.is_empty
        assert view.count_rows() == 0
        assert view.column_names == []
        assert view.to_table().num_rows == 0
        assert len(view.to_pandas()) == 0
        assert view.file_paths() == set()
        assert view.filter_experiments(["exp1"]) is view

    def test_only_staging_files(self, tmp_path: Path, write_parquet: Callable[..., Path]):
        level_dir = tmp_path / "psms"
        write_parquet(level_dir / ".tmpabc" / "part-0.parquet", _PSMS)
        assert read_results_view(level_dir, "psms").is_empty

    def test_scanner_raises(self, tmp_path: Path):
        view = read_results_view(tmp_path / "psms", "psms")
        with pytest.raises(ValueError, match="empty view"):
            view.scanner()


class TestQualityFilters:
    """Level-dependent quality filtering."""

    def test_default_excludes_decoys_only(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms")
        assert sorted(view.to_pandas()["PSM_ID"]) == [1, 2]

    def test_max_q_value(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms", max_q_value=0.01)
        assert list(view.to_pandas()["PSM_ID"]) == [1]

    def test_include_decoys(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms", max_q_value=0.01, include_decoys=True)
        assert sorted(view.to_pandas()["PSM_ID"]) == [1, 3]

    def test_none_disables_filter(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms", max_q_value=None, include_decoys=True)
        assert view.count_rows() == 3

    def test_psms_ignores_global_q_value(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "psms"
        write_parquet(
            make_partition_path(level_dir, "exp1"),
            {"Q_VALUE": [0.001], "GLOBAL_Q_VALUE": [0.5], "DECOY": [False]},
        )
        view = read_results_view(level_dir, "psms", max_q_value=0.01, max_global_q_value=0.01)
        assert view.count_rows() == 1

    def test_precursors_use_both_q_values(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "precursors"
        write_parquet(
            make_partition_path(level_dir, "exp1", dataset="precursors.parquet"),
            {
                "ID": [1, 2, 3],
                "Q_VALUE": [0.001, 0.001, 0.5],
                "GLOBAL_Q_VALUE": [0.001, 0.5, 0.001],
                "DECOY": [False, False, False],
            },
        )
        assert read_results_view(level_dir, "precursors").count_rows() == 3
        view = read_results_view(level_dir, "precursors", max_global_q_value=0.01)
        assert sorted(view.to_pandas()["ID"]) == [1, 3]
        view = read_results_view(
            level_dir, "precursors", max_q_value=0.01, max_global_q_value=0.01
        )
        assert list(view.to_pandas()["ID"]) == [1]

    def test_sample_rollup_default_and_override(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "sample_rollup_protein_groups"
        write_parquet(
            make_partition_path(level_dir, "exp1", dataset="protein_groups.parquet"),
            {
                "ID": [1, 2],
                "Q_VALUE": [0.5, 0.5],
                "GLOBAL_Q_VALUE": [0.001, 0.001],
                "SAMPLE_Q_VALUE": [0.001, 0.5],
                "DECOY": [False, False],
            },
        )
        level = AggregationLevel.SAMPLE_ROLLUP_PROTEIN_GROUPS

        # The local q-value does not apply to rollups by default
        view = read_results_view(level_dir, level, max_q_value=0.01, max_global_q_value=0.01)
        assert view.count_rows() == 2

        view = read_results_view(
            level_dir,
            level,
            max_q_value=0.01,
            quality_columns=QualityColumns(q_value="SAMPLE_Q_VALUE", global_q_value=None),
        )
        assert list(view.to_pandas()["ID"]) == [1]

    def test_missing_filter_columns_are_skipped(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "psms"
        write_parquet(make_partition_path(level_dir, "exp1"), {"PSM_ID": [1, 2]})
        view = read_results_view(level_dir, "psms", max_q_value=0.01)
        assert view.count_rows() == 2


class TestColumns:
    """Column projection."""

    def test_default_projection(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms")
        assert view.column_names == [
            "PSM_ID",
            "Q_VALUE",
            "DECOY",
            "FRAGMENT_MZ",
            "experiment_uuid",
            LOCAL_FILE_PATH_COLUMN,
        ]

    def test_local_file_path_and_experiment(self, psms_dir: Path, make_partition_path):
        df = read_results_view(psms_dir, "psms").to_pandas()
        expected = str(make_partition_path(psms_dir, "exp1"))
        assert set(df[LOCAL_FILE_PATH_COLUMN]) == {expected}
        assert set(df["experiment_uuid"]) == {"exp1"}

    def test_include_order_and_missing_names(self, psms_dir: Path):
        view = read_results_view(
            psms_dir, "psms", include_columns=["Q_VALUE", "PSM_ID", "MISSING", "PSM_ID"]
        )
        assert view.column_names == ["Q_VALUE", "PSM_ID", LOCAL_FILE_PATH_COLUMN]
        assert view.to_table().column_names == view.column_names

    def test_filters_apply_to_unprojected_columns(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms", max_q_value=0.01, include_columns=["PSM_ID"])
        assert view.to_pandas()["PSM_ID"].tolist() == [1]

    def test_exclude_array_columns(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms", exclude_array_columns=True)
        assert "FRAGMENT_MZ" not in view.column_names
        assert "PSM_ID" in view.column_names

    def test_explicit_include_wins_over_array_exclusion(self, psms_dir: Path):
        view = read_results_view(
            psms_dir,
            "psms",
            include_columns=["PSM_ID", "FRAGMENT_MZ"],
            exclude_array_columns=True,
        )
        assert view.column_names == ["PSM_ID", "FRAGMENT_MZ", LOCAL_FILE_PATH_COLUMN]

    def test_explicit_exclude_wins_over_include(self, psms_dir: Path):
        view = read_results_view(
            psms_dir,
            "psms",
            include_columns=["PSM_ID", "FRAGMENT_MZ"],
            exclude_columns=["FRAGMENT_MZ"],
        )
        assert view.column_names == ["PSM_ID", LOCAL_FILE_PATH_COLUMN]

    def test_internal_partition_columns_dropped(
        self, tmp_path: Path, write_parquet: Callable[..., Path]
    ):
        level_dir = tmp_path / "psms"
        write_parquet(
            level_dir
            / "result-db"
            / "v1"
            / "psms.parquet"
            / "organization_uuid=o"
            / "account_uuid=a"
            / "experiment_uuid=exp1"
            / "part-0.parquet",
            {"PSM_ID": [1]},
        )
        view = read_results_view(
            level_dir, "psms", include_columns=["PSM_ID", "organization_uuid", "account_uuid"]
        )
        assert view.column_names == ["PSM_ID", LOCAL_FILE_PATH_COLUMN]
        view = read_results_view(level_dir, "psms")
        assert "organization_uuid" not in view.column_names
        assert "account_uuid" not in view.column_names
        assert "experiment_uuid" in view.column_names


class TestFilterExperiments:
    """Restricting views to a set of experiments."""

    def test_restricts_rows(
        self,
        psms_dir: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        write_parquet(make_partition_path(psms_dir, "exp2"), _PSMS)
        view = read_results_view(psms_dir, "psms")
        assert view.count_rows() == 4
        filtered = view.filter_experiments({"exp2"})
        assert filtered.count_rows() == 2
        assert set(filtered.to_pandas()["experiment_uuid"]) == {"exp2"}
        # The original view is unchanged
        assert view.count_rows() == 4

    def test_numeric_looking_uuids(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "psms"
        write_parquet(make_partition_path(level_dir, "123"), {"PSM_ID": [1]})
        write_parquet(make_partition_path(level_dir, "456"), {"PSM_ID": [2]})
        view = read_results_view(level_dir, "psms").filter_experiments(["123"])
        assert view.to_pandas()["PSM_ID"].tolist() == [1]

    def test_file_paths(
        self,
        psms_dir: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        write_parquet(make_partition_path(psms_dir, "exp2"), _PSMS)
        view = read_results_view(psms_dir, "psms").filter_experiments(["exp1"])
        assert view.file_paths() == {make_partition_path(psms_dir, "exp1")}

    def test_files_outside_experiment_partitions(
        self, tmp_path: Path, write_parquet: Callable[..., Path]
    ):
        level_dir = tmp_path / "psms"
        write_parquet(level_dir / "part-0.parquet", {"PSM_ID": [1]})
        view = read_results_view(level_dir, "psms").filter_experiments(["exp1"])
        assert view.count_rows() == 0
        assert view.file_paths() == set()

    def test_leading_zero_uuid(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "psms"
        write_parquet(make_partition_path(level_dir, "00123"), {"PSM_ID": [1]})
        write_parquet(make_partition_path(level_dir, "123"), {"PSM_ID": [2]})
        view = read_results_view(level_dir, "psms")
        assert view.dataset.schema.field("experiment_uuid").type == pa.string()
        filtered = view.filter_experiments(["00123"])
        assert filtered.to_pandas()["PSM_ID"].tolist() == [1]
        assert filtered.to_pandas()["experiment_uuid"].tolist() == ["00123"]


class TestNoMatchingRows:
    """Views whose filters select nothing materialize as empty tables."""

    def test_absent_experiment(self, psms_dir: Path):
        view = read_results_view(psms_dir, "psms").filter_experiments(["other"])
        table = view.to_table()
        assert table.num_rows == 0
        assert table.column_names == view.column_names
        assert table.schema.field(LOCAL_FILE_PATH_COLUMN).type == pa.string()
        assert table.schema.field("experiment_uuid").type == pa.string()
        assert len(view.to_pandas()) == 0
        assert view.file_paths() == set()

    def test_quality_filter_drops_every_row(
        self,
        tmp_path: Path,
        write_parquet: Callable[..., Path],
        make_partition_path: Callable[..., Path],
    ):
        level_dir = tmp_path / "psms"
        write_parquet(
            make_partition_path(level_dir, "exp1"),
            {"PSM_ID": [1, 2], "Q_VALUE": [0.5, 0.6], "DECOY": [False, False]},
        )
        view = read_results_view(level_dir, "psms", max_q_value=0.01)
        df = view.to_pandas()
        assert len(df) == 0
        assert list(df.columns) == view.column_names
        assert view.file_paths() == set()



class TestResolveColumns:
    """Schema-driven column resolution."""

    _SCHEMA = pa.schema(
        [
            ("A", pa.int64()),
            ("B", pa.list_(pa.float64())),
            ("C", pa.large_list(pa.int32())),
            ("organization_uuid", pa.string()),
            ("D", pa.string()),
        ]
    )

    def test_defaults(self):
        assert resolve_columns(self._SCHEMA) == ["A", "B", "C", "D"]

    def test_array_columns(self):
        got = resolve_columns(self._SCHEMA, exclude_array_columns=True)
        assert got == ["A", "D"]

    def test_array_columns_explicitly_included(self):
        got = resolve_columns(self._SCHEMA, include_columns=["C", "A"], exclude_array_columns=True)
        assert got == ["C", "A"]

    def test_exclude_missing_names_ignored(self):
        assert resolve_columns(self._SCHEMA, exclude_columns=["Z", "D"]) == ["A", "B", "C"]
