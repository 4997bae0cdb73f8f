"""Module to enumerate and parse aggregation levels."""

from enum import Enum


class AggregationLevel(str, Enum):
    """Enumerate the available result aggregation levels."""

    PSMS = "psms"
    PRECURSORS = "precursors"
    PEPTIDES = "peptides"
    MODIFIED_PEPTIDES = "modified_peptides"
    PROTEIN_GROUPS = "protein_groups"
    SAMPLE_ROLLUP_PRECURSORS = "sample_rollup_precursors"
    SAMPLE_ROLLUP_PEPTIDES = "sample_rollup_peptides"
    SAMPLE_ROLLUP_MODIFIED_PEPTIDES = "sample_rollup_modified_peptides"
    SAMPLE_ROLLUP_PROTEIN_GROUPS = "sample_rollup_protein_groups"

    @property
    def is_sample_rollup(self) -> bool:
        """Whether the level aggregates results across the runs of a sample."""
        return self.value.startswith("sample_rollup_")

    @property
    def remote_name(self) -> str:
        """Name used by the remote API (e.g., `PROTEIN_GROUPS`)."""
        return self.value.upper()


def parse_level(v: str | AggregationLevel) -> AggregationLevel:
    """
    Parse a level string into a valid AggregationLevel.

    Matching is case insensitive. An exact match always wins; otherwise
    the value may be an unambiguous prefix of a level name (e.g., `prot`
    selects `protein_groups`).

    Raises:
        ValueError if the value is invalid or ambiguous.
    """
    if isinstance(v, AggregationLevel):
        return v
    value = v.strip().lower()
    try:
        return AggregationLevel(value)
    except ValueError:
        pass
    candidates = [level for level in AggregationLevel if value and level.value.startswith(value)]
    if len(candidates) == 1:
        return candidates[0]
    valid = ", ".join(level.value for level in AggregationLevel)
    if candidates:
        raise ValueError(f"ambiguous level value {v}; valid values: {valid}")
    raise ValueError(f"invalid level value {v}; valid values: {valid}")
