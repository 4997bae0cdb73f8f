"""Cache usage command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..cache import AggregationLevel
from ..cache.paths import cache_root_or_default, experiment_uuid_from_path, is_hidden_path
from ..cache.prune import CACHE_FILE_SUFFIX
from .cache import cache


@dataclass
class _LevelStats:
    """Per-level file statistics."""

    level: AggregationLevel
    files: int
    size: int
    experiments: int


def _scan_level(cache_root: Path, level: AggregationLevel) -> _LevelStats | None:
    """Walk {cache_root}/{level} and collect statistics (None if missing)."""
    level_dir = cache_root / level.value
    if not level_dir.is_dir():
        return None
    files = 0
    size = 0
    experiments: set[str] = set()
    for path in level_dir.rglob(f"*{CACHE_FILE_SUFFIX}"):
        relative = path.relative_to(level_dir)
        if not path.is_file() or is_hidden_path(relative):
            continue
        files += 1
        size += path.stat().st_size
        experiment_uuid = experiment_uuid_from_path(relative)
        if experiment_uuid is not None:
            experiments.add(experiment_uuid)
    return _LevelStats(level=level, files=files, size=size, experiments=len(experiments))


def _format_bytes(n: int) -> str:
    """Format a byte count using SI-like suffixes."""
    value = float(n)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(value) < 1024:
            if value == int(value):
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PB"


def _build_table(stats: list[_LevelStats]) -> Table:
    """Construct a Rich Table from the scanned level stats."""
    table = Table()
    table.add_column("Level", style="cyan")
    table.add_column("Experiments", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")

    for entry in stats:
        table.add_row(
            entry.level.value,
            str(entry.experiments),
            str(entry.files),
            _format_bytes(entry.size),
        )

    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        "",
        f"[bold]{sum(e.files for e in stats)}[/bold]",
        f"[bold]{_format_bytes(sum(e.size for e in stats))}[/bold]",
    )
    return table


@cache.command()
@click.option(
    "-d",
    "--dir",
    "cache_dir",
    default=None,
    help="Cache directory (default: ~/.msaid/platform/cache/experiments)",
)
def usage(cache_dir: str | None) -> None:
    """Show the disk usage of the cache for each level."""
    resolved = cache_root_or_default(cache_dir)
    stats = [s for s in (_scan_level(resolved, level) for level in AggregationLevel) if s]
    if not stats:
        click.echo("No cached data found.")
        return
    Console().print(_build_table(stats))
