"""Cache clear command."""

from __future__ import annotations

import logging

import click

from ..cache import AggregationLevel, PlatformCache, parse_level
from ..results import clear_experiment_cache
from .cache import cache

log = logging.getLogger("cli/cache_clear")


def _parse_levels(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[AggregationLevel]:
    try:
        return [parse_level(value) for value in values]
    except ValueError as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc


@cache.command()
@click.option(
    "-d",
    "--dir",
    "cache_dir",
    default=None,
    help="Cache directory (default: ~/.msaid/platform/cache/experiments)",
)
@click.option(
    "-l",
    "--level",
    "levels",
    multiple=True,
    callback=_parse_levels,
    help="Aggregation level to clear (repeatable, prefixes accepted)",
)
@click.option(
    "-e",
    "--experiment",
    "experiments",
    multiple=True,
    help="Experiment UUID to clear (repeatable)",
)
@click.option("--all", "clear_all", is_flag=True, help="Clear the entire cache")
def clear(
    cache_dir: str | None,
    levels: list[AggregationLevel],
    experiments: tuple[str, ...],
    clear_all: bool,
) -> None:
    """Remove cached experiment results.

    Without `-e` the selected levels are removed entirely. Without `-l`
    the selected experiments are removed from every level. Use `--all`
    to remove the entire cache.
    """
    if not levels and not experiments and not clear_all:
        raise click.UsageError("specify at least one of -l, -e, or --all")
    if clear_all and (levels or experiments):
        raise click.UsageError("--all cannot be combined with -l or -e")

    platform_cache = PlatformCache(cache_dir)
    try:
        deleted = clear_experiment_cache(
            platform_cache,
            experiment_uuids=experiments or None,
            levels=levels or None,
        )
    except OSError as exc:
        log.error("cache clear... failure: %s", exc)
        raise SystemExit(1) from exc

    if experiments:
        click.echo(f"Removed {len(deleted)} file(s).")
    else:
        click.echo(f"Cleared {platform_cache.cache_root}.")
