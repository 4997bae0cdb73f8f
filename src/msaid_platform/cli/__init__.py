"""MSAID platform command-line interface."""

from importlib.metadata import version

import click

from .logger import configure_logging

_PACKAGE_NAME = "msaid-platform"


def _get_version() -> str:
    """Return the installed package version string."""
    return version(_PACKAGE_NAME)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(message="%(version)s", package_name=_PACKAGE_NAME)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose mode.")
def cli(verbose: bool) -> None:
    """MSAID platform results command-line tool."""
    configure_logging(verbose)


@cli.command(hidden=True)
def help() -> None:
    """Show usage information."""
    click.echo('Use "msaid-platform --help" for usage information.')
    click.echo('Use "msaid-platform <command> --help" for help on a specific command.')


@cli.command("version")
def version_cmd() -> None:
    """Print the version number."""
    click.echo(_get_version())


# Register subcommands (must be after cli is defined)
from . import cache as _cache  # noqa: E402, F401
from . import cache_clear as _cache_clear  # noqa: E402, F401
from . import cache_usage as _cache_usage  # noqa: E402, F401
