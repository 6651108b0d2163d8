# ABOUTME: CLI package for Audioshelf, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from audioshelf.cli.commands import (
    covers_cmd,
    import_cmd,
    info_cmd,
    ls_cmd,
    needs_rating_cmd,
    rate_cmd,
    scan_cmd,
    series_cmd,
)


@click.group()
@click.version_option(package_name="audioshelf")
@click.option("-v", "--verbose", count=True, help="Show warnings (-v) or debug logging (-vv).")
def cli(verbose: int) -> None:
    """Audioshelf - a CLI-first audiobook catalog."""
    level = {0: logging.ERROR, 1: logging.WARNING}.get(verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


cli.add_command(scan_cmd.scan)
cli.add_command(import_cmd.import_command)
cli.add_command(ls_cmd.ls)
cli.add_command(series_cmd.series)
cli.add_command(info_cmd.info)
cli.add_command(rate_cmd.rate)
cli.add_command(needs_rating_cmd.needs_rating)
cli.add_command(covers_cmd.covers)
