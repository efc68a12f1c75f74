"""Vulpecula CLI entry point: Click group with subcommands."""

import logging

import click

from vulpecula import __version__


@click.group()
@click.version_option(version=__version__, prog_name="vulpecula")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """Vulpecula - streaming chat completions from the terminal."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# Import and register subcommands
from vulpecula.cli.chat import chat, set_key  # noqa: E402
from vulpecula.cli.models import models  # noqa: E402
from vulpecula.cli.export import export  # noqa: E402

cli.add_command(chat)
cli.add_command(set_key)
cli.add_command(models)
cli.add_command(export)
