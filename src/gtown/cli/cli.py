import logging
import os

import click

from gtown.cli.commands.config import config_group
from gtown.cli.commands.ship import ship_cmd
from gtown.cli.commands.status import status_cmd
from gtown.core.context import create_context

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


def _configure_logging() -> None:
    if os.getenv("GTOWN_DEBUG"):
        logging.basicConfig(
            level=logging.DEBUG,
            format="[DEBUG %(name)s:%(lineno)d] %(message)s",
        )


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="gtown")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors")
@click.pass_context
def cli(ctx: click.Context, quiet: bool) -> None:
    """Automate branch workflows on top of git."""
    _configure_logging()
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context(quiet=quiet)


cli.add_command(config_group)
cli.add_command(ship_cmd)
cli.add_command(status_cmd)


def main() -> None:
    """CLI entry point used by the `gtown` console script."""
    cli()
