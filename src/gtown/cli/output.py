"""Output helpers for CLI commands.

User-facing messages go to stderr so that stdout stays free for data.
"""

import click


def user_output(message: str = "", nl: bool = True) -> None:
    """Write a user-facing message to stderr."""
    click.echo(message, err=True, nl=nl)
