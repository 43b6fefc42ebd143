import dataclasses
from pathlib import Path

import click

from gtown.core.context import GtownContext
from gtown.core.global_config import GlobalConfig
from gtown.core.repo_discovery import NoRepoSentinel

GLOBAL_KEYS = ("state_root", "offline")
REPO_KEYS = ("main-branch", "perennial-branches")


def _parse_boolean_value(value: str, field_name: str) -> bool:
    """Parse "true" or "false" (case-insensitive).

    Raises:
        SystemExit: If the value is not "true" or "false"
    """
    if value.lower() not in ("true", "false"):
        click.echo(f"Invalid boolean value for {field_name}: {value}", err=True)
        raise SystemExit(1)
    return value.lower() == "true"


def _update_global_config_field(
    current_config: GlobalConfig,
    field_name: str,
    value: str,
) -> GlobalConfig:
    """Return a copy of current_config with one field updated.

    Raises:
        SystemExit: If the field name or value is invalid
    """
    match field_name:
        case "state_root":
            return dataclasses.replace(current_config, state_root=Path(value).expanduser())
        case "offline":
            offline = _parse_boolean_value(value, field_name)
            return dataclasses.replace(current_config, offline=offline)
        case _:
            click.echo(f"Invalid global config field: {field_name}", err=True)
            raise SystemExit(1)


def _global_value(config: GlobalConfig, key: str) -> str:
    match key:
        case "state_root":
            return str(config.state_root)
        case "offline":
            return str(config.offline).lower()
        case _:
            raise ValueError(f"Unknown global key: {key}")


def _repo_value(ctx: GtownContext, key: str) -> str:
    match key:
        case "main-branch":
            return ctx.branches.get_main_branch()
        case "perennial-branches":
            return " ".join(ctx.branches.get_perennial_branches())
        case _:
            raise ValueError(f"Unknown repository key: {key}")


@click.group("config")
def config_group() -> None:
    """Manage gtown configuration."""


@config_group.command("list")
@click.pass_obj
def config_list(ctx: GtownContext) -> None:
    """Print a list of configuration keys and values."""
    click.echo(click.style("Global configuration:", bold=True))
    if not ctx.config_ops.exists():
        click.echo(f"  (defaults - {ctx.config_ops.path()} does not exist)")
    for key in GLOBAL_KEYS:
        click.echo(f"  {key}={_global_value(ctx.global_config, key)}")

    click.echo(click.style("\nRepository configuration:", bold=True))
    if isinstance(ctx.repo, NoRepoSentinel):
        click.echo("  (not in a git repository)")
        return
    for key in REPO_KEYS:
        click.echo(f"  {key}={_repo_value(ctx, key)}")


@config_group.command("get")
@click.argument("key", metavar="KEY")
@click.pass_obj
def config_get(ctx: GtownContext, key: str) -> None:
    """Print the value of a given configuration key."""
    if key in GLOBAL_KEYS:
        click.echo(_global_value(ctx.global_config, key))
        return

    if key in REPO_KEYS:
        if isinstance(ctx.repo, NoRepoSentinel):
            click.echo("Not in a git repository", err=True)
            raise SystemExit(1)
        click.echo(_repo_value(ctx, key))
        return

    click.echo(f"Invalid key: {key}", err=True)
    raise SystemExit(1)


@config_group.command("set")
@click.argument("key", metavar="KEY")
@click.argument("value", metavar="VALUE")
@click.pass_obj
def config_set(ctx: GtownContext, key: str, value: str) -> None:
    """Update global configuration with a value for the given key.

    Repository keys live in git config (git-town.main-branch-name,
    git-town.perennial-branch-names) and are set with git itself.
    """
    if key in REPO_KEYS:
        click.echo(f"{key} is stored in git config; set it with git config", err=True)
        raise SystemExit(1)

    new_config = _update_global_config_field(ctx.global_config, key, value)
    ctx.config_ops.save(new_config)
    click.echo(f"Set {key}={value}")
