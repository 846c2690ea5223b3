"""Root CLI group for mlmctl with global flags and command registration."""

from __future__ import annotations

from typing import Any

import click

from mlmctl import __version__
from mlmctl.commands import register_commands
from mlmctl.commands._context import AppContext
from mlmctl.config.settings import MlmSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="mlmctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--no-interact", is_flag=True, help="Non-interactive mode (no prompts).")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--as", "actor", default=None, metavar="USERNAME", help="Act as this member.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    no_interact: bool,
    config_path: str | None,
    actor: str | None,
) -> None:
    """mlmctl — binary-tree membership registry."""
    overrides: dict[str, Any] = {}
    if actor is not None:
        overrides["actor"] = actor
    settings = MlmSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        no_interact=no_interact,
        **overrides,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
