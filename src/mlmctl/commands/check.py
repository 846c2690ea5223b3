"""Command: tree integrity checking."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mlmctl.commands._base import MlmCommand

if TYPE_CHECKING:
    from mlmctl.commands._context import AppContext


@click.command(
    cls=MlmCommand,
    examples="""\
  mlmctl check
  mlmctl check --errors-only
  mlmctl --json check --min-severity error""",
)
@click.option(
    "--min-severity",
    type=click.Choice(["warning", "error"]),
    default="warning",
    help="Hide issues below this severity.",
)
@click.option("--errors-only", is_flag=True, help="Shortcut for --min-severity error.")
@click.pass_obj
def check(app: AppContext, min_severity: str, errors_only: bool) -> None:
    """Verify the tree invariants over the whole registry."""
    from mlmctl.services.check import CheckService

    threshold = "error" if errors_only else min_severity
    app.emit(CheckService(app.registry).check(min_severity=threshold))
