"""Subcommand modules for mlmctl.

Provides register_commands() which uses deferred imports to keep
``mlmctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    # --- Groups ---
    from mlmctl.commands.member import member
    from mlmctl.commands.tree import tree

    cli.add_command(member)
    cli.add_command(tree)

    # --- Standalone commands ---
    from mlmctl.commands.check import check
    from mlmctl.commands.init_cmd import init_cmd

    cli.add_command(init_cmd)
    cli.add_command(check)
