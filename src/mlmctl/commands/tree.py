"""Command group: slots, children, downline and the whole tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mlmctl.commands._base import MlmGroup
from mlmctl.services.tree import TreeService

if TYPE_CHECKING:
    from mlmctl.commands._context import AppContext

_TREE_EXAMPLES = """\
  mlmctl tree show
  mlmctl tree show alice --depth 2
  mlmctl tree positions alice
  mlmctl tree children admin
  mlmctl --as alice tree downline alice"""


@click.group(cls=MlmGroup, examples=_TREE_EXAMPLES)
@click.pass_obj
def tree(app: AppContext) -> None:
    """Inspect the placement tree."""


def _ref_or_self(app: AppContext, ref: str | None) -> str:
    return ref if ref is not None else app.actor.member_id


@tree.command()
@click.argument("ref", required=False, default=None)
@click.pass_obj
def positions(app: AppContext, ref: str | None) -> None:
    """Free slots under a member (default: yourself)."""
    app.emit(TreeService(app.registry).positions(app.actor, _ref_or_self(app, ref)))


@tree.command()
@click.argument("ref", required=False, default=None)
@click.pass_obj
def children(app: AppContext, ref: str | None) -> None:
    """Direct children of a member, left before right."""
    app.emit(TreeService(app.registry).children(app.actor, _ref_or_self(app, ref)))


@tree.command()
@click.argument("ref", required=False, default=None)
@click.pass_obj
def downline(app: AppContext, ref: str | None) -> None:
    """Everyone below a member, level by level."""
    app.emit(TreeService(app.registry).downline(app.actor, _ref_or_self(app, ref)))


@tree.command(
    examples="""\
  mlmctl tree show
  mlmctl tree show alice --depth 3
  mlmctl --json tree show"""
)
@click.argument("ref", required=False, default=None)
@click.option("--depth", "max_depth", type=click.IntRange(min=0), default=None, help="Levels to expand.")
@click.pass_obj
def show(app: AppContext, ref: str | None, max_depth: int | None) -> None:
    """Render the tree (admin: whole network plus orphaned roots)."""
    app.emit(TreeService(app.registry).tree(app.actor, ref, max_depth=max_depth))
