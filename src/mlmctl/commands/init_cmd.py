"""Command: registry initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from mlmctl.commands._base import MlmCommand

if TYPE_CHECKING:
    from mlmctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  mlmctl init
  mlmctl init /srv/network --name acme
  mlmctl --no-interact init . --name acme --admin-username root --admin-password s3cret!"""


@click.command("init", cls=MlmCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--name", default=None, help="Registry name.")
@click.option(
    "--admin-username",
    default=None,
    help="Username of the admin account (default: security.admin_username).",
)
@click.option("--admin-password", default=None, help="Password of the admin account.")
@click.pass_obj
def init_cmd(
    app: AppContext,
    path: str,
    name: str | None,
    admin_username: str | None,
    admin_password: str | None,
) -> None:
    """Initialize a registry and its admin account."""
    from mlmctl.services.bootstrap import (
        DEFAULT_ADMIN_PASSWORD,
        BootstrapService,
    )

    root = Path(path).resolve()
    interactive = not app.settings.no_interact

    if name is None:
        name = click.prompt("Registry name", default=root.name) if interactive else root.name

    if admin_username is None and interactive:
        admin_username = click.prompt(
            "Admin username", default=app.settings.security.admin_username
        )

    if admin_password is None:
        admin_password = (
            click.prompt(
                "Admin password",
                default=DEFAULT_ADMIN_PASSWORD,
                hide_input=True,
                confirmation_prompt=True,
                show_default=False,
            )
            if interactive
            else DEFAULT_ADMIN_PASSWORD
        )

    app.emit(
        BootstrapService.init_registry(
            root,
            name=name,
            admin_username=admin_username,
            admin_password=admin_password,
        )
    )
