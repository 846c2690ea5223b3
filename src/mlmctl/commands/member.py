"""Command group: client creation, enrollment, lookup and maintenance."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from mlmctl.commands._base import MlmGroup
from mlmctl.domain.types import Package, Position, Role
from mlmctl.services.members import MemberService

if TYPE_CHECKING:
    from mlmctl.commands._context import AppContext

_MEMBER_EXAMPLES = """\
  mlmctl member enroll alice --package Gold --password secret1 --confirm-payment
  mlmctl member add bob --package Silver --password secret2 --parent alice --position right
  mlmctl --as alice member add carol --package Diamond --password secret3
  mlmctl member list --package Gold
  mlmctl member stats
  mlmctl member delete bob --yes"""

_PACKAGE_CHOICE = click.Choice([p.value for p in Package], case_sensitive=False)
_POSITION_CHOICE = click.Choice([p.value for p in Position], case_sensitive=False)


def _profile_options(fn: Any) -> Any:
    fn = click.option("--mobile", default=None, help="10-digit mobile number.")(fn)
    fn = click.option("--email", default=None, help="Email address.")(fn)
    fn = click.option("--name", default=None, help="Display name.")(fn)
    return fn


def _placement_options(fn: Any) -> Any:
    fn = click.option(
        "--position", type=_POSITION_CHOICE, default=None, help="Preferred slot under the parent."
    )(fn)
    fn = click.option("--parent", default=None, help="Parent username or ID.")(fn)
    return fn


def _password_or_prompt(app: AppContext, password: str | None) -> str:
    if password is not None:
        return password
    if app.settings.no_interact:
        msg = "--password is required in non-interactive mode"
        raise click.UsageError(msg)
    return str(click.prompt("Password", hide_input=True, confirmation_prompt=True))


def _client_fields(
    username: str,
    password: str,
    package: str,
    name: str | None,
    email: str | None,
    mobile: str | None,
) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "username": username,
        "password": password,
        "package": package,
    }
    for key, value in (("name", name), ("email", email), ("mobile", mobile)):
        if value is not None:
            fields[key] = value
    return fields


@click.group(cls=MlmGroup, examples=_MEMBER_EXAMPLES)
@click.pass_obj
def member(app: AppContext) -> None:
    """Create, enroll, inspect and remove members."""


@member.command(
    examples="""\
  mlmctl member add bob --package Silver --password secret2
  mlmctl member add bob --package Gold --password secret2 --parent alice --position left
  mlmctl --as alice member add carol --package Diamond --password secret3"""
)
@click.argument("username")
@click.option("--package", type=_PACKAGE_CHOICE, required=True, help="Package tier.")
@click.option("--password", default=None, help="Initial password (prompted if omitted).")
@_placement_options
@_profile_options
@click.pass_obj
def add(
    app: AppContext,
    username: str,
    package: str,
    password: str | None,
    parent: str | None,
    position: str | None,
    name: str | None,
    email: str | None,
    mobile: str | None,
) -> None:
    """Create a client directly under a parent (fails if the parent is full)."""
    fields = _client_fields(
        username, _password_or_prompt(app, password), package, name, email, mobile
    )
    svc = MemberService(app.registry)
    app.emit(svc.create_client(app.actor, parent=parent, position=position, **fields))


@member.command(
    examples="""\
  mlmctl member enroll alice --package Gold --password secret1 --confirm-payment
  mlmctl member enroll dave --package Silver --password secret4 --parent alice --confirm-payment"""
)
@click.argument("username")
@click.option("--package", type=_PACKAGE_CHOICE, required=True, help="Package tier.")
@click.option("--password", default=None, help="Initial password (prompted if omitted).")
@click.option(
    "--confirm-payment",
    "payment_confirmed",
    is_flag=True,
    help="Confirm the package payment was received.",
)
@_placement_options
@_profile_options
@click.pass_obj
def enroll(
    app: AppContext,
    username: str,
    package: str,
    password: str | None,
    payment_confirmed: bool,
    parent: str | None,
    position: str | None,
    name: str | None,
    email: str | None,
    mobile: str | None,
) -> None:
    """Enroll a paying client, falling back to the first free slot if needed."""
    fields = _client_fields(
        username, _password_or_prompt(app, password), package, name, email, mobile
    )
    svc = MemberService(app.registry)
    app.emit(
        svc.enroll_client(
            app.actor,
            payment_confirmed=payment_confirmed,
            parent=parent,
            position=position,
            **fields,
        )
    )


@member.command()
@click.argument("ref")
@click.pass_obj
def show(app: AppContext, ref: str) -> None:
    """Show one member by username or ID."""
    app.emit(MemberService(app.registry).get_member(ref, actor=app.actor))


@member.command("list")
@click.option("--package", type=_PACKAGE_CHOICE, default=None, help="Only this package.")
@click.pass_obj
def list_cmd(app: AppContext, package: str | None) -> None:
    """List clients in creation order."""
    app.emit(MemberService(app.registry).list_clients(package=package, actor=app.actor))


@member.command()
@click.pass_obj
def stats(app: AppContext) -> None:
    """Client totals per package."""
    app.emit(MemberService(app.registry).stats())


@member.command(
    examples="""\
  mlmctl member update alice --email alice@example.com
  mlmctl --as alice member update alice --mobile 9876543210"""
)
@click.argument("ref")
@_profile_options
@click.pass_obj
def update(
    app: AppContext,
    ref: str,
    name: str | None,
    email: str | None,
    mobile: str | None,
) -> None:
    """Update profile fields; only the options given are changed."""
    changes = {
        k: v for k, v in (("name", name), ("email", email), ("mobile", mobile)) if v is not None
    }
    app.emit(MemberService(app.registry).update_profile(app.actor, ref, **changes))


@member.command(
    examples="""\
  mlmctl --as alice member passwd --current secret1 --new secret9 --confirm secret9
  mlmctl member passwd bob --new reset123 --confirm reset123"""
)
@click.argument("ref", required=False, default=None)
@click.option("--current", default=None, help="Current password (own account only).")
@click.option("--new", "new_password", default=None, help="New password.")
@click.option("--confirm", "confirm_password", default=None, help="Repeat the new password.")
@click.pass_obj
def passwd(
    app: AppContext,
    ref: str | None,
    current: str | None,
    new_password: str | None,
    confirm_password: str | None,
) -> None:
    """Change a password (your own by default)."""
    actor = app.actor
    target = ref or actor.member_id
    interactive = not app.settings.no_interact

    if ref is None and current is None and interactive:
        current = str(click.prompt("Current password", hide_input=True))
    if new_password is None:
        if not interactive:
            msg = "--new is required in non-interactive mode"
            raise click.UsageError(msg)
        new_password = str(click.prompt("New password", hide_input=True))
    if confirm_password is None:
        confirm_password = (
            str(click.prompt("Repeat new password", hide_input=True))
            if interactive
            else new_password
        )

    app.emit(
        MemberService(app.registry).change_password(
            actor,
            target,
            current=current,
            new=new_password,
            confirm=confirm_password,
        )
    )


@member.command(
    examples="""\
  mlmctl member delete bob
  mlmctl member delete bob --yes"""
)
@click.argument("ref")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def delete(app: AppContext, ref: str, yes: bool) -> None:
    """Delete a client. Its children become orphaned roots."""
    if not yes and not app.settings.no_interact:
        click.confirm(f"Delete '{ref}'? Its children will be detached", abort=True)
    app.emit(MemberService(app.registry).delete_member(app.actor, ref))


@member.command()
@click.argument("username")
@click.option("--password", default=None, help="Password (prompted if omitted).")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=None,
    help="Require this role.",
)
@click.pass_obj
def login(app: AppContext, username: str, password: str | None, role: str | None) -> None:
    """Verify a member's credentials."""
    from mlmctl.services.access import AccessService

    if password is None:
        if app.settings.no_interact:
            msg = "--password is required in non-interactive mode"
            raise click.UsageError(msg)
        password = str(click.prompt("Password", hide_input=True))
    svc = AccessService(app.registry)
    app.emit(svc.authenticate(username, password, Role(role) if role else None))
