"""Command group: accounts and tokens."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdbctl.commands._base import CmdbGroup
from cmdbctl.services.auth import AuthService

if TYPE_CHECKING:
    from cmdbctl.commands._context import AppContext

_AUTH_EXAMPLES = """\
  cmdbctl auth register ops@example.com --first-name Ada --last-name Lovelace --admin
  cmdbctl -q auth login ops@example.com
  export CMDBCTL_TOKEN=$(cmdbctl -q auth login ops@example.com)
  cmdbctl auth me"""


@click.group(cls=CmdbGroup, examples=_AUTH_EXAMPLES)
@click.pass_obj
def auth(app: AppContext) -> None:
    """Register accounts and obtain tokens."""


@auth.command(
    examples="""\
  cmdbctl auth register ops@example.com --first-name Ada --last-name Lovelace
  cmdbctl --token $ADMIN auth register root@example.com --first-name R --last-name T --admin"""
)
@click.argument("email")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Account password (prompted when omitted).",
)
@click.option(
    "--admin",
    "is_admin",
    is_flag=True,
    help="Grant admin rights (requires an admin token once any account exists).",
)
@click.pass_obj
def register(
    app: AppContext,
    email: str,
    first_name: str,
    last_name: str,
    password: str,
    is_admin: bool,
) -> None:
    """Create an account."""
    svc = AuthService(app.store)
    if is_admin and svc.count_users().data["count"] > 0:
        app.admin_actor()
    app.emit(svc.register(email, password, first_name, last_name, is_admin=is_admin))


@auth.command(
    examples="""\
  cmdbctl auth login ops@example.com
  cmdbctl -q auth login ops@example.com --password 'S3cret!pass'"""
)
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@click.pass_obj
def login(app: AppContext, email: str, password: str) -> None:
    """Check credentials and print a token (``-q`` prints the token only)."""
    app.emit(AuthService(app.store).login(email, password))


@auth.command(
    examples="""\
  cmdbctl --token $TOKEN auth me"""
)
@click.pass_obj
def me(app: AppContext) -> None:
    """Show the identity carried by the current token."""
    app.emit(AuthService(app.store).me(app.settings.token))
