"""Command: print the subject id of a token."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from natsforge.commands._base import ForgeCommand

if TYPE_CHECKING:
    from natsforge.commands._context import AppContext


@click.command(
    cls=ForgeCommand,
    examples="""\
  natsforge subject out/hub/APP.jwt
  natsforge subject out/leaf/APP-app-user.creds
  natsforge -q subject eyJhbGciOi...""",
)
@click.argument("token_or_file")
@click.pass_obj
def subject(app: AppContext, token_or_file: str) -> None:
    """Show the subject id of TOKEN_OR_FILE (a JWT, .jwt or .creds file)."""
    from natsforge.services.inspect import InspectService

    app.emit(InspectService(app.settings).subject(token_or_file))
