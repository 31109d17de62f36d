"""Command: validate a descriptor and show the creation order."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from natsforge.commands._base import ForgeCommand

if TYPE_CHECKING:
    from natsforge.commands._context import AppContext


@click.command(
    cls=ForgeCommand,
    examples="""\
  natsforge plan deployment.json
  natsforge --json plan cluster.toml
  natsforge -q plan deployment.json""",
)
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def plan(app: AppContext, descriptor: Path) -> None:
    """Check DESCRIPTOR without touching the issuer."""
    from natsforge.services.plan import PlanService

    app.emit(PlanService(app.settings).plan_descriptor(descriptor))
