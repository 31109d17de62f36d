"""Command: provision a deployment and write every server's artifacts."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from natsforge.commands._base import ForgeCommand
from natsforge.config.models import SystemAccountPolicy

if TYPE_CHECKING:
    from natsforge.commands._context import AppContext


@click.command(
    cls=ForgeCommand,
    examples="""\
  natsforge deploy deployment.json
  natsforge deploy cluster.toml --store-dir ./trust
  natsforge deploy cluster.toml --store-dir ./trust --reuse-operator
  natsforge deploy deployment.json --issuer memory --json
  natsforge deploy deployment.json --allow-default-system-account""",
)
@click.argument("descriptor", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--issuer",
    "issuer_kind",
    type=click.Choice(["nsc", "memory"]),
    default=None,
    help="Identity issuer to drive (default from config: nsc).",
)
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Persistent trust store directory (default: temporary).",
)
@click.option(
    "--reuse-operator",
    is_flag=True,
    help="Load the operator from the trust store instead of minting one.",
)
@click.option(
    "--allow-default-system-account",
    is_flag=True,
    help="Fall back to the issuer's SYS account when none is marked.",
)
@click.pass_obj
def deploy(
    app: AppContext,
    descriptor: Path,
    issuer_kind: str | None,
    store_dir: Path | None,
    reuse_operator: bool,
    allow_default_system_account: bool,
) -> None:
    """Create the trust fabric and per-server configs for DESCRIPTOR."""
    from natsforge.services.deploy import DeployService

    policy = SystemAccountPolicy.ALLOW_DEFAULT_FALLBACK if allow_default_system_account else None
    settings = app.settings.with_overrides(
        issuer={"kind": issuer_kind, "store_dir": store_dir},
        deploy={"system_account_policy": policy},
    )

    with app.open_store(settings) as store:
        svc = DeployService(settings, app.gateway(settings), store)
        result = svc.deploy_descriptor(descriptor, reuse_operator=reuse_operator)
    app.emit(result)
