"""AppContext — shared Click context for all commands.

Created once by the root group; subcommands receive it through
``@click.pass_obj``. It owns result emission (stdout/stderr routing and
exit codes) and builds the issuer and trust store a deploy needs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from natsforge.config.logging import configure_logging
from natsforge.infrastructure.issuer import build_gateway
from natsforge.infrastructure.store import TrustStore
from natsforge.output.formatters import OutputSettings, format_result
from natsforge.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from natsforge.config.settings import ForgeSettings
    from natsforge.infrastructure.issuer import IdentityGateway
    from natsforge.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: ForgeSettings) -> None:
        self.settings = settings
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    def gateway(self, settings: ForgeSettings | None = None) -> IdentityGateway:
        issuer = (settings or self.settings).issuer
        return build_gateway(issuer.kind, binary=issuer.binary, timeout=issuer.timeout)

    def open_store(self, settings: ForgeSettings | None = None) -> TrustStore:
        """Persistent store when ``issuer.store_dir`` is set, else a temp one."""
        store_dir = (settings or self.settings).issuer.store_dir
        if store_dir is not None:
            return TrustStore.open_persistent(store_dir)
        return TrustStore.create_ephemeral()

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        Success goes to stdout, with warnings on stderr outside JSON mode.
        Failure goes to stderr and exits with status 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
