"""Root CLI group for natsforge with global flags and command registration."""

from __future__ import annotations

import click

from natsforge import __version__
from natsforge.commands import register_commands
from natsforge.commands._base import ForgeGroup
from natsforge.commands._context import AppContext
from natsforge.config.settings import ForgeSettings


@click.group(
    cls=ForgeGroup,
    invoke_without_command=True,
    examples="""\
  natsforge plan deployment.json
  natsforge deploy deployment.json
  natsforge -c prod.toml --json deploy cluster.toml""",
)
@click.version_option(version=__version__, prog_name="natsforge")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and stage timings.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """natsforge — NATS trust fabric and server config generator."""
    settings = ForgeSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
