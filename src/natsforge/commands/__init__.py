"""Subcommand modules for natsforge."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every command to the root group.

    Imports are deferred so ``natsforge --help`` stays fast.
    """
    from natsforge.commands.deploy import deploy
    from natsforge.commands.plan import plan
    from natsforge.commands.subject import subject

    cli.add_command(deploy)
    cli.add_command(plan)
    cli.add_command(subject)
