"""Rich Console factory and theme for natsforge output.

Consoles render into a StringIO buffer so renderers return plain
strings. Without a terminal (tests, pipes) Rich emits no color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

FORGE_THEME = Theme(
    {
        "forge.ok": "bold green",
        "forge.error": "bold red",
        "forge.warning": "bold yellow",
        "forge.op": "bold cyan",
        "forge.key": "dim",
        "forge.id": "bold blue",
        "forge.path": "dim",
        "forge.server": "bold",
        "forge.stage": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=FORGE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
