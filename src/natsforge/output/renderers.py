"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op``; unknown ops fall through to
a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from natsforge.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from natsforge.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: one value per line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    if result.op == "deploy":
        return "\n".join(result.data.get("server_configs", {}).values())
    if result.op == "plan":
        return "\n".join(item["name"] for item in result.data.get("order", []))
    if result.op == "subject":
        return str(result.data.get("subject", ""))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="forge.ok"), Text(f"  {result.op}", style="forge.op"), sep="")


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="forge.key")
    if key in ("subject", "system_account_id"):
        v = Text(str(value), style="forge.id")
    elif key.endswith(("path", "jwt", "store")):
        v = Text(str(value), style="forge.path")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, including stage timings."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_span(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"
    console.print(f"{' ' * indent}[{style}]{duration:>8.2f}ms[/{style}]  {span.get('name', '?')}")
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="forge.error"),
        Text(f"  {result.op}", style="forge.op"),
        Text(f" — {msg}"),
        sep="",
    )
    if err is None:
        return

    stage = err.detail.get("stage")
    if stage:
        console.print(
            Text("  stage: ", style="forge.key"), Text(str(stage), style="forge.stage"), sep=""
        )
    for note in err.detail.get("context", []):
        console.print(Text(f"    while handling {note}", style="dim"))
    if verbose:
        console.print(Text(f"  code: {err.code}", style="dim"))
        for k, v in err.detail.items():
            if k not in ("stage", "context"):
                console.print(f"    {k}: {v}")


# ── Operation renderers ───────────────────────────────────────────────


def _render_deploy(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    data = result.data
    _status_line(console, result)
    _field(console, "operator", data["operator"])
    if data.get("deployment"):
        _field(console, "deployment", data["deployment"])
    _field(console, "operator_jwt", data["operator_jwt"])
    _field(console, "order", " → ".join(data["order"]))

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Server", style="forge.server", no_wrap=True)
    table.add_column("System account", style="forge.id")
    table.add_column("Config", style="forge.path")
    for server, path in data["server_configs"].items():
        table.add_row(server, data["system_accounts"].get(server, ""), path)
    console.print(table)

    _field(console, "accounts", len(data["accounts"]))
    _field(console, "credentials", len(data["credentials"]))
    _field(console, "replicas", len(data["distributed"]))
    if verbose:
        for path in [*data["accounts"].values(), *data["credentials"], *data["distributed"]]:
            console.print(Text(f"    {path}", style="forge.path"))
        _field(console, "store", data["store"])
        _render_meta(console, result)


def _render_plan(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    data = result.data
    _status_line(console, result)
    _field(console, "operator", data["operator"])

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right")
    table.add_column("Account", style="forge.id")
    table.add_column("Server", style="forge.server")
    table.add_column("Imports from")
    table.add_column("Users")
    for i, account in enumerate(data["order"], start=1):
        table.add_row(
            str(i),
            account["name"],
            account["server"],
            ", ".join(account["imports_from"]),
            ", ".join(account["users"]),
        )
    console.print(table)

    for server in data["servers"]:
        system = server["system_account"] or "issuer default"
        console.print(
            Text(f"  {server['name']}", style="forge.server"),
            Text(f" :{server['port']}  system={system}  remotes={len(server['remotes'])}"),
            sep="",
        )
    if verbose:
        _render_meta(console, result)


def _render_subject(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("subject", "kind", "claim_type", "name", "source"):
        if result.data.get(key) is not None:
            _field(console, key, result.data[key])


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "deploy": _render_deploy,
    "plan": _render_plan,
    "subject": _render_subject,
}
