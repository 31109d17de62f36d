"""Server configuration rendering.

Pure functions: the same resolved inputs always produce byte-identical
text. Blocks are emitted in a fixed order and every string value is
JSON-quoted, which the NATS config parser accepts as-is.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import NamedTuple

from natsforge.domain.deployment import JetStreamConfig, LeafNodeConfig, ServerConfig, TlsConfig
from natsforge.domain.errors import UnknownRemoteAccount
from natsforge.domain.tokens import extract_subject_id

INDENT = "    "


class PreloadEntry(NamedTuple):
    """One account known to the deployment: its name and current JWT."""

    account: str
    jwt: str


def _q(value: str) -> str:
    return json.dumps(value)


def _list_block(header: str, entries: list[str], *, depth: int) -> list[str]:
    pad = INDENT * depth
    lines = [f"{pad}{header} = ["]
    lines.append(",\n".join(f"{pad}{INDENT}{entry}" for entry in entries))
    lines.append(f"{pad}]")
    return lines


def _render_jetstream(js: JetStreamConfig, output_dir: Path) -> str:
    store_dir = js.store_dir or str(output_dir / "jetstream")
    lines = [
        "jetstream {",
        f"{INDENT}store_dir: {_q(store_dir)}",
        f"{INDENT}domain: {_q(js.domain or 'core')}",
    ]
    if js.max_memory is not None:
        lines.append(f"{INDENT}max_memory_store: {js.max_memory}")
    if js.max_storage is not None:
        lines.append(f"{INDENT}max_file_store: {js.max_storage}")
    if js.subject_transform is not None:
        t = js.subject_transform
        lines.append(f"{INDENT}subject_transform {{ src: {_q(t.src)}, dest: {_q(t.dest)} }}")
    if js.republish:
        entries = [f"{{ src: {_q(r.src)}, dest: {_q(r.dest)} }}" for r in js.republish]
        lines.extend(_list_block("republish", entries, depth=1))
    lines.append("}")
    return "\n".join(lines) + "\n\n"


def _render_tls(tls: TlsConfig) -> str:
    lines = [
        "tls {",
        f"{INDENT}cert_file: {_q(tls.cert_file)}",
        f"{INDENT}key_file: {_q(tls.key_file)}",
    ]
    if tls.ca_file is not None:
        lines.append(f"{INDENT}ca_file: {_q(tls.ca_file)}")
    lines.append("}")
    return "\n".join(lines) + "\n\n"


def _render_mappings(mappings: dict[str, str]) -> str:
    entries = [f"{INDENT}{_q(src)}: {_q(mappings[src])}" for src in sorted(mappings)]
    return "mappings: {\n" + ",\n".join(entries) + "\n}\n\n"


def _render_leafnodes(
    server: ServerConfig,
    leafnodes: LeafNodeConfig,
    account_jwts: dict[str, str],
) -> str:
    lines = ["leafnodes {"]
    if leafnodes.port is not None:
        lines.append(f"{INDENT}port: {leafnodes.port}")
    if leafnodes.remotes:
        entries: list[str] = []
        for remote in leafnodes.remotes:
            jwt = account_jwts.get(remote.account)
            if jwt is None:
                raise UnknownRemoteAccount(server.name, remote.account)
            account_id = extract_subject_id(jwt)
            creds_path = server.output_dir / remote.credentials
            entries.append(
                f"{{ url: {_q(remote.url)}, account: {_q(account_id)}, "
                f"credentials: {_q(str(creds_path))} }}"
            )
        lines.extend(_list_block("remotes", entries, depth=1))
    lines.append("}")
    return "\n".join(lines) + "\n\n"


def render_preload(preload: Sequence[PreloadEntry]) -> str:
    """``resolver_preload`` block: subject id → JWT, in the given order."""
    if not preload:
        return ""
    entries = [f"{INDENT}{extract_subject_id(e.jwt)}: {_q(e.jwt)}" for e in preload]
    return "resolver_preload: {\n" + "\n".join(entries) + "\n}\n"


def render_server_config(
    server: ServerConfig,
    *,
    operator_jwt: str,
    system_account_id: str,
    preload: Sequence[PreloadEntry],
) -> str:
    """Render the configuration text for one server.

    Args:
        server: The (normalized) server model.
        operator_jwt: Operator token shared by the deployment.
        system_account_id: Subject id of the server's system account.
        preload: Every account known to the deployment, including the
            ones other servers own. Remote account references resolve
            against it even when the resolver is an external URL.

    Raises:
        UnknownRemoteAccount: A remote names an account absent from *preload*.
    """
    out = f"port: {server.port}\nserver_name: {_q(server.name)}\n\n"

    if server.jetstream.enabled:
        out += _render_jetstream(server.jetstream, server.output_dir)
    if server.tls is not None:
        out += _render_tls(server.tls)
    if server.mappings:
        out += _render_mappings(server.mappings)

    leafnodes = server.leafnodes
    if leafnodes.port is not None or leafnodes.remotes:
        account_jwts: dict[str, str] = {}
        for entry in preload:
            account_jwts.setdefault(entry.account, entry.jwt)
        out += _render_leafnodes(server, leafnodes, account_jwts)

    out += f"operator: {_q(operator_jwt)}\n"
    out += f"system_account: {_q(system_account_id)}\n"
    if server.resolver.url is None:
        out += "resolver: MEMORY\n"
        out += render_preload(preload)
    else:
        out += f"resolver: URL({server.resolver.url})\n"
    return out
