"""User credential bundle layout.

A bundle is the text ``nsc generate creds`` writes: the user JWT block,
a warning banner, then the NKEY seed block. Bundles hold private seeds;
they are produced once and afterwards only ever copied as bytes.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from natsforge.domain.errors import TokenError

JWT_BEGIN = "-----BEGIN NATS USER JWT-----"
JWT_END = "------END NATS USER JWT------"
SEED_BEGIN = "-----BEGIN USER NKEY SEED-----"
SEED_END = "------END USER NKEY SEED------"

_BANNER = """\
************************* IMPORTANT *************************
NKEY Seed printed below can be used to sign and prove identity.
NKEYs are sensitive and should be treated as secrets."""

_FOOTER = "*************************************************************"

_BLOCK = re.compile(
    r"-{3,}BEGIN (?P<label>[A-Z ]+)-{3,}\r?\n"
    r"(?P<body>.+?)\r?\n"
    r"-{3,}END (?P=label)-{3,}"
)


class CredsParts(NamedTuple):
    jwt: str
    seed: str


def format_creds(jwt: str, seed: str) -> str:
    """Render a bundle in the fixed block layout."""
    return (
        f"{JWT_BEGIN}\n{jwt}\n{JWT_END}\n\n"
        f"{_BANNER}\n\n"
        f"{SEED_BEGIN}\n{seed}\n{SEED_END}\n\n"
        f"{_FOOTER}\n"
    )


def parse_creds(content: str | bytes) -> CredsParts:
    """Extract the JWT and seed from a bundle.

    Raises:
        TokenError: Either block is missing.
    """
    text = content.decode("utf-8") if isinstance(content, bytes) else content
    blocks = {m.group("label"): m.group("body").strip() for m in _BLOCK.finditer(text)}
    jwt = blocks.get("NATS USER JWT")
    seed = blocks.get("USER NKEY SEED")
    if not jwt or not seed:
        raise TokenError("Credential bundle is missing its JWT or seed block")
    return CredsParts(jwt=jwt, seed=seed)


def creds_filename(account_name: str, user_name: str) -> str:
    """``<account>-<user>.creds`` — the name remotes refer to."""
    return f"{account_name}-{user_name}.creds"
