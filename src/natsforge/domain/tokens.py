"""Signed token helpers.

Tokens are opaque ``header.claims.signature`` strings. The only thing
natsforge ever reads from one is the ``sub`` claim of its payload.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from natsforge.domain.errors import ClaimDecodeError, MalformedToken, MissingSubjectClaim


def decode_claims(token: str) -> dict[str, Any]:
    """Decode the claim set of *token* without verifying its signature.

    The payload is base64url; missing padding is tolerated.

    Raises:
        MalformedToken: The token is not three dot-separated segments.
        ClaimDecodeError: The payload is not base64-encoded JSON object data.
    """
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise MalformedToken(f"Invalid token format: {len(parts)} segments, expected 3")

    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        claims = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise ClaimDecodeError(f"Failed to decode token payload: {exc}") from exc

    if not isinstance(claims, dict):
        raise ClaimDecodeError("Token payload is not a claim object")
    return claims


def extract_subject_id(token: str) -> str:
    """Return the ``sub`` claim of *token*.

    Raises:
        MalformedToken, ClaimDecodeError: See :func:`decode_claims`.
        MissingSubjectClaim: No string ``sub`` field in the payload.
    """
    claims = decode_claims(token)
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise MissingSubjectClaim("No 'sub' field in token")
    return subject


def encode_segment(data: dict[str, Any]) -> str:
    """Encode *data* as an unpadded base64url JSON segment."""
    raw = json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
