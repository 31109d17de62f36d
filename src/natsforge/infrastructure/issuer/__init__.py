"""Identity issuer adapters."""

from __future__ import annotations

from natsforge.infrastructure.issuer.base import IdentityGateway
from natsforge.infrastructure.issuer.memory import MemoryIssuer
from natsforge.infrastructure.issuer.nsc import NscIssuer

__all__ = ["IdentityGateway", "MemoryIssuer", "NscIssuer", "build_gateway"]


def build_gateway(
    kind: str, *, binary: str = "nsc", timeout: float | None = 60.0
) -> IdentityGateway:
    """Instantiate the gateway variant named by *kind* (``nsc`` or ``memory``)."""
    if kind == "memory":
        return MemoryIssuer()
    if kind == "nsc":
        return NscIssuer(binary, timeout=timeout)
    raise ValueError(f"Unknown issuer kind: {kind!r}")
