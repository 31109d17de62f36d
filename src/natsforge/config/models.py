"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, natsforge.toml only carries
overrides. An empty file runs the real ``nsc`` issuer with an ephemeral
store and requires an explicit system account on every deployment.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel


class SystemAccountPolicy(StrEnum):
    """How a server without an explicit system account is handled."""

    REQUIRE_EXPLICIT = "require_explicit"
    ALLOW_DEFAULT_FALLBACK = "allow_default_fallback"


# --- natsforge.toml sections ---


class IssuerConfig(BaseModel):
    """[issuer] section."""

    model_config = {"frozen": True}

    kind: Literal["nsc", "memory"] = "nsc"
    binary: str = "nsc"
    timeout: float | None = 60.0
    # Persistent trust store; unset means a fresh temp dir per run.
    store_dir: Path | None = None


class DeployConfig(BaseModel):
    """[deploy] section."""

    model_config = {"frozen": True}

    system_account_policy: SystemAccountPolicy = SystemAccountPolicy.REQUIRE_EXPLICIT
    config_filename: str = "nats.conf"
    operator_filename: str = "operator.jwt"
