"""Shared pytest fixtures and descriptor builders for natsforge tests."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from natsforge.config.settings import ForgeSettings
from natsforge.domain.deployment import DeploymentConfig
from natsforge.infrastructure.issuer import MemoryIssuer
from natsforge.infrastructure.store import TrustStore
from natsforge.services.telemetry import disable_telemetry


@pytest.fixture(autouse=True)
def _restore_process_state() -> Iterator[None]:
    """Undo the logging and telemetry setup a CLI invocation performs."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop NATSFORGE_* variables the host might have set."""
    import os

    for key in list(os.environ):
        if key.startswith("NATSFORGE_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings(tmp_path: Path, _clean_env: None) -> ForgeSettings:
    """Code-default settings (no TOML file in reach)."""
    return ForgeSettings.from_cli(config_path=str(tmp_path / "absent.toml"))


@pytest.fixture
def fallback_settings(settings: ForgeSettings) -> ForgeSettings:
    return settings.with_overrides(deploy={"system_account_policy": "allow_default_fallback"})


@pytest.fixture
def issuer() -> MemoryIssuer:
    return MemoryIssuer()


@pytest.fixture
def store(tmp_path: Path) -> Iterator[TrustStore]:
    with TrustStore.open_persistent(tmp_path / "store") as s:
        yield s


@pytest.fixture
def discriminator() -> Callable[[], str]:
    """Predictable run suffixes: d0, d1, ..."""
    counter = itertools.count()
    return lambda: f"d{next(counter)}"


# ---------------------------------------------------------------------------
# Descriptor builders
# ---------------------------------------------------------------------------


def scenario_a(out: Path) -> dict[str, Any]:
    """One server with a system account and one limited application account."""
    return {
        "name": "single",
        "operator": {"name": "acme"},
        "servers": [
            {
                "name": "n1",
                "port": 4222,
                "output_dir": str(out / "n1"),
                "accounts": [
                    {"name": "SYS", "is_system_account": True},
                    {
                        "name": "APP",
                        "max_connections": 5,
                        "max_payload": 1048576,
                        "exports": [{"subject": "app.data"}],
                        "users": [{"name": "app-user", "allowed_subjects": ["app.>"]}],
                    },
                ],
            }
        ],
    }


def scenario_b(out: Path) -> dict[str, Any]:
    """Hub and leaf; the leaf dials the hub as ``app-service``."""
    return {
        "name": "hub-leaf",
        "operator": {"name": "acme"},
        "servers": [
            {
                "name": "hub",
                "port": 4222,
                "output_dir": str(out / "hub"),
                "leafnodes": {"port": 4248},
                "accounts": [
                    {"name": "SYS", "is_system_account": True},
                    {
                        "name": "app-service",
                        "exports": [{"subject": "svc.>", "is_service": True}],
                        "users": [{"name": "service-user"}],
                    },
                ],
            },
            {
                "name": "leaf",
                "port": 4223,
                "output_dir": str(out / "leaf"),
                "leafnodes": {
                    "remotes": [
                        {
                            "url": "nats://localhost:4248",
                            "account": "app-service",
                            "credentials": "app-service-service-user.creds",
                        }
                    ]
                },
                "accounts": [
                    {
                        "name": "edge",
                        "imports": [{"subject": "svc.orders", "account": "app-service"}],
                        "users": [{"name": "device"}],
                    }
                ],
            },
        ],
    }


def build(data: dict[str, Any]) -> DeploymentConfig:
    return DeploymentConfig.model_validate(data)
