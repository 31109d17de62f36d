"""Tests for replicating account JWTs and remote credentials."""

from __future__ import annotations

import stat
from collections.abc import Sequence
from pathlib import Path

import pytest

from natsforge.domain.deployment import ServerConfig
from natsforge.domain.errors import MissingCredential
from natsforge.infrastructure.distribution import CredentialDistributor
from natsforge.infrastructure.filesystem import write_artifact

BUNDLE = b"-----BEGIN NATS USER JWT-----\r\nj.w.t\r\n  trailing  \n"


def server(tmp_path: Path, name: str, remotes: Sequence[tuple[str, str]] = ()) -> ServerConfig:
    return ServerConfig.model_validate(
        {
            "name": name,
            "port": 4222,
            "output_dir": str(tmp_path / name),
            "leafnodes": {
                "remotes": [
                    {"url": "nats://hub:7422", "account": acct, "credentials": creds}
                    for acct, creds in remotes
                ]
            },
        }
    )


@pytest.fixture
def hub_leaf(tmp_path: Path) -> tuple[ServerConfig, ServerConfig, CredentialDistributor]:
    hub = server(tmp_path, "hub")
    leaf = server(tmp_path, "leaf", [("svc", "svc-agent.creds")])
    jwts = {
        "svc.jwt": write_artifact(hub.output_dir / "svc.jwt", "svc.jwt.token"),
        "edge.jwt": write_artifact(leaf.output_dir / "edge.jwt", "edge.jwt.token"),
    }
    bundles = {"svc-agent.creds": write_artifact(hub.output_dir / "svc-agent.creds", BUNDLE)}
    return hub, leaf, CredentialDistributor(jwts, bundles)


class TestReplicateAccounts:
    def test_every_server_gets_every_jwt(self, hub_leaf) -> None:
        hub, leaf, distributor = hub_leaf
        distributor.replicate_accounts([hub, leaf])
        for srv in (hub, leaf):
            assert (srv.output_dir / "svc.jwt").read_text() == "svc.jwt.token"
            assert (srv.output_dir / "edge.jwt").read_text() == "edge.jwt.token"

    def test_owner_copy_is_skipped(self, hub_leaf) -> None:
        hub, leaf, distributor = hub_leaf
        copied = distributor.replicate_accounts([hub, leaf])
        assert sorted(copied) == sorted(
            [hub.output_dir / "edge.jwt", leaf.output_dir / "svc.jwt"]
        )


class TestRemoteCredentials:
    def test_bundle_copied_byte_for_byte(self, hub_leaf) -> None:
        hub, leaf, distributor = hub_leaf
        copied = distributor.distribute_remote_credentials([hub, leaf])
        dest = leaf.output_dir / "svc-agent.creds"
        assert copied == [dest]
        assert dest.read_bytes() == BUNDLE
        assert stat.S_IMODE(dest.stat().st_mode) == 0o600

    def test_servers_without_remotes_get_no_bundles(self, hub_leaf) -> None:
        hub, leaf, distributor = hub_leaf
        distributor.distribute([hub, leaf])
        assert sorted(p.name for p in hub.output_dir.iterdir()) == [
            "edge.jwt",
            "svc-agent.creds",
            "svc.jwt",
        ]

    def test_unknown_bundle(self, tmp_path: Path) -> None:
        leaf = server(tmp_path, "leaf", [("svc", "svc-ghost.creds")])
        distributor = CredentialDistributor({}, {})
        with pytest.raises(MissingCredential) as exc_info:
            distributor.distribute_remote_credentials([leaf])
        assert exc_info.value.detail == {
            "server": "leaf",
            "remote": "nats://hub:7422",
            "credentials": "svc-ghost.creds",
        }
