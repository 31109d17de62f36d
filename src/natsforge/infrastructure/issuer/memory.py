"""MemoryIssuer — in-process identity gateway.

Mints structurally valid but unsigned tokens: base64url JSON header and
claims, with ``sub`` set to a fake nkey public key derived by hashing
the entity's label. Identical input always yields identical tokens.

Artifacts land at the same store paths ``nsc`` uses, so operator reuse
and the shared helpers behave the same against either variant.
"""

from __future__ import annotations

import base64
import hashlib
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from natsforge.domain.artifacts import DEFAULT_SYSTEM_ACCOUNT, OperatorArtifact, UserCredentials
from natsforge.domain.creds import format_creds
from natsforge.domain.errors import IssuerInvocationFailure
from natsforge.domain.tokens import encode_segment
from natsforge.infrastructure.filesystem import read_artifact, write_artifact
from natsforge.infrastructure.issuer.base import IdentityGateway, issuer_expiry

if TYPE_CHECKING:
    from natsforge.domain.deployment import AccountConfig, UserConfig
    from natsforge.infrastructure.store import TrustStore

_HEADER = {"alg": "ed25519-nkey", "typ": "JWT"}


def _b32(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").rstrip("=")


def fake_public_key(role: str, label: str) -> str:
    """56-character key: role prefix (``O``, ``A``, ``U``) + 55 base32 chars."""
    return role + _b32(hashlib.sha512(f"{role}:{label}".encode()).digest())[:55]


def fake_seed(role: str, label: str) -> str:
    return "S" + role + _b32(hashlib.sha512(f"seed:{role}:{label}".encode()).digest())[:56]


def _sign(claims: dict[str, Any]) -> str:
    body = dict(claims)
    body["jti"] = _b32(hashlib.sha256(encode_segment(claims).encode()).digest())[:52]
    header = encode_segment(_HEADER)
    payload = encode_segment(body)
    digest = hashlib.sha512(f"{header}.{payload}".encode()).digest()
    signature = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    return f"{header}.{payload}.{signature}"


def _expiry_epoch(expiry: str) -> int:
    try:
        day = datetime.fromisoformat(expiry)
    except ValueError as exc:
        raise IssuerInvocationFailure("add user", 1, f"invalid expiry {expiry!r}") from exc
    return int(day.replace(tzinfo=UTC).timestamp())


class MemoryIssuer(IdentityGateway):
    """Fake issuer for tests and dry runs.

    ``calls`` records every gateway operation as ``(operation, entity)``.
    """

    name = "memory"

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self._accounts: dict[tuple[Path, str], dict[str, Any]] = {}

    def create_operator(
        self,
        store: TrustStore,
        name: str,
        *,
        reuse_existing: bool = False,
    ) -> OperatorArtifact:
        self.calls.append(("create_operator", name))
        if reuse_existing:
            return self.load_operator(store, name)

        operator_key = fake_public_key("O", name)
        operator_jwt = _sign(
            {
                "iat": 0,
                "iss": operator_key,
                "name": name,
                "sub": operator_key,
                "nats": {"type": "operator", "version": 2},
            }
        )
        write_artifact(store.operator_jwt_path(name), operator_jwt)

        system = self._new_account_claims(
            name, DEFAULT_SYSTEM_ACCOUNT, max_connections=None, max_payload=None
        )
        self._accounts[(store.root, DEFAULT_SYSTEM_ACCOUNT)] = system
        self._publish(store, name, DEFAULT_SYSTEM_ACCOUNT)

        return OperatorArtifact(
            name=name,
            jwt=operator_jwt,
            system_account_jwt=self.read_default_system_account(store, name),
        )

    def create_account(self, store: TrustStore, operator: str, account: AccountConfig) -> str:
        self.calls.append(("create_account", account.unique_name))
        claims = self._new_account_claims(
            operator,
            account.unique_name,
            max_connections=account.max_connections,
            max_payload=account.max_payload,
        )
        claims["nats"]["exports"] = [
            {
                "name": export.subject,
                "subject": export.subject,
                "type": "service" if export.is_service else "stream",
            }
            for export in account.exports
        ]
        self._accounts[(store.root, account.unique_name)] = claims
        return self._publish(store, operator, account.unique_name)

    def add_import(
        self,
        store: TrustStore,
        operator: str,
        importer: AccountConfig,
        exporter: AccountConfig,
        *,
        subject: str,
        local_subject: str | None = None,
        service: bool = False,
    ) -> None:
        self.calls.append(("add_import", f"{importer.unique_name}<-{exporter.unique_name}"))
        claims = self._claims(store, "add import", importer.unique_name)
        exporter_id = self.extract_subject_id(self.read_account_jwt(store, operator, exporter))
        entry: dict[str, Any] = {
            "account": exporter_id,
            "name": subject,
            "subject": subject,
            "type": "service" if service else "stream",
        }
        if local_subject:
            entry["local_subject"] = local_subject
        claims["nats"]["imports"].append(entry)
        self._publish(store, operator, importer.unique_name)

    def read_account_jwt(self, store: TrustStore, operator: str, account: AccountConfig) -> str:
        return read_artifact(store.account_jwt_path(operator, account.unique_name))

    def create_user(
        self,
        store: TrustStore,
        operator: str,
        account: AccountConfig,
        user: UserConfig,
    ) -> UserCredentials:
        self.calls.append(("create_user", f"{account.unique_name}/{user.name}"))
        account_claims = self._claims(store, "add user", account.unique_name)
        label = f"{operator}/{account.unique_name}/{user.name}"
        user_key = fake_public_key("U", label)

        nats: dict[str, Any] = {
            "type": "user",
            "version": 2,
            "pub": {
                "allow": [*user.allowed_subjects, *user.allow_publish],
                "deny": [*user.denied_subjects, *user.deny_publish],
            },
            "sub": {
                "allow": [*user.allowed_subjects, *user.allow_subscribe],
                "deny": [*user.denied_subjects, *user.deny_subscribe],
            },
        }
        claims: dict[str, Any] = {
            "iat": 0,
            "iss": account_claims["sub"],
            "name": user.name,
            "sub": user_key,
            "nats": nats,
        }
        expiry = issuer_expiry(user.expiry)
        if expiry:
            claims["exp"] = _expiry_epoch(expiry)

        jwt = _sign(claims)
        content = format_creds(jwt, fake_seed("U", label)).encode("utf-8")
        scratch = store.creds_dir / account.unique_name / f"{user.name}.creds"
        write_artifact(scratch, content, secret=True)
        return UserCredentials(account=account.name, user=user.name, content=content, jwt=jwt)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _new_account_claims(
        operator: str,
        unique_name: str,
        *,
        max_connections: int | None,
        max_payload: int | None,
    ) -> dict[str, Any]:
        return {
            "iat": 0,
            "iss": fake_public_key("O", operator),
            "name": unique_name,
            "sub": fake_public_key("A", f"{operator}/{unique_name}"),
            "nats": {
                "type": "account",
                "version": 2,
                "limits": {
                    "conn": -1 if max_connections is None else max_connections,
                    "payload": -1 if max_payload is None else max_payload,
                },
                "exports": [],
                "imports": [],
            },
        }

    def _claims(self, store: TrustStore, operation: str, unique_name: str) -> dict[str, Any]:
        claims = self._accounts.get((store.root, unique_name))
        if claims is None:
            raise IssuerInvocationFailure(operation, 1, f"account {unique_name!r} not found")
        return claims

    def _publish(self, store: TrustStore, operator: str, unique_name: str) -> str:
        jwt = _sign(self._accounts[(store.root, unique_name)])
        write_artifact(store.account_jwt_path(operator, unique_name), jwt)
        return jwt
