"""Deployment descriptor models.

One operator, an ordered list of servers, each server owning accounts,
and each account owning users. Models are frozen: normalization produces
new instances via ``model_copy(update=...)``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from pathlib import Path

from pydantic import BaseModel, Field

from natsforge.domain.creds import creds_filename
from natsforge.domain.errors import ConfigValidationError, UnknownRemoteAccount


class ExportConfig(BaseModel):
    """Subject an account shares with others."""

    model_config = {"frozen": True}

    subject: str
    is_service: bool = False


class ImportConfig(BaseModel):
    """Subject an account takes from the account named ``account``."""

    model_config = {"frozen": True}

    subject: str
    account: str
    local_subject: str | None = None


class UserConfig(BaseModel):
    """Credential principal scoped to one account.

    ``allowed_subjects``/``denied_subjects`` apply to both publish and
    subscribe; the directional lists narrow one side only.
    """

    model_config = {"frozen": True}

    name: str
    allowed_subjects: list[str] = Field(default_factory=list)
    denied_subjects: list[str] = Field(default_factory=list)
    allow_publish: list[str] = Field(default_factory=list)
    deny_publish: list[str] = Field(default_factory=list)
    allow_subscribe: list[str] = Field(default_factory=list)
    deny_subscribe: list[str] = Field(default_factory=list)
    expiry: str | None = None


class AccountConfig(BaseModel):
    model_config = {"frozen": True}

    name: str
    unique_name: str = ""
    is_system_account: bool = False
    max_connections: int | None = None
    max_payload: int | None = None
    exports: list[ExportConfig] = Field(default_factory=list)
    imports: list[ImportConfig] = Field(default_factory=list)
    users: list[UserConfig] = Field(default_factory=list)


class SubjectMapping(BaseModel):
    """``src`` → ``dest`` pair used by subject transforms and republish rules."""

    model_config = {"frozen": True}

    src: str
    dest: str


class JetStreamConfig(BaseModel):
    model_config = {"frozen": True}

    enabled: bool = False
    store_dir: str | None = None
    domain: str | None = None
    max_memory: int | None = None
    max_storage: int | None = None
    subject_transform: SubjectMapping | None = None
    republish: list[SubjectMapping] = Field(default_factory=list)


class RemoteConfig(BaseModel):
    """Outbound leafnode connection."""

    model_config = {"frozen": True}

    url: str
    account: str
    credentials: str


class LeafNodeConfig(BaseModel):
    model_config = {"frozen": True}

    port: int | None = None
    remotes: list[RemoteConfig] = Field(default_factory=list)


class TlsConfig(BaseModel):
    model_config = {"frozen": True}

    cert_file: str
    key_file: str
    ca_file: str | None = None


class ResolverConfig(BaseModel):
    """Account resolver: in-config preload (default) or an external URL."""

    model_config = {"frozen": True}

    url: str | None = None

    @property
    def is_memory(self) -> bool:
        return self.url is None


class ServerConfig(BaseModel):
    model_config = {"frozen": True}

    name: str
    port: int
    output_dir: Path
    jetstream: JetStreamConfig = Field(default_factory=JetStreamConfig)
    leafnodes: LeafNodeConfig = Field(default_factory=LeafNodeConfig)
    tls: TlsConfig | None = None
    mappings: dict[str, str] = Field(default_factory=dict)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    accounts: list[AccountConfig] = Field(default_factory=list)

    def system_accounts(self) -> list[AccountConfig]:
        return [a for a in self.accounts if a.is_system_account]


class OperatorConfig(BaseModel):
    model_config = {"frozen": True}

    name: str
    reuse_existing: bool = False


class DeploymentConfig(BaseModel):
    """Root of the deployment descriptor."""

    model_config = {"frozen": True}

    name: str | None = None
    operator: OperatorConfig
    servers: list[ServerConfig] = Field(default_factory=list)

    def iter_accounts(self) -> Iterator[tuple[ServerConfig, AccountConfig]]:
        """Yield ``(owning server, account)`` pairs in descriptor order."""
        for server in self.servers:
            for account in server.accounts:
                yield server, account

    def all_accounts(self) -> list[AccountConfig]:
        return [account for _server, account in self.iter_accounts()]

    def account_names(self) -> set[str]:
        return {account.name for account in self.all_accounts()}


def _duplicates(values: list[str]) -> list[str]:
    return sorted(value for value, count in Counter(values).items() if count > 1)


def validate_structure(deployment: DeploymentConfig) -> None:
    """Check the invariants that need no issuer and no graph.

    Raises:
        ConfigValidationError: On the first violated invariant.
        UnknownRemoteAccount: When a leafnode remote names an absent account.
    """
    if not deployment.servers:
        raise ConfigValidationError("Deployment declares no servers")

    dupes = _duplicates([s.name for s in deployment.servers])
    if dupes:
        raise ConfigValidationError(f"Duplicate server names: {', '.join(dupes)}", names=dupes)

    dirs = _duplicates([str(s.output_dir.resolve()) for s in deployment.servers])
    if dirs:
        raise ConfigValidationError(
            f"Servers share an output directory: {', '.join(dirs)}", output_dirs=dirs
        )

    dupes = _duplicates([a.name for a in deployment.all_accounts()])
    if dupes:
        raise ConfigValidationError(
            f"Account names must be unique across the deployment: {', '.join(dupes)}",
            names=dupes,
        )

    given = [a.unique_name for a in deployment.all_accounts() if a.unique_name]
    dupes = _duplicates(given)
    if dupes:
        raise ConfigValidationError(
            f"Duplicate unique_name values: {', '.join(dupes)}", names=dupes
        )

    for account in deployment.all_accounts():
        dupes = _duplicates([u.name for u in account.users])
        if dupes:
            raise ConfigValidationError(
                f"Account {account.name!r} declares duplicate users: {', '.join(dupes)}",
                account=account.name,
                names=dupes,
            )

    bundles = _duplicates(
        [creds_filename(a.name, u.name) for a in deployment.all_accounts() for u in a.users]
    )
    if bundles:
        raise ConfigValidationError(
            f"Credential file names collide: {', '.join(bundles)}", names=bundles
        )

    names = deployment.account_names()
    for server in deployment.servers:
        marked = server.system_accounts()
        if len(marked) > 1:
            raise ConfigValidationError(
                f"Server {server.name!r} marks more than one system account: "
                + ", ".join(a.name for a in marked),
                server=server.name,
            )
        for remote in server.leafnodes.remotes:
            if remote.account not in names:
                raise UnknownRemoteAccount(server.name, remote.account)
