"""DeployService — one deployment run from descriptor to server configs.

Stages run strictly in order and each completes before the next begins::

    normalize → create_operator → system_account → resolve_order
      → create_accounts → wire_imports → distribute → synthesize → done

The issuer is non-transactional, so a failure stops the run where it is
and nothing already written is rolled back. The failed result names the
stage and carries the context notes gathered on the way out.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from natsforge.config.descriptor import load_deployment
from natsforge.config.logging import bound_run, get_logger
from natsforge.config.models import SystemAccountPolicy
from natsforge.domain.artifacts import (
    DEFAULT_SYSTEM_ACCOUNT,
    AccountArtifact,
    OperatorArtifact,
    new_discriminator,
)
from natsforge.domain.deployment import (
    AccountConfig,
    DeploymentConfig,
    ServerConfig,
    UserConfig,
    validate_structure,
)
from natsforge.domain.errors import ForgeError, NoSystemAccount
from natsforge.domain.serverconf import PreloadEntry, render_server_config
from natsforge.domain.tokens import extract_subject_id
from natsforge.infrastructure.distribution import CredentialDistributor
from natsforge.infrastructure.filesystem import write_artifact
from natsforge.infrastructure.graph.imports import DependencyResolver
from natsforge.services.base import BaseService
from natsforge.services.contracts import DeploymentManifest, dump_validated
from natsforge.services.result import ServiceResult
from natsforge.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from natsforge.config.settings import ForgeSettings
    from natsforge.infrastructure.issuer import IdentityGateway
    from natsforge.infrastructure.store import TrustStore

log = get_logger(__name__)


class Stage(StrEnum):
    NORMALIZE = "normalize"
    CREATE_OPERATOR = "create_operator"
    SYSTEM_ACCOUNT = "system_account"
    RESOLVE_ORDER = "resolve_order"
    CREATE_ACCOUNTS = "create_accounts"
    WIRE_IMPORTS = "wire_imports"
    DISTRIBUTE = "distribute"
    SYNTHESIZE = "synthesize"
    DONE = "done"


def normalize(
    deployment: DeploymentConfig,
    discriminator: Callable[[], str] = new_discriminator,
) -> DeploymentConfig:
    """Validate *deployment* and return it with run-unique names filled in.

    The operator name gets a ``-<discriminator>`` suffix unless it is
    being reused; accounts without a ``unique_name`` get one; output
    directories become absolute.

    Raises:
        ConfigValidationError: Structural problems or an unresolvable import.
    """
    validate_structure(deployment)
    DependencyResolver(deployment.all_accounts()).validate()

    operator = deployment.operator
    if not operator.reuse_existing:
        operator = operator.model_copy(update={"name": f"{operator.name}-{discriminator()}"})

    servers: list[ServerConfig] = []
    for server in deployment.servers:
        accounts = [
            a
            if a.unique_name
            else a.model_copy(update={"unique_name": f"{a.name}-{discriminator()}"})
            for a in server.accounts
        ]
        output_dir = server.output_dir.expanduser().resolve()
        servers.append(server.model_copy(update={"output_dir": output_dir, "accounts": accounts}))
    return deployment.model_copy(update={"operator": operator, "servers": servers})


def choose_system_accounts(
    deployment: DeploymentConfig,
    policy: SystemAccountPolicy,
    *,
    has_default: bool,
) -> dict[str, str | None]:
    """Pick each server's system account.

    The server's own marked account wins, then the first one marked
    anywhere in the deployment. Only under ``allow_default_fallback`` does
    a server fall back to the issuer's default, returned as None.

    Raises:
        NoSystemAccount: A server is left without a system account.
    """
    explicit = [a.name for a in deployment.all_accounts() if a.is_system_account]
    chosen: dict[str, str | None] = {}
    for server in deployment.servers:
        own = server.system_accounts()
        if own:
            chosen[server.name] = own[0].name
        elif explicit:
            chosen[server.name] = explicit[0]
        elif policy != SystemAccountPolicy.ALLOW_DEFAULT_FALLBACK:
            raise NoSystemAccount(
                server.name,
                "no account is marked is_system_account "
                "(system_account_policy is require_explicit)",
            )
        elif not has_default:
            raise NoSystemAccount(
                server.name, "no explicit system account and the issuer made no default"
            )
        else:
            chosen[server.name] = None
    return chosen


class _Run:
    """Mutable state of one deployment run, one method per stage."""

    def __init__(
        self,
        settings: ForgeSettings,
        gateway: IdentityGateway,
        store: TrustStore,
        deployment: DeploymentConfig,
        discriminator: Callable[[], str],
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.store = store
        self.deployment = deployment
        self.discriminator = discriminator

        self.operator: OperatorArtifact | None = None
        self.operator_paths: list[Path] = []
        # server name -> account name; None selects the issuer's default
        self.system_choice: dict[str, str | None] = {}
        self.resolver: DependencyResolver | None = None
        self.order: list[AccountConfig] = []
        self.owners: dict[str, ServerConfig] = {}
        self.accounts: dict[str, AccountArtifact] = {}
        self.account_paths: dict[str, Path] = {}
        self.bundles: dict[str, Path] = {}
        self.distributed: list[Path] = []
        self.configs: dict[str, Path] = {}
        self.system_ids: dict[str, str] = {}

    @property
    def operator_name(self) -> str:
        return self.deployment.operator.name

    def normalize(self) -> None:
        self.deployment = normalize(self.deployment, self.discriminator)
        self.owners = {a.name: s for s, a in self.deployment.iter_accounts()}

    def create_operator(self) -> None:
        op = self.deployment.operator
        self.operator = self.gateway.create_operator(
            self.store, op.name, reuse_existing=op.reuse_existing
        )
        filename = self.settings.deploy.operator_filename
        for server in self.deployment.servers:
            path = write_artifact(server.output_dir / filename, self.operator.jwt)
            self.operator_paths.append(path)
        log.info("operator.ready", operator=op.name, reused=op.reuse_existing)

    def system_account(self) -> None:
        assert self.operator is not None
        self.system_choice = choose_system_accounts(
            self.deployment,
            self.settings.deploy.system_account_policy,
            has_default=self.operator.system_account_jwt is not None,
        )
        for server, choice in self.system_choice.items():
            log.debug(
                "system_account.chosen", server=server, account=choice or DEFAULT_SYSTEM_ACCOUNT
            )

    def resolve_order(self) -> None:
        self.resolver = DependencyResolver(self.deployment.all_accounts())
        self.order = self.resolver.order()
        log.info("order.resolved", order=[a.name for a in self.order])

    def create_accounts(self) -> None:
        for account in self.order:
            server = self.owners[account.name]
            try:
                jwt = self.gateway.create_account(self.store, self.operator_name, account)
                self.accounts[account.name] = AccountArtifact(
                    name=account.name, unique_name=account.unique_name, jwt=jwt, server=server.name
                )
                log.info("account.created", account=account.name, unique_name=account.unique_name)
                for user in account.users:
                    self._create_user(server, account, user)
            except ForgeError as exc:
                exc.add_note(f"account {account.name!r} on server {server.name!r}")
                raise

    def _create_user(self, server: ServerConfig, account: AccountConfig, user: UserConfig) -> None:
        try:
            creds = self.gateway.create_user(self.store, self.operator_name, account, user)
        except ForgeError as exc:
            exc.add_note(f"user {user.name!r}")
            raise
        self.bundles[creds.filename] = write_artifact(
            server.output_dir / creds.filename, creds.content, secret=True
        )
        log.info("user.created", account=account.name, user=user.name)

    def wire_imports(self) -> None:
        assert self.resolver is not None
        by_name = {a.name: a for a in self.order}
        for account in self.order:
            for imp in account.imports:
                exporter = by_name[imp.account]
                try:
                    self.gateway.add_import(
                        self.store,
                        self.operator_name,
                        account,
                        exporter,
                        subject=imp.subject,
                        local_subject=imp.local_subject,
                        service=self.resolver.is_service_import(exporter.name, imp.subject),
                    )
                except ForgeError as exc:
                    exc.add_note(
                        f"import {imp.subject!r} from {exporter.name!r} into {account.name!r}"
                    )
                    raise
                log.info(
                    "import.wired",
                    account=account.name,
                    exporter=exporter.name,
                    subject=imp.subject,
                )

        # Imports rewrite the importer's token; persist only the final ones.
        for account in self.order:
            artifact = replace(
                self.accounts[account.name],
                jwt=self.gateway.read_account_jwt(self.store, self.operator_name, account),
            )
            self.accounts[account.name] = artifact
            owner = self.owners[account.name]
            self.account_paths[artifact.filename] = write_artifact(
                owner.output_dir / artifact.filename, artifact.jwt
            )

    def distribute(self) -> None:
        distributor = CredentialDistributor(self.account_paths, self.bundles)
        self.distributed = distributor.distribute(self.deployment.servers)
        log.info("artifacts.distributed", copies=len(self.distributed))

    def synthesize(self) -> None:
        assert self.operator is not None
        preload = [PreloadEntry(name, a.jwt) for name, a in self.accounts.items()]
        default_jwt = self.operator.system_account_jwt
        if None in self.system_choice.values() and default_jwt is not None:
            preload.append(PreloadEntry(DEFAULT_SYSTEM_ACCOUNT, default_jwt))

        filename = self.settings.deploy.config_filename
        for server in self.deployment.servers:
            choice = self.system_choice[server.name]
            system_jwt = self.accounts[choice].jwt if choice is not None else default_jwt
            assert system_jwt is not None
            try:
                system_id = extract_subject_id(system_jwt)
                text = render_server_config(
                    server,
                    operator_jwt=self.operator.jwt,
                    system_account_id=system_id,
                    preload=preload,
                )
                self.configs[server.name] = write_artifact(server.output_dir / filename, text)
            except ForgeError as exc:
                exc.add_note(f"server {server.name!r}")
                raise
            self.system_ids[server.name] = system_id
            log.info("config.written", server=server.name, path=str(self.configs[server.name]))

    def manifest(self) -> dict[str, object]:
        return {
            "deployment": self.deployment.name,
            "operator": self.operator_name,
            "operator_jwt": str(self.operator_paths[0]),
            "accounts": {
                name: str(self.account_paths[a.filename]) for name, a in self.accounts.items()
            },
            "credentials": [str(p) for p in self.bundles.values()],
            "server_configs": {name: str(p) for name, p in self.configs.items()},
            "distributed": [str(p) for p in self.distributed],
            "order": [a.name for a in self.order],
            "system_accounts": self.system_ids,
            "store": str(self.store.root),
            "ephemeral_store": self.store.ephemeral,
        }


class DeployService(BaseService):
    """Runs deployments against one identity gateway and trust store.

    Args:
        settings: Resolved settings; ``deploy`` section applies.
        gateway: Issuer adapter that mints identities.
        store: Trust store owned by this service for its runs.
        discriminator: Suffix factory for run-unique names.
    """

    def __init__(
        self,
        settings: ForgeSettings,
        gateway: IdentityGateway,
        store: TrustStore,
        *,
        discriminator: Callable[[], str] = new_discriminator,
    ) -> None:
        super().__init__(settings)
        self._gateway = gateway
        self._store = store
        self._discriminator = discriminator

    @traced
    def deploy(self, deployment: DeploymentConfig) -> ServiceResult:
        """Provision *deployment* and write every server's artifacts.

        On success ``data`` is a :class:`DeploymentManifest`.
        """
        op = "deploy"
        warnings: list[str] = []
        if deployment.operator.reuse_existing and self._store.ephemeral:
            warnings.append("Operator reuse requested but the trust store is ephemeral")
        warnings.extend(
            u.describe() for u in DependencyResolver(deployment.all_accounts()).uncovered_imports()
        )

        run = _Run(self._settings, self._gateway, self._store, deployment, self._discriminator)
        steps: list[tuple[Stage, Callable[[], None]]] = [
            (Stage.NORMALIZE, run.normalize),
            (Stage.CREATE_OPERATOR, run.create_operator),
            (Stage.SYSTEM_ACCOUNT, run.system_account),
            (Stage.RESOLVE_ORDER, run.resolve_order),
            (Stage.CREATE_ACCOUNTS, run.create_accounts),
            (Stage.WIRE_IMPORTS, run.wire_imports),
            (Stage.DISTRIBUTE, run.distribute),
            (Stage.SYNTHESIZE, run.synthesize),
        ]

        label = deployment.name or deployment.operator.name
        with bound_run(deployment=label, issuer=self._gateway.name):
            for stage, step in steps:
                log.debug("stage.start", stage=str(stage))
                try:
                    with trace_span(str(stage)):
                        step()
                except ForgeError as exc:
                    log.warning("stage.failed", stage=str(stage), code=exc.code, error=exc.message)
                    return self._failure(op, exc, stage=str(stage), warnings=warnings)
            log.info("stage.done", stage=str(Stage.DONE), servers=len(run.configs))

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(DeploymentManifest, run.manifest()),
            warnings=warnings,
        )

    def deploy_descriptor(self, path: Path, *, reuse_operator: bool = False) -> ServiceResult:
        """Load the descriptor at *path* and :meth:`deploy` it."""
        try:
            deployment = load_deployment(path)
        except ForgeError as exc:
            return self._failure("deploy", exc, stage=str(Stage.NORMALIZE))
        if reuse_operator:
            operator = deployment.operator.model_copy(update={"reuse_existing": True})
            deployment = deployment.model_copy(update={"operator": operator})
        return self.deploy(deployment)
