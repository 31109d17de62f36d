"""NscIssuer — drives the external ``nsc`` tool.

Each operation is one ``nsc`` invocation against the run's trust store.
Key and config directories are pointed inside the store so a run never
touches the user's own nsc environment.

A non-zero exit raises with the captured stderr attached. Nothing is
retried: a failed invocation may already have mutated the store.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import TYPE_CHECKING

from natsforge.domain.artifacts import OperatorArtifact, UserCredentials
from natsforge.domain.creds import parse_creds
from natsforge.domain.errors import ArtifactIOError, IssuerInvocationFailure, IssuerTimeout
from natsforge.infrastructure.filesystem import read_artifact, read_artifact_bytes
from natsforge.infrastructure.issuer.base import IdentityGateway, issuer_expiry

if TYPE_CHECKING:
    from natsforge.domain.deployment import AccountConfig, UserConfig
    from natsforge.infrastructure.store import TrustStore

logger = logging.getLogger(__name__)


class NscIssuer(IdentityGateway):
    """Identity gateway backed by the ``nsc`` command-line tool."""

    name = "nsc"

    def __init__(self, binary: str = "nsc", *, timeout: float | None = 60.0) -> None:
        self._binary = binary
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Process helper
    # ------------------------------------------------------------------

    def _run(
        self, store: TrustStore, operation: str, *args: str
    ) -> subprocess.CompletedProcess[str]:
        """Run one nsc command against *store*. Raises on failure."""
        cmd = [self._binary, *args, "--data-dir", str(store.root)]
        env = {**os.environ, "NKEYS_PATH": str(store.keys_dir), "NSC_HOME": str(store.home_dir)}
        logger.debug("nsc %s", " ".join(args))
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise IssuerTimeout(operation, self._timeout or 0.0) from exc
        except OSError as exc:
            raise IssuerInvocationFailure(operation, None, str(exc)) from exc

        if proc.returncode != 0:
            logger.debug("nsc %s failed (%d): %s", operation, proc.returncode, proc.stderr)
            raise IssuerInvocationFailure(operation, proc.returncode, proc.stderr or proc.stdout)
        return proc

    # ------------------------------------------------------------------
    # IdentityGateway
    # ------------------------------------------------------------------

    def create_operator(
        self,
        store: TrustStore,
        name: str,
        *,
        reuse_existing: bool = False,
    ) -> OperatorArtifact:
        if reuse_existing:
            return self.load_operator(store, name)

        self._run(store, "init", "init", "--name", name, "--dir", str(store.root))
        return OperatorArtifact(
            name=name,
            jwt=read_artifact(store.operator_jwt_path(name)),
            system_account_jwt=self.read_default_system_account(store, name),
        )

    def create_account(self, store: TrustStore, operator: str, account: AccountConfig) -> str:
        name = account.unique_name
        self._run(store, "add account", "add", "account", "--name", name)

        limits: list[str] = []
        if account.max_connections is not None:
            limits += ["--conns", str(account.max_connections)]
        if account.max_payload is not None:
            limits += ["--payload", str(account.max_payload)]
        if limits:
            self._run(store, "edit account", "edit", "account", "--name", name, *limits)

        for export in account.exports:
            args = [
                "add",
                "export",
                "--account",
                name,
                "--name",
                export.subject,
                "--subject",
                export.subject,
            ]
            if export.is_service:
                args.append("--service")
            self._run(store, "add export", *args)

        return self.read_account_jwt(store, operator, account)

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
        exporter_id = self.extract_subject_id(self.read_account_jwt(store, operator, exporter))
        args = [
            "add",
            "import",
            "--account",
            importer.unique_name,
            "--src-account",
            exporter_id,
            "--remote-subject",
            subject,
        ]
        if local_subject:
            args += ["--local-subject", local_subject]
        if service:
            args.append("--service")
        self._run(store, "add import", *args)

    def read_account_jwt(self, store: TrustStore, operator: str, account: AccountConfig) -> str:
        return read_artifact(store.account_jwt_path(operator, account.unique_name))

    def create_user(
        self,
        store: TrustStore,
        operator: str,
        account: AccountConfig,
        user: UserConfig,
    ) -> UserCredentials:
        args = ["add", "user", "--account", account.unique_name, "--name", user.name]
        permissions = (
            ("--allow-pubsub", user.allowed_subjects),
            ("--deny-pubsub", user.denied_subjects),
            ("--allow-pub", user.allow_publish),
            ("--deny-pub", user.deny_publish),
            ("--allow-sub", user.allow_subscribe),
            ("--deny-sub", user.deny_subscribe),
        )
        for flag, subjects in permissions:
            if subjects:
                args += [flag, ",".join(subjects)]
        expiry = issuer_expiry(user.expiry)
        if expiry:
            args += ["--expiry", expiry]
        self._run(store, "add user", *args)

        output = store.creds_dir / account.unique_name / f"{user.name}.creds"
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.unlink(missing_ok=True)
        except OSError as exc:
            raise ArtifactIOError("prepare", str(output), str(exc)) from exc
        self._run(
            store,
            "generate creds",
            "generate",
            "creds",
            "--account",
            account.unique_name,
            "--name",
            user.name,
            "--output-file",
            str(output),
        )

        content = read_artifact_bytes(output)
        return UserCredentials(
            account=account.name,
            user=user.name,
            content=content,
            jwt=parse_creds(content).jwt,
        )
