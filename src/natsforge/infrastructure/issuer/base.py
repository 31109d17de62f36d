"""IdentityGateway — capability interface over an identity issuer.

Implementations mint operator, account and user identities into a
:class:`TrustStore` and read the resulting artifacts back. Every call is
blocking and none is safe to run concurrently against the same store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from natsforge.domain.artifacts import DEFAULT_SYSTEM_ACCOUNT, OperatorArtifact
from natsforge.domain.errors import MissingOperator
from natsforge.domain.tokens import extract_subject_id
from natsforge.infrastructure.filesystem import read_artifact

if TYPE_CHECKING:
    from natsforge.domain.artifacts import UserCredentials
    from natsforge.domain.deployment import AccountConfig, UserConfig
    from natsforge.infrastructure.store import TrustStore


def issuer_expiry(expiry: str | None) -> str | None:
    """Reduce an ISO timestamp to the ``YYYY-MM-DD`` form the issuer accepts."""
    if not expiry:
        return None
    return expiry.split("T", 1)[0]


class IdentityGateway(ABC):
    """Abstract base for issuer adapters.

    ``extract_subject_id`` is pure and shared by all variants.
    """

    name = "abstract"

    extract_subject_id = staticmethod(extract_subject_id)

    @abstractmethod
    def create_operator(
        self,
        store: TrustStore,
        name: str,
        *,
        reuse_existing: bool = False,
    ) -> OperatorArtifact:
        """Mint the operator, or load it from the store when *reuse_existing*."""

    @abstractmethod
    def create_account(self, store: TrustStore, operator: str, account: AccountConfig) -> str:
        """Mint *account* with its limits and exports; return its JWT."""

    @abstractmethod
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
        """Wire an import of *subject* from *exporter* into *importer*.

        Both accounts must already exist in the store.
        """

    @abstractmethod
    def read_account_jwt(self, store: TrustStore, operator: str, account: AccountConfig) -> str:
        """Read the account's current JWT back from the store."""

    @abstractmethod
    def create_user(
        self,
        store: TrustStore,
        operator: str,
        account: AccountConfig,
        user: UserConfig,
    ) -> UserCredentials:
        """Mint *user* under *account* and return its credential bundle."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def load_operator(self, store: TrustStore, name: str) -> OperatorArtifact:
        """Load a previously minted operator from its well-known path.

        Raises:
            MissingOperator: No operator JWT at the expected location.
        """
        path = store.operator_jwt_path(name)
        if not path.is_file():
            raise MissingOperator(name, str(path))
        return OperatorArtifact(
            name=name,
            jwt=read_artifact(path),
            system_account_jwt=self.read_default_system_account(store, name),
        )

    def read_default_system_account(self, store: TrustStore, operator: str) -> str | None:
        """JWT of the system account the issuer creates with the operator, if any."""
        path = store.account_jwt_path(operator, DEFAULT_SYSTEM_ACCOUNT)
        if not path.is_file():
            return None
        return read_artifact(path)
