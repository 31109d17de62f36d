"""Identity artifacts produced during a run.

Created once per operator/account/user and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from natsforge.domain.creds import creds_filename

DEFAULT_SYSTEM_ACCOUNT = "SYS"


@dataclass(frozen=True)
class OperatorArtifact:
    name: str
    jwt: str
    # System account the issuer creates alongside the operator, if any.
    system_account_jwt: str | None = None


@dataclass(frozen=True)
class AccountArtifact:
    name: str
    unique_name: str
    jwt: str
    server: str | None = None

    @property
    def filename(self) -> str:
        return f"{self.name}.jwt"


@dataclass(frozen=True)
class UserCredentials:
    account: str
    user: str
    content: bytes
    jwt: str

    @property
    def filename(self) -> str:
        return creds_filename(self.account, self.user)


def new_discriminator() -> str:
    """Random suffix that makes operator and account names unique per run."""
    return str(uuid4())
