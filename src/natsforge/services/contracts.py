"""Typed payload contracts for service results.

Payloads are validated before they leave the service layer so a key
regression fails in tests instead of in a consumer of ``--json``.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a JSON-ready dict."""
    return model_cls.model_validate(data).model_dump(mode="json")


class DeploymentManifest(BaseModel):
    """Payload contract for ``DeployService.deploy``.

    ``accounts`` maps account name to the copy in its owning server's
    output dir; ``distributed`` lists the replicas written elsewhere.
    """

    deployment: str | None = None
    operator: str
    operator_jwt: str
    accounts: dict[str, str]
    credentials: list[str]
    server_configs: dict[str, str]
    distributed: list[str] = Field(default_factory=list)
    order: list[str]
    system_accounts: dict[str, str]
    store: str
    ephemeral_store: bool


class PlannedAccount(BaseModel):
    name: str
    server: str
    imports_from: list[str] = Field(default_factory=list)
    users: list[str] = Field(default_factory=list)


class PlannedServer(BaseModel):
    name: str
    port: int
    output_dir: str
    # Account name, or None for the issuer's default system account.
    system_account: str | None
    remotes: list[str] = Field(default_factory=list)


class PlanData(BaseModel):
    """Payload contract for ``PlanService.plan``."""

    deployment: str | None = None
    operator: str
    order: list[PlannedAccount]
    servers: list[PlannedServer]


class SubjectData(BaseModel):
    """Payload contract for ``InspectService.subject``."""

    subject: str
    source: str
    kind: str
    name: str | None = None
    claim_type: str | None = None
