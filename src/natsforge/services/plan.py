"""PlanService — dry validation of a deployment descriptor.

Runs every check that needs no issuer: structure, import targets, cycles
and system-account selection. Imports no export covers are reported as
warnings. Nothing is written.
"""

from __future__ import annotations

from pathlib import Path

from natsforge.config.descriptor import load_deployment
from natsforge.domain.deployment import DeploymentConfig, validate_structure
from natsforge.domain.errors import ForgeError
from natsforge.infrastructure.graph.imports import DependencyResolver
from natsforge.services.base import BaseService
from natsforge.services.contracts import PlanData, dump_validated
from natsforge.services.deploy import Stage, choose_system_accounts
from natsforge.services.result import ServiceResult
from natsforge.services.telemetry import traced


class PlanService(BaseService):
    """Reports the creation order and per-server choices for a descriptor."""

    @traced
    def plan(self, deployment: DeploymentConfig) -> ServiceResult:
        op = "plan"
        stage = Stage.NORMALIZE
        try:
            validate_structure(deployment)
            resolver = DependencyResolver(deployment.all_accounts())
            resolver.validate()
            stage = Stage.SYSTEM_ACCOUNT
            # The issuer normally creates a default system account.
            system = choose_system_accounts(
                deployment, self._settings.deploy.system_account_policy, has_default=True
            )
            stage = Stage.RESOLVE_ORDER
            order = resolver.order()
        except ForgeError as exc:
            return self._failure(op, exc, stage=str(stage))

        owners = {a.name: s.name for s, a in deployment.iter_accounts()}
        data = {
            "deployment": deployment.name,
            "operator": deployment.operator.name,
            "order": [
                {
                    "name": a.name,
                    "server": owners[a.name],
                    "imports_from": sorted({i.account for i in a.imports}),
                    "users": [u.name for u in a.users],
                }
                for a in order
            ],
            "servers": [
                {
                    "name": s.name,
                    "port": s.port,
                    "output_dir": str(s.output_dir),
                    "system_account": system[s.name],
                    "remotes": [r.url for r in s.leafnodes.remotes],
                }
                for s in deployment.servers
            ],
        }
        warnings = [u.describe() for u in resolver.uncovered_imports()]
        return ServiceResult(
            ok=True, op=op, data=dump_validated(PlanData, data), warnings=warnings
        )

    def plan_descriptor(self, path: Path) -> ServiceResult:
        try:
            deployment = load_deployment(path)
        except ForgeError as exc:
            return self._failure("plan", exc, stage=str(Stage.NORMALIZE))
        return self.plan(deployment)
