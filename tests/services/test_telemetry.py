"""Tests for stage timing spans."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from natsforge.config.settings import ForgeSettings
from natsforge.infrastructure.issuer import MemoryIssuer
from natsforge.infrastructure.store import TrustStore
from natsforge.services.deploy import DeployService, Stage
from natsforge.services.plan import PlanService
from natsforge.services.telemetry import (
    Span,
    disable_telemetry,
    enable_telemetry,
    trace_span,
)
from tests.conftest import build, scenario_a


@pytest.fixture
def telemetry() -> Iterator[None]:
    enable_telemetry()
    yield
    disable_telemetry()


class TestSpan:
    def test_open_span_has_no_duration(self) -> None:
        assert Span(name="x").duration_ms == 0.0

    def test_to_dict_nests_children(self) -> None:
        root = Span(name="root")
        child = Span(name="child", annotations={"n": 1})
        root.children.append(child)
        child.end()
        root.end()
        data = root.to_dict()
        assert data["children"][0]["name"] == "child"
        assert data["children"][0]["annotations"] == {"n": 1}

    def test_trace_span_disabled_yields_none(self) -> None:
        with trace_span("x") as span:
            assert span is None


class TestTraced:
    def test_disabled_leaves_meta_empty(self, settings: ForgeSettings, tmp_path: Path) -> None:
        result = PlanService(settings).plan(build(scenario_a(tmp_path)))
        assert result.meta is None

    @pytest.mark.usefixtures("telemetry")
    def test_deploy_records_every_stage(
        self,
        settings: ForgeSettings,
        issuer: MemoryIssuer,
        store: TrustStore,
        discriminator: Callable[[], str],
        tmp_path: Path,
    ) -> None:
        service = DeployService(settings, issuer, store, discriminator=discriminator)
        result = service.deploy(build(scenario_a(tmp_path / "out")))
        span = result.meta["telemetry"]
        assert span["name"] == "DeployService.deploy"
        assert [c["name"] for c in span["children"]] == [
            str(s) for s in Stage if s is not Stage.DONE
        ]

    @pytest.mark.usefixtures("telemetry")
    def test_failed_run_stops_at_stage(
        self, settings: ForgeSettings, issuer: MemoryIssuer, store: TrustStore, tmp_path: Path
    ) -> None:
        data = scenario_a(tmp_path / "out")
        del data["servers"][0]["accounts"][0]
        result = DeployService(settings, issuer, store).deploy(build(data))
        names = [c["name"] for c in result.meta["telemetry"]["children"]]
        assert names[-1] == "system_account"
