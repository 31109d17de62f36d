"""Tests for the account import graph and creation order."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from natsforge.domain.deployment import AccountConfig
from natsforge.domain.errors import DependencyCycle, UnknownImportTarget
from natsforge.infrastructure.graph.imports import DependencyResolver, UncoveredImport


def account(
    name: str,
    *,
    exports: Sequence[Any] = (),
    imports: Sequence[tuple[str, str]] = (),
    **kw: Any,
) -> AccountConfig:
    return AccountConfig.model_validate(
        {
            "name": name,
            "exports": [e if isinstance(e, dict) else {"subject": e} for e in exports],
            "imports": [{"subject": s, "account": a} for a, s in imports],
            **kw,
        }
    )


def names(accounts: list[AccountConfig]) -> list[str]:
    return [a.name for a in accounts]


class TestOrder:
    def test_exporters_come_first(self) -> None:
        accounts = [
            account("C", imports=[("B", "b.data")]),
            account("B", exports=["b.>"], imports=[("A", "a.data")]),
            account("A", exports=["a.data"]),
        ]
        assert names(DependencyResolver(accounts).order()) == ["A", "B", "C"]

    def test_every_edge_respected(self) -> None:
        accounts = [
            account("orders", exports=["orders.>"], imports=[("inventory", "inv.q")]),
            account("inventory", exports=["inv.*"]),
            account(
                "billing",
                exports=["bill.>"],
                imports=[("orders", "orders.paid"), ("inventory", "inv.q")],
            ),
            account("audit", imports=[("billing", "bill.x")]),
        ]
        order = names(DependencyResolver(accounts).order())
        for acc in accounts:
            for imp in acc.imports:
                assert order.index(imp.account) < order.index(acc.name)

    def test_unrelated_accounts_sorted_by_name(self) -> None:
        accounts = [account("c"), account("a"), account("b")]
        assert names(DependencyResolver(accounts).order()) == ["a", "b", "c"]

    def test_name_breaks_ties_whatever_the_unique_name(self) -> None:
        accounts = [
            account("app", unique_name="app-f00"),
            account("app-b", unique_name="app-b-000"),
        ]
        assert names(DependencyResolver(accounts).order()) == ["app", "app-b"]

    def test_same_input_same_order(self) -> None:
        accounts = [account(n) for n in "qwertyuiop"]
        first = names(DependencyResolver(accounts).order())
        assert first == names(DependencyResolver(list(reversed(accounts))).order())


class TestCycles:
    def test_two_cycle(self) -> None:
        accounts = [
            account("A", exports=["a.>"], imports=[("B", "b.x")]),
            account("B", exports=["b.>"], imports=[("A", "a.x")]),
        ]
        with pytest.raises(DependencyCycle) as excinfo:
            DependencyResolver(accounts).order()
        assert excinfo.value.detail["account"] == "A"
        assert sorted(excinfo.value.detail["cycle"]) == ["A", "B"]
        assert excinfo.value.code == "DEPENDENCY_CYCLE"

    def test_self_import_is_a_cycle(self) -> None:
        accounts = [account("A", exports=["a.>"], imports=[("A", "a.x")])]
        with pytest.raises(DependencyCycle):
            DependencyResolver(accounts).order()

    def test_two_cycle_without_exports(self) -> None:
        accounts = [account("A", imports=[("B", "b.x")]), account("B", imports=[("A", "a.x")])]
        with pytest.raises(DependencyCycle) as excinfo:
            DependencyResolver(accounts).order()
        assert sorted(excinfo.value.detail["cycle"]) == ["A", "B"]

    def test_cycle_behind_acyclic_prefix(self) -> None:
        accounts = [
            account("root", exports=["r.>"]),
            account("B", exports=["b.>"], imports=[("root", "r.x"), ("C", "c.x")]),
            account("C", exports=["c.>"], imports=[("B", "b.x")]),
        ]
        with pytest.raises(DependencyCycle, match="B"):
            DependencyResolver(accounts).order()


class TestValidate:
    def test_unknown_target(self) -> None:
        resolver = DependencyResolver([account("A", imports=[("ghost", "g.x")])])
        with pytest.raises(UnknownImportTarget) as excinfo:
            resolver.validate()
        assert excinfo.value.detail == {"account": "A", "target": "ghost"}

    def test_order_validates_first(self) -> None:
        with pytest.raises(UnknownImportTarget):
            DependencyResolver([account("A", imports=[("ghost", "g.x")])]).order()

    def test_import_without_export_is_accepted(self) -> None:
        accounts = [account("B", imports=[("A", "a.data")]), account("A")]
        resolver = DependencyResolver(accounts)
        resolver.validate()
        assert names(resolver.order()) == ["A", "B"]


class TestUncoveredImports:
    def test_reports_subject_no_export_covers(self) -> None:
        accounts = [account("A", exports=["a.data"]), account("B", imports=[("A", "a.other")])]
        assert DependencyResolver(accounts).uncovered_imports() == [
            UncoveredImport("B", "A", "a.other")
        ]

    def test_wildcard_export_covers_import(self) -> None:
        accounts = [account("A", exports=["a.>"]), account("B", imports=[("A", "a.deep.x")])]
        assert DependencyResolver(accounts).uncovered_imports() == []

    def test_unknown_target_left_to_validate(self) -> None:
        resolver = DependencyResolver([account("A", imports=[("ghost", "g.x")])])
        assert resolver.uncovered_imports() == []

    def test_describe(self) -> None:
        assert UncoveredImport("B", "A", "a.x").describe() == (
            "Account 'B' imports 'a.x' but 'A' exports no matching subject"
        )


class TestGraph:
    def test_edges_run_exporter_to_importer(self) -> None:
        accounts = [account("A", exports=["a.x"]), account("B", imports=[("A", "a.x")])]
        g = DependencyResolver(accounts).graph()
        assert list(g.edges) == [("A", "B")]
        assert g.edges["A", "B"]["subject"] == "a.x"
        assert set(g.nodes) == {"A", "B"}


class TestServiceImports:
    def test_follows_matching_export(self) -> None:
        accounts = [
            account("A", exports=[{"subject": "svc.>", "is_service": True}, "events.>"]),
        ]
        resolver = DependencyResolver(accounts)
        assert resolver.is_service_import("A", "svc.orders") is True
        assert resolver.is_service_import("A", "events.created") is False

    def test_exact_export_beats_wildcard(self) -> None:
        accounts = [
            account("A", exports=[{"subject": "a.>", "is_service": True}, "a.feed"]),
        ]
        assert DependencyResolver(accounts).is_service_import("A", "a.feed") is False
