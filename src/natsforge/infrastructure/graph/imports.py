"""DependencyResolver — account import graph and creation order.

An edge runs from an exporting account to every account importing from
it, so a topological order creates exporters first. Accounts with no
ordering relation are ordered by account ``name``, which the descriptor
controls, so identical input always yields the identical order whatever
run suffixes the accounts were given.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import NamedTuple, TypeAlias

import networkx as nx

from natsforge.domain.deployment import AccountConfig
from natsforge.domain.errors import DependencyCycle, UnknownImportTarget
from natsforge.domain.subjects import subject_matches

logger = logging.getLogger(__name__)

_Graph: TypeAlias = nx.DiGraph


class UncoveredImport(NamedTuple):
    """An import whose exporter declares no export matching the subject."""

    account: str
    target: str
    subject: str

    def describe(self) -> str:
        return (
            f"Account {self.account!r} imports {self.subject!r} "
            f"but {self.target!r} exports no matching subject"
        )


class DependencyResolver:
    """Builds the import graph for a set of accounts and orders them."""

    def __init__(self, accounts: Sequence[AccountConfig]) -> None:
        self._accounts: dict[str, AccountConfig] = {a.name: a for a in accounts}

    def validate(self) -> None:
        """Check that every import names a declared account.

        Raises:
            UnknownImportTarget: An import names an account that does not exist.
        """
        for account in self._accounts.values():
            for imp in account.imports:
                if imp.account not in self._accounts:
                    raise UnknownImportTarget(account.name, imp.account)

    def uncovered_imports(self) -> list[UncoveredImport]:
        """Imports of known exporters that no declared export covers.

        Reported as warnings, never rejected.
        """
        found: list[UncoveredImport] = []
        for account in self._accounts.values():
            for imp in account.imports:
                exporter = self._accounts.get(imp.account)
                if exporter is None:
                    continue
                if not any(subject_matches(e.subject, imp.subject) for e in exporter.exports):
                    found.append(UncoveredImport(account.name, exporter.name, imp.subject))
        return found

    def graph(self) -> _Graph:
        """Return the exporter → importer DiGraph (all accounts are nodes)."""
        g: _Graph = nx.DiGraph()
        g.add_nodes_from(self._accounts)
        for account in self._accounts.values():
            for imp in account.imports:
                g.add_edge(imp.account, account.name, subject=imp.subject)
        return g

    def order(self) -> list[AccountConfig]:
        """Return the accounts in a safe creation order.

        Raises:
            UnknownImportTarget: See :meth:`validate`.
            DependencyCycle: The imports form a cycle.
        """
        self.validate()
        g = self.graph()

        try:
            cycle_edges = nx.find_cycle(g)
        except nx.NetworkXNoCycle:
            cycle_edges = []
        if cycle_edges:
            cycle = [u for u, _v in cycle_edges]
            raise DependencyCycle(min(cycle), cycle)

        ordered = [self._accounts[name] for name in nx.lexicographical_topological_sort(g)]
        logger.debug("Resolved creation order: %s", [a.name for a in ordered])
        return ordered

    def is_service_import(self, exporter: str, subject: str) -> bool:
        """Return True when *exporter* shares *subject* as a service.

        An exact export wins over a wildcard export covering the subject.
        With no covering export the import is a stream import.
        """
        account = self._accounts[exporter]
        exact = [e for e in account.exports if e.subject == subject]
        candidates = exact or [e for e in account.exports if subject_matches(e.subject, subject)]
        return any(e.is_service for e in candidates[:1])
