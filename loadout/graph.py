"""Dependency graph over module manifests."""

import logging
from typing import Iterable

from loadout.errors import CyclicDependencyError, ManifestError, NotFoundError
from loadout.schemas import Module

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed acyclic graph of module dependencies.

    Built once from all manifests and immutable afterwards. Construction
    fails on unknown dependency ids and on cycles, so expand() never meets
    either at resolution time.
    """

    def __init__(self, edges: dict[str, tuple[str, ...]]):
        self._edges = dict(edges)
        self._reverse: dict[str, list[str]] = {module_id: [] for module_id in self._edges}
        for module_id, deps in self._edges.items():
            for dep in deps:
                if dep not in self._edges:
                    raise ManifestError(module_id, f"depends on unknown module '{dep}'")
                self._reverse[dep].append(module_id)

        self._order = self._check_acyclic()
        self._expansions: dict[str, tuple[str, ...]] = {}

    @classmethod
    def from_modules(cls, modules: Iterable[Module]) -> "DependencyGraph":
        """Build the graph from manifests, preserving dependency declaration order."""
        edges: dict[str, tuple[str, ...]] = {}
        for module in modules:
            if module.id in edges:
                raise ManifestError(module.id, "duplicate module id")
            edges[module.id] = module.dependencies
        graph = cls(edges)
        logger.debug(f"Built dependency graph: {len(edges)} modules, {graph.edge_count} edges")
        return graph

    def _check_acyclic(self) -> list[str]:
        """Depth-first walk of every module; returns a topological order.

        Iterative, so dependency depth is not bounded by the recursion limit.

        Raises:
            CyclicDependencyError: Naming the first cycle found
        """
        done: set[str] = set()
        order: list[str] = []

        for root in self._edges:
            if root in done:
                continue
            visiting: list[str] = [root]
            on_path: set[str] = {root}
            pending = [iter(self._edges[root])]
            while pending:
                dep = next(pending[-1], None)
                if dep is None:
                    module_id = visiting.pop()
                    on_path.discard(module_id)
                    pending.pop()
                    done.add(module_id)
                    order.append(module_id)
                elif dep in on_path:
                    start = visiting.index(dep)
                    raise CyclicDependencyError(visiting[start:] + [dep])
                elif dep not in done:
                    visiting.append(dep)
                    on_path.add(dep)
                    pending.append(iter(self._edges[dep]))
        return order

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self._edges.values())

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def dependencies(self, module_id: str) -> list[str]:
        """Direct dependencies of module_id, in declaration order."""
        self._require(module_id)
        return list(self._edges[module_id])

    def dependents(self, module_id: str) -> list[str]:
        """Modules that directly depend on module_id."""
        self._require(module_id)
        return list(self._reverse[module_id])

    def topological_order(self) -> list[str]:
        """Every module, dependencies before dependents."""
        return list(self._order)

    def expand(self, module_id: str) -> list[str]:
        """Return module_id and its transitive dependencies, dependencies first.

        Siblings keep their declaration order; a shared dependency appears
        once, at its first position.

        Raises:
            NotFoundError: If module_id is unknown
        """
        self._require(module_id)
        cached = self._expansions.get(module_id)
        if cached is None:
            chain: list[str] = []
            seen: set[str] = {module_id}
            path = [module_id]
            pending = [iter(self._edges[module_id])]
            while pending:
                dep = next(pending[-1], None)
                if dep is None:
                    chain.append(path.pop())
                    pending.pop()
                elif dep not in seen:
                    seen.add(dep)
                    path.append(dep)
                    pending.append(iter(self._edges[dep]))
            cached = tuple(chain)
            self._expansions[module_id] = cached
        return list(cached)

    def _require(self, module_id: str) -> None:
        if module_id not in self._edges:
            raise NotFoundError(f"Unknown module '{module_id}'")
