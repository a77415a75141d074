"""Dependency graph utilities.

The workspace is a directed graph where an edge A → B means "A depends
on B". Internal dependency cycles are allowed: nothing here recurses
along edges, and ordering falls back to name order to break cycles.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from .config import PropagationPolicy
from .errors import DanglingDependency
from .models import PackageInfo


class DependencyEdge(BaseModel):
    """An internal dependency as seen from the dependent package.

    Attributes:
        name: The dependency's package name.
        range: The specifier currently declared by the dependent.
        policy: How a bump of the dependency affects the dependent.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    range: str
    policy: PropagationPolicy


class PackageGraph:
    """Read-only view of workspace packages and their internal dependencies.

    Build with PackageGraph.build(), which validates that every declared
    internal dependency resolves to a workspace package.
    """

    def __init__(
        self,
        packages: Mapping[str, PackageInfo],
        edges: Mapping[str, list[DependencyEdge]],
    ) -> None:
        self._packages = dict(packages)
        self._edges = {name: list(edges.get(name, [])) for name in self._packages}
        # Reverse edges: dependency → sorted list of dependents
        reverse: dict[str, set[str]] = {name: set() for name in self._packages}
        for name, deps in self._edges.items():
            for edge in deps:
                reverse[edge.name].add(name)
        self._reverse = {name: sorted(d) for name, d in reverse.items()}

    @classmethod
    def build(
        cls,
        packages: Mapping[str, PackageInfo],
        *,
        edge_policies: Mapping[str, Mapping[str, PropagationPolicy]] | None = None,
        default_policy: PropagationPolicy = PropagationPolicy.PATCH,
    ) -> PackageGraph:
        """Build a graph from discovered package manifests.

        Args:
            packages: Map of package name → PackageInfo.
            edge_policies: Optional dependent → dependency → policy overrides.
            default_policy: Policy for edges without an override.

        Raises:
            DanglingDependency: If a package depends on a name that is not
                part of the workspace.
        """
        edge_policies = edge_policies or {}
        edges: dict[str, list[DependencyEdge]] = {}
        for name in sorted(packages):
            overrides = edge_policies.get(name, {})
            edges[name] = []
            for dep, spec in sorted(packages[name].deps.items()):
                if dep not in packages:
                    raise DanglingDependency(
                        f"Package {name!r} depends on {dep!r}, "
                        "which is not in the workspace"
                    )
                edges[name].append(
                    DependencyEdge(
                        name=dep,
                        range=spec,
                        policy=overrides.get(dep, default_policy),
                    )
                )
        return cls(packages, edges)

    @property
    def names(self) -> list[str]:
        return sorted(self._packages)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __getitem__(self, name: str) -> PackageInfo:
        return self._packages[name]

    def __len__(self) -> int:
        return len(self._packages)

    def dependencies(self, name: str) -> list[DependencyEdge]:
        """Internal dependencies of a package, sorted by name."""
        return list(self._edges[name])

    def dependents(self, name: str) -> list[str]:
        """Packages that depend directly on name, sorted by name."""
        return list(self._reverse[name])

    def edge(self, dependent: str, dependency: str) -> DependencyEdge | None:
        for edge in self._edges[dependent]:
            if edge.name == dependency:
                return edge
        return None


def release_order(graph: PackageGraph, names: Iterable[str] | None = None) -> list[str]:
    """Order packages so dependencies come before their dependents.

    Uses Kahn's algorithm over the subgraph induced by names. Ready
    packages are taken alphabetically for deterministic output. When only
    cyclic packages remain, the alphabetically first one is released next
    so that cycles never stall the ordering.

    Args:
        graph: The workspace graph.
        names: Packages to order; defaults to the whole workspace.

    Returns:
        Package names in release order (dependencies first).

    Example:
        If A depends on B, and B depends on C:
        release_order(graph, {A, B, C}) → [C, B, A]
    """
    subset = set(graph.names if names is None else names)
    in_degree = {
        n: sum(1 for e in graph.dependencies(n) if e.name in subset) for n in subset
    }

    order: list[str] = []
    done: set[str] = set()
    while len(order) < len(subset):
        ready = sorted(n for n, d in in_degree.items() if d == 0 and n not in done)
        if not ready:
            # Only cycles left; break the smallest one by name
            ready = [min(n for n in subset if n not in done)]
        for node in ready:
            order.append(node)
            done.add(node)
            in_degree[node] = -1
            for dependent in graph.dependents(node):
                if dependent in subset and dependent not in done:
                    in_degree[dependent] -= 1
    return order
