"""Bump computation: change records + package graph → bump decisions.

The engine works in three phases:

1. Seed: each package with change records starts at the highest bump
   type among its records.
2. Propagate: a worklist walks reverse dependency edges. Whenever a
   package's bump is raised, its dependents and group siblings are
   re-evaluated. Bumps only ever go up and are bounded by ``major``, so
   the walk reaches a fixed point even when the graph has cycles.
3. Finalize: every bumped package gets a new version and the internal
   dependency specifiers it must now declare.

The input graph is never modified, so computing the same inputs twice
yields identical plans.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from .changes import records_by_package
from .config import (
    BumpConfig,
    LockPolicy,
    PrereleasePropagation,
    PropagationPolicy,
)
from .graph import PackageGraph
from .models import (
    BumpDecision,
    BumpPlan,
    BumpType,
    ChangeRecord,
    DependencyUpdate,
    max_bump,
)
from .policy import group_members, is_skipped, normalize
from .versions import bump_version, range_for, same_range


class _Propagation:
    """Mutable bump state for a single propagation run."""

    def __init__(self, graph: PackageGraph, config: BumpConfig) -> None:
        self.graph = graph
        self.config = config
        self.severity = {name: BumpType.NONE for name in graph.names}
        self.prerelease: set[str] = set()
        self.reasons: dict[str, list[str]] = {name: [] for name in graph.names}
        self.overrides: dict[str, BumpType] = {}

    def bumped(self, name: str) -> bool:
        return self.severity[name] is not BumpType.NONE or name in self.prerelease

    def raise_to(
        self, name: str, bump: BumpType, prerelease: bool, reason: str
    ) -> bool:
        """Raise a package's bump; return True if anything changed."""
        changed = False
        if bump.is_release and bump.rank > self.severity[name].rank:
            self.severity[name] = bump
            changed = True
        if prerelease and name not in self.prerelease:
            self.prerelease.add(name)
            changed = True
        if changed:
            self.reasons[name].append(reason)
        return changed

    def seed(self, records: Sequence[ChangeRecord]) -> None:
        for name, own in sorted(records_by_package(records).items()):
            if is_skipped(self.config, name):
                continue
            types = [r.type for r in own]
            explicit = [r.id for r in own if not r.implicit]
            if explicit:
                reason = f"changes: {', '.join(explicit)}"
            else:
                reason = f"group {self.config.group_of(name)}"
            prerelease = BumpType.PRERELEASE in types
            self.raise_to(name, max_bump(*types), prerelease, reason)

            dependent_types = [
                r.dependent_type for r in own if r.dependent_type is not None
            ]
            if dependent_types:
                override = max_bump(*dependent_types)
                if override is BumpType.NONE and (
                    BumpType.PRERELEASE in dependent_types
                ):
                    override = BumpType.PRERELEASE
                self.overrides[name] = override

    def dependent_effect(
        self, name: str, dependent: str
    ) -> tuple[BumpType, bool] | None:
        """Bump a dependent receives from name, or None if it receives nothing."""
        edge = self.graph.edge(dependent, name)
        if edge is None or edge.policy is PropagationPolicy.NONE:
            return None

        severity = self.severity[name]
        is_pre = name in self.prerelease
        mode = self.config.prerelease_propagation
        forward_pre = is_pre and mode is PrereleasePropagation.PRERELEASE

        # An explicit dependent type wins over the edge and prerelease modes
        override = self.overrides.get(name)
        if override is BumpType.NONE:
            return None
        if override is BumpType.PRERELEASE:
            return BumpType.NONE, True
        if override is not None:
            return override, forward_pre

        if severity is BumpType.NONE:
            # Prerelease-only bump
            if mode is PrereleasePropagation.IGNORE:
                return None
            if mode is PrereleasePropagation.FLOOR:
                return BumpType.PATCH, False
            return BumpType.NONE, True

        if edge.policy is PropagationPolicy.MATCH:
            return severity, forward_pre
        return BumpType.PATCH, forward_pre

    def run(self) -> None:
        queue = deque(name for name in self.graph.names if self.bumped(name))
        queued = set(queue)

        while queue:
            name = queue.popleft()
            queued.discard(name)

            effects: list[tuple[str, BumpType, bool, str]] = []
            group = self.config.group_of(name)
            is_pre = name in self.prerelease
            for member in group_members(self.config, name):
                effects.append((member, self.severity[name], is_pre, f"group {group}"))
            for dependent in self.graph.dependents(name):
                if is_skipped(self.config, dependent):
                    continue
                effect = self.dependent_effect(name, dependent)
                if effect is not None:
                    effects.append((dependent, *effect, f"dependency {name} bumped"))

            for target, bump, prerelease, reason in effects:
                changed = self.raise_to(target, bump, prerelease, reason)
                if changed and target not in queued:
                    queue.append(target)
                    queued.add(target)


def propagate(
    records: Sequence[ChangeRecord],
    graph: PackageGraph,
    config: BumpConfig,
) -> dict[str, BumpDecision]:
    """Compute the final bump decision for every affected package.

    Expects records that already went through policy.normalize(). Records
    targeting skip-locked packages are ignored.

    Args:
        records: Normalized change records.
        graph: Workspace graph.
        config: Propagation, range and lock settings.

    Returns:
        Map of package name → BumpDecision, sorted by package name.
        Packages that neither have records nor receive a propagated or
        grouped bump are absent.
    """
    state = _Propagation(graph, config)
    state.seed(records)
    state.run()

    by_package = records_by_package(records)
    decisions: dict[str, BumpDecision] = {}
    for name in graph.names:
        if not state.bumped(name):
            continue
        info = graph[name]
        lock = config.lock_for(name)
        if lock is not None and lock.policy is LockPolicy.PIN:
            new_version = str(lock.version)
        else:
            new_version = bump_version(
                info.version,
                state.severity[name],
                prerelease=name in state.prerelease,
                prerelease_id=config.prerelease_id,
            )
        decisions[name] = BumpDecision(
            package=name,
            type=state.severity[name],
            prerelease=name in state.prerelease,
            old_version=info.version,
            new_version=new_version,
            records=[r.id for r in by_package.get(name, []) if not r.implicit],
            reasons=state.reasons[name],
        )

    for name, decision in decisions.items():
        policy = config.range_policy_for(name)
        for edge in graph.dependencies(name):
            dep = decisions.get(edge.name)
            if dep is None or edge.name == name:
                continue
            new_range = range_for(dep.new_version, policy)
            if not same_range(new_range, edge.range):
                decision.dependency_updates.append(
                    DependencyUpdate(
                        name=edge.name, old_range=edge.range, new_range=new_range
                    )
                )

    return decisions


def compute_bumps(
    records: Sequence[ChangeRecord],
    graph: PackageGraph,
    config: BumpConfig | None = None,
) -> BumpPlan:
    """Compute version bumps for a release.

    Applies group and lock policies, propagates bumps through the
    dependency graph and finalizes versions and dependency specifiers.

    Args:
        records: Validated change records (see changes.load_changes).
        graph: Workspace graph.
        config: Group, lock, propagation and range settings. Defaults
                apply when omitted.

    Returns:
        BumpPlan with one decision per bumped package and any change
        records dropped because they target skip-locked packages.

    Raises:
        UnknownPackage: If the config names packages outside the graph.
    """
    config = config or BumpConfig()
    normalized, conflicts = normalize(records, graph, config)
    return BumpPlan(decisions=propagate(normalized, graph, config), conflicts=conflicts)
