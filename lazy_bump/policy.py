"""Group and lock policies applied to change records before bumping.

Groups are sets of packages that always release together at the same
bump type. Locked packages are excluded from normal bumping: ``skip``
packages never change version, ``pin`` packages are always written at
their configured version.
"""

from __future__ import annotations

from collections.abc import Sequence

from .changes import records_by_package
from .config import BumpConfig, LockPolicy
from .graph import PackageGraph
from .models import BumpType, ChangeRecord, LockedPackageConflict, max_bump


def is_skipped(config: BumpConfig, name: str) -> bool:
    """Whether a package is locked with the skip policy."""
    lock = config.lock_for(name)
    return lock is not None and lock.policy is LockPolicy.SKIP


def group_members(config: BumpConfig, name: str) -> list[str]:
    """Other members of name's group that are allowed to bump."""
    group = config.group_of(name)
    if group is None:
        return []
    return [
        m for m in config.groups[group] if m != name and not is_skipped(config, m)
    ]


def normalize(
    records: Sequence[ChangeRecord],
    graph: PackageGraph,
    config: BumpConfig,
) -> tuple[list[ChangeRecord], list[LockedPackageConflict]]:
    """Apply lock and group policies to change records.

    1. Records targeting skip-locked packages are dropped and reported
       as LockedPackageConflict entries.
    2. For every group with at least one bumping member, each member whose
       own records fall short of the group's highest bump type receives an
       implicit record carrying that type.

    Args:
        records: Validated change records.
        graph: Workspace graph.
        config: Group and lock configuration.

    Returns:
        Tuple of (normalized records, dropped-record conflicts).

    Raises:
        UnknownPackage: If the config names packages outside the graph.
    """
    config.validate_packages(graph.names)

    kept: list[ChangeRecord] = []
    conflicts: list[LockedPackageConflict] = []
    for record in records:
        if is_skipped(config, record.package):
            conflicts.append(
                LockedPackageConflict(
                    package=record.package,
                    record=record.id,
                    policy=LockPolicy.SKIP.value,
                )
            )
            continue
        kept.append(record)

    by_package = records_by_package(kept)
    next_order = max((r.order for r in records), default=-1) + 1
    implicit: list[ChangeRecord] = []

    for group, members in sorted(config.groups.items()):
        active = [m for m in members if not is_skipped(config, m)]
        group_records = [r for m in active for r in by_package.get(m, [])]
        top = max_bump(*(r.type for r in group_records))
        if top is BumpType.NONE:
            if not any(r.type is BumpType.PRERELEASE for r in group_records):
                continue
            top = BumpType.PRERELEASE

        for member in active:
            own = [r.type for r in by_package.get(member, [])]
            if top in own or max_bump(*own) is top:
                continue
            implicit.append(
                ChangeRecord(
                    id=f"group-{group}-{member}",
                    package=member,
                    type=top,
                    order=next_order,
                    implicit=True,
                )
            )
            next_order += 1

    return kept + implicit, conflicts
