"""Bump pipeline: discover → read changes → compute → write → consume.

This module orchestrates a lazy-bump release:
1. Discover all packages in the uv workspace
2. Read and validate pending change files
3. Compute bump decisions (groups, locks, dependency propagation)
4. Rewrite each bumped package's pyproject.toml
5. Prepend the new release section to each package's changelog
6. Delete the consumed change files
7. Optionally commit the result

Nothing is written until the whole plan has been computed, so a
validation error leaves the workspace untouched. The module also
provides the branch checks behind ``lazy-bump check``.
"""

from __future__ import annotations

import glob
import subprocess
from datetime import date
from pathlib import Path

from packaging.utils import canonicalize_name

from .bump import compute_bumps
from .changelog import assemble_changelogs, prepend_section, render_section
from .changes import (
    delete_change_files,
    load_changes,
    read_change_files,
    write_change_file,
)
from .config import BumpConfig, parse_config
from .deps import dep_canonical_name, dep_range, rewrite_pyproject
from .graph import PackageGraph, release_order
from .models import BumpPlan, BumpType, ChangelogEntry, PackageInfo
from .shell import fatal, git, step, warn
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_tool_config,
    get_workspace_member_globs,
    is_private,
    load_pyproject,
)


def load_config(root: Path) -> BumpConfig:
    """Read [tool.lazy-bump] from the workspace root pyproject.toml."""
    return parse_config(get_tool_config(load_pyproject(root / "pyproject.toml")))


def discover_packages(root: Path) -> dict[str, PackageInfo]:
    """Scan the workspace and discover all packages.

    Reads [tool.uv.workspace].members from root pyproject.toml to find
    package directories, then extracts name, version, privacy and
    internal dependency specifiers from each package's pyproject.toml.

    Returns:
        Map of package name to PackageInfo.
    """
    step("Discovering workspace packages")

    root_doc = load_pyproject(root / "pyproject.toml")
    member_globs = get_workspace_member_globs(root_doc)

    # Expand globs to find all package directories
    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists():
                member_dirs.append(p)

    if not member_dirs:
        fatal("No packages found matching workspace members")

    # First pass: collect basic info from each package
    packages: dict[str, PackageInfo] = {}
    raw_deps: dict[str, list[str]] = {}

    for d in member_dirs:
        doc = load_pyproject(d / "pyproject.toml")
        name = get_project_name(doc, d.name)
        packages[name] = PackageInfo(
            path=str(d.relative_to(root)),
            version=get_project_version(doc),
            private=is_private(doc),
        )
        raw_deps[name] = get_all_dependency_strings(doc)

    # Second pass: identify which deps are internal (within workspace)
    workspace_names = set(packages.keys())
    for name, deps in raw_deps.items():
        for dep_str in deps:
            dep_name = dep_canonical_name(dep_str)
            # The first declaration of an internal dep defines its range
            if (
                dep_name in workspace_names
                and dep_name != name
                and dep_name not in packages[name].deps
            ):
                packages[name].deps[dep_name] = dep_range(dep_str)

    for name, info in packages.items():
        deps = f" → [{', '.join(info.deps)}]" if info.deps else ""
        private = " private" if info.private else ""
        print(f"  {name} {info.version} ({info.path}){private}{deps}")

    return packages


def build_graph(packages: dict[str, PackageInfo], config: BumpConfig) -> PackageGraph:
    """Build the workspace graph with the configured edge policies."""
    return PackageGraph.build(
        packages,
        edge_policies=config.edge_policies(),
        default_policy=config.dependent_bump,
    )


def print_plan(plan: BumpPlan) -> None:
    """Print the computed bumps and any dropped change files."""
    if not plan.decisions:
        print("  No packages to bump")
    for name, d in plan.decisions.items():
        kind = d.type.value + (" prerelease" if d.prerelease else "")
        print(f"  {name}: {d.old_version} → {d.new_version} ({kind})")
        for update in d.dependency_updates:
            print(f"    {update.name}: {update.old_range or '*'} → {update.new_range}")
    for conflict in plan.conflicts:
        warn(
            f"{conflict.record}: {conflict.package} is locked "
            f"({conflict.policy}), change ignored"
        )


def write_manifests(root: Path, graph: PackageGraph, plan: BumpPlan) -> list[Path]:
    """Rewrite pyproject.toml for every bumped package, dependencies first."""
    step("Writing package manifests")

    written: list[Path] = []
    for name in release_order(graph, plan.decisions):
        decision = plan.decisions[name]
        path = root / graph[name].path / "pyproject.toml"
        rewrite_pyproject(path, decision.new_version, decision.dependency_ranges)
        written.append(path)
        print(f"  {name}: {decision.old_version} → {decision.new_version}")
    return written


def write_changelogs(
    root: Path,
    graph: PackageGraph,
    entries: dict[str, ChangelogEntry],
    config: BumpConfig,
    release_date: date,
) -> list[Path]:
    """Prepend the new release section to each bumped package's changelog."""
    step("Writing changelogs")

    written: list[Path] = []
    for name, entry in entries.items():
        path = root / graph[name].path / config.changelog_file
        prepend_section(path, render_section(entry, release_date))
        written.append(path)
        print(f"  {path.relative_to(root)}")
    return written


def commit_bumps(plan: BumpPlan, paths: list[Path], change_dir: Path) -> None:
    """Commit rewritten manifests, changelogs and removed change files."""
    step("Committing")

    git("add", "--", *(str(p) for p in paths))
    git("add", "-A", "--", str(change_dir))

    # Check if there are actually changes to commit
    staged = git("diff", "--cached", "--name-only", check=False)
    if not staged:
        fatal("No changes to commit")

    summary = "\n".join(
        f"  {n}: {d.old_version} → {d.new_version}" for n, d in plan.decisions.items()
    )
    git("commit", "-m", "chore: bump versions", "-m", summary)
    print("  Committed")


def run_bump(
    *,
    dry_run: bool = False,
    commit: bool = False,
    release_date: date | None = None,
) -> BumpPlan:
    """Execute the full bump pipeline in the current directory.

    Args:
        dry_run: Compute and print the plan without writing anything.
        commit: Commit the written files afterwards.
        release_date: Date used in changelog headers (default: today).

    Returns:
        The computed BumpPlan.

    Raises:
        LazyBumpError: If configuration, manifests or change files are
            invalid. Nothing is written in that case.
    """
    root = Path.cwd()
    config = load_config(root)
    packages = discover_packages(root)
    graph = build_graph(packages, config)
    change_dir = root / config.change_dir

    step("Reading change files")
    records = load_changes(read_change_files(change_dir), graph)
    if not records:
        print("  No change files found")
        return BumpPlan()
    for record in records:
        print(f"  {record.id}: {record.package} ({record.type.value})")

    step("Computing version bumps")
    plan = compute_bumps(records, graph, config)
    entries = assemble_changelogs(plan.decisions, records)
    print_plan(plan)

    if dry_run:
        print("\n  Dry run: nothing written")
        return plan

    written = write_manifests(root, graph, plan)
    written += write_changelogs(
        root, graph, entries, config, release_date or date.today()
    )

    step("Removing consumed change files")
    # Changes for skip-locked packages stay pending
    dropped = {c.record for c in plan.conflicts}
    consumed = [r for r in records if r.id not in dropped]
    for path in delete_change_files(change_dir, consumed):
        print(f"  {path.relative_to(root)}")

    if commit:
        commit_bumps(plan, written, change_dir)

    print(f"\n{'=' * 60}\nDone!\n{'=' * 60}")
    return plan


def _diff_names(branch: str, *args: str) -> str:
    """Run `git diff --name-only`, exiting cleanly if branch cannot be resolved."""
    try:
        return git("diff", "--name-only", *args)
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip()
        fatal(f"Cannot compare against {branch!r}: {detail or exc}")
        return ""


def get_changed_packages(
    packages: dict[str, PackageInfo],
    config: BumpConfig,
    root: Path,
    branch: str,
) -> list[str]:
    """List packages changed on this branch that still need a change file.

    A package needs a change file when any file under its directory,
    other than its changelog, differs from the merge base with branch,
    it is not private, and no pending change file targets it.
    """
    changed_files = _diff_names(branch, f"{branch}...HEAD").splitlines()

    changed: set[str] = set()
    for name, info in packages.items():
        if info.private:
            continue
        prefix = info.path.rstrip("/") + "/"
        for f in changed_files:
            if f.startswith(prefix) and Path(f).name != config.changelog_file:
                changed.add(name)
                break

    pending = {
        canonicalize_name(str(raw["package"]))
        for raw in read_change_files(root / config.change_dir, dated=False)
        if raw.get("package")
    }
    return sorted(changed - pending)


def are_change_files_deleted(config: BumpConfig, branch: str) -> bool:
    """Whether change files were deleted on this branch relative to branch."""
    deleted = _diff_names(
        branch,
        "--diff-filter=D",
        f"{branch}...HEAD",
        "--",
        config.change_dir,
    )
    return bool(deleted)


def run_check(branch: str) -> list[str]:
    """Validate the current branch before merging.

    Returns:
        List of problems found; empty when the branch is fine.
    """
    root = Path.cwd()
    config = load_config(root)
    packages = discover_packages(root)
    graph = build_graph(packages, config)

    step(f"Checking change files against {branch}")
    problems: list[str] = []

    # Pending change files must be valid before they reach the release
    load_changes(read_change_files(root / config.change_dir, dated=False), graph)

    missing = get_changed_packages(packages, config, root, branch)
    if missing:
        problems.append(f"Change files are needed for: {', '.join(missing)}")
    if are_change_files_deleted(config, branch):
        problems.append("Change files were deleted on this branch")

    for problem in problems:
        print(f"  {problem}")
    if not problems:
        print("  OK")
    return problems


def create_change(
    package: str,
    bump: BumpType,
    description: str,
    *,
    dependent_type: BumpType | None = None,
    author: str | None = None,
) -> Path:
    """Validate a new change against the workspace and write its file."""
    root = Path.cwd()
    config = load_config(root)
    packages = discover_packages(root)
    graph = build_graph(packages, config)

    # Reuse the change record validation before touching disk
    raw = {"package": package, "type": bump.value, "description": description}
    if dependent_type is not None:
        raw["dependent-type"] = dependent_type.value
    load_changes([raw], graph)

    return write_change_file(
        root / config.change_dir,
        package,
        bump,
        description,
        dependent_type=dependent_type,
        author=author,
    )
