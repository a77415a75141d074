"""Dependency handling utilities.

Provides functions for parsing PEP 508 dependency strings and rewriting
pyproject.toml files with new versions and internal dependency specifiers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from packaging.requirements import Requirement
from packaging.utils import canonicalize_name

from .toml import load_pyproject, save_pyproject


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores).

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def dep_range(dep_str: str) -> str:
    """Return the version specifier of a dependency string as declared.

    Clause order is kept as written; whitespace and the legacy
    parenthesized form are dropped. Returns "" when there is no
    specifier or the dependency is a direct URL reference.

    Examples:
        "requests>=2.0" → ">=2.0"
        "core >= 1.0, < 2.0; python_version > '3.9'" → ">=1.0,<2.0"
        "pkg[extra]" → ""
    """
    req = Requirement(dep_str)
    if req.url:
        return ""
    head = dep_str.split(";", 1)[0].strip()
    if "[" in head:
        head = head[head.index("]") + 1 :]
    else:
        head = head[len(req.name) :]
    return "".join(head.split()).strip("()")


def set_dep_range(dep_str: str, spec: str) -> str:
    """Replace the version specifier of a PEP 508 dependency string.

    Preserves extras (sorted alphabetically) and environment markers.
    Direct URL references are returned unchanged.

    Examples:
        set_dep_range("core>=1.0", ">=1.3.0,<2.0.0") → "core>=1.3.0,<2.0.0"
        set_dep_range("pkg[b,a]==1.0; python_version>'3.9'", "==2.0.0")
            → 'pkg[a,b]==2.0.0; python_version > "3.9"'
    """
    req = Requirement(dep_str)
    if req.url:
        return dep_str
    # Sort extras alphabetically for consistent output
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}{spec}{marker}"


def rewrite_pyproject(
    pyproject_path: Path,
    new_version: str,
    internal_dep_ranges: dict[str, str],
) -> None:
    """Update a package's version and its internal dependency specifiers.

    This function:
    1. Updates [project].version to new_version
    2. Rewrites the specifier of every listed internal dependency

    Internal deps are rewritten in all locations:
    - [project].dependencies
    - [project].optional-dependencies.*
    - [dependency-groups].*

    Uses tomlkit to preserve formatting and comments.

    Args:
        pyproject_path: Path to the pyproject.toml file.
        new_version: New version string to set.
        internal_dep_ranges: Map of canonical package name → new specifier.
    """
    doc = load_pyproject(pyproject_path)
    # Cast needed because tomlkit types are complex unions
    project = cast(dict[str, Any], doc["project"])
    project["version"] = new_version

    if internal_dep_ranges:
        deps = project.get("dependencies")
        if isinstance(deps, list):
            _rewrite_dep_list(deps, internal_dep_ranges)

        opt_deps = project.get("optional-dependencies")
        if isinstance(opt_deps, dict):
            for group in opt_deps.values():
                if isinstance(group, list):
                    _rewrite_dep_list(group, internal_dep_ranges)

        dep_groups = doc.get("dependency-groups")
        if isinstance(dep_groups, dict):
            for group in dep_groups.values():
                if isinstance(group, list):
                    _rewrite_dep_list(group, internal_dep_ranges)

    save_pyproject(pyproject_path, doc)


def _rewrite_dep_list(deps: list, ranges: dict[str, str]) -> None:
    """Rewrite internal dependency specifiers in a list, modifying in place.

    Args:
        deps: List of dependency strings (modified in place). Non-string
              entries such as PEP 735 include-group tables are skipped.
        ranges: Map of canonical package name → specifier.
    """
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            continue
        name = dep_canonical_name(str(dep_str))
        if name in ranges:
            deps[i] = set_dep_range(str(dep_str), ranges[name])
