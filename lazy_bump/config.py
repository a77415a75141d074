"""Configuration for lazy-bump.

Settings live in the ``[tool.lazy-bump]`` table of the workspace root
pyproject.toml. Keys are kebab-case in TOML and snake_case in Python.
Every setting has a default, so an absent table is a valid config.

Example:
    [tool.lazy-bump]
    range-policy = "caret"

    [tool.lazy-bump.groups]
    frontend = ["web", "ui"]

    [tool.lazy-bump.locked]
    legacy = { policy = "skip" }
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Literal

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError, UnknownPackage
from .versions import RangePolicy


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class PropagationPolicy(str, Enum):
    """What a dependent receives when one of its dependencies bumps."""

    PATCH = "patch"
    MATCH = "match"
    NONE = "none"


class PrereleasePropagation(str, Enum):
    """How a prerelease-only dependency bump affects dependents.

    - prerelease: dependents become prereleases themselves
    - floor: dependents receive the regular propagation floor
    - ignore: prerelease bumps do not propagate
    """

    PRERELEASE = "prerelease"
    FLOOR = "floor"
    IGNORE = "ignore"


# Labels that keep "X.Y.Z-<id>.N" a valid PEP 440 version
PrereleaseId = Literal["a", "b", "rc", "alpha", "beta", "dev"]


class LockPolicy(str, Enum):
    SKIP = "skip"
    PIN = "pin"


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=_kebab, populate_by_name=True, extra="forbid"
    )


class LockConfig(_Section):
    """A locked package.

    ``skip`` packages never change version. ``pin`` packages still take
    part in propagation but are always written at ``version``.
    """

    policy: LockPolicy = LockPolicy.SKIP
    version: str | None = None

    @model_validator(mode="after")
    def _pin_needs_version(self) -> LockConfig:
        if self.policy is LockPolicy.PIN and not self.version:
            raise ValueError("pin policy requires a version")
        return self


class PackageConfig(_Section):
    """Per-package overrides.

    Attributes:
        range_policy: Specifier style this package uses for its internal deps.
        dependency_policies: Dependency name → propagation policy for that edge.
    """

    range_policy: RangePolicy | None = None
    dependency_policies: dict[str, PropagationPolicy] = Field(default_factory=dict)


class BumpConfig(_Section):
    """Validated ``[tool.lazy-bump]`` settings."""

    change_dir: str = "change"
    changelog_file: str = "CHANGELOG.md"
    range_policy: RangePolicy = RangePolicy.CARET
    dependent_bump: PropagationPolicy = PropagationPolicy.PATCH
    prerelease_id: PrereleaseId = "rc"
    prerelease_propagation: PrereleasePropagation = PrereleasePropagation.PRERELEASE
    groups: dict[str, list[str]] = Field(default_factory=dict)
    locked: dict[str, LockConfig] = Field(default_factory=dict)
    packages: dict[str, PackageConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _canonicalize(self) -> BumpConfig:
        # Package names are compared in PEP 503 form everywhere else
        self.groups = {
            g: [canonicalize_name(m) for m in members]
            for g, members in self.groups.items()
        }
        self.locked = {canonicalize_name(k): v for k, v in self.locked.items()}
        self.packages = {
            canonicalize_name(k): v.model_copy(
                update={
                    "dependency_policies": {
                        canonicalize_name(d): p
                        for d, p in v.dependency_policies.items()
                    }
                }
            )
            for k, v in self.packages.items()
        }
        seen: dict[str, str] = {}
        for group, members in self.groups.items():
            for member in members:
                if member in seen and seen[member] != group:
                    raise ValueError(
                        f"package {member!r} is in groups {seen[member]!r} and {group!r}"
                    )
                seen[member] = group
        return self

    def group_of(self, name: str) -> str | None:
        """Return the group a package belongs to, if any."""
        for group, members in self.groups.items():
            if name in members:
                return group
        return None

    def lock_for(self, name: str) -> LockConfig | None:
        return self.locked.get(name)

    def range_policy_for(self, name: str) -> RangePolicy:
        pkg = self.packages.get(name)
        if pkg and pkg.range_policy:
            return pkg.range_policy
        return self.range_policy

    def edge_policies(self) -> dict[str, dict[str, PropagationPolicy]]:
        """Dependent → dependency → policy for all explicitly configured edges."""
        return {
            name: dict(pkg.dependency_policies)
            for name, pkg in self.packages.items()
            if pkg.dependency_policies
        }

    def validate_packages(self, names: Iterable[str]) -> None:
        """Ensure every package named in the config exists in the workspace.

        Raises:
            UnknownPackage: If a group, lock or override names an unknown package.
        """
        known = set(names)
        referenced: list[tuple[str, str]] = []
        for group, members in self.groups.items():
            referenced.extend((m, f"group {group!r}") for m in members)
        referenced.extend((n, "locked") for n in self.locked)
        for name, pkg in self.packages.items():
            referenced.append((name, "packages"))
            referenced.extend(
                (d, f"packages.{name}.dependency-policies")
                for d in pkg.dependency_policies
            )
        for name, where in referenced:
            if name not in known:
                raise UnknownPackage(
                    f"Unknown package {name!r} in [tool.lazy-bump] {where}"
                )


def parse_config(table: Mapping[str, Any] | None) -> BumpConfig:
    """Validate a raw ``[tool.lazy-bump]`` table.

    Raises:
        ConfigError: If the table contains unknown keys or invalid values.
    """
    try:
        return BumpConfig.model_validate(dict(table or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid [tool.lazy-bump] configuration:\n{exc}") from exc
