"""Data models for lazy-bump.

These Pydantic models represent the core data structures that flow from
change files and workspace manifests through bump computation to the
manifest and changelog writers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .errors import InvalidBumpType


class BumpType(str, Enum):
    """Kind of version bump requested by a change or forced by propagation.

    Release bumps form a total order ``none < patch < minor < major``.
    ``prerelease`` is not part of that order: it marks the resulting
    version with a prerelease suffix and never lowers a release bump.
    """

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    PRERELEASE = "prerelease"

    @classmethod
    def parse(cls, value: object) -> BumpType:
        """Parse a bump type string, raising InvalidBumpType if unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise InvalidBumpType(
                f"Invalid bump type {value!r} (expected one of: {allowed})"
            ) from None

    @property
    def is_release(self) -> bool:
        return self is not BumpType.PRERELEASE

    @property
    def rank(self) -> int:
        """Position in the release lattice (none=0 ... major=3)."""
        if not self.is_release:
            raise ValueError("prerelease has no rank in the release lattice")
        return _RELEASE_ORDER.index(self)


_RELEASE_ORDER = (BumpType.NONE, BumpType.PATCH, BumpType.MINOR, BumpType.MAJOR)


def max_bump(*types: BumpType) -> BumpType:
    """Return the highest release bump among types.

    Prerelease entries are ignored; an empty input yields ``none``.

    Example:
        max_bump(PATCH, MAJOR, PRERELEASE) → MAJOR
    """
    release = [t for t in types if t.is_release]
    return max(release, key=lambda t: t.rank, default=BumpType.NONE)


class PackageInfo(BaseModel):
    """Metadata for a single package in the monorepo workspace.

    Attributes:
        path: Relative path from workspace root to the package directory.
        version: Current version string from pyproject.toml.
        deps: Internal (workspace) dependency name → declared PEP 440
              specifier (e.g. ">=1.0,<2"), empty when unconstrained.
              External deps are not tracked here.
        private: True when the package carries the
                 "Private :: Do Not Upload" classifier.
    """

    path: str
    version: str
    deps: dict[str, str] = Field(default_factory=dict)
    private: bool = False


class ChangeRecord(BaseModel):
    """A single declared intent to bump one package.

    Attributes:
        id: Identifier of the change file the record came from.
        package: Canonical name of the target package.
        type: Requested bump type.
        description: Free-text changelog entry.
        dependent_type: Explicit bump that dependents of the package
                        receive because of this change. None means the
                        dependency edge policy decides.
        author: Optional author recorded in the change file.
        date: Commit date of the change file, if known.
        order: Position of the record in the loaded sequence.
        implicit: True for records synthesized by group policy rather
                  than read from a change file.
    """

    id: str
    package: str
    type: BumpType
    description: str = ""
    dependent_type: BumpType | None = None
    author: str | None = None
    date: datetime | None = None
    order: int = 0
    implicit: bool = False


class DependencyUpdate(BaseModel):
    """A dependency specifier that must be rewritten in a manifest."""

    name: str
    old_range: str
    new_range: str


class BumpDecision(BaseModel):
    """Finalized bump for one package.

    Attributes:
        package: Canonical package name.
        type: Final release severity (never prerelease).
        prerelease: Whether the new version carries a prerelease suffix.
        old_version: Version before the bump.
        new_version: Version after the bump.
        dependency_updates: Internal dependency specifiers to rewrite.
        records: Ids of the change records targeting this package. Empty
                 for packages bumped only through propagation or grouping.
        reasons: Human readable provenance of the bump.
    """

    package: str
    type: BumpType
    prerelease: bool = False
    old_version: str
    new_version: str
    dependency_updates: list[DependencyUpdate] = Field(default_factory=list)
    records: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)

    @property
    def dependency_ranges(self) -> dict[str, str]:
        return {u.name: u.new_range for u in self.dependency_updates}


class LockedPackageConflict(BaseModel):
    """A change record that was dropped because its package is locked."""

    package: str
    record: str
    policy: str


class BumpPlan(BaseModel):
    """Output of a bump computation.

    Attributes:
        decisions: Package name → BumpDecision, sorted by package name.
        conflicts: Records dropped because they target skip-locked packages.
    """

    decisions: dict[str, BumpDecision] = Field(default_factory=dict)
    conflicts: list[LockedPackageConflict] = Field(default_factory=list)


class ChangelogEntry(BaseModel):
    """Changelog content for one package at its new version.

    Attributes:
        package: Canonical package name.
        version: The version the entry is written for.
        type: Final bump severity of the package.
        lines: Markdown bullet lines, most recent change first.
    """

    package: str
    version: str
    type: BumpType
    lines: list[str] = Field(default_factory=list)

