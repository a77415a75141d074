"""Version parsing, bumping and range utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0"),
and produces the PEP 440 specifiers dependents declare on a new version.
"""

from __future__ import annotations

from enum import Enum

import semver
from packaging.specifiers import SpecifierSet

from .models import BumpType


class RangePolicy(str, Enum):
    """How a dependent constrains its dependency on an internal package."""

    CARET = "caret"
    TILDE = "tilde"
    EXACT = "exact"


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-rc.1" → "1.2.3-rc.1"
    """
    return semver.Version.parse(version_str.strip(), optional_minor_and_patch=True)


def bump_version(
    version_str: str,
    bump: BumpType,
    *,
    prerelease: bool = False,
    prerelease_id: str = "rc",
) -> str:
    """Apply a bump to a version and return the new version string.

    A release bump follows semver's next_version rules, so a prerelease
    such as "2.0.0-rc.1" finalizes to "2.0.0" on a major bump. When
    prerelease is set the result additionally carries a prerelease
    suffix; with no release bump the existing prerelease counter is
    incremented instead.

    Examples:
        bump_version("1.2.3", MINOR) → "1.3.0"
        bump_version("1.2.3", MAJOR, prerelease=True) → "2.0.0-rc.0"
        bump_version("2.0.0-rc.0", NONE, prerelease=True) → "2.0.0-rc.1"
        bump_version("1.2.3", PRERELEASE) → "1.2.4-rc.1"
    """
    version = parse_version(version_str)
    if bump.is_release and bump is not BumpType.NONE:
        bumped = version.next_version(bump.value)
        if not prerelease:
            return str(bumped)
        # "2.0.0-rc.0" + major prerelease stays on the 2.0.0 line
        if version.prerelease and bumped == version.finalize_version():
            return str(version.bump_prerelease(prerelease_id))
        return str(bumped.replace(prerelease=f"{prerelease_id}.0"))
    if prerelease or bump is BumpType.PRERELEASE:
        return str(version.next_version("prerelease", prerelease_token=prerelease_id))
    return str(version)


def range_for(version_str: str, policy: RangePolicy) -> str:
    """Build the PEP 440 specifier dependents should declare for a version.

    Examples:
        range_for("1.3.0", CARET) → ">=1.3.0,<2.0.0"
        range_for("0.4.2", CARET) → ">=0.4.2,<0.5.0"
        range_for("1.3.0", TILDE) → "~=1.3.0"
        range_for("1.3.0", EXACT) → "==1.3.0"
    """
    version = parse_version(version_str)
    text = str(version)
    if policy is RangePolicy.EXACT:
        return f"=={text}"
    if policy is RangePolicy.TILDE:
        return f"~={text}"
    # 0.x releases treat the minor component as the breaking one
    if version.major == 0:
        upper = semver.Version(0, version.minor + 1, 0)
    else:
        upper = semver.Version(version.major + 1, 0, 0)
    return f">={text},<{upper}"


def same_range(a: str, b: str) -> bool:
    """Whether two specifiers are the same clauses, ignoring order and spacing.

    Example:
        same_range(">=1.0.0,<2.0.0", "<2.0.0, >=1.0.0") → True
    """
    return SpecifierSet(a) == SpecifierSet(b)
