"""Tests for lazy_bump.versions."""

from __future__ import annotations

import pytest
from packaging.specifiers import SpecifierSet
from packaging.version import Version

from lazy_bump.models import BumpType
from lazy_bump.versions import (
    RangePolicy,
    bump_version,
    parse_version,
    range_for,
    same_range,
)


class TestParseVersion:
    def test_full_semver(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_two_part_version(self) -> None:
        v = parse_version("1.2")
        assert (v.major, v.minor, v.patch) == (1, 2, 0)

    def test_single_part_version(self) -> None:
        v = parse_version("5")
        assert (v.major, v.minor, v.patch) == (5, 0, 0)

    def test_prerelease(self) -> None:
        v = parse_version("2.0.0-rc.1")
        assert v.prerelease == "rc.1"


class TestBumpVersion:
    @pytest.mark.parametrize(
        ("bump", "expected"),
        [
            (BumpType.PATCH, "1.2.4"),
            (BumpType.MINOR, "1.3.0"),
            (BumpType.MAJOR, "2.0.0"),
            (BumpType.NONE, "1.2.3"),
        ],
    )
    def test_release_bumps(self, bump: BumpType, expected: str) -> None:
        assert bump_version("1.2.3", bump) == expected

    def test_pads_short_versions(self) -> None:
        assert bump_version("1.2", BumpType.MINOR) == "1.3.0"

    def test_release_bump_finalizes_prerelease(self) -> None:
        assert bump_version("2.0.0-rc.3", BumpType.MAJOR) == "2.0.0"

    def test_release_bump_with_prerelease_suffix(self) -> None:
        assert bump_version("1.2.3", BumpType.MINOR, prerelease=True) == "1.3.0-rc.0"

    def test_custom_prerelease_id(self) -> None:
        result = bump_version("1.2.3", BumpType.MAJOR, prerelease=True, prerelease_id="beta")
        assert result == "2.0.0-beta.0"

    def test_prerelease_bump_increments_counter(self) -> None:
        assert bump_version("2.0.0-rc.0", BumpType.PRERELEASE) == "2.0.0-rc.1"

    def test_prerelease_on_same_line_increments_counter(self) -> None:
        result = bump_version("2.0.0-rc.0", BumpType.MAJOR, prerelease=True)
        assert result == "2.0.0-rc.1"

    def test_prerelease_from_release(self) -> None:
        v = parse_version(bump_version("1.2.3", BumpType.PRERELEASE))
        assert (v.major, v.minor, v.patch) == (1, 2, 4)
        assert v.prerelease is not None
        assert v.prerelease.startswith("rc.")


class TestPep440Compatibility:
    @pytest.mark.parametrize("label", ["a", "b", "rc", "alpha", "beta", "dev"])
    def test_prerelease_versions_parse_as_pep440(self, label: str) -> None:
        bumped = bump_version("1.2.3", BumpType.MINOR, prerelease=True, prerelease_id=label)
        assert Version(bumped).is_prerelease
        assert SpecifierSet(range_for(bumped, RangePolicy.CARET)).contains(
            bumped, prereleases=True
        )


class TestRangeFor:
    def test_caret(self) -> None:
        assert range_for("1.3.0", RangePolicy.CARET) == ">=1.3.0,<2.0.0"

    def test_caret_zero_major(self) -> None:
        assert range_for("0.4.2", RangePolicy.CARET) == ">=0.4.2,<0.5.0"

    def test_tilde(self) -> None:
        assert range_for("1.3.0", RangePolicy.TILDE) == "~=1.3.0"

    def test_exact(self) -> None:
        assert range_for("1.3.0", RangePolicy.EXACT) == "==1.3.0"

    def test_prerelease_version(self) -> None:
        assert range_for("2.0.0-rc.0", RangePolicy.CARET) == ">=2.0.0-rc.0,<3.0.0"


class TestSameRange:
    def test_clause_order_ignored(self) -> None:
        assert same_range(">=1.0.0,<2.0.0", "<2.0.0, >=1.0.0")

    def test_different_bounds(self) -> None:
        assert not same_range(">=1.0.1,<2.0.0", ">=1.0.0,<2.0.0")

    def test_empty(self) -> None:
        assert same_range("", "")
        assert not same_range("", ">=1.0")
