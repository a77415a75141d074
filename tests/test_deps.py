"""Tests for lazy_bump.deps."""

from __future__ import annotations

from pathlib import Path

import tomlkit

from lazy_bump.deps import dep_canonical_name, dep_range, rewrite_pyproject, set_dep_range


class TestDepCanonicalName:
    def test_with_version_spec(self) -> None:
        assert dep_canonical_name("requests>=2.0") == "requests"

    def test_with_extras(self) -> None:
        assert dep_canonical_name("requests[security]>=2.0") == "requests"

    def test_normalizes_underscores_and_case(self) -> None:
        assert dep_canonical_name("My_Package>=1.0") == "my-package"


class TestDepRange:
    def test_no_specifier(self) -> None:
        assert dep_range("core") == ""

    def test_specifier(self) -> None:
        assert dep_range("core[extra]>=1.0") == ">=1.0"

    def test_keeps_declared_clause_order(self) -> None:
        assert dep_range("core>=1.0.0,<2.0.0") == ">=1.0.0,<2.0.0"

    def test_drops_whitespace_and_marker(self) -> None:
        dep = "core >= 1.0, < 2.0; python_version > '3.9'"
        assert dep_range(dep) == ">=1.0,<2.0"

    def test_legacy_parentheses(self) -> None:
        assert dep_range("core (>=1.0,<2.0)") == ">=1.0,<2.0"

    def test_url_dependency(self) -> None:
        assert dep_range("core @ https://example.com/core-1.0.0.tar.gz") == ""


class TestSetDepRange:
    def test_replaces_specifier(self) -> None:
        assert set_dep_range("core>=1.0", ">=1.3.0,<2.0.0") == "core>=1.3.0,<2.0.0"

    def test_adds_specifier(self) -> None:
        assert set_dep_range("core", "==1.0.1") == "core==1.0.1"

    def test_preserves_multiple_extras_sorted(self) -> None:
        assert set_dep_range("pkg[z,a,m]>=1.0", "~=3.0.0") == "pkg[a,m,z]~=3.0.0"

    def test_preserves_marker(self) -> None:
        result = set_dep_range("core>=1.0; python_version >= '3.10'", "==2.0.0")
        assert result == 'core==2.0.0; python_version >= "3.10"'

    def test_url_dependency_unchanged(self) -> None:
        dep = "core @ https://example.com/core-1.0.0.tar.gz"
        assert set_dep_range(dep, "==2.0.0") == dep


class TestRewritePyproject:
    def test_updates_version(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {})
        content = tmp_pyproject.read_text()
        assert 'version = "2.0.0"' in content

    def test_rewrites_internal_deps(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"internal-dep": ">=1.5.0,<2.0.0"})
        content = tmp_pyproject.read_text()
        assert "internal-dep>=1.5.0,<2.0.0" in content

    def test_rewrites_optional_deps(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"another-internal": "~=0.8.0"})
        content = tmp_pyproject.read_text()
        assert "another-internal~=0.8.0" in content

    def test_rewrites_dependency_groups(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"group-internal": "==0.2.0"})
        content = tmp_pyproject.read_text()
        assert "group-internal==0.2.0" in content

    def test_preserves_external_deps(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"internal-dep": "==1.5.0"})
        content = tmp_pyproject.read_text()
        assert 'requests>=2.0"' in content

    def test_skips_include_group_tables(self, tmp_path: Path) -> None:
        path = tmp_path / "pyproject.toml"
        path.write_text(
            """\
[project]
name = "pkg"
version = "1.0.0"

[dependency-groups]
lint = ["core>=1.0"]
dev = [{include-group = "lint"}, "core>=1.0"]
"""
        )
        rewrite_pyproject(path, "1.0.1", {"core": ">=2.0.0,<3.0.0"})

        doc = tomlkit.parse(path.read_text())
        dev = doc["dependency-groups"]["dev"]
        assert dev[0]["include-group"] == "lint"
        assert dev[1] == "core>=2.0.0,<3.0.0"
