"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomlkit

from lazy_bump.graph import PackageGraph
from lazy_bump.models import BumpType, ChangeRecord, PackageInfo


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal>=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]
classifiers = ["Private :: Do Not Upload"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]

[tool.lazy-bump]
range-policy = "exact"

[tool.lazy-bump.groups]
frontend = ["web", "ui"]
"""
    return tomlkit.parse(content)


def _write_package(
    root: Path, name: str, version: str, deps: list[str], private: bool = False
) -> None:
    pkg_dir = root / "packages" / name
    pkg_dir.mkdir(parents=True)
    doc = tomlkit.document()
    project = tomlkit.table()
    project.add("name", name)
    project.add("version", version)
    project.add("dependencies", deps)
    if private:
        project.add("classifiers", ["Private :: Do Not Upload"])
    doc.add("project", project)
    (pkg_dir / "pyproject.toml").write_text(tomlkit.dumps(doc))


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A uv workspace: web → utils → core, plus a private tools package."""
    (tmp_path / "pyproject.toml").write_text(
        """\
[tool.uv.workspace]
members = ["packages/*"]

[tool.lazy-bump]
range-policy = "caret"
"""
    )
    _write_package(tmp_path, "core", "1.0.0", ["requests>=2.0"])
    _write_package(tmp_path, "utils", "1.2.0", ["core>=1.0.0,<2.0.0"])
    _write_package(tmp_path, "web", "0.3.1", ["utils[extra]>=1.0", "click>=8.0"])
    _write_package(tmp_path, "tools", "0.1.0", ["core"], private=True)
    (tmp_path / "change").mkdir()
    return tmp_path


@pytest.fixture
def chain_graph() -> PackageGraph:
    """core ← utils ← web (arrows point from dependency to dependent)."""
    return PackageGraph.build(
        {
            "core": PackageInfo(path="packages/core", version="1.0.0"),
            "utils": PackageInfo(
                path="packages/utils",
                version="1.2.0",
                deps={"core": ">=1.0.0,<2.0.0"},
            ),
            "web": PackageInfo(
                path="packages/web", version="0.3.1", deps={"utils": ">=1.0"}
            ),
        }
    )


@pytest.fixture
def make_change() -> Callable[..., ChangeRecord]:
    """Factory for change records with sensible defaults."""

    def _make(
        package: str,
        bump: BumpType,
        change_id: str | None = None,
        description: str = "",
        **kwargs: object,
    ) -> ChangeRecord:
        return ChangeRecord(
            id=change_id or f"{package}-{bump.value}",
            package=package,
            type=bump,
            description=description,
            **kwargs,
        )

    return _make
