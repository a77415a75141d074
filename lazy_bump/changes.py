"""Change files and change records.

Contributors describe intended releases with small TOML change files in
the workspace change directory (``change/`` by default)::

    package = "core"
    type = "minor"
    description = "Add streaming support"
    dependent-type = "patch"   # optional
    author = "dev@example.com"  # optional

Reading and deleting those files lives here, together with load_changes(),
which validates raw change mappings against the package graph and turns
them into ChangeRecord objects. Every record is kept, including several
records for the same package; conflicts are resolved during bumping.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import InvalidBumpType, MalformedChangeFile, UnknownPackage
from .graph import PackageGraph
from .models import BumpType, ChangeRecord
from .shell import git


def load_changes(
    raw_changes: Iterable[Mapping[str, Any]], graph: PackageGraph
) -> list[ChangeRecord]:
    """Validate raw change mappings and convert them to change records.

    Args:
        raw_changes: Parsed change files, in declared order. Each needs
            "package" and "type" keys; "id", "description",
            "dependent-type", "author" and "date" are optional.
        graph: Workspace graph used to validate target packages.

    Returns:
        One ChangeRecord per input, in input order.

    Raises:
        InvalidBumpType: If "type" or "dependent-type" is not recognized.
        UnknownPackage: If the target package is not in the graph.
        MalformedChangeFile: If a required field is missing or invalid.
    """
    records: list[ChangeRecord] = []
    for order, raw in enumerate(raw_changes):
        change_id = str(raw.get("id") or f"change-{order}")

        package = raw.get("package")
        if not package or not isinstance(package, str):
            raise MalformedChangeFile(f"{change_id}: missing 'package'")
        if "type" not in raw:
            raise MalformedChangeFile(f"{change_id}: missing 'type'")

        try:
            bump = BumpType.parse(raw["type"])
            dependent = raw.get("dependent-type")
            dependent_type = BumpType.parse(dependent) if dependent else None
        except InvalidBumpType as exc:
            raise InvalidBumpType(f"{change_id}: {exc}") from None

        name = canonicalize_name(package)
        if name not in graph:
            raise UnknownPackage(
                f"{change_id}: package {package!r} is not in the workspace"
            )

        try:
            record = ChangeRecord(
                id=change_id,
                package=name,
                type=bump,
                description=str(raw.get("description", "")).strip(),
                dependent_type=dependent_type,
                author=raw.get("author"),
                date=raw.get("date"),
                order=order,
            )
        except ValidationError as exc:
            raise MalformedChangeFile(f"{change_id}: {exc}") from exc
        records.append(record)
    return records


def records_by_package(records: Iterable[ChangeRecord]) -> dict[str, list[ChangeRecord]]:
    """Group records by target package, preserving record order."""
    grouped: dict[str, list[ChangeRecord]] = {}
    for record in records:
        grouped.setdefault(record.package, []).append(record)
    return grouped


def change_file_date(path: Path) -> datetime | None:
    """Return the commit date of a change file, or None if uncommitted."""
    out = git("log", "-1", "--format=%cI", "--", str(path), check=False)
    if not out:
        return None
    try:
        return datetime.fromisoformat(out)
    except ValueError:
        return None


def read_change_files(
    change_dir: Path, *, dated: bool = True
) -> list[dict[str, Any]]:
    """Read all change files from the change directory.

    Files are returned in file name order. Each mapping gets an "id"
    (the file stem) and, when dated is set and the file has none, a
    "date" taken from git history.

    Raises:
        MalformedChangeFile: If a file is not valid TOML.
    """
    if not change_dir.is_dir():
        return []

    raw: list[dict[str, Any]] = []
    for path in sorted(change_dir.glob("*.toml")):
        try:
            data = tomlkit.parse(path.read_text()).unwrap()
        except TOMLKitError as exc:
            raise MalformedChangeFile(f"{path.name}: {exc}") from exc
        data["id"] = path.stem
        if dated and "date" not in data:
            data["date"] = change_file_date(path)
        raw.append(data)
    return raw


def write_change_file(
    change_dir: Path,
    package: str,
    bump: BumpType,
    description: str,
    *,
    dependent_type: BumpType | None = None,
    author: str | None = None,
) -> Path:
    """Create a new change file and return its path.

    File names are "<package>-<random suffix>.toml" so concurrent branches
    never collide.
    """
    change_dir.mkdir(parents=True, exist_ok=True)
    name = canonicalize_name(package)
    path = change_dir / f"{name}-{uuid.uuid4().hex[:8]}.toml"

    doc = tomlkit.document()
    doc.add("package", name)
    doc.add("type", bump.value)
    doc.add("description", description)
    if dependent_type is not None:
        doc.add("dependent-type", dependent_type.value)
    if author:
        doc.add("author", author)
    path.write_text(tomlkit.dumps(doc))
    return path


def delete_change_files(
    change_dir: Path,
    records: Iterable[ChangeRecord],
    *,
    dry_run: bool = False,
) -> list[Path]:
    """Delete the change files consumed by a release.

    Args:
        change_dir: The change directory.
        records: Records whose files should be removed.
        dry_run: If True, return the paths without deleting anything.

    Returns:
        Paths that were (or would be) deleted.
    """
    deleted: list[Path] = []
    for change_id in sorted({r.id for r in records}):
        path = change_dir / f"{change_id}.toml"
        if not path.exists():
            continue
        if not dry_run:
            path.unlink()
        deleted.append(path)
    return deleted
