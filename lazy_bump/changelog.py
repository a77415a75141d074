"""Changelog assembly and Markdown output.

assemble_changelogs() turns bump decisions and change records into
per-package changelog entries. render_section() and prepend_section()
format an entry as Markdown and insert it at the top of a package's
CHANGELOG.md, newest release first.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from pathlib import Path

from .changes import records_by_package
from .models import BumpDecision, ChangeRecord, ChangelogEntry

CHANGELOG_TITLE = "# Changelog"


def _recency(record: ChangeRecord) -> tuple[float, int]:
    # Undated records sort as oldest, then by declared order
    stamp = record.date.timestamp() if record.date else float("-inf")
    return stamp, record.order


def _record_line(record: ChangeRecord) -> str:
    author = f" ({record.author})" if record.author else ""
    return f"- {record.description}{author}"


def assemble_changelogs(
    decisions: Mapping[str, BumpDecision],
    records: Iterable[ChangeRecord],
) -> dict[str, ChangelogEntry]:
    """Build the changelog entry for every bumped package.

    Each entry lists the package's own change descriptions, most recent
    first (by change file date, then declared order), followed by one
    line per internal dependency whose specifier was rewritten. Records
    of every bump type contribute their text, not just the winning one.

    Args:
        decisions: Package name → finalized BumpDecision.
        records: The original change records.

    Returns:
        Package name → ChangelogEntry for each package in decisions.
    """
    by_package = records_by_package(r for r in records if not r.implicit)
    entries: dict[str, ChangelogEntry] = {}

    for name, decision in decisions.items():
        own = sorted(by_package.get(name, []), key=_recency, reverse=True)
        lines = [_record_line(r) for r in own if r.description]
        for update in decision.dependency_updates:
            dep = decisions.get(update.name)
            version = dep.new_version if dep else update.new_range
            lines.append(f"- Bump {update.name} to v{version}")
        if not lines:
            lines.append("- Version bump only")
        entries[name] = ChangelogEntry(
            package=name,
            version=decision.new_version,
            type=decision.type,
            lines=lines,
        )
    return entries


def render_section(entry: ChangelogEntry, release_date: date) -> str:
    """Render one entry as a Markdown release section.

    Example:
        ## [1.3.0] - 2024-05-01

        - Add streaming support
        - Bump core to v2.0.0
    """
    header = f"## [{entry.version}] - {release_date.isoformat()}"
    return "\n".join([header, "", *entry.lines, ""])


def prepend_section(path: Path, section: str) -> None:
    """Insert a release section at the top of a changelog file.

    The section goes right after the "# Changelog" title. Files that do
    not exist yet are created with that title.
    """
    if not path.exists():
        path.write_text(f"{CHANGELOG_TITLE}\n\n{section}")
        return

    content = path.read_text()
    if content.startswith(CHANGELOG_TITLE):
        title, _, rest = content.partition("\n")
        rest = rest.lstrip("\n")
        path.write_text(f"{title}\n\n{section}\n{rest}")
    else:
        path.write_text(f"{CHANGELOG_TITLE}\n\n{section}\n{content}")
