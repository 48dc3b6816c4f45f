"""Rendering of query and listing results as text, tables or JSON."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Sequence

from fmql.assemble import EntryGroup
from fmql.attributes import Attribute, text_value
from fmql.engine import QueryResult
from fmql.entry import FileEntry
from fmql.listing import ListingResult
from fmql.mutation import MutationOutcome
from fmql.traversal import SkippedEntry

OUTPUT_FORMATS = ("text", "table", "json")

DEFAULT_COLUMNS = ["permissions", "owner", "size", "modified", "name"]

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size: int) -> str:
    """Format a byte count with a binary unit (``1536`` -> ``1.5 KB``)."""
    value = float(size)
    for unit in _SIZE_UNITS:
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            if unit == "B":
                return f"{size} B"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def format_value(value: Any, max_width: int = 40) -> str:
    """Format a value for display.

    Args:
        value: The value to format
        max_width: Maximum character width before truncating
    """
    if value is None:
        return "-"
    elif isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    elif isinstance(value, float):
        return f"{value:.6g}"
    s = str(value)
    if len(s) > max_width:
        return s[:max_width - 3] + "..."
    return s


def entry_row(entry: FileEntry, columns: Sequence[str]) -> dict[str, Any]:
    """Return the displayed values of ``entry`` keyed by column name."""
    data = entry.to_dict()
    row: dict[str, Any] = {}
    for column in columns:
        if column in ("modified", "accessed"):
            row[column] = getattr(entry, column)
        else:
            row[column] = data[column]
    return row


def render_text(entries: Sequence[FileEntry], long: bool = False, columns: Sequence[Attribute] | None = None) -> list[str]:
    """Render entries one per line.

    The short form is just the name (directories get a trailing ``/``);
    the long form is ``ls -l`` style. Projected columns are printed
    space-separated in the order given.
    """
    if columns is not None:
        return ["  ".join(text_value(a, e) or "-" for a in columns) for e in entries]
    if not long:
        return [e.name + ("/" if e.is_directory else "") for e in entries]

    owner_width = max((len(e.owner or "-") for e in entries), default=0)
    lines = []
    for e in entries:
        kind = "d" if e.is_directory else ("l" if e.is_symlink else "-")
        lines.append(
            f"{kind}{e.permissions} {(e.owner or '-').ljust(owner_width)} "
            f"{format_size(e.size).rjust(9)} {format_value(e.modified)} {e.name}"
        )
    return lines


def render_table(rows: Sequence[dict[str, Any]], columns: Sequence[str], max_col_width: int = 40) -> list[str]:
    """Render rows as a ``|``-separated table with a header and row count."""
    if not rows:
        return ["(no results)"]

    # Calculate column widths
    col_widths = {col: len(col) for col in columns}
    for row in rows:
        for col in columns:
            col_widths[col] = max(col_widths[col], len(format_value(row.get(col), max_col_width)))

    # Cap column widths
    for col in col_widths:
        col_widths[col] = min(col_widths[col], max_col_width)

    header = " | ".join(col.ljust(col_widths[col])[:col_widths[col]] for col in columns)
    lines = [header, "-" * len(header)]
    for row in rows:
        values = []
        for col in columns:
            val = format_value(row.get(col), max_col_width)
            values.append(val.ljust(col_widths[col]))
        lines.append(" | ".join(values).rstrip())

    lines.append("")
    lines.append(f"({len(rows)} row{'s' if len(rows) != 1 else ''})")
    return lines


def render_groups(groups: Sequence[EntryGroup], output_format: str = "text") -> list[str]:
    if output_format == "table":
        rows = [
            {"group": g.label, "files": g.file_count, "dirs": g.dir_count, "size": format_size(g.total_size)}
            for g in groups
        ]
        return ["", "Grouped Totals:"] + render_table(rows, ["group", "files", "dirs", "size"])

    lines = ["", "Grouped Totals:"]
    for g in groups:
        lines.append(f"{g.label}:")
        lines.append(f"  Files: {g.file_count}, Directories: {g.dir_count}, Total Size: {format_size(g.total_size)}")
    return lines


def render_totals(entries: Sequence[FileEntry]) -> list[str]:
    files = [e for e in entries if not e.is_directory]
    dirs = len(entries) - len(files)
    total = sum(e.size for e in files)
    return ["", f"Total: {len(files)} files, {dirs} directories, total size: {format_size(total)}"]


def render_outcomes(outcomes: Sequence[MutationOutcome]) -> list[str]:
    updated = sum(1 for o in outcomes if o.succeeded)
    lines = [f"Updated {updated} of {len(outcomes)} entr{'y' if len(outcomes) == 1 else 'ies'}"]
    for o in outcomes:
        if not o.succeeded:
            lines.append(f"Failed: {o.entry.path}: {o.error}")
    return lines


def render_json(
    entries: Sequence[FileEntry],
    groups: Sequence[EntryGroup] = (),
    outcomes: Sequence[MutationOutcome] = (),
    skipped: Sequence[SkippedEntry] = (),
    columns: Sequence[str] | None = None,
) -> str:
    """Render a result as a JSON document."""
    def entry_dict(entry: FileEntry) -> dict[str, Any]:
        data = entry.to_dict()
        return {c: data[c] for c in columns} if columns is not None else data

    document: dict[str, Any] = {"entries": [entry_dict(e) for e in entries]}
    if groups:
        document["groups"] = [
            {
                "group": g.label,
                "count": g.count,
                "files": g.file_count,
                "directories": g.dir_count,
                "total_size": g.total_size,
            }
            for g in groups
        ]
    if outcomes:
        document["outcomes"] = [
            {"path": str(o.entry.path), "succeeded": o.succeeded, "error": o.error} for o in outcomes
        ]
    if skipped:
        document["skipped"] = [{"path": str(s.path), "reason": s.reason} for s in skipped]
    return json.dumps(document, indent=2)


def print_result(
    result: QueryResult | ListingResult,
    output_format: str = "text",
    long: bool = False,
    show_total: bool = False,
) -> None:
    """Print a query or listing result."""
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format '{output_format}'")

    outcomes: list[MutationOutcome] = []
    projection: list[Attribute] | None = None
    if isinstance(result, QueryResult):
        outcomes = result.outcomes
        projection = result.query.columns
    column_names = [a.name for a in projection] if projection is not None else None

    if output_format == "json":
        print(render_json(result.entries, result.groups, outcomes, result.skipped, column_names))
        return

    if output_format == "table":
        columns = column_names or DEFAULT_COLUMNS
        lines = render_table([entry_row(e, columns) for e in result.entries], columns)
    elif result.entries:
        lines = render_text(result.entries, long=long, columns=projection)
    else:
        lines = ["(no results)"]

    if result.groups:
        lines += render_groups(result.groups, output_format)
    elif show_total:
        lines += render_totals(result.entries)
    if outcomes:
        lines += [""] + render_outcomes(outcomes)

    for line in lines:
        print(line)
