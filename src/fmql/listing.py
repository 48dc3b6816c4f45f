"""Plain directory listing, without SQL."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field

from fmql.assemble import EntryGroup, GroupKey, GroupKind, group_entries, sort_entries
from fmql.attributes import resolve_attribute
from fmql.entry import FileEntry
from fmql.query import OrderKey
from fmql.traversal import SkippedEntry, TraversalPlanner, resolve_roots

SORT_KEYS: dict[str, list[OrderKey]] = {
    "name": [],
    "size": [OrderKey(resolve_attribute("size"), descending=True)],
    "modified": [OrderKey(resolve_attribute("modified"), descending=True)],
    "type": [OrderKey(resolve_attribute("extension"))],
}


@dataclass
class ListingOptions:
    path: str = "."
    recursive: bool = False
    show_hidden: bool = False
    name_pattern: str | None = None
    sort_by: str = "name"
    group_by: str | None = None
    follow_symlinks: bool = True

    def group_key(self) -> GroupKey | None:
        """Build the group key; the name-matching kinds take ``name_pattern``."""
        if self.group_by is None:
            return None
        kind = GroupKind(self.group_by)
        return GroupKey(kind, self.name_pattern if kind.needs_pattern else None)


@dataclass
class ListingResult:
    entries: list[FileEntry]
    groups: list[EntryGroup] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)


def list_directory(options: ListingOptions) -> ListingResult:
    """List a directory the way ``ls`` would, optionally grouped.

    ``name_pattern`` filters names with a shell glob, except when grouping
    by a name-matching key, where it is the pattern the groups test.

    Raises:
        ResolutionError: If the path does not resolve.
        ValueError: If the sort or group option is unknown, or a name group
            has no pattern.
    """
    if options.sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key '{options.sort_by}'. Valid keys: {', '.join(SORT_KEYS)}")
    group_key = options.group_key()

    roots = resolve_roots(options.path, options.show_hidden)
    planner = TraversalPlanner(
        roots,
        recursive=options.recursive,
        include_hidden=options.show_hidden,
        follow_symlinks=options.follow_symlinks,
    )
    entries = list(planner.walk())
    if options.name_pattern and not (group_key and group_key.kind.needs_pattern):
        pattern = options.name_pattern.lower()
        entries = [e for e in entries if fnmatch.fnmatchcase(e.name.lower(), pattern)]

    entries = sort_entries(entries, SORT_KEYS[options.sort_by])
    groups = group_entries(entries, group_key, roots) if group_key else []
    return ListingResult(entries=entries, groups=groups, skipped=planner.skipped)
