"""Sorting, paging and grouping of matched entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence

from fmql.entry import FileEntry
from fmql.query import OrderKey


class GroupKind(Enum):
    """What a result set can be partitioned by."""

    FOLDER = "folder"
    ALL_FOLDERS = "all_folders"
    EXTENSION = "extension"
    PERMISSIONS = "permissions"
    EXECUTABLE = "executable"
    NAME_STARTS_WITH = "name_starts_with"
    NAME_CONTAINS = "name_contains"
    NAME_ENDS_WITH = "name_ends_with"

    @property
    def needs_pattern(self) -> bool:
        return self in (GroupKind.NAME_STARTS_WITH, GroupKind.NAME_CONTAINS, GroupKind.NAME_ENDS_WITH)


@dataclass(frozen=True)
class GroupKey:
    """A grouping key; the three name-matching kinds carry a pattern."""

    kind: GroupKind
    pattern: str | None = None

    def __post_init__(self) -> None:
        if self.kind.needs_pattern and not self.pattern:
            raise ValueError(f"Grouping by {self.kind.value} requires a pattern")
        if not self.kind.needs_pattern and self.pattern is not None:
            raise ValueError(f"Grouping by {self.kind.value} does not take a pattern")


@dataclass
class EntryGroup:
    """One partition of a result set, with its aggregate totals."""

    label: str
    entries: list[FileEntry] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entries)

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.entries)

    @property
    def file_count(self) -> int:
        return sum(1 for e in self.entries if not e.is_directory)

    @property
    def dir_count(self) -> int:
        return sum(1 for e in self.entries if e.is_directory)


def sort_entries(entries: Iterable[FileEntry], order_by: Sequence[OrderKey] = ()) -> list[FileEntry]:
    """Sort entries by the given keys.

    Entries are first put in name order (then path order), and each key is
    applied as a stable sort from last to first, so the name order is what
    breaks ties. Entries whose value is missing sort after all others in
    either direction.
    """
    result = sorted(entries, key=lambda e: (e.name, str(e.path)))
    for key in reversed(order_by):
        present = [e for e in result if key.attribute.value(e) is not None]
        missing = [e for e in result if key.attribute.value(e) is None]
        present.sort(key=key.attribute.value, reverse=key.descending)
        result = present + missing
    return result


def page_entries(entries: list[FileEntry], limit: int | None = None, offset: int = 0) -> list[FileEntry]:
    """Apply OFFSET then LIMIT."""
    if limit is None:
        return entries[offset:]
    return entries[offset:offset + limit]


def _containing_root(path: Path, roots: Sequence[Path]) -> Path | None:
    best = None
    for root in roots:
        if path == root or root in path.parents:
            if best is None or len(root.parts) > len(best.parts):
                best = root
    return best


def _folder_labels(entry: FileEntry, roots: Sequence[Path]) -> list[str]:
    """Every ancestor folder of ``entry`` down from its traversal root."""
    parent = entry.path.parent
    root = _containing_root(parent, roots)
    if root is None:
        return [str(parent)]
    labels = []
    current = parent
    while True:
        labels.append(str(current))
        if current == root:
            break
        current = current.parent
    return labels


def _name_matches(kind: GroupKind, name: str, pattern: str) -> bool:
    name = name.lower()
    pattern = pattern.lower()
    if kind is GroupKind.NAME_STARTS_WITH:
        return name.startswith(pattern)
    if kind is GroupKind.NAME_CONTAINS:
        return pattern in name
    return name.endswith(pattern)


def group_labels(entry: FileEntry, key: GroupKey, roots: Sequence[Path] = ()) -> list[str]:
    """Return the labels of every group ``entry`` belongs to.

    Only ``all_folders`` can put an entry in more than one group.
    """
    kind = key.kind
    if kind is GroupKind.FOLDER:
        return [str(entry.path.parent)]
    if kind is GroupKind.ALL_FOLDERS:
        return _folder_labels(entry, roots)
    if kind is GroupKind.EXTENSION:
        return [entry.extension or "no extension"]
    if kind is GroupKind.PERMISSIONS:
        return [entry.permissions]
    if kind is GroupKind.EXECUTABLE:
        return ["Executable" if entry.is_executable else "Not executable"]
    assert key.pattern is not None
    return ["Matches" if _name_matches(kind, entry.name, key.pattern) else "Does not match"]


def group_entries(entries: Iterable[FileEntry], key: GroupKey, roots: Sequence[Path] = ()) -> list[EntryGroup]:
    """Partition already-sorted entries into groups ordered by label.

    Entries keep their relative order within each group.
    """
    groups: dict[str, EntryGroup] = {}
    for entry in entries:
        for label in group_labels(entry, key, roots):
            if label not in groups:
                groups[label] = EntryGroup(label=label)
            groups[label].entries.append(entry)
    return [groups[label] for label in sorted(groups)]
