"""Tests for sorting, paging and grouping."""

from datetime import datetime
from pathlib import Path

import pytest

from fmql.assemble import (
    GroupKey,
    GroupKind,
    group_entries,
    group_labels,
    page_entries,
    sort_entries,
)
from fmql.attributes import resolve_attribute
from fmql.entry import FileEntry
from fmql.query import OrderKey


def make_entry(path, size=0, mode=0o644, owner="alice", is_directory=False, modified=datetime(2025, 1, 1)):
    return FileEntry(
        path=Path(path),
        size=size,
        mode=mode,
        modified=modified,
        accessed=modified,
        is_directory=is_directory,
        owner=owner,
    )


def names(entries):
    return [e.name for e in entries]


class TestSortEntries:
    """Tests for ordering results."""

    def test_default_is_name_ascending(self):
        """Test the order with no ORDER BY."""
        entries = [make_entry("/d/c"), make_entry("/d/a"), make_entry("/d/b")]

        assert names(sort_entries(entries)) == ["a", "b", "c"]

    def test_size_descending(self):
        """Test ORDER BY size DESC on sizes 10, 5, 20."""
        entries = [make_entry("/d/a", size=10), make_entry("/d/b", size=5), make_entry("/d/c", size=20)]
        order = [OrderKey(resolve_attribute("size"), descending=True)]

        assert [e.size for e in sort_entries(entries, order)] == [20, 10, 5]

    def test_ties_broken_by_name_ascending(self):
        """Test that equal keys keep name order, in either direction."""
        entries = [
            make_entry("/d/zeta", size=10),
            make_entry("/d/alpha", size=10),
            make_entry("/d/mid", size=20),
        ]

        desc = sort_entries(entries, [OrderKey(resolve_attribute("size"), descending=True)])
        asc = sort_entries(entries, [OrderKey(resolve_attribute("size"))])

        assert names(desc) == ["mid", "alpha", "zeta"]
        assert names(asc) == ["alpha", "zeta", "mid"]

    def test_same_name_broken_by_path(self):
        """Test that entries with equal names fall back to path order."""
        entries = [make_entry("/b/x"), make_entry("/a/x")]

        assert [str(e.path) for e in sort_entries(entries)] == ["/a/x", "/b/x"]

    def test_multiple_keys(self):
        """Test ORDER BY extension, size DESC."""
        entries = [
            make_entry("/d/a.txt", size=1),
            make_entry("/d/b.md", size=1),
            make_entry("/d/c.txt", size=9),
        ]
        order = [
            OrderKey(resolve_attribute("extension")),
            OrderKey(resolve_attribute("size"), descending=True),
        ]

        assert names(sort_entries(entries, order)) == ["b.md", "c.txt", "a.txt"]

    def test_missing_values_last(self):
        """Test that an unknown owner sorts last both ways."""
        entries = [make_entry("/d/a", owner=None), make_entry("/d/b", owner="bob"), make_entry("/d/c", owner="carol")]
        owner = resolve_attribute("owner")

        assert names(sort_entries(entries, [OrderKey(owner)])) == ["b", "c", "a"]
        assert names(sort_entries(entries, [OrderKey(owner, descending=True)])) == ["c", "b", "a"]

    def test_timestamps_chronological(self):
        """Test ordering by modified time."""
        entries = [
            make_entry("/d/new", modified=datetime(2025, 6, 1)),
            make_entry("/d/old", modified=datetime(2020, 1, 1)),
        ]

        assert names(sort_entries(entries, [OrderKey(resolve_attribute("modified"))])) == ["old", "new"]


class TestPageEntries:
    """Tests for LIMIT and OFFSET."""

    def test_limit_and_offset(self):
        """Test slicing."""
        entries = [make_entry(f"/d/{i}") for i in range(5)]

        assert names(page_entries(entries, limit=2)) == ["0", "1"]
        assert names(page_entries(entries, limit=2, offset=3)) == ["3", "4"]
        assert names(page_entries(entries, offset=4)) == ["4"]
        assert page_entries(entries, limit=0) == []


class TestGroupKey:
    """Tests for group key validation."""

    def test_pattern_required(self):
        """Test that name groups need a pattern."""
        with pytest.raises(ValueError, match="requires a pattern"):
            GroupKey(GroupKind.NAME_CONTAINS)

    def test_pattern_rejected(self):
        """Test that other groups take no pattern."""
        with pytest.raises(ValueError, match="does not take a pattern"):
            GroupKey(GroupKind.EXTENSION, "x")


class TestGroupEntries:
    """Tests for partitioning results."""

    def test_group_by_extension(self):
        """Test a.txt, b.txt, c.md grouped by extension."""
        entries = [
            make_entry("/d/a.txt", size=100),
            make_entry("/d/b.txt", size=50),
            make_entry("/d/c.md", size=7),
        ]

        groups = group_entries(entries, GroupKey(GroupKind.EXTENSION))

        assert [(g.label, g.count, g.total_size) for g in groups] == [("md", 1, 7), ("txt", 2, 150)]

    def test_no_extension_label(self):
        """Test names without an extension."""
        entries = [make_entry("/d/Makefile"), make_entry("/d/.bashrc"), make_entry("/d/src", is_directory=True)]

        groups = group_entries(entries, GroupKey(GroupKind.EXTENSION))

        assert len(groups) == 1
        assert groups[0].label == "no extension"
        assert groups[0].file_count == 2
        assert groups[0].dir_count == 1

    def test_intra_group_order_preserved(self):
        """Test that grouping keeps the sorted order within a group."""
        entries = sort_entries(
            [make_entry("/d/a.txt", size=1), make_entry("/d/b.txt", size=3), make_entry("/d/c.txt", size=2)],
            [OrderKey(resolve_attribute("size"), descending=True)],
        )

        groups = group_entries(entries, GroupKey(GroupKind.EXTENSION))

        assert names(groups[0].entries) == ["b.txt", "c.txt", "a.txt"]

    def test_group_by_folder(self):
        """Test grouping by parent folder."""
        entries = [make_entry("/r/x/a"), make_entry("/r/y/b"), make_entry("/r/x/c")]

        groups = group_entries(entries, GroupKey(GroupKind.FOLDER))

        assert [(g.label, names(g.entries)) for g in groups] == [("/r/x", ["a", "c"]), ("/r/y", ["b"])]

    def test_group_by_all_folders(self):
        """Test that an entry counts towards every ancestor up to the root."""
        entries = [make_entry("/r/x/y/deep", size=5), make_entry("/r/top", size=1)]

        groups = group_entries(entries, GroupKey(GroupKind.ALL_FOLDERS), roots=[Path("/r")])

        assert {g.label: g.total_size for g in groups} == {"/r": 6, "/r/x": 5, "/r/x/y": 5}

    def test_all_folders_labels(self):
        """Test the ancestor labels for one entry."""
        labels = group_labels(make_entry("/r/x/y/f"), GroupKey(GroupKind.ALL_FOLDERS), roots=[Path("/r")])

        assert labels == ["/r/x/y", "/r/x", "/r"]

    def test_group_by_permissions(self):
        """Test grouping by symbolic permissions."""
        entries = [make_entry("/d/a", mode=0o755), make_entry("/d/b", mode=0o644)]

        groups = group_entries(entries, GroupKey(GroupKind.PERMISSIONS))

        assert [g.label for g in groups] == ["rw-r--r--", "rwxr-xr-x"]

    def test_group_by_executable(self):
        """Test grouping by the executable flag."""
        entries = [make_entry("/d/a", mode=0o755), make_entry("/d/b", mode=0o644), make_entry("/d/c", mode=0o010)]

        groups = group_entries(entries, GroupKey(GroupKind.EXECUTABLE))

        assert [(g.label, g.count) for g in groups] == [("Executable", 2), ("Not executable", 1)]

    @pytest.mark.parametrize(
        "kind, matching",
        [
            (GroupKind.NAME_STARTS_WITH, ["Catalog.txt", "cat.jpg"]),
            (GroupKind.NAME_CONTAINS, ["Catalog.txt", "bigcat.png", "cat.jpg"]),
            (GroupKind.NAME_ENDS_WITH, []),
        ],
    )
    def test_group_by_name_pattern(self, kind, matching):
        """Test the case-insensitive name groups."""
        entries = sort_entries([make_entry(f"/d/{n}") for n in ("Catalog.txt", "bigcat.png", "cat.jpg", "dog.png")])

        groups = {g.label: names(g.entries) for g in group_entries(entries, GroupKey(kind, "CAT"))}

        assert groups.get("Matches", []) == matching
        assert len(groups.get("Does not match", [])) == 4 - len(matching)
