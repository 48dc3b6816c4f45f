"""Root resolution and directory traversal."""

from __future__ import annotations

import glob
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Sequence

from fmql.entry import FileEntry
from fmql.errors import ResolutionError

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


def has_glob(text: str) -> bool:
    return any(ch in _GLOB_CHARS for ch in text)


def resolve_roots(root: str, include_hidden: bool = False) -> list[Path]:
    """Expand a FROM target into the absolute paths to traverse.

    ``~`` is expanded first. A target containing glob characters may match
    both directories (walked) and files (returned as entries directly);
    matches whose name starts with a dot are dropped unless
    ``include_hidden`` is set. A literal target must be an existing
    directory.

    Raises:
        ResolutionError: If nothing usable is found.
    """
    expanded = os.path.expanduser(root)
    if not expanded:
        raise ResolutionError("Empty FROM path")

    if has_glob(expanded):
        matches = sorted(glob.glob(expanded))
        if not include_hidden:
            matches = [m for m in matches if not os.path.basename(os.path.normpath(m)).startswith(".")]
        if not matches:
            raise ResolutionError(f"No paths match: {root}")
        return [Path(os.path.abspath(m)) for m in matches]

    path = Path(os.path.abspath(expanded))
    if not path.exists():
        raise ResolutionError(f"Path not found: {root}")
    if not path.is_dir():
        raise ResolutionError(f"Not a directory: {root}")
    return [path]


class TraversalState(Enum):
    PENDING = "pending"
    VISITING = "visiting"
    DONE = "done"


@dataclass(frozen=True)
class SkippedEntry:
    """A path the walk could not read, and why."""

    path: Path
    reason: str


class TraversalPlanner:
    """Walks one or more roots, yielding a FileEntry per discovered object.

    Roots themselves are not yielded unless they are files. Children are
    visited depth-first in name order. Each real directory is listed at
    most once, so symlink cycles terminate.
    """

    def __init__(
        self,
        roots: Sequence[Path | str],
        recursive: bool = False,
        include_hidden: bool = False,
        follow_symlinks: bool = True,
    ) -> None:
        self.roots = [Path(r) for r in roots]
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.state = TraversalState.PENDING
        # Canonical paths of the directories listed, in visiting order
        self.visited: list[str] = []
        self.skipped: list[SkippedEntry] = []
        self._seen: set[str] = set()

    def walk(self) -> Iterator[FileEntry]:
        """Yield entries under every root.

        Unreadable entries and directories are recorded in ``skipped``.

        Raises:
            RuntimeError: If the planner has already walked.
        """
        if self.state is not TraversalState.PENDING:
            raise RuntimeError("A traversal can only be walked once")
        self.state = TraversalState.VISITING

        emitted: set[Path] = set()
        for root in self.roots:
            if not root.is_dir():
                entry = self._read(root)
                if entry is not None and entry.path not in emitted:
                    emitted.add(entry.path)
                    yield entry
                continue

            children = self._list(root)
            stack = [iter(children)] if children is not None else []
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    stack.pop()
                    continue
                entry = self._read(child)
                if entry is None:
                    continue
                if entry.path not in emitted:
                    emitted.add(entry.path)
                    yield entry
                if self._should_descend(entry):
                    grandchildren = self._list(child)
                    if grandchildren is not None:
                        stack.append(iter(grandchildren))

        self.state = TraversalState.DONE

    def _should_descend(self, entry: FileEntry) -> bool:
        if not (self.recursive and entry.is_directory):
            return False
        return self.follow_symlinks or not entry.is_symlink

    def _list(self, directory: Path) -> list[Path] | None:
        """Return the children of a directory not listed before, in name order."""
        real = os.path.realpath(directory)
        if real in self._seen:
            logger.debug(f"Already visited {real}, not descending into {directory}")
            return None
        self._seen.add(real)
        self.visited.append(real)

        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            self._skip(directory, e)
            return None
        if not self.include_hidden:
            names = [n for n in names if not n.startswith(".")]
        return [directory / n for n in names]

    def _read(self, path: Path) -> FileEntry | None:
        try:
            return FileEntry.from_path(path)
        except OSError as e:
            self._skip(path, e)
            return None

    def _skip(self, path: Path, error: OSError) -> None:
        reason = error.strerror or str(error)
        self.skipped.append(SkippedEntry(path=path, reason=reason))
        logger.warning(f"Skipping {path}: {reason}")
