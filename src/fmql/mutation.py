"""Applying SET assignments to matched entries."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Protocol

from fmql.entry import FileEntry

logger = logging.getLogger(__name__)


class Filesystem(Protocol):
    """The filesystem calls a mutation needs. Each raises OSError on failure."""

    def chmod(self, path: Path, mode: int) -> None: ...

    def chown(self, path: Path, owner: str) -> None: ...

    def set_modified(self, path: Path, modified: datetime) -> None: ...


class LocalFilesystem:
    """Filesystem mutations on the local machine."""

    def chmod(self, path: Path, mode: int) -> None:
        os.chmod(path, mode)

    def chown(self, path: Path, owner: str) -> None:
        shutil.chown(path, user=owner)

    def set_modified(self, path: Path, modified: datetime) -> None:
        # Keep the access time as it is
        accessed = os.stat(path).st_atime
        os.utime(path, (accessed, modified.timestamp()))


@dataclass
class MutationOutcome:
    """What happened to one entry.

    On success ``entry`` reflects the new values; on failure it is the
    entry as it was, and ``error`` says why.
    """

    entry: FileEntry
    succeeded: bool
    error: str | None = None


class MutationExecutor:
    """Applies assignments to each entry, best effort across the match set."""

    def __init__(self, filesystem: Filesystem | None = None) -> None:
        self.filesystem = filesystem or LocalFilesystem()

    def apply(self, entries: Iterable[FileEntry], assignments: dict[str, Any]) -> list[MutationOutcome]:
        """Apply ``assignments`` to every entry.

        A failure on one entry is recorded in its outcome and logged; the
        remaining entries are still processed.
        """
        outcomes = []
        for entry in entries:
            try:
                updated = self._apply_one(entry, assignments)
            except (OSError, ValueError, OverflowError) as e:
                reason = getattr(e, "strerror", None) or str(e)
                logger.warning(f"Failed to update {entry.path}: {reason}")
                outcomes.append(MutationOutcome(entry=entry, succeeded=False, error=reason))
            else:
                logger.debug(f"Updated {entry.path}")
                outcomes.append(MutationOutcome(entry=updated, succeeded=True))
        return outcomes

    def _apply_one(self, entry: FileEntry, assignments: dict[str, Any]) -> FileEntry:
        for name, value in assignments.items():
            if name == "permissions":
                self.filesystem.chmod(entry.path, value)
                entry = entry.with_mode(value)
            elif name == "owner":
                self.filesystem.chown(entry.path, value)
                entry = entry.with_owner(value)
            elif name == "modified":
                self.filesystem.set_modified(entry.path, value)
                entry = entry.with_modified(value)
            else:
                raise ValueError(f"Cannot assign to '{name}'")
        return entry
