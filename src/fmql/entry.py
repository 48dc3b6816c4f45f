"""File entry snapshots produced by directory traversal."""

from __future__ import annotations

import os
import pwd
import stat
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any

# Execute bits for owner, group and other
EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def format_permissions(mode: int) -> str:
    """Format permission bits as a 9-character symbolic string (e.g. ``rwxr-xr-x``)."""
    chars = []
    for shift in (6, 3, 0):
        triad = (mode >> shift) & 0o7
        chars.append("r" if triad & 0o4 else "-")
        chars.append("w" if triad & 0o2 else "-")
        chars.append("x" if triad & 0o1 else "-")
    return "".join(chars)


def parse_symbolic_permissions(text: str) -> int:
    """Parse a 9-character symbolic permission string into permission bits.

    Raises:
        ValueError: If the text is not of the form ``rwxr-xr-x``.
    """
    if len(text) != 9:
        raise ValueError(f"Symbolic permissions must be 9 characters, got {text!r}")
    mode = 0
    for i, ch in enumerate(text):
        expected = "rwx"[i % 3]
        if ch == expected:
            mode |= 1 << (8 - i)
        elif ch != "-":
            raise ValueError(f"Invalid character {ch!r} in permissions {text!r}")
    return mode


def lookup_owner(uid: int) -> str:
    """Return the user name for a uid, or the uid as text if it has no entry."""
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


@dataclass(frozen=True)
class FileEntry:
    """An immutable metadata snapshot of one filesystem object.

    Derived fields (name, extension, permissions, is_executable, is_hidden)
    are computed from the stored fields, so a copy made with ``with_mode``
    always reports consistent values.
    """

    path: Path
    size: int
    mode: int  # permission bits only (stat.S_IMODE)
    modified: datetime
    accessed: datetime
    is_directory: bool
    is_symlink: bool = False
    owner: str | None = None

    @classmethod
    def from_path(cls, path: Path | str) -> FileEntry:
        """Read metadata for ``path``.

        Symlinks are reported as such but described by their target. A
        dangling symlink or unreadable target raises ``OSError``.
        """
        p = Path(os.path.abspath(path))
        link_info = os.lstat(p)
        info = os.stat(p) if stat.S_ISLNK(link_info.st_mode) else link_info
        return cls(
            path=p,
            size=info.st_size,
            mode=stat.S_IMODE(info.st_mode),
            modified=datetime.fromtimestamp(info.st_mtime),
            accessed=datetime.fromtimestamp(info.st_atime),
            is_directory=stat.S_ISDIR(info.st_mode),
            is_symlink=stat.S_ISLNK(link_info.st_mode),
            owner=lookup_owner(info.st_uid),
        )

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        """Lower-cased suffix without the dot; empty for ``README`` or ``.bashrc``."""
        return self.path.suffix[1:].lower()

    @property
    def permissions(self) -> str:
        return format_permissions(self.mode)

    @property
    def is_executable(self) -> bool:
        return bool(self.mode & EXECUTE_BITS)

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith(".")

    def with_mode(self, mode: int) -> FileEntry:
        """Return a copy reflecting new permission bits."""
        return replace(self, mode=stat.S_IMODE(mode))

    def with_owner(self, owner: str) -> FileEntry:
        return replace(self, owner=owner)

    def with_modified(self, modified: datetime) -> FileEntry:
        return replace(self, modified=modified)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping of all attributes."""
        return {
            "path": str(self.path),
            "name": self.name,
            "extension": self.extension,
            "size": self.size,
            "permissions": self.permissions,
            "mode": f"{self.mode:o}",
            "owner": self.owner,
            "modified": self.modified.isoformat(timespec="seconds"),
            "accessed": self.accessed.isoformat(timespec="seconds"),
            "is_directory": self.is_directory,
            "is_symlink": self.is_symlink,
            "is_executable": self.is_executable,
            "is_hidden": self.is_hidden,
        }
