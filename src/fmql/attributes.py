"""The queryable columns of a file entry.

``ATTRIBUTES`` is the single table of what a query can reference. Adding a
column means adding one entry here; literal coercion and comparison are
driven by the attribute's ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from fmql.entry import FileEntry, format_permissions
from fmql.errors import TranslationError


class AttributeKind(Enum):
    """How an attribute's values are typed, coerced and compared."""

    INTEGER = "integer"
    STRING = "string"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"
    PERMISSIONS = "permissions"

    @property
    def is_ordered(self) -> bool:
        """Return whether <, >, <=, >= make sense for this kind."""
        return self is not AttributeKind.BOOLEAN


@dataclass(frozen=True)
class Attribute:
    """A named, typed accessor over a FileEntry."""

    name: str
    kind: AttributeKind
    accessor: Callable[[FileEntry], Any]
    assignable: bool = False

    def value(self, entry: FileEntry) -> Any:
        return self.accessor(entry)


def _attr(
    name: str,
    kind: AttributeKind,
    accessor: Callable[[FileEntry], Any],
    assignable: bool = False,
) -> tuple[str, Attribute]:
    return name, Attribute(name=name, kind=kind, accessor=accessor, assignable=assignable)


ATTRIBUTES: dict[str, Attribute] = dict([
    _attr("name", AttributeKind.STRING, lambda e: e.name),
    _attr("path", AttributeKind.STRING, lambda e: str(e.path)),
    _attr("extension", AttributeKind.STRING, lambda e: e.extension),
    _attr("size", AttributeKind.INTEGER, lambda e: e.size),
    _attr("modified", AttributeKind.TIMESTAMP, lambda e: e.modified, assignable=True),
    _attr("accessed", AttributeKind.TIMESTAMP, lambda e: e.accessed),
    _attr("permissions", AttributeKind.PERMISSIONS, lambda e: e.mode, assignable=True),
    _attr("owner", AttributeKind.STRING, lambda e: e.owner, assignable=True),
    _attr("is_directory", AttributeKind.BOOLEAN, lambda e: e.is_directory),
    _attr("is_symlink", AttributeKind.BOOLEAN, lambda e: e.is_symlink),
    _attr("is_executable", AttributeKind.BOOLEAN, lambda e: e.is_executable),
    _attr("is_hidden", AttributeKind.BOOLEAN, lambda e: e.is_hidden),
])


def resolve_attribute(name: str) -> Attribute:
    """Look up an attribute by name (case-insensitive).

    Raises:
        TranslationError: If no such attribute exists.
    """
    attribute = ATTRIBUTES.get(name.lower())
    if attribute is None:
        valid = ", ".join(sorted(ATTRIBUTES))
        raise TranslationError(f"Unknown attribute '{name}'. Valid attributes: {valid}")
    return attribute


def text_value(attribute: Attribute, entry: FileEntry) -> str:
    """Return the textual form of an attribute, as seen by LIKE and REGEXP."""
    value = attribute.value(entry)
    if value is None:
        return ""
    kind = attribute.kind
    if kind is AttributeKind.PERMISSIONS:
        return format_permissions(value)
    if kind is AttributeKind.TIMESTAMP:
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if kind is AttributeKind.BOOLEAN:
        return "true" if value else "false"
    return str(value)
