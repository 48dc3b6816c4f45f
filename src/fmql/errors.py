"""Exceptions raised by the fmql query pipeline.

Only these errors stop a query. Per-entry problems found while walking the
tree or applying mutations are collected as data alongside the results.
"""

from __future__ import annotations


class QuerySyntaxError(SyntaxError):
    """The query text does not parse."""


class TranslationError(ValueError):
    """The query parses but uses something the engine cannot run.

    Raised for unsupported SQL constructs, unknown attributes, malformed
    literals and invalid assignment lists. Always raised before any
    filesystem access.
    """


class ResolutionError(ValueError):
    """The FROM target does not exist, is not a directory, or matched nothing."""


class EmptyUpdateError(RuntimeError):
    """An UPDATE query whose predicate matched no entries."""
