"""fmql - query and update files with SQL."""

from fmql.attributes import ATTRIBUTES, Attribute, AttributeKind
from fmql.config import EngineConfig
from fmql.engine import QueryEngine, QueryResult, run_query
from fmql.entry import FileEntry
from fmql.errors import (
    EmptyUpdateError,
    QuerySyntaxError,
    ResolutionError,
    TranslationError,
)
from fmql.listing import ListingOptions, ListingResult, list_directory
from fmql.query import Operation, Query

__all__ = [
    # Main API
    "QueryEngine",
    "QueryResult",
    "run_query",
    "list_directory",
    "ListingOptions",
    "ListingResult",
    "EngineConfig",
    # Data model
    "FileEntry",
    "Query",
    "Operation",
    "Attribute",
    "AttributeKind",
    "ATTRIBUTES",
    # Errors
    "QuerySyntaxError",
    "TranslationError",
    "ResolutionError",
    "EmptyUpdateError",
]

__version__ = "0.3.0"
