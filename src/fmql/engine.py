"""Query execution: parse, translate, walk, filter, mutate and assemble."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from fmql.assemble import EntryGroup, group_entries, page_entries, sort_entries
from fmql.config import EngineConfig
from fmql.entry import FileEntry
from fmql.errors import EmptyUpdateError
from fmql.evaluator import matches
from fmql.mutation import Filesystem, MutationExecutor, MutationOutcome
from fmql.parsing import SqlParser, Statement
from fmql.query import Query
from fmql.traversal import SkippedEntry, TraversalPlanner, resolve_roots
from fmql.translate import translate

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result of a query execution.

    ``entries`` are sorted and paged; for an UPDATE they reflect the new
    values of every entry that was changed. ``groups`` is empty unless the
    query has a GROUP BY.
    """

    query: Query
    entries: list[FileEntry]
    groups: list[EntryGroup] = field(default_factory=list)
    outcomes: list[MutationOutcome] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    @property
    def failures(self) -> list[MutationOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def updated(self) -> list[MutationOutcome]:
        return [o for o in self.outcomes if o.succeeded]


class QueryEngine:
    """Runs fmql queries against the filesystem."""

    def __init__(self, config: EngineConfig | None = None, filesystem: Filesystem | None = None) -> None:
        self.config = config or EngineConfig()
        self.parser = SqlParser()
        self.mutator = MutationExecutor(filesystem)

    def parse(self, text: str) -> Statement:
        return self.parser.parse(text)

    def translate(self, statement: Statement) -> Query:
        return translate(statement, self.config)

    def prepare(self, text: str) -> Query:
        """Parse and translate without touching the filesystem."""
        query = self.translate(self.parse(text))
        logger.debug(f"Query plan: {query}")
        return query

    def execute(self, query: Query) -> QueryResult:
        """Run a translated query.

        Raises:
            ResolutionError: If the FROM target cannot be resolved.
            EmptyUpdateError: If an UPDATE matches no entries.
        """
        roots = resolve_roots(query.root, query.include_hidden)
        planner = TraversalPlanner(
            roots,
            recursive=query.recursive,
            include_hidden=query.include_hidden,
            follow_symlinks=self.config.follow_symlinks,
        )
        matched = [entry for entry in planner.walk() if matches(query.predicate, entry)]
        # Paging selects which entries an UPDATE touches, so it runs first
        matched = page_entries(sort_entries(matched, query.order_by), query.limit, query.offset)
        logger.debug(f"{len(matched)} entries matched under {', '.join(str(r) for r in roots)}")

        outcomes: list[MutationOutcome] = []
        if query.is_update:
            if not matched:
                raise EmptyUpdateError(f"UPDATE matched no entries in {query.root}")
            outcomes = self.mutator.apply(matched, query.assignments)
            matched = sort_entries([o.entry for o in outcomes], query.order_by)

        groups = group_entries(matched, query.group_by, _group_roots(roots)) if query.group_by else []
        return QueryResult(
            query=query,
            entries=matched,
            groups=groups,
            outcomes=outcomes,
            skipped=planner.skipped,
        )

    def run(self, text: str) -> QueryResult:
        """Parse, translate and execute a query string."""
        return self.execute(self.prepare(text))


def _group_roots(roots: list[Path]) -> list[Path]:
    return [r if r.is_dir() else r.parent for r in roots]


def run_query(text: str, config: EngineConfig | None = None) -> QueryResult:
    """Run a single query with a fresh engine."""
    return QueryEngine(config).run(text)
