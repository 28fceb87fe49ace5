"""
Schema-scoped table filters.

A filter maps a schema name to a list of regular expressions matched against
table names:

    >>> {"public": ["^orders$", "^order_lines$"], "sales": ["^orders$"]}

Filters are compiled into SQL predicates that the catalog queries splice in
as an optional clause (see ``FilterClause``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from pgintrospect import queries
from pgintrospect.exceptions import InvalidFilterError

if TYPE_CHECKING:
    from pgintrospect.executor import QueryExecutor
    from pgintrospect.models import Catalog

Filter = dict[str, list[str]]


@dataclass(frozen=True)
class TableRef:
    """A possibly schema-qualified table name, as given by a user."""

    name: str
    schema: Optional[str] = None

    def __str__(self) -> str:
        if self.schema is None:
            return self.name
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class FilterClause:
    """
    Compiled filter, as two independent template substitutions.

    ``present`` says whether the clause is emitted at all, ``text`` is the
    predicate. A missing filter is ``present=False``: the query then has no
    clause, which is not the same as a clause that is always true.
    """

    present: bool
    text: str = ""

    def render(self, keyword: str = "and") -> str:
        """Render the clause for a WHERE list, or nothing when not present."""
        if not self.present:
            return ""
        return f"{keyword} ({self.text})"


NO_FILTER = FilterClause(present=False)


def ensure_unquoted(identifier: str) -> str:
    """Strip SQL identifier quoting: '"Order Lines"' -> 'Order Lines'."""
    if len(identifier) >= 2 and identifier[0] == '"' and identifier[-1] == '"':
        return identifier[1:-1].replace('""', '"')
    return identifier


def parse_table_ref(text: str) -> TableRef:
    """
    Parse "table", "schema.table" or quoted variants into a TableRef.

    Dots inside double quotes are part of the identifier. Quoting is kept, so
    that case-sensitive names survive until they reach the database.
    """
    in_quotes = False
    for position, char in enumerate(text):
        if char == '"':
            in_quotes = not in_quotes
        elif char == "." and not in_quotes:
            schema, name = text[:position], text[position + 1 :]
            if not schema or not name:
                raise ValueError(f"Invalid table name: {text!r}")
            return TableRef(name=name, schema=schema)
    if not text:
        raise ValueError("Empty table name")
    return TableRef(name=text)


def table_pattern(name: str) -> str:
    """Anchored pattern matching exactly the (unquoted) table name."""
    return f"^{re.escape(ensure_unquoted(name))}$"


def parse_filter_spec(specs: list[str]) -> Filter:
    """
    Build a filter from "schema:pattern" strings, as given on the command line.

    Raises:
        InvalidFilterError: If a spec has no schema or no pattern
    """
    result: Filter = {}
    for spec in specs:
        schema, sep, pattern = spec.partition(":")
        if not sep:
            raise InvalidFilterError(spec, "missing ':' between schema and pattern")
        if not schema or not pattern:
            raise InvalidFilterError(spec, "schema and pattern must not be empty")
        result.setdefault(schema, []).append(pattern)
    return result


def query_table_schema(executor: QueryExecutor, table: Union[TableRef, str]) -> str:
    """Schema where the current search_path finds table."""
    name = table.name if isinstance(table, TableRef) else table
    return executor.scalar(queries.table_schema_query(name))


def filter_from_table(executor: QueryExecutor, table: Union[TableRef, str]) -> Filter:
    """
    Filter selecting a single table.

    Unqualified names are resolved against the connection search_path.
    """
    if isinstance(table, str):
        table = parse_table_ref(table)

    if table.schema is not None:
        schema_name = ensure_unquoted(table.schema)
    else:
        schema_name = query_table_schema(executor, table)

    return {schema_name: [table_pattern(table.name)]}


def filter_from_catalog(executor: QueryExecutor, catalog: Catalog) -> Filter:
    """
    Filter selecting, on the target database, every table and view of catalog.

    Tables are placed in their schema's target name when the caller remapped
    it, in their own schema name otherwise, and in the target's
    current_schema() when they have no schema at all.
    """
    including: Filter = {}
    current_schema: Optional[str] = None

    for table in catalog.iter_relations():
        schema_name = table.schema.target_name or table.schema.name
        if schema_name is None:
            if current_schema is None:
                current_schema = executor.scalar(queries.CURRENT_SCHEMA_SQL)
            schema_name = current_schema
        including.setdefault(ensure_unquoted(schema_name), []).append(
            table_pattern(table.name)
        )

    return including


def compile_filter(
    filter: Optional[Filter],
    schema_col: str,
    table_col: str,
    negate: bool = False,
) -> list[str]:
    """
    Compile a filter into one SQL predicate per (schema, pattern) pair.

    Args:
        filter: Filter to compile, None or empty for no predicate at all
        schema_col: Column holding the schema name in the target query
        table_col: Column holding the table name in the target query
        negate: Build predicates rejecting the matching tables

    Returns:
        Predicates such as "n.nspname = 'public' and c.relname ~ '^orders$'"
    """
    if not filter:
        return []

    predicates = []
    for schema_name, patterns in filter.items():
        for pattern in patterns:
            match = (
                f"{schema_col} = {queries.quote_literal(schema_name)}"
                f" and {table_col} ~ {queries.quote_literal(pattern)}"
            )
            predicates.append(f"not ({match})" if negate else match)
    return predicates


def filter_clause(
    filter: Optional[Filter],
    schema_col: str,
    table_col: str,
    negate: bool = False,
) -> FilterClause:
    """
    Compile a filter into a FilterClause.

    Including predicates are alternatives (joined with or), excluding ones
    must all hold (joined with and).
    """
    predicates = compile_filter(filter, schema_col, table_col, negate=negate)
    if not predicates:
        return NO_FILTER
    joiner = " and " if negate else " or "
    return FilterClause(present=True, text=joiner.join(predicates))
