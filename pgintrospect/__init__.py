"""
pgintrospect - PostgreSQL catalog introspection

Builds an in-memory model of a database's schemas, tables, columns, indexes
and foreign keys under inclusion/exclusion filters, including the foreign
keys outside of those filters that depend on the fetched indexes.
"""

from pgintrospect.exceptions import (
    AmbiguousTableError,
    MissingIndexError,
    PgIntrospectError,
    TableNotFoundError,
    UnknownRuleCodeError,
)
from pgintrospect.executor import PsycopgExecutor, QueryExecutor
from pgintrospect.fetcher import CatalogFetcher, fetch_catalog, list_schemas, list_table_oids
from pgintrospect.filters import (
    Filter,
    FilterClause,
    TableRef,
    compile_filter,
    filter_from_catalog,
    filter_from_table,
    table_pattern,
)
from pgintrospect.models import (
    Catalog,
    Column,
    DependencyForeignKey,
    ForeignKey,
    Index,
    Schema,
    StubTable,
    Table,
)

__version__ = "0.1.0"

__all__ = [
    "AmbiguousTableError",
    "Catalog",
    "CatalogFetcher",
    "Column",
    "DependencyForeignKey",
    "Filter",
    "FilterClause",
    "ForeignKey",
    "Index",
    "MissingIndexError",
    "PgIntrospectError",
    "PsycopgExecutor",
    "QueryExecutor",
    "Schema",
    "StubTable",
    "Table",
    "TableNotFoundError",
    "TableRef",
    "UnknownRuleCodeError",
    "compile_filter",
    "fetch_catalog",
    "filter_from_catalog",
    "filter_from_table",
    "list_schemas",
    "list_table_oids",
    "table_pattern",
    "__version__",
]
