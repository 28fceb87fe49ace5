"""
Catalog fetching.

A catalog is fetched in four passes, always in this order:

1. columns: creates schemas and tables on first reference
2. indexes: attached to tables from pass 1
3. foreign keys: between two tables from pass 1
4. foreign key dependencies: foreign keys outside of the filters that
   reference an index from pass 2

Each pass needs the objects created by the previous ones, so the passes run
sequentially on a single executor.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from pgintrospect import queries
from pgintrospect.exceptions import (
    AmbiguousTableError,
    MissingIndexError,
    TableNotFoundError,
)
from pgintrospect.executor import QueryExecutor
from pgintrospect.filters import (
    Filter,
    TableRef,
    filter_clause,
    filter_from_catalog,
    filter_from_table,
    parse_table_ref,
)
from pgintrospect.models import (
    Catalog,
    Column,
    DependencyForeignKey,
    ForeignKey,
    Index,
    StubTable,
)
from pgintrospect.rules import fk_match_rule_to_sql, fk_rule_to_action

logger = logging.getLogger(__name__)


def fetch_catalog(
    executor: QueryExecutor,
    dbname: str,
    *,
    table: Optional[Union[TableRef, str]] = None,
    source_catalog: Optional[Catalog] = None,
    including: Optional[Filter] = None,
    excluding: Optional[Filter] = None,
    relkind: str = "r",
) -> Catalog:
    """
    Fetch the catalog of a database.

    The including filter is the first of: including, a filter built from
    table, a filter built from source_catalog. Without any of them the whole
    database is in scope, minus excluding.

    Args:
        executor: Session on the database to introspect
        dbname: Name given to the resulting catalog
        table: Single table to fetch; the result must then hold exactly one table
        source_catalog: Catalog whose tables and views should be found here
        including: Filter of tables to fetch
        excluding: Filter of tables to leave out
        relkind: pg_class.relkind of the relations to fetch (r, v, m, ...)

    Returns:
        Populated catalog

    Raises:
        TableNotFoundError: If table was given and nothing matched it
        AmbiguousTableError: If table was given and several tables matched it
    """
    if isinstance(table, str):
        table = parse_table_ref(table)

    if including is None:
        if table is not None:
            including = filter_from_table(executor, table)
        elif source_catalog is not None:
            including = filter_from_catalog(executor, source_catalog)

    catalog = Catalog(name=dbname)

    fetch_columns(executor, catalog, relkind, including=including, excluding=excluding)
    fetch_indexes(executor, catalog, relkind, including=including, excluding=excluding)
    fetch_foreign_keys(executor, catalog, including=including, excluding=excluding)
    fetch_fkey_dependencies(executor, catalog)

    logger.debug(
        f"fetch_catalog: {catalog.count_tables()} tables, "
        f"{catalog.count_indexes()} indexes, "
        f"{catalog.count_fkeys()} fkeys, "
        f"{catalog.count_fkey_deps()} fkey dependencies"
    )

    if table is not None:
        check_single_table(catalog, table)

    return catalog


def check_single_table(catalog: Catalog, table: Union[TableRef, str]) -> None:
    """
    Ensure a single-table fetch found exactly one table.

    Raises:
        TableNotFoundError: If the catalog holds no table
        AmbiguousTableError: If the catalog holds several tables
    """
    tables = list(catalog.iter_relations())
    if len(tables) == 1:
        return
    if not tables:
        raise TableNotFoundError(str(table))
    raise AmbiguousTableError(str(table), [t.qualified_name for t in tables])


def fetch_columns(
    executor: QueryExecutor,
    catalog: Catalog,
    relkind: str = "r",
    including: Optional[Filter] = None,
    excluding: Optional[Filter] = None,
) -> Catalog:
    """
    Fetch columns of the relations of kind relkind, creating their tables.

    Row shape: schema, table, table oid, column, type name, typmod,
    nullable, default.
    """
    sql = queries.columns_query(
        relkind,
        including=filter_clause(including, "n.nspname", "c.relname"),
        excluding=filter_clause(excluding, "n.nspname", "c.relname", negate=True),
    )

    for (
        schema_name,
        table_name,
        table_oid,
        column_name,
        type_name,
        typmod,
        nullable,
        default,
    ) in executor.query(sql):
        schema = catalog.find_or_create_schema(schema_name)
        table = schema.find_or_create_table(table_name, oid=table_oid, kind=relkind)
        table.add_column(
            Column(
                name=column_name,
                type_name=type_name,
                typmod=typmod,
                nullable=nullable,
                default=default,
            )
        )

    return catalog


def fetch_indexes(
    executor: QueryExecutor,
    catalog: Catalog,
    relkind: str = "r",
    including: Optional[Filter] = None,
    excluding: Optional[Filter] = None,
) -> Catalog:
    """
    Fetch indexes of the catalog tables.

    Row shape: schema, table, index, index oid, primary, unique, index
    definition, constraint name, constraint definition.

    Every row belongs to a table from the columns pass: both passes use the
    same filters and relation kind.
    """
    sql = queries.indexes_query(
        relkind,
        including=filter_clause(including, "rn.nspname", "r.relname"),
        excluding=filter_clause(excluding, "rn.nspname", "r.relname", negate=True),
    )

    for (
        schema_name,
        table_name,
        index_name,
        index_oid,
        primary,
        unique,
        index_sql,
        conname,
        condef,
    ) in executor.query(sql):
        table = catalog.get_table(schema_name, table_name)
        table.add_index(
            Index(
                name=index_name,
                oid=index_oid,
                table=table,
                primary=primary,
                unique=unique,
                sql=index_sql,
                conname=conname,
                condef=condef,
            )
        )

    return catalog


def fetch_foreign_keys(
    executor: QueryExecutor,
    catalog: Catalog,
    including: Optional[Filter] = None,
    excluding: Optional[Filter] = None,
) -> Catalog:
    """
    Fetch foreign keys between catalog tables.

    Both the local and the foreign table are matched against the filters.
    A foreign key with a table missing from the catalog is skipped.
    """
    sql = queries.fkeys_query(
        including=filter_clause(including, "n.nspname", "c.relname"),
        excluding=filter_clause(excluding, "n.nspname", "c.relname", negate=True),
        foreign_including=filter_clause(including, "nf.nspname", "cf.relname"),
        foreign_excluding=filter_clause(excluding, "nf.nspname", "cf.relname", negate=True),
    )

    for (
        schema_name,
        table_name,
        fschema_name,
        ftable_name,
        conoid,
        conname,
        condef,
        updrule,
        delrule,
        matchrule,
        deferrable,
        deferred,
        conkey,
        confkey,
    ) in executor.query(sql):
        update_rule = fk_rule_to_action(updrule)
        delete_rule = fk_rule_to_action(delrule)
        match_rule = fk_match_rule_to_sql(matchrule)

        table = catalog.find_table(schema_name, table_name)
        ftable = catalog.find_table(fschema_name, ftable_name)

        if table is None or ftable is None:
            logger.info(
                f"Skipping foreign key {conname}: "
                f"{schema_name}.{table_name} -> {fschema_name}.{ftable_name} "
                f"is not entirely within the catalog"
            )
            continue

        table.add_fkey(
            ForeignKey(
                name=conname,
                oid=conoid,
                condef=condef,
                table=table,
                foreign_table=ftable,
                columns=split_column_list(conkey),
                foreign_columns=split_column_list(confkey),
                update_rule=update_rule,
                delete_rule=delete_rule,
                match_rule=match_rule,
                deferrable=deferrable,
                initially_deferred=deferred,
            )
        )

    return catalog


def split_column_list(columns: Optional[str]) -> list[str]:
    """Split a comma-joined column list."""
    if not columns:
        return []
    return columns.split(",")


def fetch_fkey_dependencies(executor: QueryExecutor, catalog: Catalog) -> Catalog:
    """
    Attach to catalog indexes the foreign keys that depend on them.

    Indexes of the catalog are dropped and recreated around a data load. A
    foreign key referencing one of them must be dropped first and recreated
    afterwards, even when neither of its tables is part of the catalog.
    Such foreign keys are recorded in Index.fkey_deps as dependency stubs;
    they never enter the catalog schemas.

    Raises:
        MissingIndexError: If a dependency references an index that is not
            part of the catalog
    """
    pkey_oids: list[int] = []
    fkey_oids: list[int] = []
    index_by_oid: dict[int, Index] = {}

    for table in catalog.iter_relations():
        for index in table.indexes.values():
            pkey_oids.append(index.oid)
            index_by_oid[index.oid] = index
        fkey_oids.extend(table.fkey_oids())

    if not pkey_oids:
        logger.debug("fetch_fkey_dependencies: no index in catalog, nothing to do")
        return catalog

    sql = queries.fkey_dependencies_query(pkey_oids, fkey_oids)

    for (
        schema_name,
        table_name,
        fschema_name,
        ftable_name,
        conoid,
        conname,
        condef,
        index_oid,
    ) in executor.query(sql):
        index = index_by_oid.get(index_oid)
        if index is None:
            raise MissingIndexError(index_oid, conname)

        index.add_fkey_dep(
            DependencyForeignKey(
                name=conname,
                oid=conoid,
                condef=condef,
                table=StubTable(schema_name=schema_name, name=table_name),
                foreign_table=StubTable(schema_name=fschema_name, name=ftable_name),
            )
        )

    return catalog


def list_schemas(executor: QueryExecutor) -> list[str]:
    """Names of the user schemas of the database."""
    return [row[0] for row in executor.query(queries.LIST_SCHEMAS_SQL)]


def list_table_oids(executor: QueryExecutor, table_names: list[str]) -> dict[str, int]:
    """Resolve table names (search_path rules apply) to oids in one query."""
    if not table_names:
        return {}
    return {name: oid for name, oid in executor.query(queries.table_oids_query(table_names))}


class CatalogFetcher:
    """
    Fetch catalogs through one executor.

    Example:
        >>> with PsycopgExecutor.connect("postgresql://localhost/app") as executor:
        ...     catalog = CatalogFetcher(executor).fetch("app", including={"public": ["^orders$"]})
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def fetch(
        self,
        dbname: str,
        *,
        table: Optional[Union[TableRef, str]] = None,
        source_catalog: Optional[Catalog] = None,
        including: Optional[Filter] = None,
        excluding: Optional[Filter] = None,
        relkind: str = "r",
    ) -> Catalog:
        """Fetch a catalog, see fetch_catalog()."""
        return fetch_catalog(
            self.executor,
            dbname,
            table=table,
            source_catalog=source_catalog,
            including=including,
            excluding=excluding,
            relkind=relkind,
        )

    def list_schemas(self) -> list[str]:
        return list_schemas(self.executor)

    def table_oids(self, table_names: list[str]) -> dict[str, int]:
        return list_table_oids(self.executor, table_names)
