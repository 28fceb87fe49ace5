"""Plain-data rendering of a catalog, for JSON output."""

from typing import Any

from pgintrospect.models import Catalog, DependencyForeignKey, ForeignKey, Index, Table


def fkey_to_dict(fkey: ForeignKey) -> dict[str, Any]:
    return {
        "name": fkey.name,
        "oid": fkey.oid,
        "definition": fkey.condef,
        "table": fkey.table.qualified_name,
        "foreign_table": fkey.foreign_table.qualified_name,
        "columns": fkey.columns,
        "foreign_columns": fkey.foreign_columns,
        "update_rule": fkey.update_rule,
        "delete_rule": fkey.delete_rule,
        "match_rule": fkey.match_rule,
        "deferrable": fkey.deferrable,
        "initially_deferred": fkey.initially_deferred,
    }


def fkey_dep_to_dict(fkey: DependencyForeignKey) -> dict[str, Any]:
    return {
        "name": fkey.name,
        "oid": fkey.oid,
        "definition": fkey.condef,
        "table": fkey.table.qualified_name,
        "foreign_table": fkey.foreign_table.qualified_name,
    }


def index_to_dict(index: Index) -> dict[str, Any]:
    return {
        "name": index.name,
        "oid": index.oid,
        "primary": index.primary,
        "unique": index.unique,
        "definition": index.sql,
        "constraint": index.conname,
        "constraint_definition": index.condef,
        "fkey_deps": [fkey_dep_to_dict(dep) for dep in index.fkey_deps],
    }


def table_to_dict(table: Table) -> dict[str, Any]:
    return {
        "name": table.name,
        "oid": table.oid,
        "kind": table.kind,
        "columns": [
            {
                "name": column.name,
                "type": column.type_name,
                "typmod": column.typmod,
                "nullable": column.nullable,
                "default": column.default,
            }
            for column in table.columns
        ],
        "indexes": [index_to_dict(index) for index in table.indexes.values()],
        "fkeys": [fkey_to_dict(fkey) for fkey in table.fkeys.values()],
    }


def catalog_to_dict(catalog: Catalog) -> dict[str, Any]:
    """Render catalog as nested dicts and lists, preserving catalog order."""
    return {
        "name": catalog.name,
        "schemas": [
            {
                "name": schema.name,
                "tables": [table_to_dict(table) for table in schema.tables],
                "views": [table_to_dict(view) for view in schema.views],
            }
            for schema in catalog.schemas
        ],
    }


def catalog_summary(catalog: Catalog) -> dict[str, int]:
    """Object counts of a catalog."""
    return {
        "schemas": len(catalog.schemas),
        "tables": catalog.count_tables(),
        "views": catalog.count_views(),
        "columns": catalog.count_columns(),
        "indexes": catalog.count_indexes(),
        "fkeys": catalog.count_fkeys(),
        "fkey_deps": catalog.count_fkey_deps(),
    }
