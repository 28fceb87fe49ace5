"""
Catalog data model.

An in-memory object graph describing a PostgreSQL database:
Catalog -> Schema -> Table/View -> Column, Index, ForeignKey.

Tables, indexes and foreign keys are reachable both by name and by oid. The
two lookups are kept in step by the ``add_*`` methods of the owning object and
must not be mutated directly.

Foreign keys that only matter because they depend on an index of the catalog
(see ``pgintrospect.fetcher.fetch_fkey_dependencies``) are represented by the
minimal ``DependencyForeignKey`` and ``StubTable`` types so that they can never
be mistaken for migratable catalog entries.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Optional

from pgintrospect.rules import VIEW_KINDS


def format_qualified_name(schema_name: Optional[str], name: str) -> str:
    """Format schema.name, or just name when there is no schema."""
    if schema_name is None:
        return name
    return f"{schema_name}.{name}"


@dataclass
class Column:
    """Represents a table column with its properties."""

    name: str
    type_name: str
    typmod: int
    nullable: bool
    default: Optional[str] = None


@dataclass(eq=False)
class StubTable:
    """
    Name-only table reference used by dependency foreign keys.

    Stub tables live outside of the catalog schemas: they are never counted,
    never own columns and never take part in a migration.
    """

    schema_name: Optional[str]
    name: str

    is_stub = True

    @property
    def qualified_name(self) -> str:
        return format_qualified_name(self.schema_name, self.name)


@dataclass(eq=False)
class DependencyForeignKey:
    """
    Foreign key outside of the catalog scope that depends on a catalog index.

    Only the definition text is kept: the constraint has to be dropped before
    its index and recreated verbatim afterwards.
    """

    name: str
    oid: int
    condef: str
    table: StubTable
    foreign_table: StubTable

    is_stub = True


@dataclass(eq=False)
class ForeignKey:
    """
    Foreign key constraint between two catalog tables.

    Attributes:
        name: Constraint name
        oid: Constraint oid (pg_constraint.oid)
        condef: Constraint definition as given by pg_get_constraintdef()
        table: Local (owning) table
        foreign_table: Referenced table
        columns: Local column names, positionally matching foreign_columns
        foreign_columns: Referenced column names
        update_rule: ON UPDATE action (NO ACTION, RESTRICT, CASCADE, ...)
        delete_rule: ON DELETE action
        match_rule: MATCH FULL, PARTIAL or SIMPLE
        deferrable: Whether the constraint is DEFERRABLE
        initially_deferred: Whether the constraint is INITIALLY DEFERRED
    """

    name: str
    oid: int
    condef: str
    table: Table = field(repr=False)
    foreign_table: Table = field(repr=False)
    columns: list[str] = field(default_factory=list)
    foreign_columns: list[str] = field(default_factory=list)
    update_rule: str = "NO ACTION"
    delete_rule: str = "NO ACTION"
    match_rule: str = "SIMPLE"
    deferrable: bool = False
    initially_deferred: bool = False

    is_stub = False

    def is_self_reference(self) -> bool:
        """Check if this FK references its own table."""
        return self.table is self.foreign_table


@dataclass(eq=False)
class Index:
    """
    Index of a catalog table, possibly backing a PRIMARY KEY or UNIQUE constraint.

    ``fkey_deps`` lists the out-of-scope foreign keys that reference this
    index, in discovery order. They must be dropped before the index and
    recreated after it.
    """

    name: str
    oid: int
    table: Table = field(repr=False)
    primary: bool = False
    unique: bool = False
    sql: str = ""
    conname: Optional[str] = None
    condef: Optional[str] = None
    fkey_deps: list[DependencyForeignKey] = field(default_factory=list)

    @property
    def schema(self) -> Schema:
        return self.table.schema

    @property
    def backs_constraint(self) -> bool:
        """True when the index was created by a named constraint."""
        return self.conname is not None

    def add_fkey_dep(self, fkey: DependencyForeignKey) -> None:
        """Record a dependent foreign key."""
        self.fkey_deps.append(fkey)


@dataclass(eq=False)
class Table:
    """
    Table (or view) of a schema.

    Columns keep catalog order. Indexes and foreign keys are keyed by name
    and additionally by oid.
    """

    name: str
    schema: Schema = field(repr=False)
    oid: Optional[int] = None
    kind: str = "r"
    columns: list[Column] = field(default_factory=list)
    indexes: dict[str, Index] = field(default_factory=dict, repr=False)
    fkeys: dict[str, ForeignKey] = field(default_factory=dict, repr=False)
    _index_by_oid: dict[int, Index] = field(default_factory=dict, repr=False)
    _fkey_by_oid: dict[int, ForeignKey] = field(default_factory=dict, repr=False)

    is_stub = False

    @property
    def is_view(self) -> bool:
        return self.kind in VIEW_KINDS

    @property
    def qualified_name(self) -> str:
        return format_qualified_name(self.schema.name, self.name)

    def add_column(self, column: Column) -> Column:
        """Append a column, keeping catalog order."""
        self.columns.append(column)
        return column

    def add_index(self, index: Index) -> Index:
        """Add an index, replacing any index of the same name."""
        previous = self.indexes.get(index.name)
        if previous is not None:
            self._index_by_oid.pop(previous.oid, None)
        self.indexes[index.name] = index
        self._index_by_oid[index.oid] = index
        return index

    def add_fkey(self, fkey: ForeignKey) -> ForeignKey:
        """Add a foreign key, replacing any foreign key of the same name."""
        previous = self.fkeys.get(fkey.name)
        if previous is not None:
            self._fkey_by_oid.pop(previous.oid, None)
        self.fkeys[fkey.name] = fkey
        self._fkey_by_oid[fkey.oid] = fkey
        return fkey

    def find_index(self, name: str) -> Optional[Index]:
        return self.indexes.get(name)

    def find_index_by_oid(self, oid: int) -> Optional[Index]:
        return self._index_by_oid.get(oid)

    def find_fkey(self, name: str) -> Optional[ForeignKey]:
        return self.fkeys.get(name)

    def find_fkey_by_oid(self, oid: int) -> Optional[ForeignKey]:
        return self._fkey_by_oid.get(oid)

    def index_oids(self) -> list[int]:
        return list(self._index_by_oid)

    def fkey_oids(self) -> list[int]:
        return list(self._fkey_by_oid)

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


@dataclass(eq=False)
class Schema:
    """
    Schema of a catalog.

    Tables and views share one namespace and one ordering; they are
    counted separately.

    Attributes:
        name: Schema name in the database the catalog was fetched from
        target_name: Schema name to use on the other side of a migration,
            when the caller remaps schemas
    """

    name: Optional[str]
    catalog: Optional[Catalog] = field(default=None, repr=False)
    target_name: Optional[str] = None
    _relations: dict[str, Table] = field(default_factory=dict, repr=False)

    @property
    def relations(self) -> list[Table]:
        """Tables and views in creation order."""
        return list(self._relations.values())

    @property
    def tables(self) -> list[Table]:
        return [table for table in self._relations.values() if not table.is_view]

    @property
    def views(self) -> list[Table]:
        return [table for table in self._relations.values() if table.is_view]

    def find_table(self, name: str) -> Optional[Table]:
        """Find a table or view by name."""
        return self._relations.get(name)

    def find_or_create_table(
        self, name: str, oid: Optional[int] = None, kind: str = "r"
    ) -> Table:
        """
        Return the table called name, creating it on first reference.

        An existing table keeps its kind; its oid is filled in when it was
        not known yet.
        """
        table = self._relations.get(name)
        if table is None:
            table = Table(name=name, schema=self, oid=oid, kind=kind)
            self._relations[name] = table
        elif table.oid is None and oid is not None:
            table.oid = oid
        if self.catalog is not None and table.oid is not None:
            self.catalog._table_by_oid[table.oid] = table
        return table

    def find_or_create_view(self, name: str, oid: Optional[int] = None) -> Table:
        return self.find_or_create_table(name, oid=oid, kind="v")


@dataclass(eq=False)
class Catalog:
    """
    Root of the catalog model: the structure of one database.

    Schema names are unique within a catalog. The catalog owns all lookup
    state; nothing is registered globally.
    """

    name: str
    _schemas: dict[Optional[str], Schema] = field(default_factory=dict, repr=False)
    _table_by_oid: dict[int, Table] = field(default_factory=dict, repr=False)

    @property
    def schemas(self) -> list[Schema]:
        return list(self._schemas.values())

    def find_schema(self, name: Optional[str]) -> Optional[Schema]:
        return self._schemas.get(name)

    def find_or_create_schema(self, name: Optional[str]) -> Schema:
        """Return the schema called name, creating it on first reference."""
        schema = self._schemas.get(name)
        if schema is None:
            schema = Schema(name=name, catalog=self)
            self._schemas[name] = schema
        return schema

    def find_table(self, schema_name: Optional[str], table_name: str) -> Optional[Table]:
        """Find a table by schema and name, None when either is unknown."""
        schema = self._schemas.get(schema_name)
        if schema is None:
            return None
        return schema.find_table(table_name)

    def find_table_by_oid(self, oid: int) -> Optional[Table]:
        """Find a table or view by pg_class oid."""
        return self._table_by_oid.get(oid)

    def get_table(self, schema_name: Optional[str], table_name: str) -> Table:
        """
        Find a table that must exist.

        Raises:
            KeyError: If the table is not part of the catalog
        """
        table = self.find_table(schema_name, table_name)
        if table is None:
            raise KeyError(
                f"{format_qualified_name(schema_name, table_name)} is not in catalog {self.name}"
            )
        return table

    def iter_relations(self) -> Iterator[Table]:
        """Iterate tables and views, schema by schema."""
        for schema in self._schemas.values():
            yield from schema.relations

    @property
    def tables(self) -> list[Table]:
        return [table for schema in self._schemas.values() for table in schema.tables]

    @property
    def views(self) -> list[Table]:
        return [view for schema in self._schemas.values() for view in schema.views]

    def count_tables(self) -> int:
        return len(self.tables)

    def count_views(self) -> int:
        return len(self.views)

    def count_columns(self) -> int:
        return sum(len(table.columns) for table in self.iter_relations())

    def count_indexes(self) -> int:
        return sum(len(table.indexes) for table in self.iter_relations())

    def count_fkeys(self) -> int:
        return sum(len(table.fkeys) for table in self.iter_relations())

    def count_fkey_deps(self) -> int:
        return sum(
            len(index.fkey_deps)
            for table in self.iter_relations()
            for index in table.indexes.values()
        )

    def table_oids(self) -> dict[str, int]:
        """Map qualified table name to oid for every table with a known oid."""
        return {
            table.qualified_name: table.oid
            for table in self.iter_relations()
            if table.oid is not None
        }
