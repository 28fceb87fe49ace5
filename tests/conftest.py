"""Pytest configuration and shared fixtures."""

import os
from typing import Any, Optional

import psycopg
import pytest
from psycopg import Connection

TEST_DATABASE_URL = os.environ.get(
    "PGINTROSPECT_TEST_URL", "postgresql://localhost/pgintrospect_test"
)


class FakeExecutor:
    """
    Scripted QueryExecutor.

    Recognizes each catalog query by a fragment of its SQL and returns the
    canned rows for it. Every statement is recorded in ``queries``.
    """

    def __init__(
        self,
        columns: Optional[list[tuple]] = None,
        indexes: Optional[list[tuple]] = None,
        fkeys: Optional[list[tuple]] = None,
        fkey_deps: Optional[list[tuple]] = None,
        schemas: Optional[list[str]] = None,
        table_oids: Optional[list[tuple]] = None,
        current_schema: str = "public",
        table_schema: str = "public",
    ):
        self.columns = columns or []
        self.indexes = indexes or []
        self.fkeys = fkeys or []
        self.fkey_deps = fkey_deps or []
        self.schemas = schemas or []
        self.table_oids = table_oids or []
        self.current_schema = current_schema
        self.table_schema = table_schema
        self.queries: list[str] = []

    def kind_of(self, sql: str) -> str:
        if "r.conindid in (" in sql:
            return "fkey_deps"
        if "r.confupdtype" in sql:
            return "fkeys"
        if "from pg_catalog.pg_index x" in sql:
            return "indexes"
        if "a.attnum > 0" in sql:
            return "columns"
        if "::regclass::oid" in sql:
            return "table_oids"
        if "::regclass" in sql:
            return "table_schema"
        if "current_schema()" in sql:
            return "current_schema"
        if "select nspname" in sql:
            return "schemas"
        raise AssertionError(f"unexpected query: {sql}")

    def executed(self, kind: str) -> list[str]:
        """Statements of the given kind, in execution order."""
        return [sql for sql in self.queries if self.kind_of(sql) == kind]

    def query(self, sql: str, params: Any = None) -> list[tuple]:
        self.queries.append(sql)
        kind = self.kind_of(sql)
        if kind == "schemas":
            return [(name,) for name in self.schemas]
        return list(getattr(self, kind))

    def scalar(self, sql: str, params: Any = None) -> Any:
        self.queries.append(sql)
        return getattr(self, self.kind_of(sql))


def column_row(
    schema: str,
    table: str,
    table_oid: int,
    name: str,
    type_name: str = "integer",
    typmod: int = -1,
    nullable: bool = True,
    default: Optional[str] = None,
) -> tuple:
    return (schema, table, table_oid, name, type_name, typmod, nullable, default)


def index_row(
    schema: str,
    table: str,
    name: str,
    oid: int,
    primary: bool = False,
    unique: bool = False,
    conname: Optional[str] = None,
    condef: Optional[str] = None,
) -> tuple:
    sql = f"CREATE {'UNIQUE ' if unique else ''}INDEX {name} ON {schema}.{table} USING btree (id)"
    return (schema, table, name, oid, primary, unique, sql, conname, condef)


def fkey_row(
    schema: str,
    table: str,
    fschema: str,
    ftable: str,
    oid: int,
    name: str,
    columns: str = "parent_id",
    foreign_columns: str = "id",
    update: str = "a",
    delete: str = "a",
    match: str = "s",
    deferrable: bool = False,
    deferred: bool = False,
) -> tuple:
    condef = f"FOREIGN KEY ({columns}) REFERENCES {fschema}.{ftable}({foreign_columns})"
    return (
        schema,
        table,
        fschema,
        ftable,
        oid,
        name,
        condef,
        update,
        delete,
        match,
        deferrable,
        deferred,
        columns,
        foreign_columns,
    )


def fkey_dep_row(
    schema: str,
    table: str,
    fschema: str,
    ftable: str,
    oid: int,
    name: str,
    index_oid: int,
) -> tuple:
    condef = f"FOREIGN KEY (ref_id) REFERENCES {fschema}.{ftable}(id)"
    return (schema, table, fschema, ftable, oid, name, condef, index_oid)


@pytest.fixture
def db_conn() -> Connection:
    """
    Provide a test database connection.

    Tests using it are skipped when PGINTROSPECT_TEST_URL (default
    postgresql://localhost/pgintrospect_test) cannot be reached.
    """
    try:
        conn = psycopg.connect(TEST_DATABASE_URL, autocommit=True)
    except psycopg.OperationalError as e:
        pytest.skip(f"test database not available: {e}")

    yield conn

    conn.close()


@pytest.fixture
def test_schemas(db_conn: Connection) -> list[str]:
    """
    Create the sample schemas public/sales with orders tables.

    public.orders, public.customers, sales.orders, plus sales.returns whose
    foreign key points at public.orders's primary key.
    """
    with db_conn.cursor() as cur:
        cur.execute("DROP SCHEMA IF EXISTS sales CASCADE")
        cur.execute("DROP TABLE IF EXISTS public.orders, public.customers CASCADE")
        cur.execute("CREATE SCHEMA sales")

        cur.execute("""
            CREATE TABLE public.customers (
                id INTEGER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
                name TEXT NOT NULL,
                email VARCHAR(120) UNIQUE
            )
        """)
        cur.execute("""
            CREATE TABLE public.orders (
                id INTEGER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
                customer_id INTEGER NOT NULL
                    REFERENCES public.customers(id) ON DELETE CASCADE,
                amount NUMERIC(12, 2),
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        cur.execute("""
            CREATE TABLE sales.orders (
                id INTEGER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
                reference TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE TABLE sales.returns (
                id INTEGER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
                order_id INTEGER NOT NULL
                    CONSTRAINT returns_order_fkey REFERENCES public.orders(id)
                    DEFERRABLE INITIALLY DEFERRED
            )
        """)

    yield ["public", "sales"]

    with db_conn.cursor() as cur:
        cur.execute("DROP SCHEMA IF EXISTS sales CASCADE")
        cur.execute("DROP TABLE IF EXISTS public.orders, public.customers CASCADE")
