"""Tests for the catalog data model."""

import pytest

from pgintrospect.models import (
    Catalog,
    Column,
    DependencyForeignKey,
    ForeignKey,
    Index,
    StubTable,
)


@pytest.fixture
def catalog() -> Catalog:
    catalog = Catalog(name="shop")
    public = catalog.find_or_create_schema("public")
    orders = public.find_or_create_table("orders", oid=100)
    orders.add_column(Column(name="id", type_name="integer", typmod=-1, nullable=False))
    orders.add_column(Column(name="total", type_name="numeric", typmod=786438, nullable=True))
    public.find_or_create_view("order_totals", oid=101)
    return catalog


def test_find_or_create_schema_is_idempotent(catalog: Catalog):
    """Should return the existing schema for a known name."""
    assert catalog.find_or_create_schema("public") is catalog.find_schema("public")
    assert len(catalog.schemas) == 1


def test_find_or_create_table_keeps_first_table(catalog: Catalog):
    """Should not replace a table on a second reference."""
    schema = catalog.find_schema("public")
    orders = schema.find_table("orders")

    assert schema.find_or_create_table("orders", oid=999) is orders
    assert orders.oid == 100


def test_find_or_create_table_fills_unknown_oid():
    """Should record the oid of a table first created without one."""
    schema = Catalog(name="db").find_or_create_schema("public")
    table = schema.find_or_create_table("orders")

    schema.find_or_create_table("orders", oid=42)

    assert table.oid == 42


def test_find_table_by_oid(catalog: Catalog):
    """Should find tables and views by oid, including an oid filled in later."""
    public = catalog.find_schema("public")
    late = public.find_or_create_table("customers")

    assert catalog.find_table_by_oid(100) is public.find_table("orders")
    assert catalog.find_table_by_oid(101) is public.find_table("order_totals")
    assert catalog.find_table_by_oid(102) is None

    public.find_or_create_table("customers", oid=102)

    assert catalog.find_table_by_oid(102) is late


def test_tables_and_views_are_counted_separately(catalog: Catalog):
    """Should keep views out of the table count."""
    assert catalog.count_tables() == 1
    assert catalog.count_views() == 1
    assert [t.name for t in catalog.iter_relations()] == ["orders", "order_totals"]
    assert catalog.find_table("public", "order_totals").is_view


def test_columns_keep_order(catalog: Catalog):
    """Should keep columns in insertion order."""
    orders = catalog.find_table("public", "orders")

    assert [c.name for c in orders.columns] == ["id", "total"]
    assert orders.get_column("total").typmod == 786438
    assert orders.get_column("missing") is None


def test_find_table_unknown_schema(catalog: Catalog):
    """Should return None for unknown schema or table."""
    assert catalog.find_table("sales", "orders") is None
    assert catalog.find_table("public", "missing") is None


def test_get_table_raises_for_unknown_table(catalog: Catalog):
    """Should raise KeyError naming the table."""
    with pytest.raises(KeyError, match="sales.orders"):
        catalog.get_table("sales", "orders")


def test_index_lookup_by_name_and_oid(catalog: Catalog):
    """Should find indexes by name and by oid."""
    orders = catalog.find_table("public", "orders")
    index = orders.add_index(Index(name="orders_pkey", oid=200, table=orders, primary=True, unique=True))

    assert orders.find_index("orders_pkey") is index
    assert orders.find_index_by_oid(200) is index
    assert index.schema is catalog.find_schema("public")


def test_index_with_same_name_replaces_previous(catalog: Catalog):
    """Should overwrite a duplicate index name and forget the old oid."""
    orders = catalog.find_table("public", "orders")
    orders.add_index(Index(name="orders_pkey", oid=200, table=orders))
    replacement = orders.add_index(Index(name="orders_pkey", oid=201, table=orders))

    assert orders.indexes == {"orders_pkey": replacement}
    assert orders.find_index_by_oid(200) is None
    assert orders.index_oids() == [201]


def test_fkey_lookup_by_name_and_oid(catalog: Catalog):
    """Should find foreign keys by name and by oid."""
    orders = catalog.find_table("public", "orders")
    fkey = orders.add_fkey(
        ForeignKey(name="orders_self_fkey", oid=300, condef="", table=orders, foreign_table=orders)
    )

    assert orders.find_fkey("orders_self_fkey") is fkey
    assert orders.find_fkey_by_oid(300) is fkey
    assert orders.fkey_oids() == [300]
    assert fkey.is_self_reference()


def test_dependency_stubs(catalog: Catalog):
    """Should keep dependency foreign keys on the index, out of the catalog."""
    orders = catalog.find_table("public", "orders")
    index = orders.add_index(Index(name="orders_pkey", oid=200, table=orders))
    dep = DependencyForeignKey(
        name="returns_order_fkey",
        oid=400,
        condef="FOREIGN KEY (order_id) REFERENCES orders(id)",
        table=StubTable(schema_name="sales", name="returns"),
        foreign_table=StubTable(schema_name="public", name="orders"),
    )

    index.add_fkey_dep(dep)

    assert index.fkey_deps == [dep]
    assert dep.is_stub and dep.table.is_stub
    assert not orders.is_stub
    assert dep.table.qualified_name == "sales.returns"
    assert catalog.find_schema("sales") is None
    assert catalog.count_fkeys() == 0
    assert catalog.count_fkey_deps() == 1


def test_counts_and_oids(catalog: Catalog):
    """Should count columns and indexes across relations."""
    orders = catalog.find_table("public", "orders")
    orders.add_index(Index(name="orders_pkey", oid=200, table=orders))

    assert catalog.count_columns() == 2
    assert catalog.count_indexes() == 1
    assert catalog.table_oids() == {"public.orders": 100, "public.order_totals": 101}


def test_schemaless_qualified_name():
    """Should print tables without schema by name only."""
    table = Catalog(name="db").find_or_create_schema(None).find_or_create_table("orders")

    assert table.qualified_name == "orders"
