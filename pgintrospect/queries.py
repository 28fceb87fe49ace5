"""
Catalog queries.

Every query is rendered to plain SQL text: filters arrive as FilterClause
objects whose presence and text are substituted separately, and oid lists,
relation kinds and names are inlined as literals. Queries are therefore
executed without bind parameters.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from pgintrospect.rules import validate_relkind

if TYPE_CHECKING:
    from pgintrospect.filters import FilterClause

USER_SCHEMAS = "{ns}.nspname !~ '^pg_' and {ns}.nspname <> 'information_schema'"

CURRENT_SCHEMA_SQL = "select current_schema()"

LIST_SCHEMAS_SQL = """
  select nspname
    from pg_catalog.pg_namespace n
   where {user_schemas}
order by nspname
""".format(user_schemas=USER_SCHEMAS.format(ns="n"))


def quote_literal(value: str) -> str:
    """Quote value as a standard-conforming SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def _oid_list(oids: Iterable[int]) -> str:
    return ", ".join(str(int(oid)) for oid in oids)


def _substitutions(**clauses: FilterClause) -> dict[str, str]:
    return {name: clause.render() for name, clause in clauses.items()}


COLUMNS_SQL = """
  select n.nspname,
         c.relname,
         c.oid,
         a.attname,
         pg_catalog.format_type(a.atttypid, null) as type_name,
         a.atttypmod,
         not a.attnotnull as nullable,
         case when a.atthasdef
              then pg_catalog.pg_get_expr(d.adbin, d.adrelid)
          end as default_value
    from pg_catalog.pg_class c
         join pg_catalog.pg_namespace n on n.oid = c.relnamespace
         join pg_catalog.pg_attribute a on a.attrelid = c.oid
         left join pg_catalog.pg_attrdef d
                on d.adrelid = a.attrelid and d.adnum = a.attnum
   where c.relkind = '{relkind}'
         and a.attnum > 0
         and not a.attisdropped
         and {user_schemas}
         {including}
         {excluding}
order by n.nspname, c.relname, a.attnum
"""


def columns_query(relkind: str, including: FilterClause, excluding: FilterClause) -> str:
    """Columns of every relation of kind relkind within the filters."""
    return COLUMNS_SQL.format(
        relkind=validate_relkind(relkind),
        user_schemas=USER_SCHEMAS.format(ns="n"),
        **_substitutions(including=including, excluding=excluding),
    )


INDEXES_SQL = """
  select rn.nspname,
         r.relname,
         i.relname,
         i.oid,
         x.indisprimary,
         x.indisunique,
         pg_catalog.pg_get_indexdef(x.indexrelid),
         con.conname,
         case when con.oid is not null
              then pg_catalog.pg_get_constraintdef(con.oid)
          end as condef
    from pg_catalog.pg_index x
         join pg_catalog.pg_class i on i.oid = x.indexrelid
         join pg_catalog.pg_class r on r.oid = x.indrelid
         join pg_catalog.pg_namespace rn on rn.oid = r.relnamespace
         left join pg_catalog.pg_constraint con
                on con.conindid = x.indexrelid
               and con.conrelid = x.indrelid
               and con.contype in ('p', 'u', 'x')
   where r.relkind = '{relkind}'
         and {user_schemas}
         {including}
         {excluding}
order by rn.nspname, r.relname, i.relname
"""


def indexes_query(relkind: str, including: FilterClause, excluding: FilterClause) -> str:
    """Indexes of every relation of kind relkind within the filters."""
    return INDEXES_SQL.format(
        relkind=validate_relkind(relkind),
        user_schemas=USER_SCHEMAS.format(ns="rn"),
        **_substitutions(including=including, excluding=excluding),
    )


FKEYS_SQL = """
  select n.nspname,
         c.relname,
         nf.nspname,
         cf.relname,
         r.oid,
         r.conname,
         pg_catalog.pg_get_constraintdef(r.oid, true) as condef,
         r.confupdtype,
         r.confdeltype,
         r.confmatchtype,
         r.condeferrable,
         r.condeferred,
         (select string_agg(a.attname::text, ',' order by k.ord)
            from unnest(r.conkey) with ordinality as k(attnum, ord)
                 join pg_catalog.pg_attribute a
                   on a.attrelid = r.conrelid and a.attnum = k.attnum) as conkey,
         (select string_agg(a.attname::text, ',' order by k.ord)
            from unnest(r.confkey) with ordinality as k(attnum, ord)
                 join pg_catalog.pg_attribute a
                   on a.attrelid = r.confrelid and a.attnum = k.attnum) as confkey
    from pg_catalog.pg_constraint r
         join pg_catalog.pg_class c on c.oid = r.conrelid
         join pg_catalog.pg_namespace n on n.oid = c.relnamespace
         join pg_catalog.pg_class cf on cf.oid = r.confrelid
         join pg_catalog.pg_namespace nf on nf.oid = cf.relnamespace
   where r.contype = 'f'
         and {user_schemas}
         and {foreign_user_schemas}
         {including}
         {excluding}
         {foreign_including}
         {foreign_excluding}
order by n.nspname, c.relname, r.conname
"""


def fkeys_query(
    including: FilterClause,
    excluding: FilterClause,
    foreign_including: FilterClause,
    foreign_excluding: FilterClause,
) -> str:
    """Foreign keys whose local and foreign tables are both within the filters."""
    return FKEYS_SQL.format(
        user_schemas=USER_SCHEMAS.format(ns="n"),
        foreign_user_schemas=USER_SCHEMAS.format(ns="nf"),
        **_substitutions(
            including=including,
            excluding=excluding,
            foreign_including=foreign_including,
            foreign_excluding=foreign_excluding,
        ),
    )


FKEY_DEPENDENCIES_SQL = """
  select n.nspname,
         c.relname,
         nf.nspname,
         cf.relname,
         r.oid,
         r.conname,
         pg_catalog.pg_get_constraintdef(r.oid, true) as condef,
         r.conindid
    from pg_catalog.pg_constraint r
         join pg_catalog.pg_class c on c.oid = r.conrelid
         join pg_catalog.pg_namespace n on n.oid = c.relnamespace
         join pg_catalog.pg_class cf on cf.oid = r.confrelid
         join pg_catalog.pg_namespace nf on nf.oid = cf.relnamespace
   where r.contype = 'f'
         and r.conindid in ({pkey_oids})
         and r.oid not in ({fkey_oids})
order by n.nspname, c.relname, r.conname
"""


def fkey_dependencies_query(pkey_oids: Iterable[int], fkey_oids: Iterable[int]) -> str:
    """
    Foreign keys referencing one of pkey_oids that are not one of fkey_oids.

    pkey_oids must not be empty; an empty fkey_oids is replaced by the -1
    sentinel so that the "not in" list stays well-formed.
    """
    pkey_list = _oid_list(pkey_oids)
    if not pkey_list:
        raise ValueError("fkey_dependencies_query needs at least one index oid")
    fkey_list = _oid_list(fkey_oids) or "-1"
    return FKEY_DEPENDENCIES_SQL.format(pkey_oids=pkey_list, fkey_oids=fkey_list)


def table_schema_query(table_name: str) -> str:
    """Schema where the search_path resolves table_name."""
    return (
        "select n.nspname"
        " from pg_catalog.pg_class c"
        " join pg_catalog.pg_namespace n on n.oid = c.relnamespace"
        f" where c.oid = {quote_literal(table_name)}::regclass"
    )


def table_oids_query(table_names: Iterable[str]) -> str:
    """Resolve table names to oids in one statement."""
    values = ", ".join(f"({quote_literal(name)})" for name in table_names)
    return f"select t.n, t.n::regclass::oid from (values {values}) as t(n)"
