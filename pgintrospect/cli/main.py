"""CLI commands for pgintrospect."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import psycopg

from pgintrospect.config import Config
from pgintrospect.exceptions import PgIntrospectError
from pgintrospect.executor import PsycopgExecutor
from pgintrospect.fetcher import CatalogFetcher
from pgintrospect.filters import parse_filter_spec
from pgintrospect.render import catalog_summary, catalog_to_dict


def load_config(config_path: Optional[str]) -> Config:
    """Load the given config file, or search for one from the working directory."""
    if config_path is not None:
        return Config.from_toml(Path(config_path))
    return Config.find_and_load()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(package_name="pgintrospect")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Path to pgintrospect.toml")
@click.option("--url", help="PostgreSQL connection URL (overrides config)")
@click.option("--verbose", "-v", count=True, help="-v for notices, -vv for debug output")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], url: Optional[str], verbose: int) -> None:
    """pgintrospect - PostgreSQL catalog introspection."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if url:
        config.database.url = url

    level = config.log_level
    if verbose == 1:
        level = "INFO"
    elif verbose > 1:
        level = "DEBUG"
    configure_logging(level)

    ctx.obj = config


@cli.command()
@click.option("--table", help="Fetch a single table (schema.table or table)")
@click.option("--include", "include_specs", multiple=True, help="schema:pattern of tables to fetch")
@click.option("--exclude", "exclude_specs", multiple=True, help="schema:pattern of tables to leave out")
@click.option("--relkind", help="Relation kind to fetch (r, v, m, p, f)")
@click.option("--json", "output_json", is_flag=True, help="Output the whole catalog as JSON")
@click.pass_obj
def fetch(
    config: Config,
    table: Optional[str],
    include_specs: tuple[str, ...],
    exclude_specs: tuple[str, ...],
    relkind: Optional[str],
    output_json: bool,
) -> None:
    """Fetch the catalog and print a summary."""
    try:
        including = parse_filter_spec(list(include_specs)) or config.filters.including or None
        excluding = parse_filter_spec(list(exclude_specs)) or config.filters.excluding or None

        with PsycopgExecutor.connect(config.database.url) as executor:
            catalog = CatalogFetcher(executor).fetch(
                config.database.get_dbname(),
                table=table,
                including=including,
                excluding=excluding,
                relkind=relkind or config.filters.relkind,
            )
    except (PgIntrospectError, psycopg.Error, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_json:
        click.echo(json.dumps(catalog_to_dict(catalog), indent=2))
        return

    click.echo(f"Catalog: {catalog.name}")
    for name, count in catalog_summary(catalog).items():
        click.echo(f"  {name + ':':<11}{count}")

    for table_obj in catalog.iter_relations():
        click.echo(f"  {table_obj.qualified_name} ({len(table_obj.columns)} columns)")
        for index in table_obj.indexes.values():
            for dep in index.fkey_deps:
                click.echo(f"    {index.name} <- {dep.name} on {dep.table.qualified_name}")


@cli.command()
@click.pass_obj
def schemas(config: Config) -> None:
    """List the user schemas of the database."""
    try:
        with PsycopgExecutor.connect(config.database.url) as executor:
            names = CatalogFetcher(executor).list_schemas()
    except psycopg.Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for name in names:
        click.echo(name)


@cli.command()
@click.argument("tables", nargs=-1, required=True)
@click.pass_obj
def oids(config: Config, tables: tuple[str, ...]) -> None:
    """Resolve table names to oids."""
    try:
        with PsycopgExecutor.connect(config.database.url) as executor:
            table_oids = CatalogFetcher(executor).table_oids(list(tables))
    except psycopg.Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for name, oid in table_oids.items():
        click.echo(f"{name}\t{oid}")
