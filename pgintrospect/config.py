"""
Configuration management for pgintrospect.

Loads and validates configuration from pgintrospect.toml files using Pydantic.
Environment variables prefixed with PGINTROSPECT_ override file values, e.g.
PGINTROSPECT_DATABASE__URL.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from psycopg.conninfo import conninfo_to_dict
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from pgintrospect.rules import validate_relkind

CONFIG_FILE_NAME = "pgintrospect.toml"


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = Field(
        default="postgresql://localhost/postgres",
        description="PostgreSQL connection URL",
    )
    dbname: Optional[str] = Field(
        default=None,
        description="Catalog name (defaults to the database name of the URL)",
    )

    def get_dbname(self) -> str:
        """Catalog name, falling back to the database named in url."""
        if self.dbname:
            return self.dbname
        return conninfo_to_dict(self.url).get("dbname") or "postgres"


class FilterConfig(BaseModel):
    """Which relations to fetch."""

    including: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Schema name -> table name patterns to fetch",
    )
    excluding: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Schema name -> table name patterns to leave out",
    )
    relkind: str = Field(default="r", description="pg_class.relkind of fetched relations")

    @field_validator("relkind")
    @classmethod
    def _check_relkind(cls, value: str) -> str:
        return validate_relkind(value)


class Config(BaseSettings):
    """Main configuration for pgintrospect."""

    model_config = SettingsConfigDict(env_prefix="PGINTROSPECT_", env_nested_delimiter="__")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    log_level: str = Field(default="WARNING", description="Logging level of the CLI")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment ranks above them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_toml(cls, path: Path | str) -> Config:
        """
        Load configuration from TOML file.

        Args:
            path: Path to pgintrospect.toml file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def find_and_load(cls, start_dir: Optional[Path] = None) -> Config:
        """
        Find and load configuration from pgintrospect.toml.

        Searches from start_dir up to the filesystem root and falls back to
        defaults (plus environment) when no file is found.
        """
        if start_dir is None:
            start_dir = Path.cwd()

        current = Path(start_dir).resolve()

        while True:
            config_path = current / CONFIG_FILE_NAME
            if config_path.exists():
                return cls.from_toml(config_path)

            parent = current.parent
            if parent == current:
                break
            current = parent

        return cls()
