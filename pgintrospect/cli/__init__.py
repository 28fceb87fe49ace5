"""Command line interface for pgintrospect."""

from pgintrospect.cli.main import cli

__all__ = ["cli"]
