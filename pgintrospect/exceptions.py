"""Custom exceptions with helpful error messages."""


class PgIntrospectError(Exception):
    """Base exception for pgintrospect errors."""

    pass


class TableNotFoundError(PgIntrospectError):
    """Requested table matched nothing in the filtered catalog."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"Table '{table}' not found in the target database.\n\n"
            f"Suggestions:\n"
            f"1. Check table name spelling and identifier quoting\n"
            f"2. Qualify the table with its schema: schema.{table}\n"
            f"3. Check the search_path of the connection role"
        )


class AmbiguousTableError(PgIntrospectError):
    """Requested table matched more than one relation."""

    def __init__(self, table: str, matches: list[str]):
        self.table = table
        self.matches = matches
        matches_str = "\n".join(f"  - {name}" for name in matches)
        super().__init__(
            f"Table '{table}' matched {len(matches)} tables, expected exactly one:\n"
            f"{matches_str}\n\n"
            f"Suggestions:\n"
            f"1. Qualify the table with its schema\n"
            f"2. Quote the identifier to match its exact case"
        )


class UnknownRuleCodeError(PgIntrospectError):
    """Foreign key rule code not known to the decoder."""

    def __init__(self, kind: str, code: str):
        self.kind = kind
        self.code = code
        super().__init__(
            f"Unknown foreign key {kind} code {code!r} returned by pg_constraint."
        )


class MissingIndexError(PgIntrospectError):
    """A dependent foreign key references an index absent from the catalog."""

    def __init__(self, index_oid: int, constraint: str):
        self.index_oid = index_oid
        self.constraint = constraint
        super().__init__(
            f"Foreign key '{constraint}' depends on index oid {index_oid}, "
            f"which is not part of the fetched catalog.\n\n"
            f"Suggestions:\n"
            f"1. Check for concurrent schema changes on the target database\n"
            f"2. Retry the catalog fetch once DDL activity has settled"
        )


class InvalidFilterError(PgIntrospectError):
    """Filter specification could not be parsed."""

    def __init__(self, spec: str, reason: str):
        self.spec = spec
        super().__init__(
            f"Invalid filter '{spec}': {reason}\n\n"
            f"Expected format: schema:pattern (e.g. public:^orders$)"
        )
