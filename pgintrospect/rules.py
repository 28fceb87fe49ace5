"""Decoding of pg_constraint rule codes and pg_class relation kinds."""

from pgintrospect.exceptions import UnknownRuleCodeError

# pg_constraint.confupdtype / confdeltype
FK_RULE_ACTIONS: dict[str, str] = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

# pg_constraint.confmatchtype
FK_MATCH_RULES: dict[str, str] = {
    "f": "FULL",
    "p": "PARTIAL",
    "s": "SIMPLE",
}

# pg_class.relkind
RELATION_KINDS: dict[str, str] = {
    "r": "table",
    "v": "view",
    "m": "materialized view",
    "i": "index",
    "S": "sequence",
    "p": "partitioned table",
    "f": "foreign table",
}

VIEW_KINDS = frozenset({"v", "m"})


def fk_rule_to_action(code: str) -> str:
    """
    Decode an ON UPDATE / ON DELETE rule code.

    Raises:
        UnknownRuleCodeError: If the code is not one of a, r, c, n, d
    """
    try:
        return FK_RULE_ACTIONS[code]
    except KeyError:
        raise UnknownRuleCodeError("rule", code) from None


def fk_match_rule_to_sql(code: str) -> str:
    """
    Decode a MATCH rule code.

    Raises:
        UnknownRuleCodeError: If the code is not one of f, p, s
    """
    try:
        return FK_MATCH_RULES[code]
    except KeyError:
        raise UnknownRuleCodeError("match rule", code) from None


def validate_relkind(relkind: str) -> str:
    """Return relkind unchanged if pg_class knows it, raise ValueError otherwise."""
    if relkind not in RELATION_KINDS:
        kinds = ", ".join(sorted(RELATION_KINDS))
        raise ValueError(f"Unsupported relation kind {relkind!r} (expected one of {kinds})")
    return relkind
