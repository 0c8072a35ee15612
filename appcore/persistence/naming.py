from __future__ import annotations

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

RESERVED_WORDS = frozenset(
    {
        "all", "and", "any", "as", "asc", "between", "by", "case", "check", "column",
        "constraint", "create", "cross", "default", "desc", "distinct", "drop", "else",
        "end", "from", "group", "having", "in", "index", "inner", "insert", "into", "is",
        "join", "key", "left", "like", "limit", "not", "null", "offset", "on", "or",
        "order", "outer", "primary", "references", "right", "select", "table", "then",
        "to", "union", "unique", "update", "user", "using", "values", "when", "where",
    }
)


class PhysicalNamingStrategy:
    """Map logical identifiers to physical database names."""

    def to_physical(self, name: str) -> str:
        if not name:
            return name
        snake = _CAMEL_BOUNDARY.sub("_", name).lower()
        if snake in RESERVED_WORDS:
            return f"{snake}_"
        return snake


class ImplicitNamingStrategy:
    """Name constraints and indexes that models leave unnamed."""

    NAMING_CONVENTION = {
        "ix": "ix_%(table_name)s_%(column_0_N_name)s",
        "uq": "uq_%(table_name)s_%(column_0_N_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_N_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }

    def __init__(self, physical: PhysicalNamingStrategy | None = None):
        self.physical = physical or PhysicalNamingStrategy()

    @classmethod
    def naming_convention(cls) -> dict[str, str]:
        return dict(cls.NAMING_CONVENTION)

    def table_name(self, entity_name: str) -> str:
        return self.physical.to_physical(entity_name)

    def join_table_name(self, owner: str, collection: str) -> str:
        return f"{self.table_name(owner)}_{self.physical.to_physical(collection)}"
