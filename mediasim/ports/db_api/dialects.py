"""SQL dialect used by the DB-API adapter."""

from __future__ import annotations


class Dialect:
    """Base dialect that defines SQL quoting and named placeholders."""

    name: str = "generic"
    paramstyle: str = "named"
    quote_char: str = '"'

    def q(self, ident: str) -> str:
        """Quote SQL identifier."""

        escaped = str(ident).replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def placeholder(self, key: str) -> str:
        """Return a `:key` parameter placeholder."""

        if self.paramstyle != "named":
            raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")
        return f":{key}"


class SQLiteDialect(Dialect):
    """SQLite dialect (`:name` parameters)."""

    name = "sqlite"
