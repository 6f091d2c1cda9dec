"""
SQL identifier quoting for the compared schema and views.

Table names come from the endpoint registry, but a schema name can be
passed on the command line, so every identifier is validated and quoted
before it is interpolated into a query.
"""

import re

# ASCII-only identifiers, optionally schema-qualified
VALID_IDENTIFIER_PATTERN = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$"
)


def _split_identifier(identifier: str) -> list[str]:
    clean = identifier.replace("[", "").replace("]", "").replace('"', "")
    if not VALID_IDENTIFIER_PATTERN.match(clean):
        raise ValueError(f"Invalid identifier format: {identifier}")
    return clean.split(".")


def quote_postgres_identifier(identifier: str) -> str:
    """
    Quote a PostgreSQL identifier ("schema"."table")

    Raises:
        ValueError: If the identifier format is invalid
    """
    return ".".join(f'"{part}"' for part in _split_identifier(identifier))


def quote_sqlserver_identifier(identifier: str) -> str:
    """
    Quote a SQL Server identifier ([schema].[table])

    Raises:
        ValueError: If the identifier format is invalid
    """
    return ".".join(f"[{part}]" for part in _split_identifier(identifier))


def qualified_name(schema: str, table: str) -> str:
    """Join schema and table after validating both."""
    for part in (schema, table):
        if "." in part:
            raise ValueError(f"Invalid identifier format: {part}")
    return f"{schema}.{table}"
