"""Schema introspection helpers and the identifier allow-list.

Reporting views are chosen at runtime, so their names end up interpolated into
SQL. Every name goes through ``quote_identifier`` first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.exceptions import ValidationException

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+$")

# PostgreSQL: undefined_table, undefined_column
_MISSING_OBJECT_SQLSTATES = {"42P01", "42703"}


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    nullable: bool
    has_default: bool


def safe_identifier(value: object) -> str | None:
    """Return the identifier if it is strictly alphanumeric/underscore, else None."""
    s = str(value or "")
    return s if _IDENTIFIER_RE.match(s) else None


def quote_identifier(value: object) -> str:
    safe = safe_identifier(value)
    if safe is None:
        raise ValidationException(f"Unsafe SQL identifier: {value!r}")
    return f'"{safe}"'


def is_missing_object_error(exc: Exception) -> bool:
    """True when the database reports a missing table/view/column."""
    if isinstance(exc, DBAPIError):
        sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        if sqlstate in _MISSING_OBJECT_SQLSTATES:
            return True
    message = str(exc).lower()
    return "does not exist" in message or "undefinedtable" in message


async def table_exists(db: AsyncSession, name: str) -> bool:
    if safe_identifier(name) is None:
        return False
    result = await db.execute(
        text(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = :name "
            "AND table_type = 'BASE TABLE' LIMIT 1"
        ),
        {"name": name},
    )
    return result.first() is not None


async def view_exists(db: AsyncSession, name: str) -> bool:
    if safe_identifier(name) is None:
        return False
    result = await db.execute(
        text(
            "SELECT 1 FROM information_schema.views "
            "WHERE table_schema = current_schema() AND table_name = :name LIMIT 1"
        ),
        {"name": name},
    )
    return result.first() is not None


async def get_table_columns(db: AsyncSession, table_name: str) -> list[ColumnInfo]:
    """List a table's columns; an unsafe name yields an empty list."""
    if safe_identifier(table_name) is None:
        return []
    result = await db.execute(
        text(
            "SELECT column_name, is_nullable, column_default, is_identity "
            "FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = :name "
            "ORDER BY ordinal_position"
        ),
        {"name": table_name},
    )
    return [
        ColumnInfo(
            name=row.column_name,
            nullable=row.is_nullable == "YES",
            has_default=row.column_default is not None or row.is_identity == "YES",
        )
        for row in result
    ]
