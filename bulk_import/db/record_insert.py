from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import psycopg2
from psycopg2 import sql

from ..models.field_spec import RawRecord

"""PostgreSQL create() callbacks for the import pipeline.

make_table_creator() returns a callback that INSERTs one record per call. Each
INSERT runs inside its own SAVEPOINT: a failing row is rolled back to the
savepoint and reported, and the surrounding transaction stays usable for the
rows after it. Commit/rollback of the whole transaction is the caller's job.

Identifiers are quoted with psycopg2.sql; only configured columns are ever
written, whatever headers the uploaded file carries.
"""

__all__ = [
    "RecordInsertError",
    "SAVEPOINT_NAME",
    "make_table_creator",
    "dry_run_creator",
]

logger = logging.getLogger(__name__)

SAVEPOINT_NAME = "bulk_import_row"


class RecordInsertError(Exception):
    pass


def _split_table(table: str) -> sql.Composable:
    # "schema.table" -> "schema"."table"
    parts = [p for p in table.split(".") if p]
    if not parts:
        raise ValueError("table name must not be empty")
    return sql.Identifier(*parts)


def _insert_statement(
    table: str, columns: Sequence[str], returning: str | None
) -> sql.Composed:
    statement = sql.SQL("INSERT INTO {table} ({cols}) VALUES ({values})").format(
        table=_split_table(table),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        values=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
    )
    if returning:
        statement = statement + sql.SQL(" RETURNING {col}").format(col=sql.Identifier(returning))
    return statement


def make_table_creator(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    returning: str | None = None,
):
    """Build a create() callback inserting records into ``table``.

    Args:
        cursor: psycopg2 cursor of an open transaction
        table: Target table, optionally schema-qualified
        columns: Configured columns; record keys outside this list are ignored
        returning: Column whose value is returned as the created id

    Returns:
        Callable taking one record and returning the created id (or None)
    """
    allowed = list(dict.fromkeys(columns))
    if not allowed:
        raise ValueError("at least one column is required")
    savepoint = sql.Identifier(SAVEPOINT_NAME)

    def create(record: RawRecord) -> Any:
        insert_columns = [c for c in allowed if c in record]
        if not insert_columns:
            raise RecordInsertError("record has no configured columns")
        statement = _insert_statement(table, insert_columns, returning)
        values = [record[c] for c in insert_columns]

        cursor.execute(sql.SQL("SAVEPOINT {}").format(savepoint))
        try:
            cursor.execute(statement, values)
            created = cursor.fetchone() if returning else None
        except psycopg2.Error as e:
            cursor.execute(sql.SQL("ROLLBACK TO SAVEPOINT {}").format(savepoint))
            message = (getattr(e, "pgerror", None) or str(e)).strip()
            logger.debug("insert into %s failed: %s", table, message)
            raise RecordInsertError(message) from e
        cursor.execute(sql.SQL("RELEASE SAVEPOINT {}").format(savepoint))
        if created is None:
            return None
        return created[0]

    return create


def dry_run_creator(record: RawRecord) -> None:
    """create() that accepts every record without persisting anything."""
    logger.debug("dry-run create columns=%s", sorted(record))
    return None
