"""Runtime DB compatibility helpers for SQLite schemas created before imports existed.

Event tables written by the manual screens predate the ``source`` discriminator.
These helpers backfill it (as MANUAL) so that import cleanup, which filters on
``source``, never matches manually entered rows.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

_SOURCED_TABLES = ("attendance", "contractorcertification", "fundrequest")


def ensure_schema_compat(engine: Engine) -> None:
    """Apply additive compatibility upgrades for existing SQLite databases."""
    if engine.dialect.name != "sqlite":
        return

    with engine.begin() as conn:
        for table_name in _SOURCED_TABLES:
            _ensure_source_column(conn, table_name)


def _ensure_source_column(conn: Connection, table_name: str) -> None:
    if not _table_exists(conn, table_name):
        return

    if not _column_exists(conn, table_name, "source"):
        conn.execute(text(
            f"ALTER TABLE {table_name} ADD COLUMN source VARCHAR NOT NULL DEFAULT 'MANUAL'"
        ))
        logger.info("Applied compatibility upgrade: added %s.source", table_name)

    _ensure_index(conn, f"ix_{table_name}_source", table_name, "source")


def _table_exists(conn: Connection, table_name: str) -> bool:
    return (
        conn.execute(
            text(
                "SELECT 1 FROM sqlite_master "
                "WHERE type = 'table' AND name = :name LIMIT 1"
            ),
            {"name": table_name},
        ).first()
        is not None
    )


def _column_exists(conn: Connection, table_name: str, column_name: str) -> bool:
    rows = conn.execute(text(f"PRAGMA table_info({table_name})")).fetchall()
    return any(row[1] == column_name for row in rows)


def _ensure_index(
    conn: Connection, index_name: str, table_name: str, column_name: str
) -> None:
    exists = conn.execute(
        text(
            "SELECT 1 FROM sqlite_master "
            "WHERE type = 'index' AND name = :name LIMIT 1"
        ),
        {"name": index_name},
    ).first()
    if exists is None:
        conn.execute(text(f"CREATE INDEX {index_name} ON {table_name} ({column_name})"))
