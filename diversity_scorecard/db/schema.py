"""
SQLite schema DDL.

Every statement uses ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables
------
  scorecards   one row per graded scorecard; nested structures (scored
               demographics, embedding, recommendations, similar ids) are
               stored as JSON text, the rendered markdown report verbatim.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_SCORECARDS = """
CREATE TABLE IF NOT EXISTS scorecards (
    id                  TEXT    PRIMARY KEY,
    collection          TEXT    NOT NULL DEFAULT 'scorecards',
    drug                TEXT    NOT NULL,
    total_participants  INTEGER NOT NULL DEFAULT 0,
    demographics        TEXT    NOT NULL,
    overall_grade       TEXT    NOT NULL CHECK (overall_grade IN ('A', 'B', 'C', 'D', 'F')),
    overall_score       REAL    NOT NULL CHECK (overall_score BETWEEN 0.0 AND 1.0),
    embedding           TEXT    NOT NULL DEFAULT '[]',
    recommendations     TEXT    NOT NULL DEFAULT '[]',
    similar_scorecards  TEXT    NOT NULL DEFAULT '[]',
    markdown_report     TEXT,
    created_at          TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_SCORECARDS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_scorecards_collection ON scorecards (collection, created_at);
CREATE INDEX IF NOT EXISTS idx_scorecards_drug ON scorecards (drug);
"""

_ALL_DDL: list[str] = [
    _DDL_SCORECARDS,
    _DDL_SCORECARDS_INDEXES,
]

ALL_TABLE_NAMES = [
    "scorecards",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.  Idempotent."""
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)
    conn.commit()
    logger.info("Schema applied: %d table(s) created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
