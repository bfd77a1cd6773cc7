from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns added to the "match" table after the first release.
# (name, sqlite_type, postgres_type); types carry their defaults.
REQUIRED_MATCH_COLUMNS: List[Tuple[str, str, str]] = [
    ("version", "INTEGER NOT NULL DEFAULT 1", "INTEGER NOT NULL DEFAULT 1"),
    ("set_scores", "TEXT", "JSON"),
    ("result_comment", "TEXT", "TEXT"),
    ("result_is_unfinished", "INTEGER DEFAULT 0", "BOOLEAN DEFAULT FALSE"),
    ("result_is_casual_play", "INTEGER DEFAULT 0", "BOOLEAN DEFAULT FALSE"),
    ("auto_approved", "INTEGER DEFAULT 0", "BOOLEAN DEFAULT FALSE"),
    ("completed_at", "TIMESTAMP", "TIMESTAMP"),
    ("walkover_reason_detail", "TEXT", "TEXT"),
    ("walkover_recorded_by_id", "TEXT", "TEXT"),
    ("cancellation_comment", "TEXT", "TEXT"),
    ("cancelled_by_id", "TEXT", "TEXT"),
    ("cancelled_at", "TIMESTAMP", "TIMESTAMP"),
    ("is_late_cancellation", "INTEGER DEFAULT 0", "BOOLEAN DEFAULT FALSE"),
    ("void_reason", "TEXT", "TEXT"),
    ("voided_at", "TIMESTAMP", "TIMESTAMP"),
]

# Columns added to the "match_participant" table after the first release.
REQUIRED_PARTICIPANT_COLUMNS: List[Tuple[str, str, str]] = [
    ("role", "TEXT", "TEXT"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f'PRAGMA table_info("{table_name}");')).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table: str) -> bool:
    if _is_sqlite(engine):
        sql = "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"
    else:
        sql = """
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_schema = 'public' AND table_name = :table_name
        )
        """
    with engine.connect() as conn:
        result = conn.execute(text(sql), {"table_name": table}).fetchone()
    if _is_sqlite(engine):
        return bool(result)
    return bool(result and result[0])


def _ensure_columns(engine: Engine, table: str, required: List[Tuple[str, str, str]]) -> List[str]:
    """Add whichever of ``required`` are missing. Returns the names added."""
    if not _table_exists(engine, table):
        # create_all will build it with every column
        return []
    if _is_sqlite(engine):
        existing = _get_existing_columns_sqlite(engine, table)
    else:
        existing = _get_existing_columns_postgres(engine, table)

    added = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type in required:
            if name in existing:
                continue
            if _is_sqlite(engine):
                # SQLite supports ADD COLUMN without IF NOT EXISTS
                conn.execute(text(f'ALTER TABLE "{table}" ADD COLUMN {name} {sqlite_type};'))
            else:
                conn.execute(text(f'ALTER TABLE "{table}" ADD COLUMN IF NOT EXISTS {name} {pg_type};'))
            added.append(name)
    if added:
        logger.info(f"Added columns to {table}: {', '.join(added)}")
    return added


def ensure_match_columns(engine: Engine) -> None:
    """
    Idempotently adds workflow columns to the 'match' table if missing.
    Safe to run at every startup.
    """
    try:
        from app.models.match import Match

        _ensure_columns(engine, Match.__table__.name, REQUIRED_MATCH_COLUMNS)
    except Exception as e:
        # Log error but don't crash the server
        logger.warning(f"Failed to ensure match columns (this is OK if table doesn't exist yet): {e}")


def ensure_participant_columns(engine: Engine) -> None:
    try:
        from app.models.match_participant import MatchParticipant

        _ensure_columns(engine, MatchParticipant.__table__.name, REQUIRED_PARTICIPANT_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure match_participant columns: {e}")
