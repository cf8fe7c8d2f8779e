"""Database migration and startup bootstrap utilities.

Schema evolution is keyed by an integer `schema_version` stored in the
metadata table. `bootstrap_database` wraps `apply_migrations` with a fixed
number of attempts so a database that is briefly unreachable at boot does
not take the whole process down.
"""

from __future__ import annotations
from pathlib import Path
import logging
import sqlite3
import time
from typing import Callable, Optional

from . import schema as schema_def
from .schema import init_db

CURRENT_SCHEMA_VERSION = 2
SCHEMA_VERSION_KEY = "schema_version"

logger = logging.getLogger("p2p_exchange.db")


def _get_schema_version(conn: sqlite3.Connection) -> Optional[int]:
    try:
        cur = conn.cursor()
        cur.execute("SELECT value FROM metadata WHERE key=?", (SCHEMA_VERSION_KEY,))
        row = cur.fetchone()
        if row:
            return int(row[0])
    except sqlite3.OperationalError:
        # metadata table may not exist yet (first run before init_db)
        return None
    return None


def apply_migrations(db_path: Path, timeout: float = 5.0) -> int:
    """Apply required migrations and return resulting schema version."""
    init_db(db_path, timeout=timeout)
    conn = sqlite3.connect(db_path, timeout=timeout)
    try:
        version = _get_schema_version(conn) or 1
        if version < 2:
            _migrate_to_v2(conn)
            version = 2
        _set_schema_version(conn, version)
        conn.commit()
        return version
    finally:
        conn.close()


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    cur = conn.cursor()
    cur.execute(
        "INSERT INTO metadata (key, value) VALUES (?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value=excluded.value, "
        f"updated_at=({schema_def.BASIC_UTC_NOW})",
        (SCHEMA_VERSION_KEY, str(version)),
    )


def _migrate_to_v2(conn: sqlite3.Connection) -> None:
    """Upgrade schema to version 2 (case-insensitive unique email).

    Databases created before the users table declared email UNIQUE get the
    constraint through an explicit unique index. Fails if existing rows
    already collide; those must be merged by hand.
    """
    cur = conn.cursor()
    try:
        cur.execute("UPDATE users SET email = lower(trim(email))")
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email)"
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def bootstrap_database(
    db_path: Path,
    *,
    attempts: int = 5,
    delay_seconds: float = 5.0,
    timeout: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Bring the schema up to date, retrying a fixed number of times.

    Returns True once migrations succeed, False when every attempt failed.
    Never raises for storage errors: the caller keeps serving routes that do
    not touch the database.
    """
    for attempt in range(1, attempts + 1):
        try:
            version = apply_migrations(db_path, timeout=timeout)
        except sqlite3.Error as e:
            logger.warning(
                "database bootstrap attempt %d/%d failed: %s",
                attempt,
                attempts,
                e,
                extra={"context": {"db_path": str(db_path)}},
            )
            if attempt < attempts:
                sleep(delay_seconds)
            continue
        logger.info(
            "database ready",
            extra={"context": {"db_path": str(db_path), "schema_version": version}},
        )
        return True
    logger.error(
        "database unavailable after %d attempts; continuing without storage",
        attempts,
        extra={"context": {"db_path": str(db_path)}},
    )
    return False
