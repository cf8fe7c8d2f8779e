"""Data Access Layer.

Responsibilities
----------------
- Open one short-lived SQLite connection per operation and always close it.
- Bring the schema up to date before first use, retrying on later calls if
  the database was unreachable at startup.
- Translate driver errors into the service error taxonomy so callers never
  see raw `sqlite3` exceptions.
- Wallet credits are a single upsert statement; the resulting row is read
  back inside the same transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import logging
import sqlite3
import threading
from typing import Any, Dict, Iterator, List, Optional

from p2p_exchange.core.errors import (
    ConcurrentModification,
    DuplicateEntity,
    InvalidArgument,
    StorageUnavailable,
)
from .migrate import apply_migrations

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

# Upper bound for a stored balance, far below SQLite's 64-bit INTEGER limit
# so `balance_cents + excluded.balance_cents` never overflows to REAL.
MAX_BALANCE_CENTS = 10**17

logger = logging.getLogger("p2p_exchange.db")


class Database:
    def __init__(self, db_path: Path, timeout: float = 5.0, schema_ready: bool = False):
        self.db_path = db_path
        self.timeout = timeout
        self._schema_ready = schema_ready
        self._schema_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connection helpers
    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        with self._schema_lock:
            if self._schema_ready:
                return
            try:
                version = apply_migrations(self.db_path, timeout=self.timeout)
            except sqlite3.Error as e:
                logger.error("cannot prepare database %s: %s", self.db_path, e)
                raise StorageUnavailable(str(e)) from e
            self._schema_ready = True
            logger.info(
                "database ready",
                extra={
                    "context": {"db_path": str(self.db_path), "schema_version": version}
                },
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction; commit on success.

        IntegrityError is re-raised untouched for the caller to classify;
        every other driver error becomes StorageUnavailable.
        """
        self._ensure_schema()
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            logger.error("cannot open database %s: %s", self.db_path, e)
            raise StorageUnavailable(str(e)) from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.error("database operation failed: %s", e)
            raise StorageUnavailable(str(e)) from e
        finally:
            conn.close()

    def ping(self) -> bool:
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1 FROM wallets LIMIT 1")
        except StorageUnavailable:
            return False
        return True

    # ------------------------------------------------------------------
    # Wallets
    def list_wallets(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.execute(
                "SELECT currency, balance_cents FROM wallets ORDER BY currency"
            )
            return [dict(r) for r in cur.fetchall()]

    def get_wallet(self, currency: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.execute(
                "SELECT currency, balance_cents, created_at, updated_at "
                "FROM wallets WHERE currency = ?",
                (currency,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def credit_wallet(
        self,
        currency: str,
        amount_cents: int,
        max_balance_cents: int = MAX_BALANCE_CENTS,
    ) -> Dict[str, Any]:
        """Add `amount_cents` to the wallet, creating it on first credit.

        The increment is skipped (and InvalidArgument raised) when the new
        balance would exceed `max_balance_cents`.
        """
        if amount_cents > max_balance_cents:
            raise InvalidArgument("balance would exceed the maximum wallet balance")
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO wallets (currency, balance_cents, created_at, updated_at)
                    VALUES (:currency, :amount, ({utc_now}), ({utc_now}))
                    ON CONFLICT(currency) DO UPDATE SET
                        balance_cents = balance_cents + excluded.balance_cents,
                        updated_at = ({utc_now})
                    WHERE wallets.balance_cents <= :max_balance - excluded.balance_cents
                    """.format(utc_now=UTC_NOW_SQL),
                    {
                        "currency": currency,
                        "amount": amount_cents,
                        "max_balance": max_balance_cents,
                    },
                )
                if cur.rowcount == 0:
                    raise InvalidArgument(
                        "balance would exceed the maximum wallet balance"
                    )
                cur = conn.execute(
                    "SELECT currency, balance_cents FROM wallets WHERE currency = ?",
                    (currency,),
                )
                row = cur.fetchone()
        except sqlite3.IntegrityError as e:
            raise ConcurrentModification(str(e)) from e
        if row is None:
            raise ConcurrentModification(f"wallet {currency} vanished during credit")
        return dict(row)

    # ------------------------------------------------------------------
    # Users
    def insert_user(
        self, first_name: str, last_name: str, email: str, password_hash: str, status: str
    ) -> int:
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    f"""
                    INSERT INTO users (first_name, last_name, email, password_hash, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ({UTC_NOW_SQL}), ({UTC_NOW_SQL}))
                    """,
                    (first_name, last_name, email, password_hash, status),
                )
                return int(cur.lastrowid)
        except sqlite3.IntegrityError as e:
            raise DuplicateEntity("Email already exists") from e

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.execute("SELECT * FROM users WHERE email = ?", (email,))
            row = cur.fetchone()
            return dict(row) if row else None
