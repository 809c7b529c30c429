"""SQLite-backed ledger storage."""
from __future__ import annotations

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from compliance_ledger.domain.errors import StorageFault
from compliance_ledger.domain.models import (
    BankEntry,
    ComplianceKey,
    Pool,
    PoolMember,
    ShipComplianceRecord,
)

logger = logging.getLogger(__name__)

MAX_BEGIN_RETRIES = 15

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS ship_compliance (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ship_id TEXT NOT NULL,
        period INTEGER NOT NULL,
        cb_value TEXT NOT NULL,
        UNIQUE (ship_id, period)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bank_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ship_id TEXT NOT NULL,
        period INTEGER NOT NULL,
        amount TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS bank_entries_ship_period ON bank_entries (ship_id, period)",
    """
    CREATE TABLE IF NOT EXISTS pools (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        period INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pool_members (
        pool_id INTEGER NOT NULL REFERENCES pools (id),
        position INTEGER NOT NULL,
        ship_id TEXT NOT NULL,
        cb_before TEXT NOT NULL,
        cb_after TEXT NOT NULL,
        PRIMARY KEY (pool_id, position)
    )
    """,
)


# Row <-> record mapping. Decimals are stored as TEXT so they round-trip exactly.

def _compliance_from_row(row: sqlite3.Row) -> ShipComplianceRecord:
    return ShipComplianceRecord(
        id=row["id"],
        ship_id=row["ship_id"],
        period=row["period"],
        cb_value=Decimal(row["cb_value"]),
    )


def _bank_entry_from_row(row: sqlite3.Row) -> BankEntry:
    return BankEntry(
        id=row["id"],
        ship_id=row["ship_id"],
        period=row["period"],
        amount=Decimal(row["amount"]),
    )


def _member_from_row(row: sqlite3.Row) -> PoolMember:
    return PoolMember(
        ship_id=row["ship_id"],
        cb_before=Decimal(row["cb_before"]),
        cb_after=Decimal(row["cb_after"]),
    )


class _SqliteSession:
    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self._cursor = cursor

    def get_compliance(self, ship_id: str, period: int) -> ShipComplianceRecord | None:
        self._cursor.execute(
            "SELECT id, ship_id, period, cb_value FROM ship_compliance WHERE ship_id = ? AND period = ?",
            (ship_id, period),
        )
        row = self._cursor.fetchone()
        return _compliance_from_row(row) if row else None

    def insert_compliance(self, ship_id: str, period: int, cb_value: Decimal) -> ShipComplianceRecord:
        self._cursor.execute(
            """
            INSERT INTO ship_compliance (ship_id, period, cb_value) VALUES (?, ?, ?)
            ON CONFLICT (ship_id, period) DO NOTHING
            """,
            (ship_id, period, str(cb_value)),
        )
        return self.get_compliance(ship_id, period)

    def set_compliance(self, ship_id: str, period: int, cb_value: Decimal) -> ShipComplianceRecord:
        self._cursor.execute(
            """
            INSERT INTO ship_compliance (ship_id, period, cb_value) VALUES (?, ?, ?)
            ON CONFLICT (ship_id, period) DO UPDATE SET cb_value = excluded.cb_value
            """,
            (ship_id, period, str(cb_value)),
        )
        return self.get_compliance(ship_id, period)

    def add_compliance(self, ship_id: str, period: int, delta: Decimal) -> ShipComplianceRecord:
        # Summed in Python: SQLite arithmetic on TEXT columns would go through floats.
        existing = self.get_compliance(ship_id, period)
        value = delta if existing is None else existing.cb_value + delta
        return self.set_compliance(ship_id, period, value)

    def append_bank_entry(self, ship_id: str, period: int, amount: Decimal) -> BankEntry:
        self._cursor.execute(
            "INSERT INTO bank_entries (ship_id, period, amount) VALUES (?, ?, ?)",
            (ship_id, period, str(amount)),
        )
        return BankEntry(self._cursor.lastrowid, ship_id, period, amount)

    def bank_entries_for(self, ship_id: str, period: int) -> Sequence[BankEntry]:
        self._cursor.execute(
            "SELECT id, ship_id, period, amount FROM bank_entries WHERE ship_id = ? AND period = ? ORDER BY id",
            (ship_id, period),
        )
        return [_bank_entry_from_row(row) for row in self._cursor.fetchall()]

    def delete_bank_entries(self, ship_id: str, period: int) -> int:
        self._cursor.execute(
            "DELETE FROM bank_entries WHERE ship_id = ? AND period = ?",
            (ship_id, period),
        )
        return self._cursor.rowcount

    def insert_pool(self, period: int, created_at: datetime, members: Sequence[PoolMember]) -> Pool:
        self._cursor.execute(
            "INSERT INTO pools (period, created_at) VALUES (?, ?)",
            (period, created_at.isoformat()),
        )
        pool_id = self._cursor.lastrowid
        self._cursor.executemany(
            """
            INSERT INTO pool_members (pool_id, position, ship_id, cb_before, cb_after)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (pool_id, position, m.ship_id, str(m.cb_before), str(m.cb_after))
                for position, m in enumerate(members)
            ],
        )
        return Pool(pool_id, period, created_at, tuple(members))


class SqliteLedgerStore:
    """Ledger storage on a single SQLite connection.

    Every transaction runs under ``BEGIN IMMEDIATE``, which takes the database
    write lock up front, so transactions are serialised across threads (by the
    connection lock) and across processes (by SQLite). The ``keys`` argument of
    ``transaction`` is accepted for interface parity and otherwise unused.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._init_schema()
        except sqlite3.Error as exc:
            raise StorageFault(f"Cannot open ledger database {self.db_path}: {exc}") from exc

    def _init_schema(self) -> None:
        cursor = self._conn.cursor()
        if self.db_path != ":memory:":
            cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = FULL")
        cursor.execute("PRAGMA foreign_keys = ON")
        for statement in SCHEMA:
            cursor.execute(statement)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _begin(self, cursor: sqlite3.Cursor) -> None:
        for attempt in range(MAX_BEGIN_RETRIES):
            try:
                cursor.execute("BEGIN IMMEDIATE")
                return
            except sqlite3.OperationalError as exc:
                if "locked" in str(exc).lower() and attempt < MAX_BEGIN_RETRIES - 1:
                    logger.debug("Ledger database locked, retry %d", attempt + 1)
                    time.sleep(0.02 * (attempt + 1))
                else:
                    raise StorageFault(f"DATABASE_LOCKED: {exc}") from exc

    @contextmanager
    def transaction(self, keys: Iterable[ComplianceKey] = ()) -> Iterator[_SqliteSession]:
        with self._lock:
            cursor = self._conn.cursor()
            self._begin(cursor)
            try:
                yield _SqliteSession(cursor)
            except sqlite3.Error as exc:
                self._rollback(cursor)
                raise StorageFault(str(exc)) from exc
            except BaseException:
                self._rollback(cursor)
                raise
            try:
                cursor.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback(cursor)
                raise StorageFault(f"Commit failed: {exc}") from exc

    def _rollback(self, cursor: sqlite3.Cursor) -> None:
        logger.warning("Rolling back ledger transaction")
        if self._conn.in_transaction:
            cursor.execute("ROLLBACK")

    def list_compliance(self) -> Sequence[ShipComplianceRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, ship_id, period, cb_value FROM ship_compliance ORDER BY period DESC, ship_id ASC"
            ).fetchall()
        return [_compliance_from_row(row) for row in rows]

    def list_bank_entries(self, ship_id: str | None = None) -> Sequence[BankEntry]:
        with self._lock:
            if ship_id is None:
                rows = self._conn.execute(
                    "SELECT id, ship_id, period, amount FROM bank_entries ORDER BY id"
                ).fetchall()
            else:
                rows = self._conn.execute(
                    """
                    SELECT id, ship_id, period, amount FROM bank_entries
                    WHERE ship_id = ? ORDER BY period DESC, id DESC
                    """,
                    (ship_id,),
                ).fetchall()
        return [_bank_entry_from_row(row) for row in rows]

    def list_pools(self) -> Sequence[Pool]:
        with self._lock:
            pool_rows = self._conn.execute("SELECT id, period, created_at FROM pools ORDER BY id").fetchall()
            member_rows = self._conn.execute(
                "SELECT pool_id, ship_id, cb_before, cb_after FROM pool_members ORDER BY pool_id, position"
            ).fetchall()

        members: dict[int, list[PoolMember]] = {}
        for row in member_rows:
            members.setdefault(row["pool_id"], []).append(_member_from_row(row))
        return [
            Pool(
                id=row["id"],
                period=row["period"],
                created_at=datetime.fromisoformat(row["created_at"]),
                members=tuple(members.get(row["id"], ())),
            )
            for row in pool_rows
        ]
