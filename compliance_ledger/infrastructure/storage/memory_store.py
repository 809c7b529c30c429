"""In-memory ledger storage with per-key locking and staged commits."""
from __future__ import annotations

import itertools
import logging
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Iterator, Sequence

from compliance_ledger.domain.models import (
    BankEntry,
    ComplianceKey,
    Pool,
    PoolMember,
    ShipComplianceRecord,
)

logger = logging.getLogger(__name__)


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLocks:
    """One re-entrant lock per compliance key, dropped once nobody holds or awaits it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[ComplianceKey, _KeyLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _acquire(self, key: ComplianceKey) -> None:
        with self._guard:
            slot = self._locks.get(key)
            if slot is None:
                slot = self._locks[key] = _KeyLock()
            slot.users += 1
        slot.lock.acquire()

    def _release(self, key: ComplianceKey) -> None:
        with self._guard:
            slot = self._locks[key]
            slot.lock.release()
            slot.users -= 1
            if slot.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[ComplianceKey]) -> Iterator[None]:
        # Sorted acquisition keeps multi-key holders (pools) deadlock free.
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                self._acquire(key)
                stack.callback(self._release, key)
            yield


class _MemorySession:
    def __init__(self, store: InMemoryLedgerStore) -> None:
        self._store = store
        self._compliance: dict[ComplianceKey, ShipComplianceRecord] = {}
        self._cleared: set[ComplianceKey] = set()
        self._entries: list[BankEntry] = []
        self._pools: list[Pool] = []

    def get_compliance(self, ship_id: str, period: int) -> ShipComplianceRecord | None:
        key = ComplianceKey(ship_id, period)
        if key in self._compliance:
            return self._compliance[key]
        return self._store._compliance.get(key)

    def insert_compliance(self, ship_id: str, period: int, cb_value: Decimal) -> ShipComplianceRecord:
        existing = self.get_compliance(ship_id, period)
        if existing is not None:
            return existing
        record = ShipComplianceRecord(self._store._next_id("compliance"), ship_id, period, cb_value)
        self._compliance[record.key] = record
        return record

    def set_compliance(self, ship_id: str, period: int, cb_value: Decimal) -> ShipComplianceRecord:
        existing = self.get_compliance(ship_id, period)
        if existing is None:
            return self.insert_compliance(ship_id, period, cb_value)
        record = replace(existing, cb_value=cb_value)
        self._compliance[record.key] = record
        return record

    def add_compliance(self, ship_id: str, period: int, delta: Decimal) -> ShipComplianceRecord:
        existing = self.get_compliance(ship_id, period)
        if existing is None:
            return self.insert_compliance(ship_id, period, delta)
        return self.set_compliance(ship_id, period, existing.cb_value + delta)

    def append_bank_entry(self, ship_id: str, period: int, amount: Decimal) -> BankEntry:
        entry = BankEntry(self._store._next_id("bank_entry"), ship_id, period, amount)
        self._entries.append(entry)
        return entry

    def bank_entries_for(self, ship_id: str, period: int) -> Sequence[BankEntry]:
        key = ComplianceKey(ship_id, period)
        committed = [] if key in self._cleared else self._store._entries_for(key)
        staged = [e for e in self._entries if (e.ship_id, e.period) == (ship_id, period)]
        return committed + staged

    def delete_bank_entries(self, ship_id: str, period: int) -> int:
        removed = len(self.bank_entries_for(ship_id, period))
        self._cleared.add(ComplianceKey(ship_id, period))
        self._entries = [e for e in self._entries if (e.ship_id, e.period) != (ship_id, period)]
        return removed

    def insert_pool(self, period: int, created_at: datetime, members: Sequence[PoolMember]) -> Pool:
        pool = Pool(self._store._next_id("pool"), period, created_at, tuple(members))
        self._pools.append(pool)
        return pool


class InMemoryLedgerStore:
    """Process-local ledger storage.

    Each transaction holds the locks of the keys it names, stages its writes in
    a session and publishes them in one step on commit. Ids are drawn when a
    write is staged, so a rolled back transaction leaves a gap but ids stay
    unique and increasing.
    """

    def __init__(self) -> None:
        self._compliance: dict[ComplianceKey, ShipComplianceRecord] = {}
        self._entries: list[BankEntry] = []
        self._pools: list[Pool] = []
        self._mutex = threading.Lock()
        self._locks = KeyedLocks()
        self._counters = {name: itertools.count(1) for name in ("compliance", "bank_entry", "pool")}

    def _next_id(self, name: str) -> int:
        with self._mutex:
            return next(self._counters[name])

    def _entries_for(self, key: ComplianceKey) -> list[BankEntry]:
        with self._mutex:
            return [e for e in self._entries if (e.ship_id, e.period) == (key.ship_id, key.period)]

    @contextmanager
    def transaction(self, keys: Iterable[ComplianceKey] = ()) -> Iterator[_MemorySession]:
        with self._locks.hold(keys):
            session = _MemorySession(self)
            try:
                yield session
            except BaseException:
                logger.warning("Discarding staged ledger writes after failure")
                raise
            self._commit(session)

    def _commit(self, session: _MemorySession) -> None:
        with self._mutex:
            self._compliance.update(session._compliance)
            if session._cleared:
                self._entries = [
                    e for e in self._entries if ComplianceKey(e.ship_id, e.period) not in session._cleared
                ]
            self._entries.extend(session._entries)
            self._pools.extend(session._pools)

    def list_compliance(self) -> Sequence[ShipComplianceRecord]:
        with self._mutex:
            records = list(self._compliance.values())
        return sorted(records, key=lambda r: (-r.period, r.ship_id))

    def list_bank_entries(self, ship_id: str | None = None) -> Sequence[BankEntry]:
        with self._mutex:
            entries = list(self._entries)
        if ship_id is None:
            return entries
        return sorted((e for e in entries if e.ship_id == ship_id), key=lambda e: (-e.period, -e.id))

    def list_pools(self) -> Sequence[Pool]:
        with self._mutex:
            return list(self._pools)

    def close(self) -> None:
        pass
