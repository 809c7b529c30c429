"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ContextManager, Iterable, Protocol, Sequence

from .models import (
    BankEntry,
    ComplianceKey,
    Pool,
    PoolMember,
    Route,
    ShipComplianceRecord,
)


class RouteCatalog(Protocol):
    """Read-only source of voyage intensity and fuel consumption."""

    def lookup(self, route_id: str, period: int) -> Route | None:
        ...

    def list_routes(self) -> Sequence[Route]:
        ...


class LedgerSession(Protocol):
    """Typed read/write operations visible inside one ledger transaction."""

    def get_compliance(self, ship_id: str, period: int) -> ShipComplianceRecord | None:
        ...

    def insert_compliance(self, ship_id: str, period: int, cb_value: Decimal) -> ShipComplianceRecord:
        """Insert a record unless one exists; always returns the stored record."""
        ...

    def set_compliance(self, ship_id: str, period: int, cb_value: Decimal) -> ShipComplianceRecord:
        ...

    def add_compliance(self, ship_id: str, period: int, delta: Decimal) -> ShipComplianceRecord:
        ...

    def append_bank_entry(self, ship_id: str, period: int, amount: Decimal) -> BankEntry:
        ...

    def bank_entries_for(self, ship_id: str, period: int) -> Sequence[BankEntry]:
        ...

    def delete_bank_entries(self, ship_id: str, period: int) -> int:
        ...

    def insert_pool(self, period: int, created_at: datetime, members: Sequence[PoolMember]) -> Pool:
        ...


class LedgerStorage(Protocol):
    """Owns compliance records, bank entries and pools for one process."""

    def transaction(self, keys: Iterable[ComplianceKey] = ()) -> ContextManager[LedgerSession]:
        """Commit on normal exit, roll back when the block raises.

        ``keys`` names the (ship, period) balances the transaction will touch so
        that backends with per-key locking can serialise them.
        """
        ...

    def list_compliance(self) -> Sequence[ShipComplianceRecord]:
        ...

    def list_bank_entries(self, ship_id: str | None = None) -> Sequence[BankEntry]:
        ...

    def list_pools(self) -> Sequence[Pool]:
        ...

    def close(self) -> None:
        ...
