"""Banking of surplus compliance balance and its later re-application."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from compliance_ledger.application.compliance_balance import ComplianceBalanceStore
from compliance_ledger.domain.models import BankEntry, ComplianceKey
from compliance_ledger.domain.repositories import LedgerSession, LedgerStorage

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class BankLedger:
    """Moves surplus between the live CB and the bank as whole units.

    ``bank`` appends one entry and zeroes the CB; ``apply`` adds every live
    entry of the ship/period back to the CB and deletes them. Each runs in one
    transaction so the CB and the entries never disagree.
    """

    def __init__(self, storage: LedgerStorage, balances: ComplianceBalanceStore) -> None:
        self._storage = storage
        self._balances = balances

    def bank(self, ship_id: str, period: int) -> Decimal | None:
        with self._storage.transaction([ComplianceKey(ship_id, period)]) as session:
            cb = self._balances.get_or_compute(ship_id, period, session)
            if cb is None or cb <= ZERO:
                return cb
            entry = session.append_bank_entry(ship_id, period, cb)
            self._balances.set_value(ship_id, period, ZERO, session)
        logger.info("Banked %s for ship %s in %s (entry %s)", cb, ship_id, period, entry.id)
        return ZERO

    def apply(self, ship_id: str, period: int) -> Decimal | None:
        with self._storage.transaction([ComplianceKey(ship_id, period)]) as session:
            entries = session.bank_entries_for(ship_id, period)
            total = sum((e.amount for e in entries), ZERO)
            if total <= ZERO:
                return self._balances.get_or_compute(ship_id, period, session)
            new_cb = self._balances.add_delta(ship_id, period, total, session)
            session.delete_bank_entries(ship_id, period)
        logger.info("Applied %s banked for ship %s in %s from %d entries", total, ship_id, period, len(entries))
        return new_cb

    def banked_total(self, ship_id: str, period: int, session: LedgerSession | None = None) -> Decimal:
        if session is None:
            with self._storage.transaction([ComplianceKey(ship_id, period)]) as own:
                return self.banked_total(ship_id, period, own)
        return sum((e.amount for e in session.bank_entries_for(ship_id, period)), ZERO)

    def list_all(self) -> Sequence[BankEntry]:
        return self._storage.list_bank_entries()

    def list_by_ship(self, ship_id: str) -> Sequence[BankEntry]:
        return self._storage.list_bank_entries(ship_id)
