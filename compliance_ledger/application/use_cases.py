"""Application services exposing the ledger operations to callers."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from compliance_ledger.application.bank_ledger import BankLedger
from compliance_ledger.application.compliance_balance import ComplianceBalanceStore
from compliance_ledger.application.dto import ComplianceBalance, CreatePoolRequest
from compliance_ledger.application.pool_allocator import PoolAllocator
from compliance_ledger.domain.models import BankEntry, ComplianceKey, Pool, ShipComplianceRecord
from compliance_ledger.domain.repositories import LedgerStorage, RouteCatalog


@dataclass(slots=True)
class LedgerContext:
    storage: LedgerStorage
    catalog: RouteCatalog
    balances: ComplianceBalanceStore
    bank_ledger: BankLedger
    pool_allocator: PoolAllocator


def _balance(ship_id: str, period: int, value: Decimal | None) -> ComplianceBalance | None:
    if value is None:
        return None
    return ComplianceBalance(ship_id=ship_id, period=period, balance=value)


class GetComplianceBalanceUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self, ship_id: str, period: int) -> ComplianceBalance | None:
        return _balance(ship_id, period, self._context.balances.get_or_compute(ship_id, period))


class GetAdjustedComplianceBalanceUseCase:
    """CB as it would be if every live bank entry were applied now.

    Both reads share one transaction so a concurrent bank or apply is seen
    either entirely or not at all.
    """

    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self, ship_id: str, period: int) -> ComplianceBalance | None:
        context = self._context
        with context.storage.transaction([ComplianceKey(ship_id, period)]) as session:
            base = context.balances.get_or_compute(ship_id, period, session)
            if base is None:
                return None
            banked = context.bank_ledger.banked_total(ship_id, period, session)
        return ComplianceBalance(ship_id=ship_id, period=period, balance=base + banked)


class BankSurplusUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self, ship_id: str, period: int) -> ComplianceBalance | None:
        return _balance(ship_id, period, self._context.bank_ledger.bank(ship_id, period))


class ApplyBankedSurplusUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self, ship_id: str, period: int) -> ComplianceBalance | None:
        return _balance(ship_id, period, self._context.bank_ledger.apply(ship_id, period))


class ListBankEntriesUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self, ship_id: str | None = None) -> Sequence[BankEntry]:
        if ship_id is None:
            return self._context.bank_ledger.list_all()
        return self._context.bank_ledger.list_by_ship(ship_id)


class ListComplianceUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self) -> Sequence[ShipComplianceRecord]:
        return self._context.storage.list_compliance()


class CreatePoolUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self, request: CreatePoolRequest) -> Pool:
        return self._context.pool_allocator.create_pool(request.period, request.ship_ids)


class ListPoolsUseCase:
    def __init__(self, context: LedgerContext) -> None:
        self._context = context

    def execute(self) -> Sequence[Pool]:
        return self._context.pool_allocator.list_pools()
