from decimal import Decimal

from compliance_ledger.application.dto import CreatePoolRequest
from compliance_ledger.application.use_cases import (
    ApplyBankedSurplusUseCase,
    BankSurplusUseCase,
    CreatePoolUseCase,
    GetAdjustedComplianceBalanceUseCase,
    GetComplianceBalanceUseCase,
    ListBankEntriesUseCase,
    ListComplianceUseCase,
    ListPoolsUseCase,
)

from conftest import seed_balance


def test_get_balance_returns_dto(context):
    result = GetComplianceBalanceUseCase(context).execute("R002", 2024)

    assert result.ship_id == "R002"
    assert result.period == 2024
    assert result.balance == Decimal("263082240")


def test_get_balance_for_unknown_ship(context):
    assert GetComplianceBalanceUseCase(context).execute("GHOST", 2024) is None


def test_adjusted_balance_adds_banked_surplus(context):
    BankSurplusUseCase(context).execute("R002", 2024)

    plain = GetComplianceBalanceUseCase(context).execute("R002", 2024)
    adjusted = GetAdjustedComplianceBalanceUseCase(context).execute("R002", 2024)

    assert plain.balance == Decimal("0")
    assert adjusted.balance == Decimal("263082240")


def test_adjusted_balance_for_unknown_ship(context):
    assert GetAdjustedComplianceBalanceUseCase(context).execute("GHOST", 2024) is None


def test_bank_and_apply_use_cases(context):
    assert BankSurplusUseCase(context).execute("R002", 2024).balance == Decimal("0")
    assert len(ListBankEntriesUseCase(context).execute()) == 1
    assert len(ListBankEntriesUseCase(context).execute("R002")) == 1
    assert ListBankEntriesUseCase(context).execute("R001") == []

    assert ApplyBankedSurplusUseCase(context).execute("R002", 2024).balance == Decimal("263082240")
    assert ListBankEntriesUseCase(context).execute() == []


def test_list_compliance_reflects_lookups(context):
    GetComplianceBalanceUseCase(context).execute("R004", 2025)
    GetComplianceBalanceUseCase(context).execute("R001", 2024)

    records = ListComplianceUseCase(context).execute()

    assert [(r.ship_id, r.period) for r in records] == [("R004", 2025), ("R001", 2024)]


def test_create_and_list_pools(context, storage):
    seed_balance(storage, "A", 2024, "500")
    seed_balance(storage, "B", 2024, "-300")
    seed_balance(storage, "C", 2024, "-100")

    pool = CreatePoolUseCase(context).execute(CreatePoolRequest(period=2024, ship_ids=["A", "B", "C"]))

    assert [p.id for p in ListPoolsUseCase(context).execute()] == [pool.id]
