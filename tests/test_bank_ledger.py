from decimal import Decimal

import pytest

from compliance_ledger.application.bank_ledger import BankLedger
from compliance_ledger.application.compliance_balance import ComplianceBalanceStore

from conftest import CountingCatalog, seed_balance


class InjectedFailure(RuntimeError):
    pass


def test_bank_deficit_is_a_noop(context, storage):
    cb = context.balances.get_or_compute("R001", 2024)

    assert context.bank_ledger.bank("R001", 2024) == cb
    assert context.balances.get_or_compute("R001", 2024) == cb
    assert storage.list_bank_entries() == []


def test_bank_zero_balance_is_a_noop(context, storage):
    seed_balance(storage, "S1", 2024, "0")

    assert context.bank_ledger.bank("S1", 2024) == Decimal("0")
    assert storage.list_bank_entries() == []


def test_bank_unknown_ship_returns_none(context, storage):
    assert context.bank_ledger.bank("GHOST", 2024) is None
    assert storage.list_bank_entries() == []


def test_bank_then_apply_round_trip(context, storage):
    seed_balance(storage, "S1", 2024, "1000000")

    assert context.bank_ledger.bank("S1", 2024) == Decimal("0")
    entries = storage.list_bank_entries()
    assert [(e.ship_id, e.period, e.amount) for e in entries] == [("S1", 2024, Decimal("1000000"))]
    assert context.balances.get_or_compute("S1", 2024) == Decimal("0")

    assert context.bank_ledger.apply("S1", 2024) == Decimal("1000000")
    assert storage.list_bank_entries() == []
    assert context.balances.get_or_compute("S1", 2024) == Decimal("1000000")


def test_bank_computes_balance_on_first_use(context, storage):
    assert context.bank_ledger.bank("R002", 2024) == Decimal("0")
    assert storage.list_bank_entries()[0].amount == Decimal("263082240")


def test_apply_without_entries_is_a_read(context, storage):
    seed_balance(storage, "S1", 2024, "-42")

    assert context.bank_ledger.apply("S1", 2024) == Decimal("-42")
    assert storage.list_bank_entries() == []


def test_apply_unknown_ship_returns_none(context):
    assert context.bank_ledger.apply("GHOST", 2024) is None


def test_apply_sums_every_entry(context, storage):
    seed_balance(storage, "S1", 2024, "300")
    context.bank_ledger.bank("S1", 2024)
    context.balances.add_delta("S1", 2024, Decimal("200"))
    context.bank_ledger.bank("S1", 2024)

    assert context.bank_ledger.banked_total("S1", 2024) == Decimal("500")
    assert context.bank_ledger.apply("S1", 2024) == Decimal("500")
    assert context.bank_ledger.banked_total("S1", 2024) == Decimal("0")


def test_apply_leaves_other_periods_alone(context, storage):
    seed_balance(storage, "S1", 2024, "10")
    seed_balance(storage, "S1", 2025, "20")
    context.bank_ledger.bank("S1", 2024)
    context.bank_ledger.bank("S1", 2025)

    context.bank_ledger.apply("S1", 2024)

    assert [(e.period, e.amount) for e in storage.list_bank_entries()] == [(2025, Decimal("20"))]


def test_entry_ids_are_increasing(context, storage):
    for ship in ("A", "B", "C"):
        seed_balance(storage, ship, 2024, "1")
        context.bank_ledger.bank(ship, 2024)

    ids = [e.id for e in context.bank_ledger.list_all()]
    assert ids == sorted(ids)
    assert len(set(ids)) == 3


def test_list_by_ship_orders_latest_first(context, storage):
    seed_balance(storage, "S1", 2024, "1")
    seed_balance(storage, "S1", 2025, "2")
    seed_balance(storage, "S2", 2025, "3")
    for ship, period in (("S1", 2024), ("S1", 2025), ("S2", 2025)):
        context.bank_ledger.bank(ship, period)

    history = context.bank_ledger.list_by_ship("S1")

    assert [e.period for e in history] == [2025, 2024]


def test_failed_bank_rolls_back(storage, settings):
    class FailingBalances(ComplianceBalanceStore):
        def set_value(self, ship_id, period, value, session=None):
            raise InjectedFailure("zeroing failed")

    balances = FailingBalances(storage, CountingCatalog(), settings=settings)
    ledger = BankLedger(storage, balances)
    seed_balance(storage, "S1", 2024, "1000")

    with pytest.raises(InjectedFailure):
        ledger.bank("S1", 2024)

    assert storage.list_bank_entries() == []
    assert balances.get_or_compute("S1", 2024) == Decimal("1000")


def test_failed_apply_rolls_back(storage, settings):
    class FailingBalances(ComplianceBalanceStore):
        fail = False

        def add_delta(self, ship_id, period, delta, session=None):
            value = super().add_delta(ship_id, period, delta, session)
            if self.fail:
                raise InjectedFailure("after increment")
            return value

    balances = FailingBalances(storage, CountingCatalog(), settings=settings)
    ledger = BankLedger(storage, balances)
    seed_balance(storage, "S1", 2024, "1000")
    ledger.bank("S1", 2024)
    balances.fail = True

    with pytest.raises(InjectedFailure):
        ledger.apply("S1", 2024)

    assert [e.amount for e in storage.list_bank_entries()] == [Decimal("1000")]
    assert balances.get_or_compute("S1", 2024) == Decimal("0")
