from datetime import datetime, timezone
from decimal import Decimal

import pytest

from compliance_ledger.application.compliance_balance import ComplianceBalanceStore
from compliance_ledger.application.pool_allocator import PoolAllocator
from compliance_ledger.domain.errors import ComplianceRecordNotFound, PoolValidationError
from compliance_ledger.infrastructure.catalog.route_catalog import InMemoryRouteCatalog
from compliance_ledger.infrastructure.storage.sqlite_store import SqliteLedgerStore

from conftest import seed_balance

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def allocator(context, storage):
    return PoolAllocator(storage, context.balances, clock=lambda: FIXED_NOW)


def seed_scenario(storage):
    seed_balance(storage, "A", 2024, "500")
    seed_balance(storage, "B", 2024, "-300")
    seed_balance(storage, "C", 2024, "-100")


def test_pool_redistributes_and_persists(allocator, storage):
    seed_scenario(storage)

    pool = allocator.create_pool(2024, ["A", "B", "C"])

    assert pool.period == 2024
    assert pool.created_at == FIXED_NOW
    assert {m.ship_id: m.cb_after for m in pool.members} == {
        "A": Decimal("100"),
        "B": Decimal("0"),
        "C": Decimal("0"),
    }
    assert pool.total_after() == pool.total_before() == Decimal("100")
    assert list(allocator.list_pools()) == [pool]


def test_pool_does_not_change_balances(allocator, context, storage):
    seed_scenario(storage)

    allocator.create_pool(2024, ["A", "B", "C"])

    assert context.balances.get_or_compute("A", 2024) == Decimal("500")
    assert context.balances.get_or_compute("B", 2024) == Decimal("-300")


def test_duplicate_ships_collapse(allocator, storage):
    seed_scenario(storage)

    pool = allocator.create_pool(2024, ["A", "B", "A", "C", "B"])

    assert sorted(m.ship_id for m in pool.members) == ["A", "B", "C"]


def test_members_computed_from_routes(allocator):
    pool = allocator.create_pool(2024, ["R002", "R001"])

    before = {m.ship_id: m.cb_before for m in pool.members}
    assert before["R002"] == Decimal("263082240")
    assert before["R001"] == Decimal("-340956000")


def test_missing_ship_fails_whole_pool(allocator, storage):
    with pytest.raises(ComplianceRecordNotFound) as excinfo:
        allocator.create_pool(2024, ["R002", "GHOST"])

    assert excinfo.value.ship_id == "GHOST"
    assert allocator.list_pools() == []
    assert storage.list_compliance() == []


def test_negative_total_is_rejected(allocator, storage):
    seed_balance(storage, "A", 2024, "100")
    seed_balance(storage, "B", 2024, "-300")

    with pytest.raises(PoolValidationError):
        allocator.create_pool(2024, ["A", "B"])

    assert allocator.list_pools() == []


def test_empty_ship_list_is_rejected(allocator):
    with pytest.raises(PoolValidationError):
        allocator.create_pool(2024, [])


def test_cb_before_reflects_banking(allocator, context, storage):
    seed_balance(storage, "A", 2024, "500")
    seed_balance(storage, "B", 2024, "-100")
    context.bank_ledger.bank("A", 2024)

    with pytest.raises(PoolValidationError):
        allocator.create_pool(2024, ["A", "B"])

    context.bank_ledger.apply("A", 2024)
    pool = allocator.create_pool(2024, ["A", "B"])
    assert {m.ship_id: m.cb_before for m in pool.members}["A"] == Decimal("500")


def test_pools_survive_reopening_the_database(tmp_path, settings):
    path = tmp_path / "pools.sqlite"
    store = SqliteLedgerStore(path)
    seed_scenario(store)
    balances = ComplianceBalanceStore(store, InMemoryRouteCatalog(), settings=settings)
    created = PoolAllocator(store, balances, clock=lambda: FIXED_NOW).create_pool(2024, ["A", "B", "C"])
    store.close()

    reopened = SqliteLedgerStore(path)
    try:
        pools = reopened.list_pools()
    finally:
        reopened.close()

    assert pools == [created]
