import dataclasses
from decimal import Decimal
from pathlib import Path

import pytest

from compliance_ledger.bootstrap import build_context
from compliance_ledger.config import load_settings
from compliance_ledger.domain.models import ComplianceKey, Route
from compliance_ledger.infrastructure.storage.memory_store import InMemoryLedgerStore
from compliance_ledger.infrastructure.storage.sqlite_store import SqliteLedgerStore


class CountingCatalog:
    """Route catalog whose rows can be edited between lookups."""

    def __init__(self, routes=()):
        self.routes = {(r.route_id, r.period): r for r in routes}
        self.lookups = 0

    def lookup(self, route_id, period):
        self.lookups += 1
        return self.routes.get((route_id, period))

    def list_routes(self):
        return list(self.routes.values())


def make_route(route_id: str, period: int, intensity: str, consumption: str) -> Route:
    return Route(
        route_id=route_id,
        period=period,
        ghg_intensity=Decimal(intensity),
        fuel_consumption=Decimal(consumption),
    )


def seed_balance(storage, ship_id: str, period: int, value: str) -> None:
    with storage.transaction([ComplianceKey(ship_id, period)]) as session:
        session.set_compliance(ship_id, period, Decimal(value))


@pytest.fixture
def settings(tmp_path: Path):
    return dataclasses.replace(load_settings({}), ship_route_map_path=tmp_path / "ship_route_map.json")


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path: Path):
    if request.param == "memory":
        yield InMemoryLedgerStore()
    else:
        store = SqliteLedgerStore(tmp_path / "ledger.sqlite")
        yield store
        store.close()


@pytest.fixture
def context(settings, storage):
    return build_context(settings, storage=storage)
