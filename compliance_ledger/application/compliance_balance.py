"""Compute-once compliance balance store."""
from __future__ import annotations

import logging
from decimal import Decimal

from compliance_ledger.config import SETTINGS, Settings
from compliance_ledger.domain.identity import ShipRouteResolver
from compliance_ledger.domain.models import ComplianceKey, Route
from compliance_ledger.domain.repositories import LedgerSession, LedgerStorage, RouteCatalog

logger = logging.getLogger(__name__)


def compute_compliance_balance(route: Route, settings: Settings = SETTINGS) -> Decimal:
    """CB = (target - actual intensity) * fuel consumption * MJ per tonne.

    Positive values are a surplus, negative values a deficit.
    """
    ctx = settings.decimal_context
    gap = ctx.subtract(settings.target_intensity, route.ghg_intensity)
    return ctx.multiply(ctx.multiply(gap, route.fuel_consumption), settings.unit_scale)


class ComplianceBalanceStore:
    """Owns the single CB record of each (ship, period).

    Every method takes an optional ``session``; callers that already hold a
    transaction (bank, apply, pool creation) pass it so the read and their
    writes commit together. Without one the method opens its own transaction
    locked on the key.
    """

    def __init__(
        self,
        storage: LedgerStorage,
        catalog: RouteCatalog,
        resolver: ShipRouteResolver | None = None,
        settings: Settings = SETTINGS,
    ) -> None:
        self._storage = storage
        self._catalog = catalog
        self._resolver = resolver or ShipRouteResolver()
        self._settings = settings

    def get_or_compute(self, ship_id: str, period: int, session: LedgerSession | None = None) -> Decimal | None:
        if session is None:
            with self._storage.transaction([ComplianceKey(ship_id, period)]) as own:
                return self.get_or_compute(ship_id, period, own)

        existing = session.get_compliance(ship_id, period)
        if existing is not None:
            return existing.cb_value

        route_id = self._resolver.route_for(ship_id)
        route = self._catalog.lookup(route_id, period)
        if route is None:
            logger.info("No route data for ship %s (route %s) in %s", ship_id, route_id, period)
            return None

        record = session.insert_compliance(ship_id, period, compute_compliance_balance(route, self._settings))
        logger.debug("Cached CB %s for ship %s in %s", record.cb_value, ship_id, period)
        return record.cb_value

    def add_delta(self, ship_id: str, period: int, delta: Decimal, session: LedgerSession | None = None) -> Decimal:
        if session is None:
            with self._storage.transaction([ComplianceKey(ship_id, period)]) as own:
                return self.add_delta(ship_id, period, delta, own)
        return session.add_compliance(ship_id, period, delta).cb_value

    def set_value(self, ship_id: str, period: int, value: Decimal, session: LedgerSession | None = None) -> None:
        if session is None:
            with self._storage.transaction([ComplianceKey(ship_id, period)]) as own:
                self.set_value(ship_id, period, value, own)
            return
        session.set_compliance(ship_id, period, value)
