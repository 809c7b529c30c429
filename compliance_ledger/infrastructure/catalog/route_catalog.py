"""In-memory route catalog and its default seed data."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Iterable, Sequence

from compliance_ledger.domain.models import Route
from compliance_ledger.infrastructure.parsing.routes import routes_to_records


def _route(route_id, vessel_type, fuel_type, period, intensity, consumption, distance, emissions, baseline=False):
    return Route(
        route_id=route_id,
        period=period,
        ghg_intensity=Decimal(intensity),
        fuel_consumption=Decimal(consumption),
        vessel_type=vessel_type,
        fuel_type=fuel_type,
        distance=Decimal(distance),
        total_emissions=Decimal(emissions),
        is_baseline=baseline,
    )


DEFAULT_ROUTES = (
    _route("R001", "Container", "HFO", 2024, "91.0", "5000", "12000", "4500", baseline=True),
    _route("R002", "BulkCarrier", "LNG", 2024, "88.0", "4800", "11500", "4200"),
    _route("R003", "Tanker", "MGO", 2024, "93.5", "5100", "12500", "4700"),
    _route("R004", "RoRo", "HFO", 2025, "89.2", "4900", "11800", "4300"),
    _route("R005", "Container", "LNG", 2025, "90.5", "4950", "11900", "4400"),
)


class InMemoryRouteCatalog:
    """Route catalog keyed by (route id, period); the first row for a key wins."""

    def __init__(self, routes: Iterable[Route] = DEFAULT_ROUTES) -> None:
        self._routes = tuple(routes)
        self._index: dict[tuple[str, int], Route] = {}
        for route in self._routes:
            self._index.setdefault((route.route_id, route.period), route)

    def lookup(self, route_id: str, period: int) -> Route | None:
        return self._index.get((route_id, period))

    def list_routes(self) -> Sequence[Route]:
        return self._routes


def load_route_catalog(path: Path | str) -> InMemoryRouteCatalog:
    return InMemoryRouteCatalog(routes_to_records(Path(path)))
