"""Correlation between ship identifiers and route catalog identifiers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class ShipRouteResolver:
    """Resolves the route identifier used to compute a ship's balance.

    Ships and routes are assumed to share one identifier namespace: without an
    explicit override a ship id is looked up in the catalog as a route id.
    """

    overrides: Mapping[str, str] = field(default_factory=dict)

    def route_for(self, ship_id: str) -> str:
        return self.overrides.get(ship_id, ship_id)

    @property
    def is_identity(self) -> bool:
        return not self.overrides
