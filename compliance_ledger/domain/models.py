"""Domain models for the compliance ledger.

These dataclasses are the typed records exchanged with every storage backend.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Sequence


@dataclass(frozen=True, order=True)
class ComplianceKey:
    """Identifies a compliance balance: one ship in one reporting period."""

    ship_id: str
    period: int


@dataclass(frozen=True)
class Route:
    """Voyage data supplied by the route catalog."""

    route_id: str
    period: int
    ghg_intensity: Decimal
    fuel_consumption: Decimal
    vessel_type: str = ""
    fuel_type: str = ""
    distance: Decimal | None = None
    total_emissions: Decimal | None = None
    is_baseline: bool = False


@dataclass(frozen=True)
class ShipComplianceRecord:
    id: int
    ship_id: str
    period: int
    cb_value: Decimal

    @property
    def key(self) -> ComplianceKey:
        return ComplianceKey(self.ship_id, self.period)


@dataclass(frozen=True)
class BankEntry:
    """Surplus set aside by a bank operation, cleared as a whole by apply."""

    id: int
    ship_id: str
    period: int
    amount: Decimal


@dataclass(frozen=True)
class PoolMember:
    ship_id: str
    cb_before: Decimal
    cb_after: Decimal


@dataclass(frozen=True)
class Pool:
    """Write-once snapshot of a redistribution between ships of one period."""

    id: int
    period: int
    created_at: datetime
    members: Sequence[PoolMember] = field(default_factory=tuple)

    def total_before(self) -> Decimal:
        return sum((m.cb_before for m in self.members), Decimal("0"))

    def total_after(self) -> Decimal:
        return sum((m.cb_after for m in self.members), Decimal("0"))
