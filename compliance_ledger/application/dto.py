"""Application-level DTOs for the ledger operations."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence


@dataclass(slots=True, frozen=True)
class ComplianceBalance:
    ship_id: str
    period: int
    balance: Decimal


@dataclass(slots=True, frozen=True)
class CreatePoolRequest:
    period: int
    ship_ids: Sequence[str]
