"""Error taxonomy shared by the ledger components."""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error raised by the compliance ledger."""


class NotFoundError(LedgerError, LookupError):
    """No route or compliance data exists for the requested ship and period."""


class ComplianceRecordNotFound(NotFoundError):
    def __init__(self, ship_id: str, period: int) -> None:
        super().__init__(f"No compliance record for ship {ship_id} in {period}")
        self.ship_id = ship_id
        self.period = period


class PoolValidationError(LedgerError, ValueError):
    """Pool creation was rejected before anything was persisted."""

    def __init__(self, message: str, ship_id: str | None = None) -> None:
        super().__init__(message)
        self.ship_id = ship_id


class StorageFault(LedgerError):
    """The backing store failed to commit; the transaction was rolled back."""
