"""Creation and listing of compliance pools."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Sequence

from compliance_ledger.application.compliance_balance import ComplianceBalanceStore
from compliance_ledger.domain.errors import ComplianceRecordNotFound, PoolValidationError
from compliance_ledger.domain.models import ComplianceKey, Pool
from compliance_ledger.domain.repositories import LedgerStorage
from compliance_ledger.domain.services import PoolRedistributor

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PoolAllocator:
    """Forms write-once pools from the current CB of each member.

    The locks of every member are held while balances are read and the pool is
    written, so ``cb_before`` matches the committed CB at creation time.
    Member balances themselves are not changed by pooling.
    """

    def __init__(
        self,
        storage: LedgerStorage,
        balances: ComplianceBalanceStore,
        redistributor: PoolRedistributor | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._balances = balances
        self._redistributor = redistributor or PoolRedistributor()
        self._clock = clock

    def create_pool(self, period: int, ship_ids: Iterable[str]) -> Pool:
        unique_ids = list(dict.fromkeys(ship_ids))
        if not unique_ids:
            raise PoolValidationError("Cannot create a pool without ships")

        keys = [ComplianceKey(ship_id, period) for ship_id in unique_ids]
        try:
            with self._storage.transaction(keys) as session:
                balances: dict[str, Decimal] = {}
                for ship_id in unique_ids:
                    cb = self._balances.get_or_compute(ship_id, period, session)
                    if cb is None:
                        raise ComplianceRecordNotFound(ship_id, period)
                    balances[ship_id] = cb

                members = self._redistributor.redistribute(balances)
                pool = session.insert_pool(period, self._clock(), members)
        except PoolValidationError as exc:
            logger.warning("Rejected pool for %s in %s: %s", unique_ids, period, exc)
            raise

        logger.info("Created pool %s for %d ships in %s", pool.id, len(pool.members), period)
        return pool

    def list_pools(self) -> Sequence[Pool]:
        return self._storage.list_pools()
