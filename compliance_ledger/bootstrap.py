"""Wiring of settings, storage backends and ledger components."""
from __future__ import annotations

import logging

from compliance_ledger.application.bank_ledger import BankLedger
from compliance_ledger.application.compliance_balance import ComplianceBalanceStore
from compliance_ledger.application.pool_allocator import PoolAllocator
from compliance_ledger.application.use_cases import LedgerContext
from compliance_ledger.config import SETTINGS, Settings
from compliance_ledger.domain.identity import ShipRouteResolver
from compliance_ledger.domain.repositories import LedgerStorage, RouteCatalog
from compliance_ledger.domain.services import PoolRedistributor
from compliance_ledger.infrastructure.catalog.route_catalog import InMemoryRouteCatalog, load_route_catalog
from compliance_ledger.infrastructure.storage.mapping_store import load_mapping
from compliance_ledger.infrastructure.storage.memory_store import InMemoryLedgerStore
from compliance_ledger.infrastructure.storage.sqlite_store import SqliteLedgerStore

logger = logging.getLogger(__name__)


def build_storage(settings: Settings = SETTINGS) -> LedgerStorage:
    if settings.database_path:
        logger.debug("Using SQLite ledger at %s", settings.database_path)
        return SqliteLedgerStore(settings.database_path)
    return InMemoryLedgerStore()


def build_catalog(settings: Settings = SETTINGS) -> RouteCatalog:
    if settings.route_catalog_path:
        return load_route_catalog(settings.route_catalog_path)
    return InMemoryRouteCatalog()


def build_context(
    settings: Settings = SETTINGS,
    storage: LedgerStorage | None = None,
    catalog: RouteCatalog | None = None,
) -> LedgerContext:
    storage = storage or build_storage(settings)
    catalog = catalog or build_catalog(settings)
    resolver = ShipRouteResolver(load_mapping(settings.ship_route_map_path))
    if not resolver.is_identity:
        logger.info("Resolving %d ships through explicit route overrides", len(resolver.overrides))

    balances = ComplianceBalanceStore(storage, catalog, resolver, settings)
    return LedgerContext(
        storage=storage,
        catalog=catalog,
        balances=balances,
        bank_ledger=BankLedger(storage, balances),
        pool_allocator=PoolAllocator(storage, balances, PoolRedistributor(settings.decimal_context)),
    )
