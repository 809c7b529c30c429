"""Compliance balance ledger: CB computation, banking and pooling."""
from compliance_ledger.application.bank_ledger import BankLedger
from compliance_ledger.application.compliance_balance import ComplianceBalanceStore
from compliance_ledger.application.pool_allocator import PoolAllocator
from compliance_ledger.application.use_cases import LedgerContext
from compliance_ledger.bootstrap import build_context
from compliance_ledger.domain.errors import (
    ComplianceRecordNotFound,
    LedgerError,
    NotFoundError,
    PoolValidationError,
    StorageFault,
)
from compliance_ledger.domain.services import PoolRedistributor
from compliance_ledger.infrastructure.catalog.route_catalog import InMemoryRouteCatalog
from compliance_ledger.infrastructure.storage.memory_store import InMemoryLedgerStore
from compliance_ledger.infrastructure.storage.sqlite_store import SqliteLedgerStore

__all__ = [
    "BankLedger",
    "ComplianceBalanceStore",
    "PoolAllocator",
    "PoolRedistributor",
    "LedgerContext",
    "build_context",
    "InMemoryLedgerStore",
    "SqliteLedgerStore",
    "InMemoryRouteCatalog",
    "LedgerError",
    "NotFoundError",
    "ComplianceRecordNotFound",
    "PoolValidationError",
    "StorageFault",
]
