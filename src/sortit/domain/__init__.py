"""Domain layer for sortit application."""

_SERVICES = {
    "AccountService": "sortit.domain.account",
    "CategoryService": "sortit.domain.category",
    "TransactionService": "sortit.domain.transaction",
    "RuleService": "sortit.domain.rules",
    "PayeeMemoryService": "sortit.domain.payee_memory",
    "AuditService": "sortit.domain.audit",
    "CategorizationService": "sortit.domain.categorization",
    "OverrideService": "sortit.domain.override",
    "BulkEditService": "sortit.domain.bulk_edit",
    "SplittingService": "sortit.domain.splitting",
    "TransferService": "sortit.domain.transfers",
    "ReimbursementService": "sortit.domain.reimbursement",
    "RetroactiveService": "sortit.domain.retroactive",
    "CashflowService": "sortit.domain.cashflow",
    "ReviewQueueService": "sortit.domain.review_queue",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports domain entities, so
# they are resolved lazily to keep `import sortit.database` cycle-free.
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
