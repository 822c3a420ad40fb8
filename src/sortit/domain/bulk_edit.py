"""Bulk operations over a caller-selected set of transactions."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.audit import write_category
from sortit.domain.category import require_category
from sortit.domain.entities import FLAG_FIELDS, CategorySource, OperationType, Transaction
from sortit.domain.errors import ValidationError
from sortit.domain.payee_memory import PayeeMemoryService, normalize_payee_name
from sortit.domain.transaction import fetch_transactions_for_update

logger = logging.getLogger(__name__)


@dataclass
class BulkEditResult:
    updated: int = 0
    skipped_locked: int = 0
    skipped_ineligible: int = 0
    batch_id: Optional[int] = None


def validate_flag_patch(flags: dict) -> dict[str, bool]:
    """Check a partial flag patch.

    Raises:
        ValidationError: If the patch is empty, names an unknown flag or
            carries a non-boolean value
    """
    if not flags:
        raise ValidationError("No flags provided")
    unknown = sorted(set(flags) - set(FLAG_FIELDS))
    if unknown:
        raise ValidationError(
            f"Unknown flag(s): {', '.join(unknown)}. Use: {', '.join(FLAG_FIELDS)}"
        )
    for name, value in flags.items():
        if not isinstance(value, bool):
            raise ValidationError(f"Flag {name} must be true or false")
    return dict(flags)


class BulkEditService:
    """Service for bulk category assignment, flag updates and approval."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize bulk edit service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings
        self.payee_memory = PayeeMemoryService(db, settings)

    def assign_category(
        self,
        transaction_ids: Sequence[int],
        category_id: int,
        learn_payee: bool = False,
        changed_by: str = "user",
    ) -> BulkEditResult:
        """Assign a category to many transactions as one undoable batch.

        Locked transactions and split parents are skipped. Updated
        transactions become manual and locked.

        Args:
            transaction_ids: Transactions to update
            category_id: Category to assign
            learn_payee: Remember each distinct payee once
            changed_by: Actor recorded in the audit log

        Returns:
            BulkEditResult including the batch ID

        Raises:
            ValidationError: If no IDs are given
            NotFoundError: If the category or a transaction doesn't exist
        """
        require_category(self.db, category_id)

        with self.db.transaction():
            transactions = fetch_transactions_for_update(self.db, transaction_ids)
            batch_id = self.db.create_batch(
                operation_type=OperationType.BULK_EDIT.value,
                created_by=changed_by,
                description=f"Bulk assign category {category_id} to {len(transactions)} transactions",
            )
            result = BulkEditResult(batch_id=batch_id)
            updated: list[Transaction] = []

            for txn in transactions:
                if txn.category_locked:
                    result.skipped_locked += 1
                    continue
                if txn.is_split_parent:
                    result.skipped_ineligible += 1
                    continue
                write_category(
                    self.db,
                    txn,
                    category_id,
                    source=CategorySource.MANUAL,
                    changed_by=changed_by,
                    confidence=self.settings.manual_confidence,
                    batch_id=batch_id,
                    lock=True,
                    audit_source=CategorySource.BULK_EDIT,
                )
                updated.append(txn)

            result.updated = len(updated)
            self.db.update_batch(batch_id, transaction_count=result.updated)

            if learn_payee:
                learned = self._learn_payees(updated, category_id)
                logger.debug("Learned %d payees from bulk assignment", learned)

        logger.info(
            "Bulk assign to category %s: %d updated, %d locked, %d split (batch %s)",
            category_id,
            result.updated,
            result.skipped_locked,
            result.skipped_ineligible,
            batch_id,
        )
        return result

    def _learn_payees(self, transactions: list[Transaction], category_id: int) -> int:
        seen: set[str] = set()
        for txn in transactions:
            key = normalize_payee_name(txn.payee_text)[: self.settings.payee_prefix_length]
            if not key or key in seen:
                continue
            seen.add(key)
            self.payee_memory.save(txn.payee_text, category_id)
        return len(seen)

    def update_flags(self, transaction_ids: Sequence[int], flags: dict) -> BulkEditResult:
        """Merge a partial flag patch into each transaction, locked or not.

        Args:
            transaction_ids: Transactions to update
            flags: Subset of is_transfer, is_pass_through, is_business

        Raises:
            ValidationError: If no IDs are given or the patch is invalid
            NotFoundError: If a transaction doesn't exist
        """
        patch = validate_flag_patch(flags)

        with self.db.transaction():
            transactions = fetch_transactions_for_update(self.db, transaction_ids)
            for txn in transactions:
                changes = {name: value for name, value in patch.items() if getattr(txn, name) != value}
                if changes:
                    self.db.update_transaction(txn.id, **changes)

        logger.info("Updated flags %s on %d transactions", patch, len(transactions))
        return BulkEditResult(updated=len(transactions))

    def approve(self, transaction_ids: Sequence[int]) -> BulkEditResult:
        """Accept the current categories: lock them and mark them manual.

        Uncategorized transactions are ineligible; locked ones are skipped.
        """
        result = BulkEditResult()
        with self.db.transaction():
            for txn in fetch_transactions_for_update(self.db, transaction_ids):
                if txn.category_locked:
                    result.skipped_locked += 1
                elif txn.category_id is None:
                    result.skipped_ineligible += 1
                else:
                    self.db.update_transaction(
                        txn.id,
                        category_locked=True,
                        category_source=CategorySource.MANUAL.value,
                    )
                    result.updated += 1

        logger.info(
            "Approved %d transactions (%d locked, %d uncategorized)",
            result.updated,
            result.skipped_locked,
            result.skipped_ineligible,
        )
        return result
