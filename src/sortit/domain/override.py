"""Manual category overrides and locking."""

import logging
from dataclasses import dataclass
from typing import Optional

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.audit import write_category
from sortit.domain.category import require_category
from sortit.domain.entities import CategorySource, Transaction
from sortit.domain.payee_memory import PayeeMemoryService, normalize_payee_name
from sortit.domain.transaction import fetch_transaction_for_update

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideResult:
    previous_category_id: Optional[int]
    new_category_id: int
    payee_learned: bool


class OverrideService:
    """Service for user overrides, which always lock the transaction."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize override service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings
        self.payee_memory = PayeeMemoryService(db, settings)

    def apply_override(
        self,
        transaction_id: int,
        category_id: int,
        learn_payee: bool = True,
        changed_by: str = "user",
    ) -> OverrideResult:
        """Set a category by hand, lock it, and optionally remember the payee.

        Args:
            transaction_id: Transaction ID
            category_id: New category
            learn_payee: Save the payee to payee memory
            changed_by: Actor recorded in the audit log

        Returns:
            OverrideResult with the previous and new category

        Raises:
            NotFoundError: If the transaction or category doesn't exist
        """
        require_category(self.db, category_id)

        with self.db.transaction():
            txn = fetch_transaction_for_update(self.db, transaction_id)
            self.assign_category(txn, category_id, changed_by)
            learned = self.learn_payee(txn, category_id) if learn_payee else False

        logger.info(
            "Override on transaction %s: %s -> %s", transaction_id, txn.category_id, category_id
        )
        return OverrideResult(
            previous_category_id=txn.category_id,
            new_category_id=category_id,
            payee_learned=learned,
        )

    def assign_category(self, txn: Transaction, category_id: int, changed_by: str) -> bool:
        """Write a manual, locked category. Returns True if the category changed."""
        return write_category(
            self.db,
            txn,
            category_id,
            source=CategorySource.MANUAL,
            changed_by=changed_by,
            confidence=self.settings.manual_confidence,
            lock=True,
        )

    def learn_payee(self, txn: Transaction, category_id: int) -> bool:
        """Remember the transaction's payee. Returns False if it has none."""
        if not normalize_payee_name(txn.payee_text):
            return False
        self.payee_memory.save(txn.payee_text, category_id)
        return True

    def lock(self, transaction_id: int) -> None:
        """Freeze the current category against automatic changes."""
        self._set_lock(transaction_id, True)

    def unlock(self, transaction_id: int) -> None:
        """Allow automatic categorization again. The category is kept."""
        self._set_lock(transaction_id, False)

    def _set_lock(self, transaction_id: int, locked: bool) -> None:
        with self.db.transaction():
            txn = fetch_transaction_for_update(self.db, transaction_id)
            if txn.category_locked != locked:
                self.db.update_transaction(transaction_id, category_locked=locked)
        logger.info("Transaction %s %s", transaction_id, "locked" if locked else "unlocked")
