"""Transaction splitting.

A normal transaction can become a split parent with two or more children,
and back again. Children are never turned into parents; unsplitting deletes
them outright. Only the children count toward cashflow while the split
exists.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.category import require_category
from sortit.domain.entities import CategorySource, Transaction
from sortit.domain.errors import ConflictError, ValidationError
from sortit.domain.transaction import fetch_transaction_for_update

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitItem:
    """One share of a split. The amount is a positive magnitude."""

    amount: Decimal
    category_id: int
    description: Optional[str] = None


def validate_split_amounts(
    parent_amount: Decimal,
    items: Sequence[SplitItem],
    tolerance: Decimal = DEFAULT_SETTINGS.split_tolerance,
) -> None:
    """Check split items against the parent amount.

    Raises:
        ValidationError: If there are fewer than two items, an item lacks a
            positive amount or a category, or the items don't add up to the
            parent's magnitude within the tolerance
    """
    if len(items) < 2:
        raise ValidationError("A split needs at least 2 items")

    for index, item in enumerate(items, start=1):
        if item.amount is None or item.amount <= 0:
            raise ValidationError(f"Split item {index} must have a positive amount")
        if item.category_id is None:
            raise ValidationError(f"Split item {index} must have a category")

    total = sum((item.amount for item in items), Decimal("0"))
    expected = abs(parent_amount)
    if abs(total - expected) > tolerance:
        raise ValidationError(f"Split amounts total {total} but the transaction is {expected}")


class SplittingService:
    """Service for splitting transactions across categories."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize splitting service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings

    def split(
        self, parent_id: int, items: Sequence[SplitItem], changed_by: str = "user"
    ) -> list[int]:
        """Split a transaction into child transactions.

        Args:
            parent_id: Transaction to split
            items: Shares, as positive magnitudes with categories
            changed_by: Actor recorded in the audit log

        Returns:
            IDs of the created children, in item order

        Raises:
            NotFoundError: If the transaction or a category doesn't exist
            ConflictError: If the transaction is already split or is a split child
            ValidationError: If the items are invalid
        """
        for item in items:
            if item.category_id is not None:
                require_category(self.db, item.category_id)

        with self.db.transaction():
            parent = fetch_transaction_for_update(self.db, parent_id)
            if parent.is_split_parent:
                raise ConflictError(
                    f"Transaction {parent_id} is already split. Unsplit it first to re-split."
                )
            if parent.is_split_child:
                raise ConflictError(f"Transaction {parent_id} is a split child and cannot be split")
            validate_split_amounts(parent.amount, items, self.settings.split_tolerance)

            sign = Decimal("-1") if parent.amount < 0 else Decimal("1")
            child_ids = [
                self._create_child(parent, index, item, sign, changed_by)
                for index, item in enumerate(items, start=1)
            ]
            self.db.update_transaction(parent_id, is_split_parent=True)

        logger.info("Split transaction %s into %d children", parent_id, len(child_ids))
        return child_ids

    def _create_child(
        self, parent: Transaction, index: int, item: SplitItem, sign: Decimal, changed_by: str
    ) -> int:
        child_id = self.db.create_transaction(
            provider_transaction_id=f"{parent.provider_transaction_id}_split_{index}",
            account_id=parent.account_id,
            date=parent.date,
            amount=sign * item.amount,
            provider=parent.provider,
            description_raw=item.description or f"{parent.description_raw or ''} (Split {index})".lstrip(),
            description_clean=parent.description_clean,
            counterparty_name=parent.counterparty_name,
            category_id=item.category_id,
            category_source=CategorySource.MANUAL.value,
            category_locked=True,
            confidence=self.settings.manual_confidence,
            is_transfer=parent.is_transfer,
            is_pass_through=parent.is_pass_through,
            is_business=parent.is_business,
            parent_transaction_id=parent.id,
            is_split_child=True,
        )
        self.db.add_audit_entry(
            transaction_id=child_id,
            previous_category_id=None,
            new_category_id=item.category_id,
            change_source=CategorySource.MANUAL.value,
            changed_by=changed_by,
            confidence_score=self.settings.manual_confidence,
            notes=f"Split {index} of transaction {parent.id}",
        )
        return child_id

    def unsplit(self, parent_id: int) -> int:
        """Delete a transaction's children and make it a normal transaction.

        Returns:
            Number of children deleted

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If it has no children
        """
        with self.db.transaction():
            fetch_transaction_for_update(self.db, parent_id)
            children = self.db.list_split_children(parent_id)
            if not children:
                raise ValidationError(f"Transaction {parent_id} has no split children")
            deleted = self.db.delete_transactions([child.id for child in children])
            self.db.update_transaction(parent_id, is_split_parent=False)

        logger.info("Unsplit transaction %s, removed %d children", parent_id, deleted)
        return deleted

    def get_children(self, parent_id: int) -> list[Transaction]:
        """List the children of a split transaction."""
        return self.db.list_split_children(parent_id)
