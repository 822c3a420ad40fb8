"""Transactions that need a human look."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.entities import CategorySource, Transaction
from sortit.domain.errors import ValidationError

SORT_FIELDS = ("date", "amount", "confidence")


def review_reasons(txn: Transaction, settings: Settings = DEFAULT_SETTINGS) -> list[str]:
    """Why a transaction needs review; empty when it doesn't."""
    reasons = []
    if txn.category_id is None:
        reasons.append("uncategorized")
    if txn.confidence is not None and txn.confidence < settings.low_confidence_threshold:
        reasons.append("low_confidence")
    if (
        txn.category_source == CategorySource.PROVIDER.value
        and txn.amount < -settings.large_amount_threshold
    ):
        reasons.append("large_amount")
    return reasons


def needs_review(txn: Transaction, settings: Settings = DEFAULT_SETTINGS) -> bool:
    return bool(review_reasons(txn, settings))


def _sort_key(txn: Transaction, sort_by: str) -> tuple:
    if sort_by == "amount":
        return (txn.amount, txn.id)
    if sort_by == "confidence":
        # Missing confidence sorts lowest.
        return (txn.confidence if txn.confidence is not None else -1.0, txn.id)
    return (txn.date, txn.id)


@dataclass(frozen=True)
class ReviewItem:
    transaction: Transaction
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class ReviewStats:
    total: int
    uncategorized: int
    low_confidence: int
    large_amount: int


class ReviewQueueService:
    """Service for the review queue. Split children are never listed."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize review queue service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings

    def list(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sort_by: str = "date",
        descending: bool = True,
    ) -> list[ReviewItem]:
        """List transactions needing review.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            sort_by: "date", "amount" or "confidence" (missing confidence sorts lowest)
            descending: Sort direction

        Raises:
            ValidationError: If sort_by is unknown
        """
        if sort_by not in SORT_FIELDS:
            raise ValidationError(f"Cannot sort by '{sort_by}'. Use: {', '.join(SORT_FIELDS)}")

        items = []
        for txn in self.db.list_transactions(
            start_date=start_date, end_date=end_date, include_split_children=False
        ):
            reasons = review_reasons(txn, self.settings)
            if reasons:
                items.append(ReviewItem(transaction=txn, reasons=tuple(reasons)))

        return sorted(items, key=lambda item: _sort_key(item.transaction, sort_by), reverse=descending)

    def stats(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> ReviewStats:
        """Count queue members by reason. A transaction can have several reasons."""
        items = self.list(start_date=start_date, end_date=end_date)
        return ReviewStats(
            total=len(items),
            uncategorized=sum(1 for item in items if "uncategorized" in item.reasons),
            low_confidence=sum(1 for item in items if "low_confidence" in item.reasons),
            large_amount=sum(1 for item in items if "large_amount" in item.reasons),
        )
