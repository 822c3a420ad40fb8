"""Categorization waterfall.

For each unlocked transaction: user rules first, then payee memory, then the
provider default is left in place. Locked transactions and split parents are
counted and never touched.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.audit import write_category
from sortit.domain.entities import (
    CategorizationRule,
    CategorySource,
    OperationType,
    Transaction,
)
from sortit.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    batch_already_undone,
    batch_not_found,
)
from sortit.domain.payee_memory import PayeeMemoryService
from sortit.domain.rules import find_matching_rule, order_rules
from sortit.domain.transaction import fetch_transactions_for_update

logger = logging.getLogger(__name__)


@dataclass
class WaterfallResult:
    processed: int = 0
    rules_applied: int = 0
    memory_applied: int = 0
    provider_default_count: int = 0
    skipped_locked: int = 0
    skipped_split: int = 0
    uncategorized: int = 0
    batch_id: Optional[int] = None


@dataclass
class CategorizationStats:
    total: int = 0
    categorized: int = 0
    uncategorized: int = 0
    locked: int = 0
    by_source: dict[str, int] = field(default_factory=dict)

    @property
    def categorization_rate(self) -> float:
        """Percentage of transactions with a category."""
        if self.total == 0:
            return 0.0
        return round(self.categorized / self.total * 100, 1)


class CategorizationService:
    """Runs the rule / payee memory / provider default waterfall."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize categorization service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings
        self.payee_memory = PayeeMemoryService(db, settings)

    def categorize_batch(
        self,
        transaction_ids: Sequence[int],
        batch_id: Optional[int] = None,
        changed_by: str = "system",
    ) -> WaterfallResult:
        """Run the waterfall over the given transactions in one unit of work.

        Args:
            transaction_ids: Transactions to examine
            batch_id: Optional batch the audit entries are grouped under
            changed_by: Actor recorded in the audit log

        Returns:
            WaterfallResult tally

        Raises:
            ValidationError: If no IDs are given
            NotFoundError: If a transaction or the batch doesn't exist
            ConflictError: If the batch has been undone
        """
        with self.db.transaction():
            transactions = fetch_transactions_for_update(self.db, transaction_ids)

            if batch_id is not None:
                batch = self.db.get_batch(batch_id, for_update=True)
                if batch is None:
                    raise NotFoundError(batch_not_found(batch_id))
                if batch.is_undone:
                    raise ConflictError(batch_already_undone(batch_id))

            rules = order_rules(self.db.list_rules(active_only=True))
            result = WaterfallResult(processed=len(transactions), batch_id=batch_id)
            changed = 0
            for txn in transactions:
                if self._categorize_one(txn, rules, result, batch_id, changed_by):
                    changed += 1

            if batch_id is not None and changed:
                self.db.update_batch(batch_id, transaction_count=batch.transaction_count + changed)

        logger.info(
            "Waterfall processed %d: %d by rule, %d by payee memory, %d provider default, "
            "%d uncategorized, %d locked, %d split",
            result.processed,
            result.rules_applied,
            result.memory_applied,
            result.provider_default_count,
            result.uncategorized,
            result.skipped_locked,
            result.skipped_split,
        )
        return result

    def _categorize_one(
        self,
        txn: Transaction,
        rules: list[CategorizationRule],
        result: WaterfallResult,
        batch_id: Optional[int],
        changed_by: str,
    ) -> bool:
        if txn.category_locked:
            result.skipped_locked += 1
            return False
        if txn.is_split_parent:
            result.skipped_split += 1
            return False

        match = find_matching_rule(txn, rules)
        if match is not None:
            rule = match.rule
            flags = {}
            if rule.assign_is_transfer is not None:
                flags["is_transfer"] = rule.assign_is_transfer
            if rule.assign_is_pass_through is not None:
                flags["is_pass_through"] = rule.assign_is_pass_through
            result.rules_applied += 1
            logger.debug("Transaction %s matched rule %s on %s", txn.id, rule.id, match.matched_on)
            return write_category(
                self.db,
                txn,
                rule.category_id,
                source=CategorySource.RULE,
                changed_by=changed_by,
                confidence=self.settings.rule_confidence,
                rule_id=rule.id,
                batch_id=batch_id,
                **flags,
            )

        for text in (txn.counterparty_name, txn.description_clean, txn.description_raw):
            remembered = self.payee_memory.lookup(text)
            if remembered is None:
                continue
            result.memory_applied += 1
            changed = write_category(
                self.db,
                txn,
                remembered.category_id,
                source=CategorySource.PAYEE_MEMORY,
                changed_by=changed_by,
                confidence=remembered.confidence,
                batch_id=batch_id,
            )
            self.payee_memory.record_use(remembered.mapping_id)
            return changed

        if txn.category_id is None:
            result.uncategorized += 1
        else:
            result.provider_default_count += 1
        return False

    def _run_with_batch(
        self, transactions: list[Transaction], description: str, changed_by: str, **batch_fields
    ) -> WaterfallResult:
        if not transactions:
            return WaterfallResult()
        with self.db.transaction():
            batch_id = self.db.create_batch(
                operation_type=OperationType.WATERFALL.value,
                created_by=changed_by,
                description=description,
                **batch_fields,
            )
            return self.categorize_batch(
                [txn.id for txn in transactions], batch_id=batch_id, changed_by=changed_by
            )

    def categorize_uncategorized(
        self, limit: Optional[int] = None, changed_by: str = "system"
    ) -> WaterfallResult:
        """Run the waterfall over unlocked transactions without a category.

        The run is grouped under a new waterfall batch so it can be undone.
        """
        transactions = self.db.list_transactions(
            uncategorized=True,
            unlocked_only=True,
            include_split_parents=False,
            limit=limit,
        )
        return self._run_with_batch(
            transactions, f"Categorize {len(transactions)} uncategorized transactions", changed_by
        )

    def categorize_date_range(
        self,
        start_date: date,
        end_date: date,
        limit: Optional[int] = None,
        changed_by: str = "system",
    ) -> WaterfallResult:
        """Run the waterfall over unlocked transactions in a date range."""
        if start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")
        transactions = self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            unlocked_only=True,
            include_split_parents=False,
            limit=limit,
        )
        return self._run_with_batch(
            transactions,
            f"Categorize {start_date} to {end_date}",
            changed_by,
            date_range_start=start_date,
            date_range_end=end_date,
        )

    def get_stats(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> CategorizationStats:
        """Summarize categorization coverage, split parents excluded."""
        transactions = self.db.list_transactions(
            start_date=start_date, end_date=end_date, include_split_parents=False
        )
        categorized = [txn for txn in transactions if txn.category_id is not None]
        return CategorizationStats(
            total=len(transactions),
            categorized=len(categorized),
            uncategorized=len(transactions) - len(categorized),
            locked=sum(1 for txn in transactions if txn.category_locked),
            by_source=dict(Counter(txn.category_source for txn in categorized if txn.category_source)),
        )
