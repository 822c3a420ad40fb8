"""Retroactive rule application and batch undo.

Applying a rule to past transactions happens in two steps: a read-only
preview, then an apply over the IDs the caller confirmed. Every apply (and
every bulk edit or waterfall run with a batch) can later be undone as a
whole; undo reverts what it safely can and reports the rest as conflicts.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.audit import write_category
from sortit.domain.entities import (
    LOCKING_OPERATIONS,
    AuditLogEntry,
    Batch,
    CategorizationRule,
    CategorySource,
    OperationType,
    Transaction,
    utcnow,
)
from sortit.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    batch_already_undone,
    batch_not_found,
    rule_not_found,
)
from sortit.domain.rules import evaluate_rule
from sortit.domain.transaction import fetch_transactions_for_update

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewRow:
    transaction: Transaction
    current_category_id: Optional[int]
    new_category_id: int
    is_locked: bool

    @property
    def would_change(self) -> bool:
        return not self.is_locked and self.current_category_id != self.new_category_id


@dataclass
class PreviewResult:
    """Outcome of a preview.

    The counts and ``changing_ids`` cover every match in the range; ``rows``
    holds at most the requested number of them for display.
    """

    rule: CategorizationRule
    rows: list[PreviewRow] = field(default_factory=list)
    total_matching: int = 0
    would_change: int = 0
    would_skip_locked: int = 0
    changing_ids: list[int] = field(default_factory=list)

    @property
    def truncated(self) -> bool:
        return self.total_matching > len(self.rows)

    def add(self, row: PreviewRow, row_limit: int) -> None:
        self.total_matching += 1
        if row.is_locked:
            self.would_skip_locked += 1
        if row.would_change:
            self.would_change += 1
            self.changing_ids.append(row.transaction.id)
        if len(self.rows) < row_limit:
            self.rows.append(row)


@dataclass
class ApplyResult:
    batch_id: int
    applied_count: int = 0
    skipped_locked: int = 0
    unchanged: int = 0
    skipped_split: int = 0


@dataclass
class UndoResult:
    batch_id: int
    reverted: int = 0
    skipped_conflicts: int = 0
    already_reverted: int = 0


class RetroactiveService:
    """Service for applying rules to history and undoing batches."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize retroactive service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings

    def _require_rule(self, rule_id: int) -> CategorizationRule:
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def preview(
        self,
        rule_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> PreviewResult:
        """Show what applying a rule would do. Nothing is written.

        Args:
            rule_id: Rule to evaluate
            start_date: Optional start of the date range
            end_date: Optional end of the date range
            limit: Maximum rows returned for display (defaults to the preview
                limit); counts always cover the whole range

        Raises:
            NotFoundError: If the rule doesn't exist
            ValidationError: If the date range is inverted
        """
        rule = self._require_rule(rule_id)
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")

        candidates = self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            include_split_parents=False,
        )
        row_limit = limit or self.settings.preview_limit
        result = PreviewResult(rule=rule)
        for txn in candidates:
            if evaluate_rule(rule, txn) is None:
                continue
            result.add(
                PreviewRow(
                    transaction=txn,
                    current_category_id=txn.category_id,
                    new_category_id=rule.category_id,
                    is_locked=txn.category_locked,
                ),
                row_limit,
            )

        logger.debug(
            "Preview of rule %s: %d matching, %d would change, %d locked",
            rule_id,
            result.total_matching,
            result.would_change,
            result.would_skip_locked,
        )
        return result

    def apply(
        self,
        rule_id: int,
        transaction_ids: Sequence[int],
        changed_by: str = "user",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ApplyResult:
        """Apply a rule's category to the given transactions as one batch.

        Locked transactions and split parents are skipped; transactions that
        already carry the category are counted as unchanged.

        Args:
            rule_id: Rule whose category is applied
            transaction_ids: Transactions confirmed from a preview
            changed_by: Actor recorded on the batch and audit log
            start_date: Date range recorded on the batch
            end_date: Date range recorded on the batch

        Returns:
            ApplyResult with the new batch ID

        Raises:
            ValidationError: If no IDs are given
            NotFoundError: If the rule or a transaction doesn't exist
        """
        rule = self._require_rule(rule_id)

        with self.db.transaction():
            transactions = fetch_transactions_for_update(self.db, transaction_ids)
            batch_id = self.db.create_batch(
                operation_type=OperationType.RETROACTIVE_RULE.value,
                created_by=changed_by,
                rule_id=rule_id,
                description=f"Apply rule '{rule.name}'",
                date_range_start=start_date,
                date_range_end=end_date,
            )
            result = ApplyResult(batch_id=batch_id)

            for txn in transactions:
                if txn.category_locked:
                    result.skipped_locked += 1
                elif txn.is_split_parent:
                    result.skipped_split += 1
                elif txn.category_id == rule.category_id:
                    result.unchanged += 1
                else:
                    write_category(
                        self.db,
                        txn,
                        rule.category_id,
                        source=CategorySource.RULE,
                        changed_by=changed_by,
                        confidence=self.settings.rule_confidence,
                        rule_id=rule.id,
                        batch_id=batch_id,
                    )
                    result.applied_count += 1

            self.db.update_batch(batch_id, transaction_count=result.applied_count)

        logger.info(
            "Applied rule %s in batch %s: %d changed, %d locked, %d unchanged",
            rule_id,
            batch_id,
            result.applied_count,
            result.skipped_locked,
            result.unchanged,
        )
        return result

    def apply_matching(
        self,
        rule_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        changed_by: str = "user",
    ) -> Optional[ApplyResult]:
        """Preview a rule and apply it to everything the preview would change.

        Returns:
            ApplyResult, or None when nothing would change
        """
        ids = self.preview(rule_id, start_date, end_date).changing_ids
        if not ids:
            return None
        return self.apply(rule_id, ids, changed_by, start_date, end_date)

    def undo(self, batch_id: int) -> UndoResult:
        """Revert every change a batch made, where that is still safe.

        An entry is skipped as a conflict when its transaction is gone, when
        the transaction is locked and the batch's operation doesn't lock, or
        when a later change from outside the batch touched the transaction.

        Raises:
            NotFoundError: If the batch doesn't exist
            ConflictError: If the batch was already undone
        """
        with self.db.transaction():
            batch = self.db.get_batch(batch_id, for_update=True)
            if batch is None:
                raise NotFoundError(batch_not_found(batch_id))
            if batch.is_undone:
                raise ConflictError(batch_already_undone(batch_id))

            entries = self.db.list_audit_entries(batch_id=batch_id)
            transactions = {
                txn.id: txn
                for txn in self.db.get_transactions(
                    sorted({entry.transaction_id for entry in entries}), for_update=True
                )
            }

            result = UndoResult(batch_id=batch_id)
            reverted_ids = []
            # Newest first, so several entries on one transaction unwind in order.
            for entry in entries:
                if entry.is_reverted:
                    result.already_reverted += 1
                    continue
                conflict = self._conflict(batch, entry, transactions.get(entry.transaction_id))
                if conflict:
                    logger.warning(
                        "Undo of batch %s skipped transaction %s: %s",
                        batch_id,
                        entry.transaction_id,
                        conflict,
                    )
                    result.skipped_conflicts += 1
                    continue
                self.db.update_transaction(
                    entry.transaction_id,
                    category_id=entry.previous_category_id,
                    category_source=CategorySource.SYSTEM.value,
                    applied_rule_id=None,
                    confidence=None,
                )
                reverted_ids.append(entry.id)
                result.reverted += 1

            self.db.mark_audit_entries_reverted(reverted_ids)
            self.db.update_batch(batch_id, is_undone=True, undone_at=utcnow())

        logger.info(
            "Undid batch %s: %d reverted, %d conflicts, %d already reverted",
            batch_id,
            result.reverted,
            result.skipped_conflicts,
            result.already_reverted,
        )
        return result

    def _conflict(
        self, batch: Batch, entry: AuditLogEntry, txn: Optional[Transaction]
    ) -> Optional[str]:
        if txn is None:
            return "transaction no longer exists"
        if txn.category_locked and batch.operation_type not in LOCKING_OPERATIONS:
            return "transaction is locked"
        if self.db.has_later_audit_entry(txn.id, entry.id, exclude_batch_id=batch.id):
            return "changed again after this batch"
        return None

    def list_batches(
        self,
        rule_id: Optional[int] = None,
        include_undone: bool = False,
        limit: Optional[int] = 50,
    ) -> list[Batch]:
        """List batches, newest first."""
        return self.db.list_batches(rule_id=rule_id, include_undone=include_undone, limit=limit)

    def get_batch(self, batch_id: int) -> Batch:
        """Get a batch or raise NotFoundError."""
        batch = self.db.get_batch(batch_id)
        if batch is None:
            raise NotFoundError(batch_not_found(batch_id))
        return batch
