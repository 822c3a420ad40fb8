"""Reimbursement linking.

A reimbursement is an inflow tied to the outflow it pays back. Linked
reimbursements are marked pass-through so the pair nets out of cashflow.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.audit import write_category
from sortit.domain.entities import CategorySource, Transaction
from sortit.domain.errors import ConflictError, NotFoundError, ValidationError, transaction_not_found
from sortit.domain.transaction import fetch_transactions_for_update, fetch_transaction_for_update

logger = logging.getLogger(__name__)

FULL_REIMBURSEMENT_THRESHOLD = Decimal("1.00")


@dataclass(frozen=True)
class LinkResult:
    reimbursement_id: int
    original_id: int
    category_copied: bool


@dataclass(frozen=True)
class ReimbursementPair:
    original: Transaction
    reimbursement: Transaction

    @property
    def net_amount(self) -> Decimal:
        """What is left of the expense after the reimbursement (negative = unpaid)."""
        return self.original.amount + self.reimbursement.amount

    @property
    def is_full(self) -> bool:
        return abs(self.net_amount) < FULL_REIMBURSEMENT_THRESHOLD


@dataclass(frozen=True)
class ReimbursementSummary:
    total_reimbursed: Decimal
    pair_count: int
    fully_reimbursed: int
    partially_reimbursed: int


class ReimbursementService:
    """Service for linking reimbursements to the expenses they repay."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize reimbursement service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings

    def link(
        self,
        reimbursement_id: int,
        original_id: int,
        copy_category: bool = True,
        changed_by: str = "user",
    ) -> LinkResult:
        """Link an inflow to the expense it reimburses.

        Args:
            reimbursement_id: The incoming payment
            original_id: The expense being paid back
            copy_category: Give the reimbursement the expense's category
            changed_by: Actor recorded in the audit log

        Returns:
            LinkResult

        Raises:
            ValidationError: If the IDs are equal or the directions are wrong
            NotFoundError: If either transaction doesn't exist
            ConflictError: If the reimbursement is already linked
        """
        if reimbursement_id == original_id:
            raise ValidationError("A transaction cannot reimburse itself")

        with self.db.transaction():
            by_id = {
                txn.id: txn
                for txn in fetch_transactions_for_update(self.db, [reimbursement_id, original_id])
            }
            reimbursement = by_id[reimbursement_id]
            original = by_id[original_id]

            if not reimbursement.is_inflow:
                raise ValidationError(f"Reimbursement {reimbursement_id} must be an inflow")
            if not original.is_outflow:
                raise ValidationError(f"Original transaction {original_id} must be an outflow")
            if reimbursement.reimbursement_of_id is not None:
                raise ConflictError(
                    f"Transaction {reimbursement_id} is already linked to "
                    f"{reimbursement.reimbursement_of_id}"
                )

            self.db.update_transaction(
                reimbursement_id, reimbursement_of_id=original_id, is_pass_through=True
            )

            # A locked category is kept even when copying was requested.
            copied = (
                copy_category
                and original.category_id is not None
                and not reimbursement.category_locked
            )
            if copied:
                write_category(
                    self.db,
                    reimbursement,
                    original.category_id,
                    source=CategorySource.REIMBURSEMENT_LINK,
                    changed_by=changed_by,
                    confidence=self.settings.manual_confidence,
                    notes=f"Reimbursement of transaction {original_id}",
                )

        logger.info("Linked reimbursement %s to %s", reimbursement_id, original_id)
        return LinkResult(reimbursement_id, original_id, copied)

    def unlink(self, reimbursement_id: int) -> None:
        """Remove a reimbursement link. The category is kept.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ConflictError: If it is not linked
        """
        with self.db.transaction():
            txn = fetch_transaction_for_update(self.db, reimbursement_id)
            if txn.reimbursement_of_id is None:
                raise ConflictError(f"Transaction {reimbursement_id} is not linked to an expense")
            self.db.update_transaction(reimbursement_id, reimbursement_of_id=None, is_pass_through=False)
        logger.info("Unlinked reimbursement %s", reimbursement_id)

    def find_candidates(self, expense_id: int) -> list[Transaction]:
        """Suggest inflows that could reimburse an expense.

        Inflows dated from the expense date up to the reimbursement window
        after it, within the amount tolerance, not yet linked. Non-outflows
        have no candidates.
        """
        expense = self.db.get_transaction(expense_id)
        if expense is None:
            raise NotFoundError(transaction_not_found(expense_id))
        if not expense.is_outflow:
            return []

        target = abs(expense.amount)
        tolerance = target * self.settings.reimbursement_tolerance
        window_end = expense.date + timedelta(days=self.settings.reimbursement_window_days)

        candidates = [
            txn
            for txn in self.db.list_transactions(
                start_date=expense.date, end_date=window_end, include_split_parents=False
            )
            if txn.is_inflow
            and txn.reimbursement_of_id is None
            and target - tolerance <= txn.amount <= target + tolerance
        ]
        return sorted(candidates, key=lambda txn: (abs(txn.amount - target), txn.date, txn.id))

    def get_pairs(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[ReimbursementPair]:
        """Linked pairs whose reimbursement falls in the date range."""
        reimbursements = self.db.list_reimbursements(start_date, end_date)
        originals = {
            txn.id: txn
            for txn in self.db.get_transactions([r.reimbursement_of_id for r in reimbursements])
        }
        return [
            ReimbursementPair(original=originals[r.reimbursement_of_id], reimbursement=r)
            for r in reimbursements
            if r.reimbursement_of_id in originals
        ]

    def get_summary(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> ReimbursementSummary:
        """Totals for linked reimbursements in the date range."""
        pairs = self.get_pairs(start_date, end_date)
        full = sum(1 for pair in pairs if pair.is_full)
        return ReimbursementSummary(
            total_reimbursed=sum((pair.reimbursement.amount for pair in pairs), Decimal("0")),
            pair_count=len(pairs),
            fully_reimbursed=full,
            partially_reimbursed=len(pairs) - full,
        )
