"""Cashflow aggregation.

Split parents are replaced by their children; transfers and pass-through
transactions (linked reimbursements) move money without being income or
spending, so they are left out.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sortit.database.base import Database
from sortit.domain.entities import Transaction
from sortit.domain.errors import ValidationError

ZERO = Decimal("0")


def counts_toward_cashflow(txn: Transaction) -> bool:
    """Whether a transaction contributes to income and spending totals."""
    return not (txn.is_split_parent or txn.is_transfer or txn.is_pass_through)


@dataclass(frozen=True)
class CashflowTotals:
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


def cashflow_totals(transactions: Iterable[Transaction]) -> CashflowTotals:
    """Sum income and expenses (as a positive magnitude) over eligible transactions."""
    income = ZERO
    expenses = ZERO
    count = 0
    for txn in transactions:
        if not counts_toward_cashflow(txn):
            continue
        count += 1
        if txn.amount > 0:
            income += txn.amount
        else:
            expenses += -txn.amount
    return CashflowTotals(income=income, expenses=expenses, count=count)


@dataclass(frozen=True)
class CategoryCashflow:
    category_id: Optional[int]
    category_name: str
    totals: CashflowTotals


@dataclass
class CashflowSummary:
    start_date: Optional[date]
    end_date: Optional[date]
    totals: CashflowTotals
    by_category: list[CategoryCashflow] = field(default_factory=list)


class CashflowService:
    """Service for cashflow summaries."""

    def __init__(self, db: Database):
        """Initialize cashflow service.

        Args:
            db: Database instance
        """
        self.db = db

    def summarize(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
    ) -> CashflowSummary:
        """Income, expenses and net for a period, overall and per category.

        Categories are ordered by expenses, largest first; uncategorized
        transactions are grouped under "Uncategorized".
        """
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")

        transactions = [
            txn
            for txn in self.db.list_transactions(
                start_date=start_date, end_date=end_date, account_id=account_id
            )
            if counts_toward_cashflow(txn)
        ]

        grouped: dict[Optional[int], list[Transaction]] = {}
        for txn in transactions:
            grouped.setdefault(txn.category_id, []).append(txn)

        by_category = []
        for category_id, members in grouped.items():
            category = self.db.get_category(category_id) if category_id is not None else None
            by_category.append(
                CategoryCashflow(
                    category_id=category_id,
                    category_name=category.name if category is not None else "Uncategorized",
                    totals=cashflow_totals(members),
                )
            )
        by_category.sort(key=lambda row: (-row.totals.expenses, -row.totals.income, row.category_name))

        return CashflowSummary(
            start_date=start_date,
            end_date=end_date,
            totals=cashflow_totals(transactions),
            by_category=by_category,
        )
