"""Domain model entities for sortit.

These are pure data classes representing business concepts, independent of
database schema. Services receive and return these; ORM rows never leave the
database package.
"""

from dataclasses import dataclass
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional


class CategorySource(str, Enum):
    """Where a transaction's current category came from."""

    PROVIDER = "provider"
    RULE = "rule"
    PAYEE_MEMORY = "payee_memory"
    MANUAL = "manual"
    BULK_EDIT = "bulk_edit"
    REIMBURSEMENT_LINK = "reimbursement_link"
    SYSTEM = "system"


class Direction(str, Enum):
    """Cash direction a rule applies to."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"
    ANY = "any"


class OperationType(str, Enum):
    """Kind of operation that produced a batch."""

    RETROACTIVE_RULE = "retroactive_rule"
    BULK_EDIT = "bulk_edit"
    WATERFALL = "waterfall"


# Batches whose mutations lock the transactions they touch.
LOCKING_OPERATIONS = frozenset({OperationType.BULK_EDIT.value})

FLAG_FIELDS = ("is_transfer", "is_pass_through", "is_business")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the database."""
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    name: str
    bank_name: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity with hierarchical structure."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    provider: str
    provider_transaction_id: str
    account_id: int
    date: date
    amount: Decimal
    description_raw: Optional[str]
    description_clean: Optional[str]
    counterparty_name: Optional[str]
    category_id: Optional[int]
    category_source: Optional[str]
    category_locked: bool
    confidence: Optional[float]
    applied_rule_id: Optional[int]
    is_transfer: bool
    is_pass_through: bool
    is_business: bool
    parent_transaction_id: Optional[int]
    is_split_parent: bool
    is_split_child: bool
    reimbursement_of_id: Optional[int]
    imported_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0

    @property
    def payee_text(self) -> str:
        """Best available counterparty text for payee memory."""
        return self.counterparty_name or self.description_clean or self.description_raw or ""


@dataclass(frozen=True)
class CategorizationRule:
    """Categorization rule domain entity."""

    id: int
    name: str
    description: Optional[str]
    priority: int
    is_active: bool
    match_merchant_contains: Optional[str]
    match_merchant_exact: Optional[str]
    match_amount_min: Optional[Decimal]
    match_amount_max: Optional[Decimal]
    match_account_id: Optional[int]
    match_direction: str
    category_id: int
    assign_is_transfer: Optional[bool]
    assign_is_pass_through: Optional[bool]
    created_at: datetime
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class PayeeMapping:
    """Learned payee to category mapping."""

    id: int
    payee_name: str
    category_id: int
    usage_count: int
    confidence: float
    last_used_at: datetime
    created_at: datetime


@dataclass(frozen=True)
class AuditLogEntry:
    """One category change. Immutable apart from the revert flag."""

    id: int
    transaction_id: int
    previous_category_id: Optional[int]
    new_category_id: Optional[int]
    change_source: str
    rule_id: Optional[int]
    confidence_score: Optional[float]
    changed_by: str
    batch_id: Optional[int]
    notes: Optional[str]
    is_reverted: bool
    created_at: datetime


@dataclass(frozen=True)
class Batch:
    """A group of category mutations that can be undone together."""

    id: int
    rule_id: Optional[int]
    operation_type: str
    description: Optional[str]
    created_by: str
    applied_at: datetime
    transaction_count: int
    date_range_start: Optional[date]
    date_range_end: Optional[date]
    is_undone: bool
    undone_at: Optional[datetime]
