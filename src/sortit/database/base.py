"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from sortit.domain.entities import (
    Account,
    Category,
    Transaction,
    CategorizationRule,
    PayeeMapping,
    AuditLogEntry,
    Batch,
)


class Database(ABC):
    """Abstract database interface for sortit.

    Every write method participates in the enclosing ``transaction()`` when
    one is open, and commits on its own otherwise.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open a unit of work.

        Commits when the block exits normally and rolls back when it raises.
        Nested calls join the outermost unit. Storage failures surface as
        StorageError.
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(self, name: str, bank_name: str) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, name: str, parent_id: Optional[int] = None) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path (e.g., 'Food & Dining > Coffee')."""
        pass

    @abstractmethod
    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally filtered by parent."""
        pass

    @abstractmethod
    def get_category_tree(self) -> list[dict[str, Any]]:
        """Get full category tree with hierarchy.

        Returns a list of dictionaries with category data and nested 'children' lists.
        """
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        provider_transaction_id: str,
        account_id: int,
        date: date,
        amount: Decimal,
        **fields: Any,
    ) -> int:
        """Create a transaction. Returns transaction ID.

        Optional columns (descriptions, category state, flags, split and
        reimbursement linkage) are passed as keyword arguments.
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def get_transactions(
        self, transaction_ids: Sequence[int], for_update: bool = False
    ) -> list[Transaction]:
        """Get transactions by ID, ordered by ID.

        With for_update, rows are locked until the enclosing unit of work ends.
        Missing IDs are silently absent from the result.
        """
        pass

    @abstractmethod
    def transaction_exists(self, account_id: int, provider_transaction_id: str) -> bool:
        """Check if a provider transaction already exists for an account."""
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: int, **fields: Any) -> None:
        """Update mutable transaction columns."""
        pass

    @abstractmethod
    def delete_transactions(self, transaction_ids: Sequence[int]) -> int:
        """Delete transactions. Returns number deleted."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[int] = None,
        account_id: Optional[int] = None,
        uncategorized: bool = False,
        unlocked_only: bool = False,
        include_split_parents: bool = True,
        include_split_children: bool = True,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first."""
        pass

    @abstractmethod
    def list_split_children(self, parent_id: int) -> list[Transaction]:
        """List child transactions of a split parent."""
        pass

    @abstractmethod
    def list_reimbursements(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[Transaction]:
        """List transactions linked as reimbursements."""
        pass

    # Rule operations
    @abstractmethod
    def create_rule(self, name: str, category_id: int, **fields: Any) -> int:
        """Create a categorization rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[CategorizationRule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(self, active_only: bool = False) -> list[CategorizationRule]:
        """List rules. Ordering is left to the caller."""
        pass

    @abstractmethod
    def update_rule(self, rule_id: int, **fields: Any) -> None:
        """Update rule columns."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        pass

    # Payee memory operations
    @abstractmethod
    def get_payee_mapping(self, payee_name: str) -> Optional[PayeeMapping]:
        """Get mapping by normalized payee name."""
        pass

    @abstractmethod
    def upsert_payee_mapping(
        self, payee_name: str, category_id: int, confidence: float, used_at: datetime
    ) -> PayeeMapping:
        """Create a mapping or overwrite its category and bump its usage count."""
        pass

    @abstractmethod
    def record_payee_use(self, mapping_id: int, used_at: datetime) -> None:
        """Increment a mapping's usage count and touch last_used_at."""
        pass

    @abstractmethod
    def list_payee_mappings(self) -> list[PayeeMapping]:
        """List mappings, most used first."""
        pass

    @abstractmethod
    def delete_payee_mapping(self, mapping_id: int) -> None:
        """Delete a mapping."""
        pass

    # Audit log operations
    @abstractmethod
    def add_audit_entry(
        self,
        transaction_id: int,
        previous_category_id: Optional[int],
        new_category_id: Optional[int],
        change_source: str,
        changed_by: str,
        rule_id: Optional[int] = None,
        confidence_score: Optional[float] = None,
        batch_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Append an audit entry. Returns entry ID."""
        pass

    @abstractmethod
    def list_audit_entries(
        self,
        transaction_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        change_source: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """List audit entries, newest first."""
        pass

    @abstractmethod
    def count_audit_entries(self) -> int:
        """Count all audit entries."""
        pass

    @abstractmethod
    def mark_audit_entries_reverted(self, entry_ids: Sequence[int]) -> None:
        """Flip is_reverted on the given entries. The only permitted audit edit."""
        pass

    @abstractmethod
    def has_later_audit_entry(
        self, transaction_id: int, after_entry_id: int, exclude_batch_id: Optional[int] = None
    ) -> bool:
        """Check for a non-reverted entry on a transaction written after another entry."""
        pass

    # Batch operations
    @abstractmethod
    def create_batch(self, operation_type: str, created_by: str, **fields: Any) -> int:
        """Create a batch. Returns batch ID."""
        pass

    @abstractmethod
    def get_batch(self, batch_id: int, for_update: bool = False) -> Optional[Batch]:
        """Get batch by ID."""
        pass

    @abstractmethod
    def list_batches(
        self,
        rule_id: Optional[int] = None,
        include_undone: bool = False,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[Batch]:
        """List batches, newest first."""
        pass

    @abstractmethod
    def update_batch(self, batch_id: int, **fields: Any) -> None:
        """Update batch columns."""
        pass
