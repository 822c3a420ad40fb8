"""Transaction domain service.

Transactions normally arrive from the bank sync pipeline; this service is the
ingestion seam that persists them with their provider defaults.
"""

import logging
from typing import Optional, Sequence
from datetime import date
from decimal import Decimal

from sortit.database.base import Database
from sortit.domain.category import require_category
from sortit.domain.entities import CategorySource, Transaction as TransactionEntity
from sortit.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_provider_transaction,
    empty_transaction_ids,
    transaction_not_found,
    transactions_not_found,
)

logger = logging.getLogger(__name__)


def fetch_transactions_for_update(
    db: Database, transaction_ids: Sequence[int]
) -> list[TransactionEntity]:
    """Load and lock transactions for a check-then-mutate operation.

    Duplicate IDs are collapsed. Must be called inside ``db.transaction()``.

    Raises:
        ValidationError: If no IDs are given
        NotFoundError: If any ID does not exist
    """
    if not transaction_ids:
        raise ValidationError(empty_transaction_ids())

    unique_ids = list(dict.fromkeys(transaction_ids))
    transactions = db.get_transactions(unique_ids, for_update=True)
    found = {txn.id for txn in transactions}
    missing = [txn_id for txn_id in unique_ids if txn_id not in found]
    if missing:
        raise NotFoundError(transactions_not_found(missing))
    return transactions


def fetch_transaction_for_update(db: Database, transaction_id: int) -> TransactionEntity:
    """Load and lock a single transaction."""
    transactions = db.get_transactions([transaction_id], for_update=True)
    if not transactions:
        raise NotFoundError(transaction_not_found(transaction_id))
    return transactions[0]


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_transaction(
        self,
        provider_transaction_id: str,
        account_id: int,
        date: date,
        amount: Decimal,
        description_raw: Optional[str] = None,
        description_clean: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        category_id: Optional[int] = None,
        confidence: Optional[float] = None,
        provider: str = "manual",
    ) -> int:
        """Persist a raw transaction with its provider-assigned default category.

        Args:
            provider_transaction_id: ID assigned by the data provider
            account_id: Account ID
            date: Transaction date
            amount: Signed amount (positive=inflow, negative=outflow)
            description_raw: Description as delivered by the provider
            description_clean: Cleaned-up description
            counterparty_name: Merchant or counterparty name
            category_id: Provider default category
            confidence: Provider confidence for the default category
            provider: Name of the data provider

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If account or category doesn't exist
            ConflictError: If the provider transaction already exists
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        if self.db.transaction_exists(account_id, provider_transaction_id):
            raise ConflictError(duplicate_provider_transaction(provider_transaction_id, account_id))

        if category_id is not None:
            require_category(self.db, category_id)

        with self.db.transaction():
            txn_id = self.db.create_transaction(
                provider_transaction_id=provider_transaction_id,
                account_id=account_id,
                date=date,
                amount=amount,
                provider=provider,
                description_raw=description_raw,
                description_clean=description_clean,
                counterparty_name=counterparty_name,
                category_id=category_id,
                category_source=CategorySource.PROVIDER.value if category_id is not None else None,
                confidence=confidence,
            )
        logger.debug("Ingested transaction %s from %s", txn_id, provider)
        return txn_id

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def require_transaction(self, transaction_id: int) -> TransactionEntity:
        """Get transaction by ID or raise NotFoundError."""
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[int] = None,
        account_id: Optional[int] = None,
        uncategorized: bool = False,
        limit: Optional[int] = None,
    ) -> list[TransactionEntity]:
        """List transactions with optional filters.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            category_id: Optional category ID filter
            account_id: Optional account ID filter
            uncategorized: Only transactions without a category
            limit: Maximum number of rows

        Returns:
            List of transaction entities, newest first
        """
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            category_id=category_id,
            account_id=account_id,
            uncategorized=uncategorized,
            limit=limit,
        )
