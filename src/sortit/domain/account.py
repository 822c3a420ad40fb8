"""Account domain service."""

import logging
from typing import Optional

from sortit.database.base import Database
from sortit.domain.entities import Account as AccountEntity
from sortit.domain.errors import ConflictError, NotFoundError, ValidationError, account_not_found

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, name: str, bank_name: str) -> int:
        """Create a new account.

        Args:
            name: Account name
            bank_name: Bank name

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is blank
            ConflictError: If account name already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Account name must not be empty")

        if any(acc.name == name for acc in self.db.list_accounts()):
            raise ConflictError(f"Account with name '{name}' already exists")

        with self.db.transaction():
            account_id = self.db.create_account(name=name, bank_name=bank_name)
        logger.info("Created account %s (%s)", account_id, name)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID or raise NotFoundError."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def find_account(self, name_or_id: str) -> AccountEntity:
        """Resolve an account by exact name, falling back to numeric ID.

        Raises:
            NotFoundError: If nothing matches
        """
        for acc in self.db.list_accounts():
            if acc.name == name_or_id:
                return acc
        if name_or_id.isdigit():
            return self.require_account(int(name_or_id))
        raise NotFoundError(f"Account '{name_or_id}' not found")

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()
