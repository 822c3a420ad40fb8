"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Operation conflicts with current state, such as an already undone batch."""


class StorageError(Exception):
    """The backing store failed; the unit of work was rolled back.

    Deliberately not a DomainError so callers can tell infrastructure
    failures apart from bad input and conflicts.
    """


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def category_path_not_found(path: str) -> str:
    """Return message for missing category by path."""
    return f"Category '{path}' not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for a missing transaction."""
    return f"Transaction {transaction_id} not found"


def transactions_not_found(transaction_ids: list[int]) -> str:
    """Return message for several missing transactions."""
    ids = ", ".join(str(txn_id) for txn_id in transaction_ids)
    noun = "Transaction" if len(transaction_ids) == 1 else "Transactions"
    return f"{noun} not found: {ids}"


def rule_not_found(rule_id: int) -> str:
    """Return message for a missing categorization rule."""
    return f"Rule {rule_id} not found"


def batch_not_found(batch_id: int) -> str:
    """Return message for a missing batch."""
    return f"Batch {batch_id} not found"


def batch_already_undone(batch_id: int) -> str:
    """Return message when a batch has already been undone."""
    return f"Batch {batch_id} has already been undone"


def duplicate_provider_transaction(provider_transaction_id: str, account_id: int) -> str:
    """Return message for duplicate provider transaction ID."""
    return (
        f"Transaction with provider id '{provider_transaction_id}' "
        f"already exists for account {account_id}"
    )


def empty_transaction_ids() -> str:
    """Return message when an operation receives no transaction IDs."""
    return "No transaction IDs provided"
