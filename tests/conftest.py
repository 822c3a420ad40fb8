"""Shared pytest fixtures for sortit tests."""

import itertools
import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from sortit.config import DEFAULT_SETTINGS
from sortit.database.factories import create_sqlite_database
from sortit.domain.account import AccountService
from sortit.domain.category import CategoryService
from sortit.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    return DEFAULT_SETTINGS


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(name="Checking", bank_name="Test Bank")
    return account_service.get_account(account_id)


@pytest.fixture
def savings_account(account_service):
    """Create a second account for transfer tests."""
    account_id = account_service.create_account(name="Savings", bank_name="Test Bank")
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Create a small category tree and return IDs keyed by path."""
    paths = [
        "Food & Dining > Restaurants",
        "Food & Dining > Coffee",
        "Food & Dining > Groceries",
        "Shopping > Household",
        "Income > Salary",
        "Transportation",
    ]
    category_ids = {path: category_service.ensure_path(path) for path in paths}
    category_ids["Food & Dining"] = category_service.get_category_by_path("Food & Dining").id
    return category_ids


@pytest.fixture
def make_transaction(transaction_service, sample_account):
    """Factory that ingests a transaction and returns its ID."""
    counter = itertools.count(1)

    def _make(
        amount="-10.00",
        txn_date=date(2024, 3, 1),
        description="TEST MERCHANT",
        account_id=None,
        **fields,
    ):
        return transaction_service.create_transaction(
            provider_transaction_id=f"txn-{next(counter)}",
            account_id=account_id or sample_account.id,
            date=txn_date,
            amount=Decimal(amount),
            description_raw=description,
            **fields,
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def add_filler_rows(temp_db, sample_account):
    """Insert many newer unrelated transactions in one unit of work."""

    def _add(count, txn_date=date(2024, 6, 1), description="OTHER"):
        with temp_db.transaction():
            return [
                temp_db.create_transaction(
                    provider_transaction_id=f"filler-{index}",
                    account_id=sample_account.id,
                    date=txn_date,
                    amount=Decimal("-1.00"),
                    description_raw=description,
                )
                for index in range(count)
            ]

    return _add
