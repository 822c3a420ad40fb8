"""Tests for cashflow aggregation and the review queue."""

from datetime import date
from decimal import Decimal

import pytest

from sortit.config import Settings
from sortit.domain.cashflow import CashflowService
from sortit.domain.errors import ValidationError
from sortit.domain.review_queue import ReviewQueueService
from sortit.domain.transfers import TransferService


def test_cashflow_by_category(temp_db, sample_categories, make_transaction):
    groceries = sample_categories["Food & Dining > Groceries"]
    make_transaction("-80.00", category_id=groceries)
    make_transaction("-20.00", category_id=groceries)
    make_transaction("-5.00")
    make_transaction("2500.00", category_id=sample_categories["Income > Salary"])

    summary = CashflowService(temp_db).summarize()

    assert summary.totals.income == Decimal("2500.00")
    assert summary.totals.expenses == Decimal("105.00")
    assert summary.totals.net == Decimal("2395.00")
    first = summary.by_category[0]
    assert first.category_name == "Groceries"
    assert first.totals.expenses == Decimal("100.00")
    assert first.totals.count == 2
    assert "Uncategorized" in [row.category_name for row in summary.by_category]


def test_cashflow_excludes_transfers(temp_db, make_transaction):
    make_transaction("-50.00")
    transfer = make_transaction("-500.00")
    TransferService(temp_db).set_transfer(transfer)

    assert CashflowService(temp_db).summarize().totals.expenses == Decimal("50.00")


def test_cashflow_filters(temp_db, savings_account, make_transaction):
    make_transaction("-10.00", txn_date=date(2024, 1, 5))
    make_transaction("-20.00", txn_date=date(2024, 2, 5))
    make_transaction("-40.00", txn_date=date(2024, 2, 6), account_id=savings_account.id)
    cashflow = CashflowService(temp_db)

    assert cashflow.summarize(date(2024, 2, 1), date(2024, 2, 28)).totals.expenses == Decimal("60.00")
    assert cashflow.summarize(account_id=savings_account.id).totals.expenses == Decimal("40.00")

    with pytest.raises(ValidationError):
        cashflow.summarize(date(2024, 3, 1), date(2024, 2, 1))


def test_review_reasons(temp_db, sample_categories, make_transaction):
    transportation = sample_categories["Transportation"]
    uncategorized = make_transaction("-10.00", txn_date=date(2024, 1, 1))
    unsure = make_transaction("-10.00", txn_date=date(2024, 1, 2), category_id=transportation, confidence=0.4)
    big = make_transaction("-900.00", txn_date=date(2024, 1, 3), category_id=transportation, confidence=0.9)
    make_transaction("-10.00", txn_date=date(2024, 1, 4), category_id=transportation, confidence=0.9)

    items = ReviewQueueService(temp_db).list()

    reasons = {item.transaction.id: item.reasons for item in items}
    assert reasons == {
        uncategorized: ("uncategorized",),
        unsure: ("low_confidence",),
        big: ("large_amount",),
    }
    assert [item.transaction.id for item in items] == [big, unsure, uncategorized]


def test_review_sorting(temp_db, make_transaction):
    small = make_transaction("-5.00")
    large = make_transaction("-50.00")
    queue = ReviewQueueService(temp_db)

    assert [i.transaction.id for i in queue.list(sort_by="amount", descending=False)] == [large, small]

    with pytest.raises(ValidationError):
        queue.list(sort_by="payee")


def test_review_threshold_from_settings(temp_db, sample_categories, make_transaction):
    make_transaction("-150.00", category_id=sample_categories["Transportation"], confidence=0.9)

    assert ReviewQueueService(temp_db).stats().total == 0
    stats = ReviewQueueService(temp_db, Settings(large_amount_threshold=Decimal("100"))).stats()
    assert stats.total == 1
    assert stats.large_amount == 1
