"""Tests for splitting and unsplitting transactions."""

from decimal import Decimal

import pytest

from sortit.domain.cashflow import CashflowService
from sortit.domain.categorization import CategorizationService
from sortit.domain.errors import ConflictError, NotFoundError, ValidationError
from sortit.domain.splitting import SplitItem, SplittingService, validate_split_amounts


@pytest.fixture
def splitting(temp_db):
    return SplittingService(temp_db)


@pytest.fixture
def grocery_split(sample_categories):
    return [
        SplitItem(Decimal("100.00"), sample_categories["Food & Dining > Groceries"]),
        SplitItem(Decimal("50.00"), sample_categories["Shopping > Household"], "Paper towels"),
    ]


def test_split_creates_children(temp_db, splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00", description="COSTCO")

    child_ids = splitting.split(parent_id, grocery_split)

    parent = temp_db.get_transaction(parent_id)
    children = splitting.get_children(parent_id)
    assert parent.is_split_parent is True
    assert [child.id for child in children] == child_ids
    assert [child.amount for child in children] == [Decimal("-100.00"), Decimal("-50.00")]
    assert sum(child.amount for child in children) == parent.amount
    assert children[0].description_raw == "COSTCO (Split 1)"
    assert children[1].description_raw == "Paper towels"
    assert children[0].provider_transaction_id == f"{parent.provider_transaction_id}_split_1"
    for child, item in zip(children, grocery_split):
        assert child.is_split_child is True
        assert child.category_locked is True
        assert child.category_source == "manual"
        assert child.category_id == item.category_id
        assert child.parent_transaction_id == parent_id
        assert child.date == parent.date
        assert child.account_id == parent.account_id


def test_split_audits_each_child(temp_db, splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00")
    child_ids = splitting.split(parent_id, grocery_split)

    for child_id, item in zip(child_ids, grocery_split):
        [entry] = temp_db.list_audit_entries(transaction_id=child_id)
        assert entry.previous_category_id is None
        assert entry.new_category_id == item.category_id


def test_split_inflow_keeps_sign(temp_db, splitting, sample_categories, make_transaction):
    parent_id = make_transaction("80.00")
    items = [
        SplitItem(Decimal("60.00"), sample_categories["Income > Salary"]),
        SplitItem(Decimal("20.00"), sample_categories["Transportation"]),
    ]
    splitting.split(parent_id, items)

    assert [c.amount for c in splitting.get_children(parent_id)] == [Decimal("60.00"), Decimal("20.00")]


def test_cashflow_counts_children_not_parent(temp_db, splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00")
    cashflow = CashflowService(temp_db)
    before = cashflow.summarize().totals

    splitting.split(parent_id, grocery_split)
    during = cashflow.summarize().totals

    assert before.expenses == during.expenses == Decimal("150.00")
    assert during.count == 2

    splitting.unsplit(parent_id)
    after = cashflow.summarize().totals
    assert after.expenses == before.expenses
    assert after.count == 1


def test_unsplit_restores_parent(temp_db, splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00")
    child_ids = splitting.split(parent_id, grocery_split)

    assert splitting.unsplit(parent_id) == 2

    assert temp_db.get_transaction(parent_id).is_split_parent is False
    assert splitting.get_children(parent_id) == []
    assert all(temp_db.get_transaction(child_id) is None for child_id in child_ids)
    # History of deleted children survives
    assert temp_db.list_audit_entries(transaction_id=child_ids[0])


def test_resplit_after_unsplit(splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00")
    splitting.split(parent_id, grocery_split)
    splitting.unsplit(parent_id)

    assert len(splitting.split(parent_id, grocery_split)) == 2


def test_split_rejects_already_split(splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00")
    splitting.split(parent_id, grocery_split)

    with pytest.raises(ConflictError):
        splitting.split(parent_id, grocery_split)


def test_split_rejects_child(splitting, sample_categories, grocery_split, make_transaction):
    child_id = splitting.split(make_transaction("-150.00"), grocery_split)[0]
    items = [
        SplitItem(Decimal("50.00"), sample_categories["Transportation"]),
        SplitItem(Decimal("50.00"), sample_categories["Transportation"]),
    ]

    with pytest.raises(ConflictError):
        splitting.split(child_id, items)


def test_split_mismatched_total_writes_nothing(temp_db, splitting, sample_categories, make_transaction):
    parent_id = make_transaction("-150.00")
    items = [
        SplitItem(Decimal("100.00"), sample_categories["Transportation"]),
        SplitItem(Decimal("49.98"), sample_categories["Transportation"]),
    ]

    with pytest.raises(ValidationError):
        splitting.split(parent_id, items)

    assert temp_db.get_transaction(parent_id).is_split_parent is False
    assert splitting.get_children(parent_id) == []


def test_split_within_tolerance():
    validate_split_amounts(
        Decimal("-150.00"), [SplitItem(Decimal("100.00"), 1), SplitItem(Decimal("49.99"), 2)]
    )


@pytest.mark.parametrize(
    "items",
    [
        [SplitItem(Decimal("150.00"), 1)],
        [SplitItem(Decimal("150.00"), 1), SplitItem(Decimal("0"), 2)],
        [SplitItem(Decimal("-100.00"), 1), SplitItem(Decimal("-50.00"), 2)],
        [SplitItem(Decimal("100.00"), 1), SplitItem(Decimal("50.00"), None)],
    ],
)
def test_validate_split_amounts_rejects(items):
    with pytest.raises(ValidationError):
        validate_split_amounts(Decimal("-150.00"), items)


def test_split_unknown_category(splitting, make_transaction):
    items = [SplitItem(Decimal("100.00"), 998), SplitItem(Decimal("50.00"), 999)]
    with pytest.raises(NotFoundError):
        splitting.split(make_transaction("-150.00"), items)


def test_unsplit_requires_children(splitting, make_transaction):
    with pytest.raises(ValidationError):
        splitting.unsplit(make_transaction())


def test_waterfall_skips_split_parent(temp_db, splitting, grocery_split, make_transaction):
    parent_id = make_transaction("-150.00")
    splitting.split(parent_id, grocery_split)

    result = CategorizationService(temp_db).categorize_batch([parent_id])

    assert result.skipped_split == 1
