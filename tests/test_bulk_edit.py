"""Tests for bulk category assignment, flags and approval."""

from decimal import Decimal

import pytest

from sortit.domain.bulk_edit import BulkEditService, validate_flag_patch
from sortit.domain.entities import CategorySource
from sortit.domain.errors import NotFoundError, ValidationError
from sortit.domain.override import OverrideService
from sortit.domain.retroactive import RetroactiveService
from sortit.domain.splitting import SplitItem, SplittingService


@pytest.fixture
def bulk(temp_db):
    return BulkEditService(temp_db)


def test_assign_skips_locked(temp_db, bulk, sample_categories, make_transaction):
    groceries = sample_categories["Food & Dining > Groceries"]
    transportation = sample_categories["Transportation"]
    open_ids = [make_transaction(description=f"STORE {i}") for i in range(3)]
    locked_id = make_transaction(description="LOCKED", category_id=transportation)
    OverrideService(temp_db).lock(locked_id)

    result = bulk.assign_category(open_ids + [locked_id], groceries)

    assert result.updated == 3
    assert result.skipped_locked == 1
    for txn_id in open_ids:
        txn = temp_db.get_transaction(txn_id)
        assert txn.category_id == groceries
        assert txn.category_locked is True
        assert txn.category_source == CategorySource.MANUAL.value
    assert temp_db.get_transaction(locked_id).category_id == transportation


def test_assign_creates_undoable_batch(temp_db, bulk, sample_categories, make_transaction):
    transportation = sample_categories["Transportation"]
    ids = [make_transaction(category_id=transportation), make_transaction()]

    result = bulk.assign_category(ids, sample_categories["Food & Dining > Groceries"])

    batch = temp_db.get_batch(result.batch_id)
    assert batch.operation_type == "bulk_edit"
    assert batch.transaction_count == 2
    entries = temp_db.list_audit_entries(batch_id=result.batch_id)
    assert {entry.change_source for entry in entries} == {"bulk_edit"}

    undo = RetroactiveService(temp_db).undo(result.batch_id)

    assert undo.reverted == 2
    assert temp_db.get_transaction(ids[0]).category_id == transportation
    assert temp_db.get_transaction(ids[1]).category_id is None


def test_assign_learns_each_payee_once(temp_db, bulk, sample_categories, make_transaction):
    groceries = sample_categories["Food & Dining > Groceries"]
    ids = [
        make_transaction(description="Whole Foods"),
        make_transaction(description="WHOLE FOODS"),
        make_transaction(description="Safeway Inc"),
    ]

    bulk.assign_category(ids, groceries, learn_payee=True)

    mappings = {m.payee_name: m for m in temp_db.list_payee_mappings()}
    assert set(mappings) == {"whole foods", "safeway"}
    assert mappings["whole foods"].usage_count == 1


def test_assign_is_all_or_nothing(temp_db, bulk, sample_categories, make_transaction):
    txn_id = make_transaction()

    with pytest.raises(NotFoundError):
        bulk.assign_category([txn_id, 777], sample_categories["Transportation"])

    assert temp_db.get_transaction(txn_id).category_id is None
    assert temp_db.list_batches(include_undone=True) == []


def test_assign_requires_ids(bulk, sample_categories):
    with pytest.raises(ValidationError):
        bulk.assign_category([], sample_categories["Transportation"])


def test_update_flags_merges_patch(temp_db, bulk, make_transaction):
    txn_id = make_transaction()
    OverrideService(temp_db).lock(txn_id)

    bulk.update_flags([txn_id], {"is_transfer": True})
    bulk.update_flags([txn_id], {"is_business": True})

    txn = temp_db.get_transaction(txn_id)
    assert txn.is_transfer is True
    assert txn.is_business is True
    assert txn.is_pass_through is False


@pytest.mark.parametrize("flags", [{}, {"is_locked": True}, {"is_transfer": "yes"}])
def test_validate_flag_patch_rejects(flags):
    with pytest.raises(ValidationError):
        validate_flag_patch(flags)


def test_approve(temp_db, bulk, sample_categories, make_transaction):
    categorized = make_transaction(category_id=sample_categories["Transportation"])
    uncategorized = make_transaction()
    locked = make_transaction(category_id=sample_categories["Transportation"])
    OverrideService(temp_db).lock(locked)

    result = bulk.approve([categorized, uncategorized, locked])

    assert (result.updated, result.skipped_ineligible, result.skipped_locked) == (1, 1, 1)
    txn = temp_db.get_transaction(categorized)
    assert txn.category_locked is True
    assert txn.category_source == CategorySource.MANUAL.value
    assert temp_db.get_transaction(uncategorized).category_locked is False
    assert temp_db.count_audit_entries() == 0


def test_assign_skips_split_parent(temp_db, bulk, sample_categories, make_transaction):
    parent = make_transaction("-150.00")
    SplittingService(temp_db).split(
        parent,
        [
            SplitItem(Decimal("100.00"), sample_categories["Food & Dining > Groceries"]),
            SplitItem(Decimal("50.00"), sample_categories["Shopping > Household"]),
        ],
    )

    result = bulk.assign_category([parent], sample_categories["Transportation"])

    assert result.updated == 0
    assert result.skipped_ineligible == 1
    assert temp_db.get_transaction(parent).category_id is None
    assert temp_db.list_audit_entries(batch_id=result.batch_id) == []
