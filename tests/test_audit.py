"""Tests for the audit log service."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from sortit.domain.audit import AuditService
from sortit.domain.bulk_edit import BulkEditService
from sortit.domain.categorization import CategorizationService
from sortit.domain.errors import NotFoundError, StorageError, ValidationError
from sortit.domain.override import OverrideService
from sortit.domain.retroactive import RetroactiveService
from sortit.domain.rules import RuleService


@pytest.fixture
def audit(temp_db):
    return AuditService(temp_db)


def test_history_is_newest_first(temp_db, audit, sample_categories, make_transaction):
    txn_id = make_transaction()
    overrides = OverrideService(temp_db)
    overrides.apply_override(txn_id, sample_categories["Transportation"], learn_payee=False)
    overrides.apply_override(txn_id, sample_categories["Shopping > Household"], learn_payee=False)

    history = audit.get_history(txn_id)

    assert [entry.new_category_id for entry in history] == [
        sample_categories["Shopping > Household"],
        sample_categories["Transportation"],
    ]
    assert history[0].previous_category_id == sample_categories["Transportation"]


def test_history_of_unknown_transaction_is_empty(audit):
    assert audit.get_history(555) == []


def test_list_entries_filters_and_pages(temp_db, audit, sample_categories, make_transaction):
    ids = [make_transaction() for _ in range(3)]
    BulkEditService(temp_db).assign_category(ids, sample_categories["Transportation"])
    OverrideService(temp_db).apply_override(
        make_transaction(), sample_categories["Transportation"], learn_payee=False
    )

    assert len(audit.list_entries()) == 4
    assert len(audit.list_entries(source="bulk_edit")) == 3
    assert len(audit.list_entries(source="manual")) == 1
    assert len(audit.list_entries(limit=2)) == 2
    assert len(audit.list_entries(limit=2, offset=3)) == 1


@pytest.mark.parametrize("kwargs", [{"source": "magic"}, {"limit": 0}, {"offset": -1}])
def test_list_entries_validation(audit, kwargs):
    with pytest.raises(ValidationError):
        audit.list_entries(**kwargs)


def test_batch_entries(temp_db, audit, sample_categories, make_transaction):
    result = BulkEditService(temp_db).assign_category(
        [make_transaction(), make_transaction()], sample_categories["Transportation"]
    )

    entries = audit.get_batch_entries(result.batch_id)

    assert len(entries) == 2
    assert {entry.batch_id for entry in entries} == {result.batch_id}
    with pytest.raises(NotFoundError):
        audit.get_batch_entries(404)


def test_summary(temp_db, audit, sample_categories, make_transaction):
    BulkEditService(temp_db).assign_category([make_transaction()], sample_categories["Transportation"])
    OverrideService(temp_db).apply_override(
        make_transaction(), sample_categories["Transportation"], learn_payee=False
    )

    summary = audit.get_summary(days=7)

    assert summary.total_changes == 2
    assert summary.by_source == {"bulk_edit": 1, "manual": 1}
    assert summary.recent_batches == 1

    with pytest.raises(ValidationError):
        audit.get_summary(days=0)


@pytest.fixture
def failing_audit_writes(temp_db, monkeypatch):
    """Make every audit insert fail at the storage layer."""

    def _fail(**fields):
        raise SQLAlchemyError("audit insert failed")

    monkeypatch.setattr(temp_db, "add_audit_entry", _fail)


def test_failed_audit_write_rolls_back_waterfall(
    temp_db, sample_categories, make_transaction, failing_audit_writes
):
    RuleService(temp_db).create_rule(
        "Rides", sample_categories["Transportation"], merchant_contains="uber"
    )
    txn_id = make_transaction(description="UBER TRIP")

    with pytest.raises(StorageError):
        CategorizationService(temp_db).categorize_uncategorized()

    txn = temp_db.get_transaction(txn_id)
    assert txn.category_id is None
    assert txn.category_source is None
    assert temp_db.list_batches(include_undone=True) == []
    assert temp_db.list_audit_entries() == []


def test_failed_audit_write_rolls_back_retroactive_apply(
    temp_db, sample_categories, make_transaction, failing_audit_writes
):
    rule_id = RuleService(temp_db).create_rule(
        "Rides", sample_categories["Transportation"], merchant_contains="uber"
    )
    ids = [make_transaction(description="UBER TRIP"), make_transaction(description="UBER EATS")]

    with pytest.raises(StorageError):
        RetroactiveService(temp_db).apply(rule_id, ids)

    assert [temp_db.get_transaction(txn_id).category_id for txn_id in ids] == [None, None]
    assert temp_db.list_batches(include_undone=True) == []