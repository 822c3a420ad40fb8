"""Tests for payee normalization and payee memory."""

import pytest

from sortit.domain.errors import NotFoundError, ValidationError
from sortit.domain.payee_memory import PayeeMemoryService, normalize_payee_name


@pytest.fixture
def payee_memory(temp_db):
    return PayeeMemoryService(temp_db)


@pytest.mark.parametrize(
    "raw",
    ["Starbucks Inc.", "THE STARBUCKS", "starbucks", "  Starbucks,  LLC "],
)
def test_normalize_collapses_variants(raw):
    assert normalize_payee_name(raw) == "starbucks"


def test_normalize_strips_punctuation_and_whitespace():
    assert normalize_payee_name("Joe's   Pizza & Pasta") == "joes pizza pasta"


def test_normalize_keeps_inner_words():
    """Suffixes and articles are only stripped at the ends."""
    assert normalize_payee_name("A Company Store") == "company store"


def test_normalize_empty():
    assert normalize_payee_name(None) == ""
    assert normalize_payee_name("  ...  ") == ""


def test_lookup_unknown_payee(payee_memory):
    assert payee_memory.lookup("Nobody") is None
    assert payee_memory.lookup(None) is None


def test_save_and_lookup(payee_memory, sample_categories):
    coffee = sample_categories["Food & Dining > Coffee"]
    mapping = payee_memory.save("Starbucks Inc.", coffee)

    assert mapping.payee_name == "starbucks"
    assert mapping.usage_count == 1

    match = payee_memory.lookup("THE STARBUCKS")
    assert match is not None
    assert match.category_id == coffee
    assert match.mapping_id == mapping.id


def test_save_is_last_write_wins(payee_memory, sample_categories):
    coffee = sample_categories["Food & Dining > Coffee"]
    restaurants = sample_categories["Food & Dining > Restaurants"]

    payee_memory.save("Starbucks", coffee)
    mapping = payee_memory.save("starbucks inc", restaurants)

    assert mapping.category_id == restaurants
    assert mapping.usage_count == 2
    assert len(payee_memory.list_mappings()) == 1


def test_record_use_increments_count(payee_memory, sample_categories):
    mapping = payee_memory.save("Shell", sample_categories["Transportation"])
    payee_memory.record_use(mapping.id)
    payee_memory.record_use(mapping.id)

    [stored] = payee_memory.list_mappings()
    assert stored.usage_count == 3


def test_save_rejects_empty_name(payee_memory, sample_categories):
    with pytest.raises(ValidationError):
        payee_memory.save("!!!", sample_categories["Transportation"])


def test_save_rejects_unknown_category(payee_memory):
    with pytest.raises(NotFoundError):
        payee_memory.save("Starbucks", 999)


def test_delete_mapping(payee_memory, sample_categories):
    mapping = payee_memory.save("Shell", sample_categories["Transportation"])
    payee_memory.delete_mapping(mapping.id)
    assert payee_memory.lookup("Shell") is None


def test_delete_unknown_mapping(payee_memory):
    with pytest.raises(NotFoundError):
        payee_memory.delete_mapping(42)
