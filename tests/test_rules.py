"""Tests for rule matching and rule administration."""

from decimal import Decimal

import pytest

from sortit.domain.entities import Direction
from sortit.domain.errors import NotFoundError, ValidationError
from sortit.domain.rules import (
    AmountRange,
    DirectionIs,
    MerchantContains,
    RuleService,
    evaluate_rule,
    find_matching_rule,
    order_rules,
)


@pytest.fixture
def rule_service(temp_db):
    return RuleService(temp_db)


@pytest.fixture
def coffee_rules(rule_service, sample_categories):
    """Rule A (priority 90, STARBUCKS) and rule B (priority 50, small outflows)."""
    rule_a = rule_service.create_rule(
        name="Starbucks",
        category_id=sample_categories["Food & Dining > Coffee"],
        priority=90,
        merchant_contains="STARBUCKS",
    )
    rule_b = rule_service.create_rule(
        name="Small purchases",
        category_id=sample_categories["Food & Dining > Restaurants"],
        priority=50,
        amount_max=Decimal("10"),
        direction="outflow",
    )
    return rule_a, rule_b


def test_predicates_are_pure(transaction_service, make_transaction):
    txn = transaction_service.get_transaction(make_transaction("-4.00", description="Starbucks #1"))

    assert MerchantContains("starbucks").matches(txn)
    assert not MerchantContains("peets").matches(txn)
    assert AmountRange(Decimal("4.00"), Decimal("4.00")).matches(txn)
    assert not AmountRange(minimum=Decimal("4.01")).matches(txn)
    assert DirectionIs(Direction.OUTFLOW).matches(txn)
    assert not DirectionIs(Direction.INFLOW).matches(txn)


def test_higher_priority_rule_wins(rule_service, coffee_rules, transaction_service, make_transaction):
    """A $4 Starbucks charge matches both rules and gets the higher-priority category."""
    rule_a, _ = coffee_rules
    txn_id = make_transaction("-4.00", description="STARBUCKS STORE 123")

    match = rule_service.evaluate(txn_id)

    assert match.rule.id == rule_a
    assert match.matched_on == "merchant_contains"


def test_evaluation_is_deterministic(rule_service, coffee_rules, transaction_service, make_transaction):
    txn = transaction_service.get_transaction(make_transaction("-4.00", description="STARBUCKS"))
    rules = rule_service.list_rules(active_only=True)

    assert find_matching_rule(txn, rules) == find_matching_rule(txn, list(reversed(rules)))
    assert find_matching_rule(txn, rules) == find_matching_rule(txn, rules)


def test_lower_priority_rule_applies_when_higher_misses(rule_service, coffee_rules, make_transaction):
    _, rule_b = coffee_rules
    txn_id = make_transaction("-7.25", description="CORNER DELI")

    match = rule_service.evaluate(txn_id)

    assert match.rule.id == rule_b
    assert match.matched_on == "criteria"


def test_no_rule_matches(rule_service, coffee_rules, make_transaction):
    assert rule_service.evaluate(make_transaction("-250.00", description="FURNITURE")) is None


def test_equal_priority_uses_creation_order(rule_service, sample_categories, make_transaction):
    first = rule_service.create_rule("First", sample_categories["Transportation"], priority=10)
    rule_service.create_rule("Second", sample_categories["Shopping > Household"], priority=10)

    assert rule_service.evaluate(make_transaction()).rule.id == first
    assert [rule.name for rule in rule_service.list_rules()] == ["First", "Second"]


def test_inactive_rules_are_ignored(rule_service, coffee_rules, make_transaction):
    rule_a, rule_b = coffee_rules
    rule_service.set_active(rule_a, False)

    match = rule_service.evaluate(make_transaction("-4.00", description="STARBUCKS"))

    assert match.rule.id == rule_b
    assert [rule.id for rule in rule_service.list_rules(active_only=True)] == [rule_b]


def test_exact_is_tried_before_contains(rule_service, sample_categories, transaction_service, make_transaction):
    rule_id = rule_service.create_rule(
        "Shell",
        sample_categories["Transportation"],
        merchant_exact="shell oil",
        merchant_contains="shell",
    )
    rule = rule_service.get_rule(rule_id)

    exact = transaction_service.get_transaction(make_transaction(description="SHELL OIL"))
    partial = transaction_service.get_transaction(make_transaction(description="SHELL OIL 5531"))

    assert evaluate_rule(rule, exact).matched_on == "merchant_exact"
    assert evaluate_rule(rule, partial).matched_on == "merchant_contains"


def test_merchant_matches_counterparty(rule_service, sample_categories, make_transaction):
    rule_service.create_rule("Uber", sample_categories["Transportation"], merchant_contains="uber")
    txn_id = make_transaction(description="PAYMENT 8812", counterparty_name="Uber Technologies")

    assert rule_service.evaluate(txn_id) is not None


def test_account_and_direction_criteria(
    rule_service, sample_categories, sample_account, savings_account, make_transaction
):
    rule_service.create_rule(
        "Savings interest",
        sample_categories["Income > Salary"],
        account_id=savings_account.id,
        direction="inflow",
    )

    assert rule_service.evaluate(make_transaction("5.00", account_id=savings_account.id)) is not None
    assert rule_service.evaluate(make_transaction("-5.00", account_id=savings_account.id)) is None
    assert rule_service.evaluate(make_transaction("5.00", account_id=sample_account.id)) is None


def test_order_rules_sorts_by_priority_then_id(rule_service, sample_categories):
    low = rule_service.create_rule("Low", sample_categories["Transportation"], priority=1)
    high = rule_service.create_rule("High", sample_categories["Transportation"], priority=99)
    rules = rule_service.list_rules()

    assert [rule.id for rule in order_rules(reversed(rules))] == [high, low]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "  "},
        {"direction": "sideways"},
        {"amount_min": Decimal("-1")},
        {"amount_min": Decimal("20"), "amount_max": Decimal("10")},
    ],
)
def test_create_rule_validation(rule_service, sample_categories, kwargs):
    values = {"name": "Rule", "category_id": sample_categories["Transportation"], **kwargs}
    with pytest.raises(ValidationError):
        rule_service.create_rule(**values)


def test_create_rule_unknown_references(rule_service, sample_categories):
    with pytest.raises(NotFoundError):
        rule_service.create_rule("Rule", category_id=999)
    with pytest.raises(NotFoundError):
        rule_service.create_rule("Rule", sample_categories["Transportation"], account_id=999)


def test_update_rule_validates_merged_bounds(rule_service, sample_categories):
    rule_id = rule_service.create_rule(
        "Range", sample_categories["Transportation"], amount_min=Decimal("10")
    )
    with pytest.raises(ValidationError):
        rule_service.update_rule(rule_id, match_amount_max=Decimal("5"))

    updated = rule_service.update_rule(rule_id, match_amount_max=Decimal("50"), priority=7)
    assert updated.match_amount_max == Decimal("50")
    assert updated.priority == 7


def test_reorder(rule_service, sample_categories):
    ids = [
        rule_service.create_rule(name, sample_categories["Transportation"], priority=0)
        for name in ("One", "Two", "Three")
    ]

    rules = rule_service.reorder([ids[2], ids[0], ids[1]])

    assert [rule.id for rule in rules] == [ids[2], ids[0], ids[1]]
    assert [rule.priority for rule in rules] == [30, 20, 10]


def test_reorder_rejects_duplicates(rule_service, sample_categories):
    rule_id = rule_service.create_rule("One", sample_categories["Transportation"])
    with pytest.raises(ValidationError):
        rule_service.reorder([rule_id, rule_id])


def test_delete_rule(rule_service, sample_categories):
    rule_id = rule_service.create_rule("Gone", sample_categories["Transportation"])
    rule_service.delete_rule(rule_id)

    assert rule_service.get_rule(rule_id) is None
    with pytest.raises(NotFoundError):
        rule_service.delete_rule(rule_id)


def test_evaluate_unknown_transaction(rule_service):
    with pytest.raises(NotFoundError):
        rule_service.evaluate(12345)


def test_rule_amount_bounds_round_trip(rule_service, sample_categories):
    rule_id = rule_service.create_rule(
        "Bounds",
        sample_categories["Transportation"],
        amount_min=Decimal("1.50"),
        amount_max=Decimal("99.99"),
    )
    rule = rule_service.get_rule(rule_id)

    assert rule.match_amount_min == Decimal("1.50")
    assert rule.match_amount_max == Decimal("99.99")
