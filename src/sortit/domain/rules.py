"""Rule matching and rule administration.

A rule is a conjunction of predicates plus an assignment. Rules are evaluated
in descending priority; equal priorities fall back to creation order (lower
id first). The first rule whose predicates all hold wins.

Merchant predicates look at every text the transaction carries (raw
description, clean description, counterparty name). When a rule sets both an
exact and a contains value, exact is tried first and contains is the
fallback.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Union

from sortit.database.base import Database
from sortit.domain.category import require_category
from sortit.domain.entities import CategorizationRule, Direction, Transaction
from sortit.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    rule_not_found,
    transaction_not_found,
)

logger = logging.getLogger(__name__)


def merchant_texts(txn: Transaction) -> list[str]:
    """Return the lowercased texts merchant predicates are checked against."""
    texts = (txn.description_raw, txn.description_clean, txn.counterparty_name)
    return [text.strip().lower() for text in texts if text and text.strip()]


@dataclass(frozen=True)
class MerchantExact:
    value: str
    kind = "merchant_exact"

    def matches(self, txn: Transaction) -> bool:
        needle = self.value.strip().lower()
        return any(text == needle for text in merchant_texts(txn))


@dataclass(frozen=True)
class MerchantContains:
    value: str
    kind = "merchant_contains"

    def matches(self, txn: Transaction) -> bool:
        needle = self.value.strip().lower()
        return any(needle in text for text in merchant_texts(txn))


@dataclass(frozen=True)
class AmountRange:
    """Inclusive bounds on the absolute amount."""

    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None
    kind = "amount_range"

    def matches(self, txn: Transaction) -> bool:
        magnitude = abs(txn.amount)
        if self.minimum is not None and magnitude < self.minimum:
            return False
        if self.maximum is not None and magnitude > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class AccountIs:
    account_id: int
    kind = "account"

    def matches(self, txn: Transaction) -> bool:
        return txn.account_id == self.account_id


@dataclass(frozen=True)
class DirectionIs:
    direction: Direction
    kind = "direction"

    def matches(self, txn: Transaction) -> bool:
        if self.direction == Direction.OUTFLOW:
            return txn.amount < 0
        if self.direction == Direction.INFLOW:
            return txn.amount > 0
        return True


Predicate = Union[MerchantExact, MerchantContains, AmountRange, AccountIs, DirectionIs]


@dataclass(frozen=True)
class RuleMatch:
    """Winning rule and the predicate that identified the merchant.

    matched_on is "merchant_exact", "merchant_contains", or "criteria" for
    rules without a merchant predicate.
    """

    rule: CategorizationRule
    matched_on: str


def merchant_predicates(rule: CategorizationRule) -> list[Predicate]:
    """Merchant alternatives in the order they are tried."""
    predicates: list[Predicate] = []
    if rule.match_merchant_exact:
        predicates.append(MerchantExact(rule.match_merchant_exact))
    if rule.match_merchant_contains:
        predicates.append(MerchantContains(rule.match_merchant_contains))
    return predicates


def criteria_predicates(rule: CategorizationRule) -> list[Predicate]:
    """Non-merchant predicates; all must hold."""
    predicates: list[Predicate] = []
    if rule.match_amount_min is not None or rule.match_amount_max is not None:
        predicates.append(AmountRange(rule.match_amount_min, rule.match_amount_max))
    if rule.match_account_id is not None:
        predicates.append(AccountIs(rule.match_account_id))
    direction = Direction(rule.match_direction or Direction.ANY.value)
    if direction != Direction.ANY:
        predicates.append(DirectionIs(direction))
    return predicates


def evaluate_rule(rule: CategorizationRule, txn: Transaction) -> Optional[RuleMatch]:
    """Check a single rule against a transaction. Pure."""
    for predicate in criteria_predicates(rule):
        if not predicate.matches(txn):
            return None

    alternatives = merchant_predicates(rule)
    if not alternatives:
        return RuleMatch(rule=rule, matched_on="criteria")

    for predicate in alternatives:
        if predicate.matches(txn):
            return RuleMatch(rule=rule, matched_on=predicate.kind)
    return None


def rule_sort_key(rule: CategorizationRule) -> tuple[int, int]:
    """Evaluation order: priority descending, then id ascending."""
    return (-rule.priority, rule.id)


def order_rules(rules: Iterable[CategorizationRule]) -> list[CategorizationRule]:
    """Sort rules into evaluation order."""
    return sorted(rules, key=rule_sort_key)


def find_matching_rule(
    txn: Transaction, rules: Iterable[CategorizationRule]
) -> Optional[RuleMatch]:
    """Return the first active rule, in evaluation order, that matches.

    Pure: callers pass the rule set, nothing is read or written.
    """
    for rule in order_rules(rules):
        if not rule.is_active:
            continue
        match = evaluate_rule(rule, txn)
        if match is not None:
            return match
    return None


class RuleService:
    """Service for managing categorization rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def _validate(self, values: dict) -> None:
        if "name" in values and not (values["name"] or "").strip():
            raise ValidationError("Rule name must not be empty")

        if "priority" in values and not isinstance(values["priority"], int):
            raise ValidationError("Rule priority must be an integer")

        if "category_id" in values:
            if values["category_id"] is None:
                raise ValidationError("Rule must assign a category")
            require_category(self.db, values["category_id"])

        direction = values.get("match_direction")
        if direction is not None:
            try:
                Direction(direction)
            except ValueError as e:
                raise ValidationError(
                    f"Invalid direction '{direction}'. Use: inflow, outflow, or any"
                ) from e

        account_id = values.get("match_account_id")
        if account_id is not None and self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        amount_min = values.get("match_amount_min")
        amount_max = values.get("match_amount_max")
        for bound in (amount_min, amount_max):
            if bound is not None and bound < 0:
                raise ValidationError("Amount bounds apply to absolute values and must not be negative")
        if amount_min is not None and amount_max is not None and amount_min > amount_max:
            raise ValidationError(f"Minimum amount {amount_min} is greater than maximum {amount_max}")

    def create_rule(
        self,
        name: str,
        category_id: int,
        priority: int = 0,
        merchant_contains: Optional[str] = None,
        merchant_exact: Optional[str] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        account_id: Optional[int] = None,
        direction: str = Direction.ANY.value,
        assign_is_transfer: Optional[bool] = None,
        assign_is_pass_through: Optional[bool] = None,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> int:
        """Create a categorization rule.

        Args:
            name: Rule name
            category_id: Category assigned on match
            priority: Higher values are evaluated first
            merchant_contains: Case-insensitive substring to look for
            merchant_exact: Case-insensitive full-text match, tried before contains
            amount_min: Inclusive lower bound on the absolute amount
            amount_max: Inclusive upper bound on the absolute amount
            account_id: Only match transactions from this account
            direction: "inflow", "outflow" or "any"
            assign_is_transfer: Optional transfer flag to set on match
            assign_is_pass_through: Optional pass-through flag to set on match
            description: Free text
            is_active: Inactive rules are never evaluated

        Returns:
            Rule ID

        Raises:
            ValidationError: If the definition is malformed
            NotFoundError: If the category or account doesn't exist
        """
        values = {
            "name": name,
            "category_id": category_id,
            "priority": priority,
            "match_merchant_contains": merchant_contains or None,
            "match_merchant_exact": merchant_exact or None,
            "match_amount_min": amount_min,
            "match_amount_max": amount_max,
            "match_account_id": account_id,
            "match_direction": direction,
            "assign_is_transfer": assign_is_transfer,
            "assign_is_pass_through": assign_is_pass_through,
            "description": description,
            "is_active": is_active,
        }
        self._validate(values)
        values["name"] = name.strip()

        with self.db.transaction():
            rule_id = self.db.create_rule(**values)
        logger.info("Created rule %s '%s' (priority %s)", rule_id, values["name"], priority)
        return rule_id

    def get_rule(self, rule_id: int) -> Optional[CategorizationRule]:
        """Get rule by ID, or None."""
        return self.db.get_rule(rule_id)

    def require_rule(self, rule_id: int) -> CategorizationRule:
        """Get rule by ID or raise NotFoundError."""
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def list_rules(self, active_only: bool = False) -> list[CategorizationRule]:
        """List rules in evaluation order."""
        return order_rules(self.db.list_rules(active_only=active_only))

    def update_rule(self, rule_id: int, **changes) -> CategorizationRule:
        """Update rule columns.

        Args:
            rule_id: Rule ID
            **changes: Column values, using the rule entity's field names

        Returns:
            The updated rule

        Raises:
            NotFoundError: If the rule doesn't exist
            ValidationError: If the resulting definition is malformed
        """
        rule = self.require_rule(rule_id)
        if not changes:
            return rule

        merged = {
            "match_amount_min": rule.match_amount_min,
            "match_amount_max": rule.match_amount_max,
            **changes,
        }
        self._validate(merged)

        with self.db.transaction():
            self.db.update_rule(rule_id, **changes)
        logger.info("Updated rule %s: %s", rule_id, ", ".join(sorted(changes)))
        return self.require_rule(rule_id)

    def set_active(self, rule_id: int, is_active: bool) -> CategorizationRule:
        """Enable or disable a rule."""
        return self.update_rule(rule_id, is_active=is_active)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule. Audit history keeps its rule id."""
        self.require_rule(rule_id)
        with self.db.transaction():
            self.db.delete_rule(rule_id)
        logger.info("Deleted rule %s", rule_id)

    def reorder(self, rule_ids: list[int], step: int = 10) -> list[CategorizationRule]:
        """Assign priorities so rules evaluate in the given order.

        The first ID gets the highest priority. Rules not listed keep theirs.

        Raises:
            ValidationError: If the list is empty or has duplicates
            NotFoundError: If a rule doesn't exist
        """
        if not rule_ids:
            raise ValidationError("No rule IDs provided")
        if len(set(rule_ids)) != len(rule_ids):
            raise ValidationError("Rule IDs must be unique")
        for rule_id in rule_ids:
            self.require_rule(rule_id)

        with self.db.transaction():
            top = len(rule_ids) * step
            for position, rule_id in enumerate(rule_ids):
                self.db.update_rule(rule_id, priority=top - position * step)
        return self.list_rules()

    def evaluate(self, transaction_id: int) -> Optional[RuleMatch]:
        """Dry-run the active rules against a stored transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return find_matching_rule(txn, self.db.list_rules(active_only=True))
