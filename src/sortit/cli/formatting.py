"""Shared output formatting for CLI commands."""

from decimal import Decimal
from typing import Optional

import click

from sortit.domain.category import CategoryService
from sortit.domain.entities import Transaction


def format_amount(amount: Decimal) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def category_label(categories: CategoryService, category_id: Optional[int]) -> str:
    return categories.format_category_path(category_id) or "Uncategorized"


def echo_transaction(categories: CategoryService, txn: Transaction) -> None:
    """Print one transaction as a table row."""
    markers = "".join(
        marker
        for marker, present in (
            ("L", txn.category_locked),
            ("S", txn.is_split_parent),
            ("c", txn.is_split_child),
            ("T", txn.is_transfer),
            ("P", txn.is_pass_through),
        )
        if present
    )
    description = (txn.description_clean or txn.description_raw or "")[:30]
    click.echo(
        f"{txn.id:5d} | {txn.date} | {format_amount(txn.amount):>12s} | {description:30s} | "
        f"{category_label(categories, txn.category_id):30s} | {markers}"
    )
