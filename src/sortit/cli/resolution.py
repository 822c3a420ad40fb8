"""CLI helpers for resolving accounts and categories from user input."""

from __future__ import annotations

import click

from sortit.cli.error_handling import handle_domain_error
from sortit.domain.account import AccountService
from sortit.domain.category import CategoryService


def resolve_account_or_exit(ctx: click.Context, account: str) -> int:
    """Resolve account name or ID, or exit with a CLI error."""
    try:
        return AccountService(ctx.obj["db"]).find_account(account).id
    except ValueError as exc:
        handle_domain_error(ctx, exc)


def resolve_category_or_exit(ctx: click.Context, category: str) -> int:
    """Resolve a category path or ID, or exit with a CLI error."""
    try:
        return CategoryService(ctx.obj["db"]).resolve(category).id
    except ValueError as exc:
        handle_domain_error(ctx, exc)
