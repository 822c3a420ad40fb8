"""Categorization rule commands."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import category_label, format_amount
from sortit.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from sortit.config import load_settings
from sortit.domain.category import CategoryService
from sortit.domain.entities import CategorizationRule, Direction
from sortit.domain.errors import StorageError
from sortit.domain.retroactive import RetroactiveService
from sortit.domain.rules import RuleService
from sortit.utils.amount_parser import parse_amount


def describe_criteria(rule: CategorizationRule) -> str:
    parts = []
    if rule.match_merchant_exact:
        parts.append(f"merchant = '{rule.match_merchant_exact}'")
    if rule.match_merchant_contains:
        parts.append(f"merchant contains '{rule.match_merchant_contains}'")
    if rule.match_amount_min is not None or rule.match_amount_max is not None:
        low = rule.match_amount_min if rule.match_amount_min is not None else "*"
        high = rule.match_amount_max if rule.match_amount_max is not None else "*"
        parts.append(f"amount {low}..{high}")
    if rule.match_account_id is not None:
        parts.append(f"account {rule.match_account_id}")
    if rule.match_direction != Direction.ANY.value:
        parts.append(rule.match_direction)
    return ", ".join(parts) or "(matches everything)"


def parse_bound_or_exit(ctx: click.Context, value: str | None):
    if value is None:
        return None
    try:
        return abs(parse_amount(value))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@click.group()
def rule_group():
    """Manage categorization rules."""
    pass


@rule_group.command("add")
@click.argument("name")
@click.option("--category", required=True, help="Category path or ID to assign")
@click.option("--priority", type=int, default=0, show_default=True, help="Higher runs first")
@click.option("--contains", "merchant_contains", help="Merchant text contains (case-insensitive)")
@click.option("--exact", "merchant_exact", help="Merchant text equals (case-insensitive)")
@click.option("--min-amount", help="Minimum absolute amount")
@click.option("--max-amount", help="Maximum absolute amount")
@click.option("--account", help="Only match this account (name or ID)")
@click.option(
    "--direction",
    type=click.Choice([d.value for d in Direction]),
    default=Direction.ANY.value,
    show_default=True,
)
@click.option("--transfer/--not-transfer", "assign_is_transfer", default=None, help="Set transfer flag on match")
@click.option(
    "--pass-through/--not-pass-through",
    "assign_is_pass_through",
    default=None,
    help="Set pass-through flag on match",
)
@click.option("--description", help="Free text")
@click.pass_context
def add_rule(
    ctx,
    name: str,
    category: str,
    priority: int,
    merchant_contains: str | None,
    merchant_exact: str | None,
    min_amount: str | None,
    max_amount: str | None,
    account: str | None,
    direction: str,
    assign_is_transfer: bool | None,
    assign_is_pass_through: bool | None,
    description: str | None,
):
    """Create a categorization rule.

    Examples:
        sortit rule add "Coffee shops" --category "Food & Dining > Coffee" --contains STARBUCKS --priority 50
    """
    category_id = resolve_category_or_exit(ctx, category)
    account_id = resolve_account_or_exit(ctx, account) if account else None
    try:
        rule_id = RuleService(ctx.obj["db"]).create_rule(
            name=name,
            category_id=category_id,
            priority=priority,
            merchant_contains=merchant_contains,
            merchant_exact=merchant_exact,
            amount_min=parse_bound_or_exit(ctx, min_amount),
            amount_max=parse_bound_or_exit(ctx, max_amount),
            account_id=account_id,
            direction=direction,
            assign_is_transfer=assign_is_transfer,
            assign_is_pass_through=assign_is_pass_through,
            description=description,
        )
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Created rule '{name}' (ID: {rule_id})")


@rule_group.command("list")
@click.option("--active", "active_only", is_flag=True, help="Only active rules")
@click.pass_context
def list_rules(ctx, active_only: bool):
    """List rules in evaluation order."""
    db = ctx.obj["db"]
    rules = RuleService(db).list_rules(active_only=active_only)
    if not rules:
        click.echo("No rules found.")
        return

    categories = CategoryService(db)
    click.echo("\nRules (evaluated top to bottom):")
    click.echo("-" * 100)
    for rule in rules:
        state = "" if rule.is_active else " [disabled]"
        click.echo(
            f"ID: {rule.id:3d} | prio {rule.priority:4d} | {rule.name}{state} -> "
            f"{category_label(categories, rule.category_id)} | {describe_criteria(rule)}"
        )


@rule_group.command("show")
@click.argument("rule_id", type=int)
@click.pass_context
def show_rule(ctx, rule_id: int):
    """Show a rule and its batches."""
    db = ctx.obj["db"]
    try:
        rule = RuleService(db).require_rule(rule_id)
    except ValueError as e:
        handle_error(ctx, e)

    click.echo(f"Rule {rule.id}: {rule.name}")
    if rule.description:
        click.echo(f"  {rule.description}")
    click.echo(f"  Priority: {rule.priority}")
    click.echo(f"  Active: {'yes' if rule.is_active else 'no'}")
    click.echo(f"  Matches: {describe_criteria(rule)}")
    click.echo(f"  Category: {category_label(CategoryService(db), rule.category_id)}")
    if rule.assign_is_transfer is not None:
        click.echo(f"  Sets transfer: {rule.assign_is_transfer}")
    if rule.assign_is_pass_through is not None:
        click.echo(f"  Sets pass-through: {rule.assign_is_pass_through}")

    batches = RetroactiveService(db).list_batches(rule_id=rule_id, include_undone=True)
    if batches:
        click.echo("  Batches:")
        for batch in batches:
            undone = " (undone)" if batch.is_undone else ""
            click.echo(f"    {batch.id}: {batch.transaction_count} transaction(s){undone}")


@rule_group.command("enable")
@click.argument("rule_id", type=int)
@click.pass_context
def enable_rule(ctx, rule_id: int):
    """Enable a rule."""
    try:
        RuleService(ctx.obj["db"]).set_active(rule_id, True)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Rule {rule_id} enabled")


@rule_group.command("disable")
@click.argument("rule_id", type=int)
@click.pass_context
def disable_rule(ctx, rule_id: int):
    """Disable a rule without deleting it."""
    try:
        RuleService(ctx.obj["db"]).set_active(rule_id, False)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Rule {rule_id} disabled")


@rule_group.command("priority")
@click.argument("rule_id", type=int)
@click.argument("priority", type=int)
@click.pass_context
def set_priority(ctx, rule_id: int, priority: int):
    """Set a rule's priority."""
    try:
        RuleService(ctx.obj["db"]).update_rule(rule_id, priority=priority)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Rule {rule_id} priority set to {priority}")


@rule_group.command("reorder")
@click.argument("rule_ids", nargs=-1, type=int, required=True)
@click.pass_context
def reorder_rules(ctx, rule_ids: tuple[int, ...]):
    """Give rules descending priorities in the order listed."""
    try:
        rules = RuleService(ctx.obj["db"]).reorder(list(rule_ids))
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    for rule in rules:
        click.echo(f"{rule.priority:4d}  {rule.name} (ID: {rule.id})")


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def delete_rule(ctx, rule_id: int, yes: bool):
    """Delete a rule."""
    if not yes and not click.confirm(f"Delete rule {rule_id}?"):
        click.echo("Cancelled.")
        return
    try:
        RuleService(ctx.obj["db"]).delete_rule(rule_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Deleted rule {rule_id}")


@rule_group.command("test")
@click.argument("transaction_id", type=int)
@click.pass_context
def test_rules(ctx, transaction_id: int):
    """Show which rule would categorize a transaction."""
    db = ctx.obj["db"]
    try:
        match = RuleService(db).evaluate(transaction_id)
    except ValueError as e:
        handle_error(ctx, e)
    if match is None:
        click.echo("No rule matches.")
        return
    click.echo(
        f"Rule {match.rule.id} '{match.rule.name}' matches on {match.matched_on} -> "
        f"{category_label(CategoryService(db), match.rule.category_id)}"
    )


@rule_group.command("preview")
@click.argument("rule_id", type=int)
@date_range_options
@click.option("--limit", type=int, help="Maximum rows to list (totals cover the whole range)")
@click.pass_context
def preview_rule(
    ctx, rule_id: int, start_date: str | None, end_date: str | None, period: str | None, limit: int | None
):
    """Show what applying a rule to history would change."""
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    try:
        preview = RetroactiveService(db, load_settings()).preview(rule_id, start, end, limit=limit)
    except ValueError as e:
        handle_error(ctx, e)

    categories = CategoryService(db)
    for row in preview.rows:
        if row.is_locked:
            status = "locked"
        elif row.would_change:
            status = "change"
        else:
            status = "same"
        click.echo(
            f"{row.transaction.id:5d} | {row.transaction.date} | "
            f"{format_amount(row.transaction.amount):>12s} | "
            f"{category_label(categories, row.current_category_id)} -> "
            f"{category_label(categories, row.new_category_id)} [{status}]"
        )
    if preview.truncated:
        click.echo(f"... showing {len(preview.rows)} of {preview.total_matching} matches")
    click.echo(
        f"\nMatching: {preview.total_matching}  Would change: {preview.would_change}  "
        f"Locked: {preview.would_skip_locked}"
    )


@rule_group.command("apply")
@click.argument("rule_id", type=int)
@date_range_options
@click.option("--yes", is_flag=True, help="Apply without confirmation")
@click.pass_context
def apply_rule(ctx, rule_id: int, start_date: str | None, end_date: str | None, period: str | None, yes: bool):
    """Apply a rule to existing transactions as one undoable batch.

    Examples:
        sortit rule apply 3 --period this-year
    """
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    service = RetroactiveService(ctx.obj["db"], load_settings())
    try:
        preview = service.preview(rule_id, start, end)
        ids = preview.changing_ids
        if not ids:
            click.echo("Nothing to change.")
            return
        click.echo(
            f"{preview.would_change} transaction(s) would change, "
            f"{preview.would_skip_locked} locked would be skipped."
        )
        if not yes and not click.confirm("Apply?"):
            click.echo("Cancelled.")
            return
        result = service.apply(rule_id, ids, start_date=start, end_date=end)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(
        f"Applied to {result.applied_count} transaction(s) in batch {result.batch_id} "
        f"(locked skipped: {result.skipped_locked}, unchanged: {result.unchanged})"
    )


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
