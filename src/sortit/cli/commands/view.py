"""Transaction viewing commands."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.formatting import category_label, echo_transaction, format_amount
from sortit.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from sortit.domain.category import CategoryService
from sortit.domain.transaction import TransactionService


@click.command("view")
@date_range_options
@click.option("--category", help="Category path or ID")
@click.option("--account", help="Account name or ID")
@click.option("--uncategorized", is_flag=True, help="Only transactions without a category")
@click.option("--limit", type=int, help="Maximum rows")
@click.pass_context
def view_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    category: str | None,
    account: str | None,
    uncategorized: bool,
    limit: int | None,
):
    """View transactions with optional filters.

    Markers: L locked, S split parent, c split child, T transfer, P pass-through.
    """
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    category_id = resolve_category_or_exit(ctx, category) if category else None
    account_id = resolve_account_or_exit(ctx, account) if account else None

    transactions = TransactionService(db).list_transactions(
        start_date=start,
        end_date=end,
        category_id=category_id,
        account_id=account_id,
        uncategorized=uncategorized,
        limit=limit,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    categories = CategoryService(db)
    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 110)
    for txn in transactions:
        echo_transaction(categories, txn)


@click.command("show")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_transaction(ctx, transaction_id: int):
    """Show one transaction in detail."""
    db = ctx.obj["db"]
    try:
        txn = TransactionService(db).require_transaction(transaction_id)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    categories = CategoryService(db)
    click.echo(f"Transaction ID: {txn.id}")
    click.echo(f"  Date: {txn.date}")
    click.echo(f"  Amount: {format_amount(txn.amount)}")
    click.echo(f"  Account ID: {txn.account_id}")
    click.echo(f"  Description: {txn.description_raw or ''}")
    if txn.counterparty_name:
        click.echo(f"  Counterparty: {txn.counterparty_name}")
    click.echo(f"  Category: {category_label(categories, txn.category_id)}")
    click.echo(f"  Source: {txn.category_source or '-'}  Confidence: {txn.confidence}")
    click.echo(f"  Locked: {'yes' if txn.category_locked else 'no'}")
    if txn.applied_rule_id is not None:
        click.echo(f"  Rule: {txn.applied_rule_id}")
    flags = [name for name in ("is_transfer", "is_pass_through", "is_business") if getattr(txn, name)]
    if flags:
        click.echo(f"  Flags: {', '.join(flags)}")
    if txn.parent_transaction_id is not None:
        click.echo(f"  Split from: {txn.parent_transaction_id}")
    if txn.reimbursement_of_id is not None:
        click.echo(f"  Reimburses: {txn.reimbursement_of_id}")


def register_commands(cli):
    """Register view commands with main CLI."""
    cli.add_command(view_transactions)
    cli.add_command(show_transaction)
