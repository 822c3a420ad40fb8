"""Add (ingest) transaction command."""

import uuid

import click
from sortit.cli.error_handling import handle_error
from sortit.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from sortit.domain.errors import StorageError
from sortit.domain.transaction import TransactionService
from sortit.utils.amount_parser import parse_amount
from sortit.utils.date_parser import parse_date


@click.command("add")
@click.option("--account", required=True, help="Account name or ID")
@click.option(
    "--date",
    "txn_date",
    required=True,
    help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--amount", required=True, help="Signed amount (e.g., -4.50 for a purchase)")
@click.option("--description", help="Raw description from the bank")
@click.option("--counterparty", help="Merchant or counterparty name")
@click.option("--category", help="Provider default category path or ID")
@click.option("--confidence", type=float, help="Provider confidence for the default category")
@click.option("--provider", default="manual", show_default=True, help="Data provider name")
@click.option("--provider-id", help="Provider transaction ID (auto-generated if not provided)")
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    txn_date: str,
    amount: str,
    description: str | None,
    counterparty: str | None,
    category: str | None,
    confidence: float | None,
    provider: str,
    provider_id: str | None,
):
    """Ingest a transaction with its provider defaults.

    Examples:
        sortit add --account Checking --date 2024-03-01 --amount -4.50 --description "STARBUCKS #1234"
    """
    account_id = resolve_account_or_exit(ctx, account)
    category_id = resolve_category_or_exit(ctx, category) if category else None

    try:
        parsed_date = parse_date(txn_date)
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    try:
        txn_id = TransactionService(ctx.obj["db"]).create_transaction(
            provider_transaction_id=provider_id or f"manual-{uuid.uuid4().hex[:12]}",
            account_id=account_id,
            date=parsed_date,
            amount=parsed_amount,
            description_raw=description,
            counterparty_name=counterparty,
            category_id=category_id,
            confidence=confidence,
            provider=provider,
        )
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Created transaction {txn_id}")


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_transaction)
