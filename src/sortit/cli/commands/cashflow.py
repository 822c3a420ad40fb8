"""Cashflow summary command."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import format_amount
from sortit.cli.resolution import resolve_account_or_exit
from sortit.domain.cashflow import CashflowService


@click.command("cashflow")
@date_range_options
@click.option("--account", help="Account name or ID")
@click.pass_context
def show_cashflow(
    ctx, start_date: str | None, end_date: str | None, period: str | None, account: str | None
):
    """Summarize income and expenses by category.

    Transfers, pass-through items and split parents are left out.

    Examples:
        sortit cashflow --period this-month
    """
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    account_id = resolve_account_or_exit(ctx, account) if account else None
    try:
        summary = CashflowService(ctx.obj["db"]).summarize(start, end, account_id)
    except ValueError as e:
        handle_error(ctx, e)

    if not summary.by_category:
        click.echo("No transactions found.")
        return

    click.echo(f"\n{'Category':30s} {'Income':>12s} {'Expenses':>12s} {'Net':>12s}")
    click.echo("-" * 70)
    for row in summary.by_category:
        click.echo(
            f"{row.category_name[:30]:30s} {format_amount(row.totals.income):>12s} "
            f"{format_amount(row.totals.expenses):>12s} {format_amount(row.totals.net):>12s}"
        )
    click.echo("-" * 70)
    totals = summary.totals
    click.echo(
        f"{'Total':30s} {format_amount(totals.income):>12s} "
        f"{format_amount(totals.expenses):>12s} {format_amount(totals.net):>12s}"
    )


def register_commands(cli):
    """Register cashflow command with main CLI."""
    cli.add_command(show_cashflow)
