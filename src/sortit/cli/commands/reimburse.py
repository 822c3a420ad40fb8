"""Reimbursement linking commands."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import format_amount
from sortit.config import load_settings
from sortit.domain.errors import StorageError
from sortit.domain.reimbursement import ReimbursementService


@click.group()
def reimburse_group():
    """Link reimbursements to the expenses they pay back."""
    pass


@reimburse_group.command("link")
@click.argument("reimbursement_id", type=int)
@click.argument("original_id", type=int)
@click.option("--keep-category", is_flag=True, help="Don't copy the expense's category")
@click.pass_context
def link_reimbursement(ctx, reimbursement_id: int, original_id: int, keep_category: bool):
    """Link REIMBURSEMENT_ID (inflow) to ORIGINAL_ID (expense)."""
    try:
        result = ReimbursementService(ctx.obj["db"], load_settings()).link(
            reimbursement_id, original_id, copy_category=not keep_category
        )
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Linked transaction {reimbursement_id} to {original_id}")
    if result.category_copied:
        click.echo("Category copied from the expense")


@reimburse_group.command("unlink")
@click.argument("reimbursement_id", type=int)
@click.pass_context
def unlink_reimbursement(ctx, reimbursement_id: int):
    """Remove a reimbursement link."""
    try:
        ReimbursementService(ctx.obj["db"]).unlink(reimbursement_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Unlinked transaction {reimbursement_id}")


@reimburse_group.command("candidates")
@click.argument("expense_id", type=int)
@click.pass_context
def list_candidates(ctx, expense_id: int):
    """Suggest inflows that could reimburse an expense."""
    try:
        candidates = ReimbursementService(ctx.obj["db"], load_settings()).find_candidates(expense_id)
    except ValueError as e:
        handle_error(ctx, e)
    if not candidates:
        click.echo("No candidates found.")
        return
    for txn in candidates:
        click.echo(
            f"{txn.id:5d} | {txn.date} | {format_amount(txn.amount):>12s} | {txn.description_raw or ''}"
        )


@reimburse_group.command("summary")
@date_range_options
@click.pass_context
def show_summary(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Show linked reimbursements and net costs."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    service = ReimbursementService(ctx.obj["db"])
    pairs = service.get_pairs(start, end)
    summary = service.get_summary(start, end)

    for pair in pairs:
        status = "full" if pair.is_full else "partial"
        click.echo(
            f"{pair.original.id:5d} {format_amount(pair.original.amount):>12s} <- "
            f"{pair.reimbursement.id:5d} {format_amount(pair.reimbursement.amount):>12s} | "
            f"net {format_amount(pair.net_amount)} ({status})"
        )
    click.echo(f"\nReimbursed: {format_amount(summary.total_reimbursed)} across {summary.pair_count} pair(s)")
    click.echo(f"Full: {summary.fully_reimbursed}  Partial: {summary.partially_reimbursed}")


def register_commands(cli):
    """Register reimbursement commands with main CLI."""
    cli.add_command(reimburse_group, name="reimburse")
