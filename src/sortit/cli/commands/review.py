"""Review queue commands."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import category_label, format_amount
from sortit.config import load_settings
from sortit.domain.category import CategoryService
from sortit.domain.review_queue import SORT_FIELDS, ReviewQueueService


@click.group()
def review_group():
    """Work through transactions that need attention."""
    pass


@review_group.command("list")
@date_range_options
@click.option("--sort", "sort_by", type=click.Choice(SORT_FIELDS), default="date", show_default=True)
@click.option("--asc", is_flag=True, help="Ascending order")
@click.pass_context
def list_queue(ctx, start_date: str | None, end_date: str | None, period: str | None, sort_by: str, asc: bool):
    """List transactions that are uncategorized, uncertain or large."""
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    try:
        items = ReviewQueueService(db, load_settings()).list(start, end, sort_by, descending=not asc)
    except ValueError as e:
        handle_error(ctx, e)
    if not items:
        click.echo("Nothing to review.")
        return

    categories = CategoryService(db)
    for item in items:
        txn = item.transaction
        click.echo(
            f"{txn.id:5d} | {txn.date} | {format_amount(txn.amount):>12s} | "
            f"{(txn.description_raw or '')[:30]:30s} | {category_label(categories, txn.category_id):25s} | "
            f"{', '.join(item.reasons)}"
        )


@review_group.command("stats")
@date_range_options
@click.pass_context
def queue_stats(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Count transactions needing review by reason."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    stats = ReviewQueueService(ctx.obj["db"], load_settings()).stats(start, end)
    click.echo(f"Needs review: {stats.total}")
    click.echo(f"  Uncategorized: {stats.uncategorized}")
    click.echo(f"  Low confidence: {stats.low_confidence}")
    click.echo(f"  Large amount: {stats.large_amount}")


def register_commands(cli):
    """Register review commands with main CLI."""
    cli.add_command(review_group, name="review")
