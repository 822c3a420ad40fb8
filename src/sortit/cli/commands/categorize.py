"""Waterfall categorization, overrides and locking commands."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.resolution import resolve_category_or_exit
from sortit.config import load_settings
from sortit.domain.categorization import CategorizationService, WaterfallResult
from sortit.domain.errors import StorageError
from sortit.domain.override import OverrideService


def echo_waterfall_result(result: WaterfallResult) -> None:
    click.echo(f"Processed: {result.processed}")
    click.echo(f"  By rule: {result.rules_applied}")
    click.echo(f"  By payee memory: {result.memory_applied}")
    click.echo(f"  Provider default: {result.provider_default_count}")
    click.echo(f"  Uncategorized: {result.uncategorized}")
    click.echo(f"  Skipped (locked): {result.skipped_locked}")
    click.echo(f"  Skipped (split): {result.skipped_split}")
    if result.batch_id is not None:
        click.echo(f"Batch: {result.batch_id}")


@click.group()
def categorize_group():
    """Run the categorization waterfall."""
    pass


@categorize_group.command("run")
@click.argument("transaction_ids", nargs=-1, type=int)
@date_range_options
@click.option("--limit", type=int, help="Maximum transactions to process")
@click.pass_context
def run_waterfall(
    ctx,
    transaction_ids: tuple[int, ...],
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    limit: int | None,
):
    """Categorize transactions with rules, then payee memory.

    With IDs, only those transactions are processed. With a date range, every
    unlocked transaction in it. Otherwise all uncategorized transactions.

    Examples:
        sortit categorize run
        sortit categorize run 12 13 14
        sortit categorize run --period last-month
    """
    service = CategorizationService(ctx.obj["db"], load_settings())
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    try:
        if transaction_ids:
            result = service.categorize_batch(list(transaction_ids))
        elif start is not None or end is not None:
            if start is None or end is None:
                click.echo("Error: A date range needs both --from and --to.", err=True)
                ctx.exit(1)
            result = service.categorize_date_range(start, end, limit=limit)
        else:
            result = service.categorize_uncategorized(limit=limit)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    echo_waterfall_result(result)


@categorize_group.command("stats")
@date_range_options
@click.pass_context
def show_stats(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Show categorization coverage."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    stats = CategorizationService(ctx.obj["db"]).get_stats(start, end)
    click.echo(f"Total: {stats.total}")
    click.echo(f"Categorized: {stats.categorized} ({stats.categorization_rate}%)")
    click.echo(f"Uncategorized: {stats.uncategorized}")
    click.echo(f"Locked: {stats.locked}")
    for source, count in sorted(stats.by_source.items()):
        click.echo(f"  {source}: {count}")


@click.command("override")
@click.argument("transaction_id", type=int)
@click.argument("category")
@click.option("--no-learn", is_flag=True, help="Don't remember the payee")
@click.pass_context
def override_category(ctx, transaction_id: int, category: str, no_learn: bool):
    """Set a transaction's category by hand and lock it.

    Examples:
        sortit override 12 "Food & Dining > Coffee"
    """
    category_id = resolve_category_or_exit(ctx, category)
    try:
        result = OverrideService(ctx.obj["db"], load_settings()).apply_override(
            transaction_id, category_id, learn_payee=not no_learn
        )
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Transaction {transaction_id} categorized as '{category}' and locked")
    if result.payee_learned:
        click.echo("Payee remembered")


@click.command("lock")
@click.argument("transaction_id", type=int)
@click.pass_context
def lock_transaction(ctx, transaction_id: int):
    """Lock a transaction's category."""
    try:
        OverrideService(ctx.obj["db"]).lock(transaction_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Transaction {transaction_id} locked")


@click.command("unlock")
@click.argument("transaction_id", type=int)
@click.pass_context
def unlock_transaction(ctx, transaction_id: int):
    """Unlock a transaction's category."""
    try:
        OverrideService(ctx.obj["db"]).unlock(transaction_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Transaction {transaction_id} unlocked")


def register_commands(cli):
    """Register categorization commands with main CLI."""
    cli.add_command(categorize_group, name="categorize")
    cli.add_command(override_category)
    cli.add_command(lock_transaction)
    cli.add_command(unlock_transaction)
