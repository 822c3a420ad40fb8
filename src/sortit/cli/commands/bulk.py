"""Bulk edit commands."""

import click
from sortit.cli.error_handling import handle_error
from sortit.cli.resolution import resolve_category_or_exit
from sortit.config import load_settings
from sortit.domain.bulk_edit import BulkEditResult, BulkEditService
from sortit.domain.errors import StorageError


def echo_bulk_result(result: BulkEditResult) -> None:
    click.echo(f"Updated: {result.updated}")
    if result.skipped_locked:
        click.echo(f"Skipped (locked): {result.skipped_locked}")
    if result.skipped_ineligible:
        click.echo(f"Skipped (ineligible): {result.skipped_ineligible}")
    if result.batch_id is not None:
        click.echo(f"Batch: {result.batch_id}")


@click.group()
def bulk_group():
    """Edit many transactions at once."""
    pass


@bulk_group.command("assign")
@click.argument("category")
@click.argument("transaction_ids", nargs=-1, type=int, required=True)
@click.option("--learn", is_flag=True, help="Remember each payee for this category")
@click.pass_context
def bulk_assign(ctx, category: str, transaction_ids: tuple[int, ...], learn: bool):
    """Assign a category to several transactions and lock them.

    Examples:
        sortit bulk assign "Groceries" 10 11 12 --learn
    """
    category_id = resolve_category_or_exit(ctx, category)
    try:
        result = BulkEditService(ctx.obj["db"], load_settings()).assign_category(
            list(transaction_ids), category_id, learn_payee=learn
        )
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    echo_bulk_result(result)


@bulk_group.command("flags")
@click.argument("transaction_ids", nargs=-1, type=int, required=True)
@click.option("--transfer/--not-transfer", "is_transfer", default=None)
@click.option("--pass-through/--not-pass-through", "is_pass_through", default=None)
@click.option("--business/--personal", "is_business", default=None)
@click.pass_context
def bulk_flags(
    ctx,
    transaction_ids: tuple[int, ...],
    is_transfer: bool | None,
    is_pass_through: bool | None,
    is_business: bool | None,
):
    """Set or clear flags on several transactions."""
    flags = {
        name: value
        for name, value in (
            ("is_transfer", is_transfer),
            ("is_pass_through", is_pass_through),
            ("is_business", is_business),
        )
        if value is not None
    }
    try:
        result = BulkEditService(ctx.obj["db"]).update_flags(list(transaction_ids), flags)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    echo_bulk_result(result)


@bulk_group.command("approve")
@click.argument("transaction_ids", nargs=-1, type=int, required=True)
@click.pass_context
def bulk_approve(ctx, transaction_ids: tuple[int, ...]):
    """Accept current categories as correct and lock them."""
    try:
        result = BulkEditService(ctx.obj["db"]).approve(list(transaction_ids))
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    echo_bulk_result(result)


def register_commands(cli):
    """Register bulk edit commands with main CLI."""
    cli.add_command(bulk_group, name="bulk")
