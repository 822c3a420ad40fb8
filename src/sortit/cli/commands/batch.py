"""Batch inspection and undo commands."""

import click
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import category_label
from sortit.domain.audit import AuditService
from sortit.domain.category import CategoryService
from sortit.domain.errors import StorageError
from sortit.domain.retroactive import RetroactiveService


@click.group()
def batch_group():
    """Inspect and undo batches of changes."""
    pass


@batch_group.command("list")
@click.option("--rule", "rule_id", type=int, help="Only batches of this rule")
@click.option("--all", "include_undone", is_flag=True, help="Include undone batches")
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_context
def list_batches(ctx, rule_id: int | None, include_undone: bool, limit: int):
    """List batches, newest first."""
    batches = RetroactiveService(ctx.obj["db"]).list_batches(
        rule_id=rule_id, include_undone=include_undone, limit=limit
    )
    if not batches:
        click.echo("No batches found.")
        return

    for batch in batches:
        undone = " [undone]" if batch.is_undone else ""
        click.echo(
            f"ID: {batch.id:4d} | {batch.applied_at:%Y-%m-%d %H:%M} | {batch.operation_type:16s} | "
            f"{batch.transaction_count:4d} txn | {batch.description or ''}{undone}"
        )


@batch_group.command("show")
@click.argument("batch_id", type=int)
@click.pass_context
def show_batch(ctx, batch_id: int):
    """Show a batch and the changes it made."""
    db = ctx.obj["db"]
    try:
        batch = RetroactiveService(db).get_batch(batch_id)
        entries = AuditService(db).get_batch_entries(batch_id)
    except ValueError as e:
        handle_error(ctx, e)

    click.echo(f"Batch {batch.id}: {batch.operation_type} by {batch.created_by}")
    if batch.description:
        click.echo(f"  {batch.description}")
    if batch.date_range_start or batch.date_range_end:
        click.echo(f"  Range: {batch.date_range_start or '*'} to {batch.date_range_end or '*'}")
    click.echo(f"  Applied: {batch.applied_at:%Y-%m-%d %H:%M}")
    if batch.is_undone:
        click.echo(f"  Undone: {batch.undone_at:%Y-%m-%d %H:%M}")

    categories = CategoryService(db)
    for entry in entries:
        reverted = " (reverted)" if entry.is_reverted else ""
        click.echo(
            f"  txn {entry.transaction_id}: {category_label(categories, entry.previous_category_id)} -> "
            f"{category_label(categories, entry.new_category_id)}{reverted}"
        )


@batch_group.command("undo")
@click.argument("batch_id", type=int)
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def undo_batch(ctx, batch_id: int, yes: bool):
    """Revert every change a batch made."""
    if not yes and not click.confirm(f"Undo batch {batch_id}?"):
        click.echo("Cancelled.")
        return
    try:
        result = RetroactiveService(ctx.obj["db"]).undo(batch_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Undid batch {batch_id}: {result.reverted} reverted")
    if result.skipped_conflicts:
        click.echo(f"Skipped {result.skipped_conflicts} transaction(s) changed since the batch")


def register_commands(cli):
    """Register batch commands with main CLI."""
    cli.add_command(batch_group, name="batch")
