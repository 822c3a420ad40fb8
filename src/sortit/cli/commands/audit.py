"""Audit log commands."""

from datetime import datetime, time

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import category_label
from sortit.domain.audit import AuditService
from sortit.domain.category import CategoryService
from sortit.domain.entities import AuditLogEntry, CategorySource


def echo_entry(categories: CategoryService, entry: AuditLogEntry) -> None:
    extras = []
    if entry.rule_id is not None:
        extras.append(f"rule {entry.rule_id}")
    if entry.batch_id is not None:
        extras.append(f"batch {entry.batch_id}")
    if entry.is_reverted:
        extras.append("reverted")
    suffix = f" ({', '.join(extras)})" if extras else ""
    click.echo(
        f"{entry.created_at:%Y-%m-%d %H:%M} | txn {entry.transaction_id:5d} | {entry.change_source:18s} | "
        f"{category_label(categories, entry.previous_category_id)} -> "
        f"{category_label(categories, entry.new_category_id)} | {entry.changed_by}{suffix}"
    )


@click.group()
def audit_group():
    """Inspect the category change log."""
    pass


@audit_group.command("history")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_history(ctx, transaction_id: int):
    """Show every category change for a transaction."""
    db = ctx.obj["db"]
    entries = AuditService(db).get_history(transaction_id)
    if not entries:
        click.echo(f"No changes recorded for transaction {transaction_id}.")
        return
    categories = CategoryService(db)
    for entry in entries:
        echo_entry(categories, entry)


@audit_group.command("list")
@date_range_options
@click.option("--source", type=click.Choice([s.value for s in CategorySource]))
@click.option("--limit", type=int, default=100, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    source: str | None,
    limit: int,
    offset: int,
):
    """Page through the change log, newest first."""
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    try:
        entries = AuditService(db).list_entries(
            start=datetime.combine(start, time.min) if start else None,
            end=datetime.combine(end, time.max) if end else None,
            source=source,
            limit=limit,
            offset=offset,
        )
    except ValueError as e:
        handle_error(ctx, e)
    if not entries:
        click.echo("No changes found.")
        return
    categories = CategoryService(db)
    for entry in entries:
        echo_entry(categories, entry)


@audit_group.command("summary")
@click.option("--days", type=int, default=30, show_default=True)
@click.pass_context
def show_summary(ctx, days: int):
    """Count recent changes by source."""
    try:
        summary = AuditService(ctx.obj["db"]).get_summary(days)
    except ValueError as e:
        handle_error(ctx, e)
    click.echo(f"Last {summary.days} day(s): {summary.total_changes} change(s)")
    for source, count in sorted(summary.by_source.items()):
        click.echo(f"  {source}: {count}")
    click.echo(f"Batches: {summary.recent_batches}")


def register_commands(cli):
    """Register audit commands with main CLI."""
    cli.add_command(audit_group, name="audit")
