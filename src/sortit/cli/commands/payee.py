"""Payee memory commands."""

import click
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import category_label
from sortit.cli.resolution import resolve_category_or_exit
from sortit.config import load_settings
from sortit.domain.category import CategoryService
from sortit.domain.errors import StorageError
from sortit.domain.payee_memory import PayeeMemoryService


@click.group()
def payee_group():
    """Manage remembered payees."""
    pass


@payee_group.command("list")
@click.pass_context
def list_payees(ctx):
    """List remembered payees, most used first."""
    db = ctx.obj["db"]
    mappings = PayeeMemoryService(db).list_mappings()
    if not mappings:
        click.echo("No payees remembered.")
        return

    categories = CategoryService(db)
    for mapping in mappings:
        click.echo(
            f"ID: {mapping.id:3d} | {mapping.payee_name:30s} -> "
            f"{category_label(categories, mapping.category_id):30s} | used {mapping.usage_count}x"
        )


@payee_group.command("set")
@click.argument("payee")
@click.argument("category")
@click.pass_context
def set_payee(ctx, payee: str, category: str):
    """Remember a category for a payee."""
    category_id = resolve_category_or_exit(ctx, category)
    try:
        mapping = PayeeMemoryService(ctx.obj["db"], load_settings()).save(payee, category_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Remembered '{mapping.payee_name}' -> {category}")


@payee_group.command("lookup")
@click.argument("payee")
@click.pass_context
def lookup_payee(ctx, payee: str):
    """Show the remembered category for a payee."""
    db = ctx.obj["db"]
    match = PayeeMemoryService(db).lookup(payee)
    if match is None:
        click.echo("Not remembered.")
        return
    click.echo(f"{match.payee_name} -> {category_label(CategoryService(db), match.category_id)}")


@payee_group.command("delete")
@click.argument("mapping_id", type=int)
@click.pass_context
def delete_payee(ctx, mapping_id: int):
    """Forget a remembered payee."""
    try:
        PayeeMemoryService(ctx.obj["db"]).delete_mapping(mapping_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Deleted payee mapping {mapping_id}")


def register_commands(cli):
    """Register payee commands with main CLI."""
    cli.add_command(payee_group, name="payee")
