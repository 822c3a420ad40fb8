"""Split transaction commands."""

import click
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import echo_transaction
from sortit.cli.resolution import resolve_category_or_exit
from sortit.config import load_settings
from sortit.domain.category import CategoryService
from sortit.domain.errors import StorageError
from sortit.domain.splitting import SplitItem, SplittingService
from sortit.utils.amount_parser import parse_amount


def parse_split_item(ctx: click.Context, value: str) -> SplitItem:
    """Parse AMOUNT:CATEGORY[:DESCRIPTION]."""
    parts = value.split(":", 2)
    if len(parts) < 2:
        click.echo(f"Error: Invalid split '{value}'. Use AMOUNT:CATEGORY[:DESCRIPTION]", err=True)
        ctx.exit(1)
    try:
        amount = parse_amount(parts[0])
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    return SplitItem(
        amount=abs(amount),
        category_id=resolve_category_or_exit(ctx, parts[1]),
        description=parts[2] if len(parts) == 3 else None,
    )


@click.command("split")
@click.argument("transaction_id", type=int)
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="AMOUNT:CATEGORY[:DESCRIPTION]; repeat for each share",
)
@click.pass_context
def split_transaction(ctx, transaction_id: int, items: tuple[str, ...]):
    """Split a transaction across categories.

    Amounts are positive shares of the total and must add up to it.

    Examples:
        sortit split 42 --item 100:Groceries --item "50:Household:Paper towels"
    """
    parsed = [parse_split_item(ctx, item) for item in items]
    try:
        child_ids = SplittingService(ctx.obj["db"], load_settings()).split(transaction_id, parsed)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(
        f"Split transaction {transaction_id} into {len(child_ids)}: "
        + ", ".join(str(child_id) for child_id in child_ids)
    )


@click.command("unsplit")
@click.argument("transaction_id", type=int)
@click.pass_context
def unsplit_transaction(ctx, transaction_id: int):
    """Remove a transaction's split children."""
    try:
        removed = SplittingService(ctx.obj["db"]).unsplit(transaction_id)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Removed {removed} split(s) from transaction {transaction_id}")


@click.command("children")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_children(ctx, transaction_id: int):
    """List a split transaction's children."""
    db = ctx.obj["db"]
    children = SplittingService(db).get_children(transaction_id)
    if not children:
        click.echo(f"Transaction {transaction_id} is not split.")
        return
    categories = CategoryService(db)
    for child in children:
        echo_transaction(categories, child)


def register_commands(cli):
    """Register split commands with main CLI."""
    cli.add_command(split_transaction)
    cli.add_command(unsplit_transaction)
    cli.add_command(show_children)
