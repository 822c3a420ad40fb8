"""Transfer detection commands."""

import click
from sortit.cli.date_filters import date_range_options, resolve_cli_date_range
from sortit.cli.error_handling import handle_error
from sortit.cli.formatting import format_amount
from sortit.config import load_settings
from sortit.domain.errors import StorageError
from sortit.domain.transfers import TransferPair, TransferService, classify_p2p


def echo_pair(pair: TransferPair) -> None:
    click.echo(
        f"{pair.outflow.id:5d} {pair.outflow.date} {format_amount(pair.outflow.amount):>12s}  <->  "
        f"{pair.inflow.id:5d} {pair.inflow.date} {format_amount(pair.inflow.amount):>12s}"
    )


@click.group()
def transfers_group():
    """Find and mark transfers between accounts."""
    pass


@transfers_group.command("detect")
@date_range_options
@click.pass_context
def detect_transfers(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Suggest transfer pairs without changing anything."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    try:
        detection = TransferService(ctx.obj["db"], load_settings()).detect(start, end)
    except ValueError as e:
        handle_error(ctx, e)

    if not detection.pairs and not detection.keyword_candidates:
        click.echo("No transfers found.")
        return

    if detection.pairs:
        click.echo(f"\nLikely pairs ({len(detection.pairs)}):")
        for pair in detection.pairs:
            echo_pair(pair)
    if detection.keyword_candidates:
        click.echo(f"\nMentions a transfer ({len(detection.keyword_candidates)}):")
        for txn in detection.keyword_candidates:
            click.echo(
                f"{txn.id:5d} {txn.date} {format_amount(txn.amount):>12s}  "
                f"{txn.description_raw or ''} [{classify_p2p(txn)}]"
            )


@transfers_group.command("apply")
@date_range_options
@click.pass_context
def apply_transfers(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Mark both sides of every suggested pair as transfers."""
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    try:
        pairs = TransferService(ctx.obj["db"], load_settings()).apply_pairs(start, end)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    for pair in pairs:
        echo_pair(pair)
    click.echo(f"Marked {len(pairs)} pair(s) as transfers")


@transfers_group.command("mark")
@click.argument("transaction_id", type=int)
@click.option("--clear", is_flag=True, help="Remove the transfer flag instead")
@click.pass_context
def mark_transfer(ctx, transaction_id: int, clear: bool):
    """Flag a single transaction as a transfer."""
    try:
        TransferService(ctx.obj["db"]).set_transfer(transaction_id, not clear)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Transaction {transaction_id} {'unmarked' if clear else 'marked'} as transfer")


def register_commands(cli):
    """Register transfer commands with main CLI."""
    cli.add_command(transfers_group, name="transfers")
