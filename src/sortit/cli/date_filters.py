"""CLI helpers for date range resolution."""

from datetime import date
from typing import Callable

import click

from sortit.utils.date_parser import PERIODS, get_date_range, parse_date


def date_range_options(command: Callable) -> Callable:
    """Add --from, --to and --period options to a command."""
    command = click.option(
        "--period",
        type=click.Choice(PERIODS, case_sensitive=False),
        help="Named period instead of explicit dates",
    )(command)
    command = click.option(
        "--to", "end_date", help="End date (YYYY-MM-DD or relative like 'today')"
    )(command)
    command = click.option(
        "--from", "start_date", help="Start date (YYYY-MM-DD or relative like 'last month')"
    )(command)
    return command


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
) -> tuple[date | None, date | None]:
    """Resolve a CLI date range from a named period or explicit dates."""
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --from or --to.", err=True)
        ctx.exit(1)

    if period:
        return get_date_range(period)

    start = end = None
    try:
        if start_date:
            start = parse_date(start_date)
        if end_date:
            end = parse_date(end_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    if start is not None and end is not None and start > end:
        click.echo(f"Error: Start date {start} is after end date {end}.", err=True)
        ctx.exit(1)

    return start, end
