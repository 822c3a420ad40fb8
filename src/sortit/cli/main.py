"""Main CLI entry point."""

import logging

import click
from sortit.database.factories import create_sqlite_database

# Import and register all commands at module level
from sortit.cli.commands import (
    account,
    add,
    audit,
    batch,
    bulk,
    cashflow,
    categorize,
    category,
    payee,
    reimburse,
    review,
    rule,
    split,
    transfers,
    view,
)


def _configure_logging(verbose: bool, debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides SORTIT_DB_PATH environment variable)",
    envvar="SORTIT_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log completed operations")
@click.option("--debug", is_flag=True, help="Log per-transaction decisions")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool, debug: bool):
    """Sortit - Transaction categorization engine.

    Categorize bank transactions with prioritized rules and learned payees,
    correct them by hand or in bulk, split and link them, and undo batches
    of changes from the audit log.
    """
    ctx.ensure_object(dict)
    _configure_logging(verbose, debug)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
add.register_commands(cli)
view.register_commands(cli)
categorize.register_commands(cli)
rule.register_commands(cli)
batch.register_commands(cli)
bulk.register_commands(cli)
split.register_commands(cli)
transfers.register_commands(cli)
reimburse.register_commands(cli)
payee.register_commands(cli)
audit.register_commands(cli)
cashflow.register_commands(cli)
review.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
