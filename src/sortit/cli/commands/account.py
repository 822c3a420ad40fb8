"""Account management commands."""

import click
from sortit.cli.error_handling import handle_error
from sortit.domain.account import AccountService
from sortit.domain.errors import StorageError


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.pass_context
def create_account(ctx, name: str, bank: str | None):
    """Create a new account.

    Examples:
        sortit account create "Checking" --bank "Chase"
    """
    service = AccountService(ctx.obj["db"])
    try:
        account_id = service.create_account(name=name, bank_name=bank or name)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Created account '{name}' (ID: {account_id})")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    accounts = AccountService(ctx.obj["db"]).list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | Bank: {acc.bank_name}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
