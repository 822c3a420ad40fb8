"""CLI error handling helpers."""

import logging

import click

from sortit.domain.errors import DomainError, StorageError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def handle_storage_error(ctx: click.Context, error: StorageError) -> None:
    """Render a storage failure and exit with failure."""
    logger.debug("Storage failure", exc_info=error)
    click.echo(f"Storage failure: {error}", err=True)
    ctx.exit(1)


def handle_error(ctx: click.Context, error: Exception) -> None:
    """Dispatch an expected service error to the matching handler."""
    if isinstance(error, StorageError):
        handle_storage_error(ctx, error)
    else:
        handle_domain_error(ctx, error)
