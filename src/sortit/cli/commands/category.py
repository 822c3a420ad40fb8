"""Category management commands."""

import click
from sortit.cli.error_handling import handle_error
from sortit.domain.category import CategoryService
from sortit.domain.errors import StorageError


def print_category_tree(categories: list[dict], indent: int = 0) -> None:
    """Recursively print category tree."""
    for cat in categories:
        click.echo(f"{'  ' * indent}{cat['name']} (ID: {cat['id']})")
        print_category_tree(cat["children"], indent + 1)


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories in tree format."""
    tree = CategoryService(ctx.obj["db"]).get_category_tree()
    if not tree:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    print_category_tree(tree)


@category_group.command("create")
@click.argument("path")
@click.pass_context
def create_category(ctx, path: str):
    """Create a category, including any missing parents.

    Examples:
        sortit category create "Food & Dining > Coffee"
    """
    try:
        category_id = CategoryService(ctx.obj["db"]).ensure_path(path)
    except (ValueError, StorageError) as e:
        handle_error(ctx, e)
    click.echo(f"Category '{path}' (ID: {category_id})")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
