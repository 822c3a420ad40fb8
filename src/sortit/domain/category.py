"""Category domain service."""

from typing import Optional

from sortit.database.base import Database
from sortit.domain.entities import Category as CategoryEntity
from sortit.domain.errors import (
    NotFoundError,
    ValidationError,
    category_not_found,
    category_path_not_found,
)


def require_category(db: Database, category_id: int) -> CategoryEntity:
    """Fetch a category or raise NotFoundError."""
    category = db.get_category(category_id)
    if category is None:
        raise NotFoundError(category_not_found(category_id))
    return category


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str, parent_path: Optional[str] = None) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "Food & Dining")

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is blank or contains the path separator
            NotFoundError: If parent category doesn't exist
        """
        name = name.strip()
        if not name or ">" in name:
            raise ValidationError(f"Invalid category name '{name}'")

        parent_id = None
        if parent_path is not None:
            parent = self.db.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(category_path_not_found(parent_path))
            parent_id = parent.id

        with self.db.transaction():
            return self.db.create_category(name=name, parent_id=parent_id)

    def ensure_path(self, path: str) -> int:
        """Create every missing segment of a category path.

        Args:
            path: Category path (e.g., "Food & Dining > Coffee")

        Returns:
            ID of the leaf category
        """
        parts = [p.strip() for p in path.split(">") if p.strip()]
        if not parts:
            raise ValidationError("Category path must not be empty")

        with self.db.transaction():
            parent_path = None
            leaf_id = None
            for part in parts:
                current_path = part if parent_path is None else f"{parent_path} > {part}"
                existing = self.db.get_category_by_path(current_path)
                if existing is None:
                    parent_id = None
                    if parent_path is not None:
                        parent_id = self.db.get_category_by_path(parent_path).id
                    leaf_id = self.db.create_category(name=part, parent_id=parent_id)
                else:
                    leaf_id = existing.id
                parent_path = current_path
        return leaf_id

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_path(self, path: str) -> Optional[CategoryEntity]:
        """Get category by path.

        Args:
            path: Category path (e.g., "Food & Dining > Coffee")

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category_by_path(path)

    def resolve(self, path_or_id: str) -> CategoryEntity:
        """Resolve a category from a path or a numeric ID.

        Raises:
            NotFoundError: If nothing matches
        """
        category = self.db.get_category_by_path(path_or_id)
        if category is not None:
            return category
        if path_or_id.isdigit():
            return require_category(self.db, int(path_or_id))
        raise NotFoundError(category_path_not_found(path_or_id))

    def list_categories(self, parent_id: Optional[int] = None) -> list[CategoryEntity]:
        """List categories under a parent (roots when parent_id is None)."""
        return self.db.list_categories(parent_id=parent_id)

    def get_category_tree(self) -> list[dict]:
        """Get full category tree.

        Returns:
            List of root categories with nested children
        """
        return self.db.get_category_tree()

    def format_category_path(self, category_id: Optional[int]) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Food & Dining > Coffee"), or an empty
            string for None or unknown IDs
        """
        if category_id is None:
            return ""
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))
