"""Learned payee to category memory."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.entities import PayeeMapping, utcnow
from sortit.domain.category import require_category
from sortit.domain.errors import ValidationError

logger = logging.getLogger(__name__)

_CORPORATE_SUFFIX = re.compile(r"\s+(inc|llc|ltd|corp|co|company)\.?$")
_LEADING_ARTICLE = re.compile(r"^(the|a|an)\s+")
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_payee_name(raw: Optional[str]) -> str:
    """Reduce a payee name to its lookup key.

    >>> normalize_payee_name("Starbucks Inc.") == normalize_payee_name("THE STARBUCKS")
    True
    """
    if not raw:
        return ""
    name = raw.lower().strip()
    name = _CORPORATE_SUFFIX.sub("", name)
    name = _LEADING_ARTICLE.sub("", name)
    name = _NON_ALPHANUMERIC.sub("", name)
    return _WHITESPACE.sub(" ", name).strip()


@dataclass(frozen=True)
class PayeeMatch:
    category_id: int
    confidence: float
    mapping_id: int
    payee_name: str


class PayeeMemoryService:
    """Service for saving and looking up payee mappings."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize payee memory service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings

    def lookup(self, payee_name: Optional[str]) -> Optional[PayeeMatch]:
        """Find the remembered category for a payee. Read-only."""
        key = normalize_payee_name(payee_name)
        if not key:
            return None
        mapping = self.db.get_payee_mapping(key)
        if mapping is None:
            return None
        return PayeeMatch(
            category_id=mapping.category_id,
            confidence=mapping.confidence,
            mapping_id=mapping.id,
            payee_name=mapping.payee_name,
        )

    def save(self, payee_name: str, category_id: int) -> PayeeMapping:
        """Remember a category for a payee, overwriting any earlier choice.

        Args:
            payee_name: Payee as shown on the transaction
            category_id: Category to remember

        Returns:
            The stored mapping

        Raises:
            ValidationError: If the name normalizes to nothing
            NotFoundError: If the category doesn't exist
        """
        key = normalize_payee_name(payee_name)
        if not key:
            raise ValidationError(f"Payee name '{payee_name}' is empty after normalization")
        require_category(self.db, category_id)

        with self.db.transaction():
            mapping = self.db.upsert_payee_mapping(
                payee_name=key,
                category_id=category_id,
                confidence=self.settings.payee_confidence,
                used_at=utcnow(),
            )
        logger.debug("Learned payee '%s' -> category %s", key, category_id)
        return mapping

    def record_use(self, mapping_id: int) -> None:
        """Count a reuse of a mapping by the waterfall."""
        with self.db.transaction():
            self.db.record_payee_use(mapping_id, used_at=utcnow())

    def list_mappings(self) -> list[PayeeMapping]:
        """List mappings, most used first."""
        return self.db.list_payee_mappings()

    def delete_mapping(self, mapping_id: int) -> None:
        """Forget a mapping."""
        with self.db.transaction():
            self.db.delete_payee_mapping(mapping_id)
        logger.info("Deleted payee mapping %s", mapping_id)
