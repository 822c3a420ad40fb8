"""Category audit log.

Every category change is written together with its audit entry in the same
unit of work via ``write_category``. Entries are never edited afterwards,
except for the ``is_reverted`` flag set by batch undo.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from sortit.database.base import Database
from sortit.domain.entities import AuditLogEntry, CategorySource, Transaction, utcnow
from sortit.domain.errors import NotFoundError, ValidationError, batch_not_found

logger = logging.getLogger(__name__)


def write_category(
    db: Database,
    txn: Transaction,
    category_id: Optional[int],
    source: CategorySource,
    changed_by: str,
    confidence: Optional[float] = None,
    rule_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    lock: Optional[bool] = None,
    audit_source: Optional[CategorySource] = None,
    notes: Optional[str] = None,
    **extra_fields: Any,
) -> bool:
    """Set a transaction's category state and audit the change.

    An audit entry is written only when the category value changes.

    Args:
        db: Database, inside an open unit of work
        txn: Transaction as read for update
        category_id: New category
        source: New category_source
        changed_by: Actor recorded in the audit log
        confidence: New confidence
        rule_id: Rule responsible, stored on the transaction and the entry
        batch_id: Batch the change belongs to
        lock: New lock state; None leaves it unchanged
        audit_source: change_source for the entry when it differs from source
        notes: Free text for the entry
        **extra_fields: Further transaction columns to set (flags)

    Returns:
        True if the category value changed
    """
    fields = {
        "category_id": category_id,
        "category_source": source.value,
        "confidence": confidence,
        "applied_rule_id": rule_id,
        **extra_fields,
    }
    if lock is not None:
        fields["category_locked"] = lock
    db.update_transaction(txn.id, **fields)

    changed = txn.category_id != category_id
    if changed:
        db.add_audit_entry(
            transaction_id=txn.id,
            previous_category_id=txn.category_id,
            new_category_id=category_id,
            change_source=(audit_source or source).value,
            changed_by=changed_by,
            rule_id=rule_id,
            confidence_score=confidence,
            batch_id=batch_id,
            notes=notes,
        )
    logger.debug(
        "Transaction %s: category %s -> %s (%s)", txn.id, txn.category_id, category_id, source.value
    )
    return changed


@dataclass
class AuditSummary:
    days: int
    total_changes: int = 0
    by_source: dict[str, int] = field(default_factory=dict)
    recent_batches: int = 0


class AuditService:
    """Read access to the category audit log."""

    def __init__(self, db: Database):
        """Initialize audit service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_history(self, transaction_id: int) -> list[AuditLogEntry]:
        """All entries for a transaction, newest first.

        History is kept for deleted split children, so an unknown transaction
        simply yields its remaining entries (possibly none).
        """
        return self.db.list_audit_entries(transaction_id=transaction_id)

    def list_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        source: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """Page through the log, newest first.

        Args:
            start: Earliest created_at
            end: Latest created_at
            source: Only entries with this change_source
            limit: Page size
            offset: Entries to skip

        Raises:
            ValidationError: If the source is unknown or paging is negative
        """
        if source is not None:
            try:
                CategorySource(source)
            except ValueError as e:
                raise ValidationError(f"Unknown change source '{source}'") from e
        if limit <= 0 or offset < 0:
            raise ValidationError("limit must be positive and offset must not be negative")

        return self.db.list_audit_entries(
            start=start, end=end, change_source=source, limit=limit, offset=offset
        )

    def get_batch_entries(self, batch_id: int) -> list[AuditLogEntry]:
        """Entries written by a batch, newest first."""
        if self.db.get_batch(batch_id) is None:
            raise NotFoundError(batch_not_found(batch_id))
        return self.db.list_audit_entries(batch_id=batch_id)

    def get_summary(self, days: int = 30) -> AuditSummary:
        """Count changes by source over the last ``days`` days."""
        if days <= 0:
            raise ValidationError("days must be positive")

        since = utcnow() - timedelta(days=days)
        entries = self.db.list_audit_entries(start=since)
        return AuditSummary(
            days=days,
            total_changes=len(entries),
            by_source=dict(Counter(entry.change_source for entry in entries)),
            recent_batches=len(self.db.list_batches(include_undone=True, since=since)),
        )
