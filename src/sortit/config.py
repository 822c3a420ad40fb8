"""Runtime settings for sortit.

Policy constants (transfer window, reimbursement tolerance, ...) live here
rather than in the services so they can be tuned per household. Every value
can be overridden with a ``SORTIT_*`` environment variable.
"""

import os
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional

from sortit.domain.errors import ValidationError

ENV_PREFIX = "SORTIT_"


@dataclass(frozen=True)
class Settings:
    """Tunable policy constants."""

    transfer_window_days: int = 3
    reimbursement_window_days: int = 30
    reimbursement_tolerance: Decimal = Decimal("0.10")
    split_tolerance: Decimal = Decimal("0.01")
    rule_confidence: float = 0.95
    manual_confidence: float = 1.0
    payee_confidence: float = 1.0
    payee_prefix_length: int = 50
    preview_limit: int = 500
    low_confidence_threshold: float = 0.7
    large_amount_threshold: Decimal = Decimal("500")


DEFAULT_SETTINGS = Settings()


def _coerce(name: str, raw: str, kind: type):
    try:
        if kind is int:
            return int(raw)
        if kind is float:
            return float(raw)
        if kind is Decimal:
            return Decimal(raw)
    except (ValueError, InvalidOperation) as e:
        raise ValidationError(f"Invalid value for {ENV_PREFIX}{name.upper()}: '{raw}'") from e
    return raw


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from defaults overridden by environment variables.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Settings instance

    Raises:
        ValidationError: If a variable cannot be converted or is out of range
    """
    if environ is None:
        environ = os.environ

    overrides = {}
    for field in fields(Settings):
        raw = environ.get(f"{ENV_PREFIX}{field.name.upper()}")
        if raw is None or not raw.strip():
            continue
        kind = type(getattr(DEFAULT_SETTINGS, field.name))
        overrides[field.name] = _coerce(field.name, raw.strip(), kind)

    settings = Settings(**overrides)

    if settings.transfer_window_days < 0 or settings.reimbursement_window_days < 0:
        raise ValidationError("Day windows must not be negative")
    if settings.reimbursement_tolerance < 0 or settings.split_tolerance < 0:
        raise ValidationError("Tolerances must not be negative")
    if settings.preview_limit <= 0:
        raise ValidationError("Preview limit must be positive")

    return settings


def default_database_path(environ: Optional[Mapping[str, str]] = None) -> str:
    """Resolve the SQLite database path.

    Checks SORTIT_DB_PATH, then defaults to ~/.sortit/sortit.db
    """
    if environ is None:
        environ = os.environ

    database_path = environ.get(f"{ENV_PREFIX}DB_PATH")
    if database_path:
        return database_path

    db_dir = Path.home() / ".sortit"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "sortit.db")
