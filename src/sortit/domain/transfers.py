"""Transfer detection between a household's own accounts."""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import AbstractSet, Iterable, Optional, Sequence

from sortit.config import DEFAULT_SETTINGS, Settings
from sortit.database.base import Database
from sortit.domain.entities import Transaction
from sortit.domain.errors import ValidationError
from sortit.domain.rules import merchant_texts
from sortit.domain.transaction import fetch_transaction_for_update, fetch_transactions_for_update

logger = logging.getLogger(__name__)

P2P_SERVICES = (
    "venmo",
    "zelle",
    "paypal",
    "cash app",
    "cashapp",
    "square cash",
    "apple cash",
    "google pay",
)

TRANSFER_KEYWORDS = (
    "transfer",
    "xfer",
    "ach",
    "wire",
    "internal",
    "sweep",
    "move money",
    "from savings",
    "to savings",
    "from checking",
    "to checking",
)

# Word boundaries keep "ach" from matching "Peach" or "Coach".
_TRANSFER_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(keyword).replace(r"\ ", r"\s+") for keyword in TRANSFER_KEYWORDS) + r")\b",
    re.IGNORECASE,
)

AMOUNT_TOLERANCE = Decimal("0.01")
PAIR_CONFIDENCE = 0.9


def has_transfer_keywords(text: Optional[str]) -> bool:
    """Check a description for transfer vocabulary."""
    if not text:
        return False
    return _TRANSFER_PATTERN.search(text) is not None


def mentions_transfer(txn: Transaction) -> bool:
    """Check every description field of a transaction for transfer vocabulary."""
    return any(has_transfer_keywords(text) for text in merchant_texts(txn))


def is_known_p2p_service(text: Optional[str]) -> bool:
    """Check whether a name mentions a peer-to-peer payment service."""
    if not text:
        return False
    lowered = text.lower()
    return any(service in lowered for service in P2P_SERVICES)


def classify_p2p(txn: Transaction) -> str:
    """Classify a P2P payment as "transfer", "expense", "income" or "unknown"."""
    if not any(is_known_p2p_service(text) for text in merchant_texts(txn)):
        return "unknown"
    if txn.is_transfer:
        return "transfer"
    if txn.amount < 0:
        return "expense"
    if txn.amount > 0:
        return "income"
    return "unknown"


def _pair_key(txn: Transaction) -> tuple[date, int]:
    return (txn.date, txn.id)


def find_transfer_match(
    txn: Transaction,
    candidates: Iterable[Transaction],
    window_days: int = DEFAULT_SETTINGS.transfer_window_days,
    exclude_ids: AbstractSet[int] = frozenset(),
) -> Optional[Transaction]:
    """Find the earliest counterpart of a transaction in another account.

    A counterpart has the opposite amount (within one cent) and a date at
    most ``window_days`` away.
    """
    for other in sorted(candidates, key=_pair_key):
        if other.id == txn.id or other.id in exclude_ids:
            continue
        if other.account_id == txn.account_id:
            continue
        if abs(other.amount + txn.amount) >= AMOUNT_TOLERANCE:
            continue
        if abs((other.date - txn.date).days) > window_days:
            continue
        return other
    return None


@dataclass(frozen=True)
class TransferPair:
    outflow: Transaction
    inflow: Transaction
    confidence: float = PAIR_CONFIDENCE


def suggest_transfer_pairs(
    transactions: Sequence[Transaction],
    window_days: int = DEFAULT_SETTINGS.transfer_window_days,
) -> list[TransferPair]:
    """Pair outflows with inflows one-to-one, earliest dates first."""
    ordered = sorted(transactions, key=_pair_key)
    inflows = [txn for txn in ordered if txn.amount > 0]
    used: set[int] = set()
    pairs = []

    for txn in ordered:
        if txn.amount >= 0 or txn.id in used:
            continue
        match = find_transfer_match(txn, inflows, window_days, exclude_ids=used)
        if match is None:
            continue
        used.update((txn.id, match.id))
        pairs.append(TransferPair(outflow=txn, inflow=match))

    return pairs


@dataclass
class TransferDetection:
    pairs: list[TransferPair] = field(default_factory=list)
    keyword_candidates: list[Transaction] = field(default_factory=list)


class TransferService:
    """Service for detecting and marking transfers."""

    def __init__(self, db: Database, settings: Settings = DEFAULT_SETTINGS):
        """Initialize transfer service.

        Args:
            db: Database instance
            settings: Policy settings
        """
        self.db = db
        self.settings = settings

    def _unflagged(self, start_date: Optional[date], end_date: Optional[date]) -> list[Transaction]:
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")
        return [
            txn
            for txn in self.db.list_transactions(
                start_date=start_date, end_date=end_date, include_split_parents=False
            )
            if not txn.is_transfer
        ]

    def detect(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> TransferDetection:
        """Suggest transfer pairs and keyword-only candidates. Read-only."""
        transactions = self._unflagged(start_date, end_date)
        pairs = suggest_transfer_pairs(transactions, self.settings.transfer_window_days)
        paired = {txn.id for pair in pairs for txn in (pair.outflow, pair.inflow)}
        keyword_candidates = [
            txn
            for txn in sorted(transactions, key=_pair_key)
            if txn.id not in paired and mentions_transfer(txn)
        ]
        return TransferDetection(pairs=pairs, keyword_candidates=keyword_candidates)

    def apply_pairs(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[TransferPair]:
        """Mark both sides of every suggested pair as transfers.

        Returns:
            The pairs that were marked
        """
        with self.db.transaction():
            pairs = self.detect(start_date, end_date).pairs
            if pairs:
                ids = [txn.id for pair in pairs for txn in (pair.outflow, pair.inflow)]
                for txn in fetch_transactions_for_update(self.db, ids):
                    self.db.update_transaction(txn.id, is_transfer=True)

        logger.info("Marked %d transfer pairs", len(pairs))
        return pairs

    def set_transfer(self, transaction_id: int, is_transfer: bool = True) -> None:
        """Flag or unflag a single transaction as a transfer."""
        with self.db.transaction():
            txn = fetch_transaction_for_update(self.db, transaction_id)
            if txn.is_transfer != is_transfer:
                self.db.update_transaction(transaction_id, is_transfer=is_transfer)
        logger.info("Transaction %s transfer flag set to %s", transaction_id, is_transfer)
