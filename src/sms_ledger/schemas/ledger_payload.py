"""
Ledger payload builder (SSOT).

This is THE single builder that maps a TransactionCandidate plus its tag to
the JSON body the remote ledger accepts.

Rules:
- Exactly four fields: type, amount, date, tags
- type and tags are upper-cased
- amount is passed through exactly as extracted
- date is the submission time (UTC, ISO-8601), not the message time
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .candidate import TransactionCandidate


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LedgerPayload:
    """Request body for one ledger submission."""

    type: str
    amount: str
    date: str
    tags: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the ledger JSON format."""
        return {
            "type": self.type,
            "amount": self.amount,
            "date": self.date,
            "tags": self.tags,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False)


def build_ledger_payload(
    candidate: TransactionCandidate,
    tag: str,
    clock: Callable[[], datetime] = utc_now,
) -> LedgerPayload:
    """
    Build the ledger payload for a candidate.

    Args:
        candidate: The candidate being reconciled
        tag: Free-text tag entered by the user
        clock: Source of the submission time

    Returns:
        LedgerPayload ready for submission

    Raises:
        ValueError: If the candidate has no amount
    """
    if not candidate.amount:
        raise ValueError("candidate.amount is required but empty")

    return LedgerPayload(
        type=candidate.transaction_type.value.upper(),
        amount=candidate.amount,
        date=format_timestamp(clock()),
        tags=(tag or "").upper(),
    )
