"""
Message and transaction candidate models.

A RawMessage is owned by the device message store and is never modified.
A TransactionCandidate wraps one RawMessage together with the fields the
extractor found in it. Only the tag and the lifecycle status change after
creation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..extractors.base import ExtractionResult, TransactionType


class CandidateStatus(str, Enum):
    """Lifecycle of a transaction candidate."""

    PENDING = "PENDING"  # Visible, not under review
    ANNOTATING = "ANNOTATING"  # Open in the annotation session
    SUBMITTING = "SUBMITTING"  # Sent to the ledger, awaiting the outcome
    RECONCILED = "RECONCILED"  # Ledger accepted it
    FAILED = "FAILED"  # Ledger call failed; reverts to PENDING


# Statuses that count as "the" active session (at most one candidate)
ACTIVE_STATUSES = (CandidateStatus.ANNOTATING, CandidateStatus.SUBMITTING)


@dataclass(frozen=True)
class RawMessage:
    """Message as provided by the device message store."""

    id: str
    address: str
    body: str

    @classmethod
    def from_store_row(cls, data: dict) -> "RawMessage":
        """Create from a store record (``{_id, address, body, ...}``)."""
        return cls(
            id=str(data["_id"]),
            address=data.get("address") or "",
            body=data.get("body") or "",
        )


@dataclass
class TransactionCandidate:
    """A message recognized as describing a financial transaction."""

    message: RawMessage
    extraction: ExtractionResult
    tag_input: str = ""
    status: CandidateStatus = CandidateStatus.PENDING

    @classmethod
    def from_message(
        cls, message: RawMessage, extraction: Optional[ExtractionResult]
    ) -> Optional["TransactionCandidate"]:
        """Build a candidate, or None when the message did not match."""
        if extraction is None:
            return None
        return cls(message=message, extraction=extraction)

    @property
    def id(self) -> str:
        return self.message.id

    @property
    def address(self) -> str:
        return self.message.address

    @property
    def body(self) -> str:
        return self.message.body

    @property
    def transaction_type(self) -> TransactionType:
        return self.extraction.transaction_type

    @property
    def amount(self) -> str:
        return self.extraction.amount

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> dict[str, Any]:
        """Flat view used by the CLI and logs."""
        return {
            "id": self.id,
            "address": self.address,
            "body": self.body,
            "transaction_type": self.transaction_type.value,
            "amount": self.amount,
            "tag_input": self.tag_input,
            "status": self.status.value,
        }
