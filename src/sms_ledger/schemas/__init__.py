"""
Data models and payload builders.
"""

from .candidate import ACTIVE_STATUSES, CandidateStatus, RawMessage, TransactionCandidate
from .ledger_payload import LedgerPayload, build_ledger_payload, format_timestamp

__all__ = [
    "ACTIVE_STATUSES",
    "CandidateStatus",
    "LedgerPayload",
    "RawMessage",
    "TransactionCandidate",
    "build_ledger_payload",
    "format_timestamp",
]
