"""
State stores.

- CandidateStore: in-memory view of the candidates the user sees
- ReconciliationJournal: SQLite record of ledger submissions, so an accepted
  message is never submitted again

Enforces uniqueness on candidate id and message id.
"""

from .candidate_store import CandidateStore
from .sqlite_store import JournalRecord, JournalStatus, ReconciliationJournal

__all__ = [
    "CandidateStore",
    "JournalRecord",
    "JournalStatus",
    "ReconciliationJournal",
]
