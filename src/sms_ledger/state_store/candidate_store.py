"""
In-memory candidate store.

Holds the ordered list of candidates the user currently sees. Insertion
order is fetch order. The store has a single owner (the orchestrator) and
no concurrent writers.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from ..schemas.candidate import TransactionCandidate

logger = logging.getLogger(__name__)


class CandidateStore:
    """Ordered, id-keyed collection of TransactionCandidate."""

    def __init__(self) -> None:
        self._items: dict[str, TransactionCandidate] = {}

    def load(self, candidates: Iterable[TransactionCandidate]) -> None:
        """
        Replace the full contents.

        Raises:
            ValueError: If two candidates share an id
        """
        items: dict[str, TransactionCandidate] = {}
        for candidate in candidates:
            if candidate.id in items:
                raise ValueError(f"Duplicate candidate id: {candidate.id}")
            items[candidate.id] = candidate
        self._items = items
        logger.debug(f"Loaded {len(items)} candidate(s)")

    def remove(self, candidate_id: str) -> bool:
        """Remove one entry. Returns False (no error) if the id is absent."""
        removed = self._items.pop(candidate_id, None)
        if removed is None:
            logger.debug(f"Candidate {candidate_id} already absent, nothing to remove")
            return False
        return True

    def get(self, candidate_id: str) -> Optional[TransactionCandidate]:
        return self._items.get(candidate_id)

    def all(self) -> list[TransactionCandidate]:
        """Snapshot of the current entries in fetch order."""
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._items
