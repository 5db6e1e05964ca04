"""
Annotation session.

Holds the one candidate currently open for review and the tag the user is
composing. The session never talks to the network or the candidate store;
the orchestrator drives it.
"""

import logging
from typing import Optional

from ..schemas.candidate import CandidateStatus, TransactionCandidate

logger = logging.getLogger(__name__)


class AnnotationError(Exception):
    """Base exception for annotation session misuse."""

    pass


class SessionAlreadyOpenError(AnnotationError):
    """A candidate is already open; only one may be reviewed at a time."""

    def __init__(self, open_id: str, requested_id: str):
        self.open_id = open_id
        self.requested_id = requested_id
        super().__init__(
            f"Cannot open candidate {requested_id}: candidate {open_id} is already open"
        )


class NoOpenSessionError(AnnotationError):
    """Operation requires an open candidate."""

    pass


class AnnotationSession:
    """
    Single-candidate review session.

    Responsibilities:
    - Enforce that at most one candidate is ANNOTATING or SUBMITTING
    - Hold the tag being typed
    - Move the open candidate to SUBMITTING on confirm
    """

    def __init__(self) -> None:
        self._candidate: Optional[TransactionCandidate] = None
        self._tag = ""

    @property
    def is_open(self) -> bool:
        return self._candidate is not None

    @property
    def candidate(self) -> Optional[TransactionCandidate]:
        return self._candidate

    @property
    def tag(self) -> str:
        return self._tag

    def open(self, candidate: TransactionCandidate) -> None:
        """
        Open a candidate for review and clear the tag.

        Raises:
            SessionAlreadyOpenError: If another candidate is open
        """
        if self._candidate is not None:
            raise SessionAlreadyOpenError(self._candidate.id, candidate.id)

        candidate.status = CandidateStatus.ANNOTATING
        candidate.tag_input = ""
        self._candidate = candidate
        self._tag = ""
        logger.debug(f"Opened candidate {candidate.id}")

    def update_tag(self, text: str) -> None:
        """
        Replace the tag.

        Raises:
            NoOpenSessionError: If no candidate is open
        """
        if self._candidate is None:
            raise NoOpenSessionError("No candidate is open for tagging")
        self._tag = text or ""
        self._candidate.tag_input = self._tag

    def begin_submit(self) -> tuple[TransactionCandidate, str]:
        """
        Mark the open candidate as SUBMITTING.

        Returns:
            The candidate and the tag to submit with it

        Raises:
            NoOpenSessionError: If no candidate is open
        """
        if self._candidate is None:
            raise NoOpenSessionError("No candidate is open for submission")
        if self._candidate.status != CandidateStatus.ANNOTATING:
            raise AnnotationError(
                f"Candidate {self._candidate.id} is {self._candidate.status.value}, "
                "expected ANNOTATING"
            )
        self._candidate.status = CandidateStatus.SUBMITTING
        return self._candidate, self._tag

    def close(self) -> None:
        """Return to the no-session state. Safe to call when nothing is open."""
        candidate = self._candidate
        if candidate is not None and candidate.status == CandidateStatus.ANNOTATING:
            # Cancelled before confirm
            candidate.status = CandidateStatus.PENDING
            candidate.tag_input = ""
        self._candidate = None
        self._tag = ""
        if candidate is not None:
            logger.debug(f"Closed candidate {candidate.id} ({candidate.status.value})")
