"""Inbox-to-ledger orchestration service.

Sequences one run of the pipeline:
- Acquires read permission for the message store
- Fetches the inbox once and extracts transaction candidates
- Lets the user open one candidate at a time and tag it
- Submits a confirmed candidate to the ledger
- On acceptance removes the candidate and prunes the source message
- On failure alerts the user and keeps the candidate visible

Closing a review without confirming never submits anything.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from sms_ledger.extractors import BaseExtractor, InrSmsExtractor
from sms_ledger.ledger_client import FailureKind, SubmitResult
from sms_ledger.message_store import MessageStoreError
from sms_ledger.review import AnnotationSession
from sms_ledger.schemas.candidate import CandidateStatus, TransactionCandidate
from sms_ledger.services.pruner import PruneResult, SourcePruner
from sms_ledger.state_store import CandidateStore

if TYPE_CHECKING:
    from sms_ledger.ledger_client import LedgerClient
    from sms_ledger.message_store import MessageStore
    from sms_ledger.permissions import PermissionGate
    from sms_ledger.state_store import ReconciliationJournal

logger = logging.getLogger(__name__)

AlertFn = Callable[[str, str], None]

PERMISSION_DENIED_TITLE = "Permission Denied"
PERMISSION_DENIED_MESSAGE = "Cannot access SMS messages."
ERROR_TITLE = "Error"
REJECTED_MESSAGE = "Failed to save the data to the ledger."
TRANSPORT_MESSAGE = "Failed to save data."


def log_alert(title: str, message: str) -> None:
    """Default alert sink: write the alert to the log."""
    logger.warning(f"{title}: {message}")


class PipelineState(str, Enum):
    """States of one pipeline run."""

    AWAITING_PERMISSION = "AWAITING_PERMISSION"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    FETCHING = "FETCHING"
    IDLE = "IDLE"
    ANNOTATING = "ANNOTATING"
    SUBMITTING = "SUBMITTING"
    FAILED_VISIBLE = "FAILED_VISIBLE"


# States in which candidates are visible and the user may act on them
READY_STATES = (PipelineState.IDLE, PipelineState.FAILED_VISIBLE)


class PipelineStateError(Exception):
    """Operation is not allowed in the current pipeline state."""

    def __init__(self, operation: str, state: PipelineState):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while pipeline is {state.value}")


@dataclass
class ConfirmOutcome:
    """Result of confirming one candidate."""

    candidate_id: str
    reconciled: bool
    submit_result: SubmitResult | None = None
    prune_result: PruneResult | None = None
    error: str | None = None

    @property
    def pruned(self) -> bool:
        return self.prune_result is not None and self.prune_result.ok


class InboxOrchestrator:
    """Owns the candidate store and annotation session for one run.

    All mutations happen on sequential calls from a single caller; nothing
    here is thread-safe.

    Usage:
        orchestrator = InboxOrchestrator(message_store, ledger, gate)
        orchestrator.start()
        orchestrator.select(candidate_id)
        orchestrator.update_tag("rent")
        outcome = orchestrator.confirm()
    """

    def __init__(
        self,
        message_store: MessageStore,
        ledger_client: LedgerClient,
        permission_gate: PermissionGate,
        journal: ReconciliationJournal | None = None,
        extractor: BaseExtractor | None = None,
        alert: AlertFn = log_alert,
        box: str = "inbox",
    ) -> None:
        """Initialize the orchestrator.

        Args:
            message_store: Device message store (read and delete).
            ledger_client: Client for the remote ledger.
            permission_gate: Read-access check/request.
            journal: Optional reconciliation journal; when set, messages the
                     ledger already accepted are never submitted again.
            extractor: Message extractor (defaults to InrSmsExtractor).
            alert: Callback for user-visible alerts (title, message).
            box: Message box to read.
        """
        self.message_store = message_store
        self.ledger = ledger_client
        self.permission_gate = permission_gate
        self.journal = journal
        self.extractor = extractor or InrSmsExtractor()
        self.alert = alert
        self.box = box

        self.store = CandidateStore()
        self.session = AnnotationSession()
        self.pruner = SourcePruner(message_store)
        self.state = PipelineState.AWAITING_PERMISSION
        # Set when the last fetch could not read the store or journal
        self.fetch_error: str | None = None

    # Run setup

    def start(self, prune_reconciled: bool = True) -> PipelineState:
        """Acquire permission, fetch the inbox and load candidates.

        May be called again to re-run after a denial or to refresh the list,
        as long as no candidate is open.

        Args:
            prune_reconciled: Retry the delete of messages the journal holds
                as reconciled. Pass False for a read-only listing.
        """
        if self.session.is_open:
            raise PipelineStateError("start", self.state)

        self.state = PipelineState.AWAITING_PERMISSION
        self.fetch_error = None
        if not self._acquire_permission():
            logger.info("Read permission denied, nothing loaded")
            self.store.load([])
            self.state = PipelineState.PERMISSION_DENIED
            self.alert(PERMISSION_DENIED_TITLE, PERMISSION_DENIED_MESSAGE)
            return self.state

        self.state = PipelineState.FETCHING
        self._fetch(prune_reconciled)
        self.state = PipelineState.IDLE
        return self.state

    def _acquire_permission(self) -> bool:
        if self.permission_gate.check():
            return True
        return self.permission_gate.request()

    def _fetch(self, prune_reconciled: bool) -> None:
        try:
            messages = self.message_store.list_messages(self.box)
        except MessageStoreError as e:
            logger.error(f"Failed to read messages from {self.box}: {e}")
            self.fetch_error = f"Failed to read messages: {e}"
            self.store.load([])
            self.alert(ERROR_TITLE, self.fetch_error)
            return

        try:
            already_reconciled = self.journal.reconciled_ids() if self.journal else set()
        except Exception as e:
            logger.exception("Failed to read reconciliation journal")
            self.fetch_error = f"Failed to read reconciliation journal: {e}"
            self.store.load([])
            self.alert(ERROR_TITLE, self.fetch_error)
            return

        candidates: list[TransactionCandidate] = []
        skipped = 0
        for message in messages:
            if message.id in already_reconciled:
                # Accepted on an earlier run; only the delete is still owed
                if prune_reconciled:
                    logger.info(f"Message {message.id} already reconciled, retrying prune only")
                    self._prune(message.id)
                continue

            candidate = TransactionCandidate.from_message(
                message, self.extractor.extract(message.body)
            )
            if candidate is None:
                skipped += 1
                continue
            logger.debug(f"Candidate: {candidate.to_dict()}")
            candidates.append(candidate)

        self.store.load(candidates)
        logger.info(
            f"Fetched {len(messages)} message(s): {len(candidates)} candidate(s), "
            f"{skipped} not transactions"
        )

    # Read views

    def candidates(self) -> list[TransactionCandidate]:
        """Candidates currently visible, in fetch order."""
        return self.store.all()

    # Annotation

    def select(self, candidate_id: str) -> TransactionCandidate:
        """Open a candidate for review.

        Raises:
            PipelineStateError: If candidates are not loaded yet
            KeyError: If no visible candidate has this id
            SessionAlreadyOpenError: If another candidate is open
        """
        if self.state not in READY_STATES and self.state != PipelineState.ANNOTATING:
            raise PipelineStateError("select a candidate", self.state)

        candidate = self.store.get(candidate_id)
        if candidate is None:
            raise KeyError(candidate_id)

        self.session.open(candidate)
        self.state = PipelineState.ANNOTATING
        return candidate

    def update_tag(self, text: str) -> None:
        """Replace the tag of the open candidate."""
        self.session.update_tag(text)

    def cancel(self) -> None:
        """Close the review without submitting. No network call, no store change.

        A no-op when candidates are loaded and nothing is open.

        Raises:
            PipelineStateError: Before candidates are loaded or while submitting
        """
        if self.state not in READY_STATES and self.state != PipelineState.ANNOTATING:
            raise PipelineStateError("cancel", self.state)
        if self.session.is_open:
            logger.info(f"Review of candidate {self.session.candidate.id} cancelled")
        self.session.close()
        if self.state == PipelineState.ANNOTATING:
            self.state = PipelineState.IDLE

    # Reconciliation

    def confirm(self) -> ConfirmOutcome:
        """Submit the open candidate and settle the outcome.

        Order is strict: the ledger call completes before the candidate is
        removed, and removal happens before the source message is pruned.

        Raises:
            NoOpenSessionError: If no candidate is open
        """
        candidate, tag = self.session.begin_submit()
        self.state = PipelineState.SUBMITTING

        previous = self._journal_attempt(candidate, tag)
        if previous == "reconciled":
            logger.warning(f"Message {candidate.id} already reconciled, skipping submission")
            return self._settle_success(candidate, submit_result=None)
        if previous == "error":
            return self._settle_failure(
                candidate,
                submit_result=None,
                error="could not record submission",
                alert_message=TRANSPORT_MESSAGE,
            )

        result = self.ledger.submit(candidate, tag)

        payload_json = result.payload.to_json() if result.payload else None
        if result.ok:
            if self.journal is not None:
                self._journal_update(
                    self.journal.mark_reconciled, candidate.id, payload_json=payload_json
                )
            return self._settle_success(candidate, submit_result=result)

        if self.journal is not None:
            self._journal_update(
                self.journal.mark_failed, candidate.id, result.message, payload_json=payload_json
            )
        alert_message = (
            REJECTED_MESSAGE if result.failure == FailureKind.REJECTED else TRANSPORT_MESSAGE
        )
        return self._settle_failure(
            candidate, submit_result=result, error=result.message, alert_message=alert_message
        )

    def _settle_success(
        self, candidate: TransactionCandidate, submit_result: SubmitResult | None
    ) -> ConfirmOutcome:
        candidate.status = CandidateStatus.RECONCILED
        self.store.remove(candidate.id)
        prune_result = self._prune(candidate.id)
        self.session.close()
        self.state = PipelineState.IDLE
        return ConfirmOutcome(
            candidate_id=candidate.id,
            reconciled=True,
            submit_result=submit_result,
            prune_result=prune_result,
        )

    def _settle_failure(
        self,
        candidate: TransactionCandidate,
        submit_result: SubmitResult | None,
        error: str,
        alert_message: str,
    ) -> ConfirmOutcome:
        candidate.status = CandidateStatus.FAILED
        logger.warning(f"Reconciliation of message {candidate.id} failed: {error}")
        self.alert(ERROR_TITLE, alert_message)

        # Back to the list, unchanged; the typed tag is kept
        candidate.status = CandidateStatus.PENDING
        self.session.close()
        self.state = PipelineState.FAILED_VISIBLE
        return ConfirmOutcome(
            candidate_id=candidate.id,
            reconciled=False,
            submit_result=submit_result,
            error=error,
        )

    def _prune(self, message_id: str) -> PruneResult:
        result = self.pruner.prune(message_id)
        if result.ok and self.journal is not None:
            self._journal_update(self.journal.mark_pruned, message_id)
        return result

    # Journal helpers

    def _journal_attempt(self, candidate: TransactionCandidate, tag: str) -> str:
        """Record the attempt. Returns "recorded", "reconciled" or "error"."""
        if self.journal is None:
            return "recorded"
        try:
            if self.journal.is_reconciled(candidate.id):
                return "reconciled"
            self.journal.record_attempt(
                message_id=candidate.id,
                transaction_type=candidate.transaction_type.value,
                amount=candidate.amount,
                tags=tag.upper(),
            )
        except Exception:
            logger.exception(f"Failed to journal submission of message {candidate.id}")
            return "error"
        return "recorded"

    def _journal_update(
        self, update: Callable[..., None], message_id: str, *args, **kwargs
    ) -> None:
        """Best-effort journal write after the ledger outcome is known."""
        try:
            update(message_id, *args, **kwargs)
        except Exception:
            logger.exception(f"Journal {update.__name__} failed for message {message_id}")
