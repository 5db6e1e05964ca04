"""
End-to-end tests for the inbox orchestrator.

Real SQLite message store and journal, ledger mocked with responses.
"""

from unittest.mock import MagicMock

import pytest
import responses
from fixtures import (
    ENDPOINT_URL,
    SAMPLE_CREDIT_SMS,
    SAMPLE_DEBIT_SMS,
    SAMPLE_OTP_SMS,
    SAMPLE_PROMO_SMS,
    sms_ids,
)

from sms_ledger.extractors import TransactionType
from sms_ledger.ledger_client import FailureKind, LedgerClient
from sms_ledger.message_store import MessageStoreError, SqliteMessageStore
from sms_ledger.permissions import StaticPermissionGate
from sms_ledger.review import NoOpenSessionError, SessionAlreadyOpenError
from sms_ledger.schemas import CandidateStatus
from sms_ledger.services import InboxOrchestrator, PipelineState, PipelineStateError
from sms_ledger.state_store import JournalStatus, ReconciliationJournal


class AlertRecorder:
    def __init__(self):
        self.alerts = []

    def __call__(self, title, message):
        self.alerts.append((title, message))


@pytest.fixture
def alerts():
    return AlertRecorder()


@pytest.fixture
def journal(temp_db):
    return ReconciliationJournal(temp_db)


@pytest.fixture
def build(alerts, fixed_clock, journal):
    """Factory: orchestrator over a message database."""

    def _build(db_path, granted=True, use_journal=True):
        return InboxOrchestrator(
            message_store=SqliteMessageStore(db_path),
            ledger_client=LedgerClient(ENDPOINT_URL, timeout=5, clock=fixed_clock),
            permission_gate=StaticPermissionGate(granted=granted),
            journal=journal if use_journal else None,
            alert=alerts,
        )

    return _build


def _success():
    responses.add(responses.POST, ENDPOINT_URL, json={"status": "success"}, status=200)


def _error():
    responses.add(responses.POST, ENDPOINT_URL, json={"status": "error"}, status=200)


class TestStart:
    """Permission and fetch."""

    def test_fetch_keeps_only_transactions(self, sms_db, build):
        """One matching and one non-matching message give exactly one candidate."""
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}, {"_id": 2, "body": SAMPLE_OTP_SMS}])
        orchestrator = build(db)

        state = orchestrator.start()

        assert state == PipelineState.IDLE
        candidates = orchestrator.candidates()
        assert [c.id for c in candidates] == ["1"]
        assert candidates[0].transaction_type == TransactionType.CREDIT
        assert candidates[0].amount == "2,500.00"
        assert candidates[0].status == CandidateStatus.PENDING

    def test_fetch_order_preserved(self, sms_db, build):
        db = sms_db(
            [
                {"_id": 5, "body": SAMPLE_DEBIT_SMS},
                {"_id": 3, "body": SAMPLE_PROMO_SMS},
                {"_id": 9, "body": SAMPLE_CREDIT_SMS},
            ]
        )
        orchestrator = build(db)
        orchestrator.start()

        assert [c.id for c in orchestrator.candidates()] == ["5", "9"]

    def test_permission_denied(self, sms_db, build, alerts):
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db, granted=False)

        state = orchestrator.start()

        assert state == PipelineState.PERMISSION_DENIED
        assert orchestrator.candidates() == []
        assert alerts.alerts == [("Permission Denied", "Cannot access SMS messages.")]

    def test_permission_requested_when_not_granted(self, sms_db, journal, alerts):
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        gate = MagicMock()
        gate.check.return_value = False
        gate.request.return_value = True
        orchestrator = InboxOrchestrator(
            SqliteMessageStore(db), LedgerClient(ENDPOINT_URL), gate, journal, alert=alerts
        )

        assert orchestrator.start() == PipelineState.IDLE
        gate.request.assert_called_once()
        assert len(orchestrator.candidates()) == 1

    def test_message_store_error_alerts(self, tmp_path, build, alerts):
        orchestrator = build(tmp_path / "missing.db")

        state = orchestrator.start()

        assert state == PipelineState.IDLE
        assert orchestrator.candidates() == []
        assert alerts.alerts[0][0] == "Error"
        assert "not found" in orchestrator.fetch_error

    def test_select_before_start(self, sms_db, build):
        orchestrator = build(sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}]))

        with pytest.raises(PipelineStateError):
            orchestrator.select("1")


class TestReview:
    """Selecting, tagging and cancelling."""

    @pytest.fixture
    def orchestrator(self, sms_db, build):
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}, {"_id": 2, "body": SAMPLE_DEBIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()
        return orchestrator

    def test_select(self, orchestrator):
        candidate = orchestrator.select("1")

        assert orchestrator.state == PipelineState.ANNOTATING
        assert candidate.status == CandidateStatus.ANNOTATING

    def test_select_unknown(self, orchestrator):
        with pytest.raises(KeyError):
            orchestrator.select("404")

    def test_at_most_one_active(self, orchestrator):
        orchestrator.select("1")

        with pytest.raises(SessionAlreadyOpenError):
            orchestrator.select("2")

        active = [c for c in orchestrator.candidates() if c.is_active]
        assert [c.id for c in active] == ["1"]

    @responses.activate
    def test_cancel_sends_nothing(self, orchestrator, sms_db):
        orchestrator.select("1")
        orchestrator.update_tag("rent")

        orchestrator.cancel()

        assert len(responses.calls) == 0
        assert orchestrator.state == PipelineState.IDLE
        candidate = orchestrator.store.get("1")
        assert candidate.status == CandidateStatus.PENDING
        assert candidate.tag_input == ""
        assert len(orchestrator.candidates()) == 2

    def test_confirm_without_selection(self, orchestrator):
        with pytest.raises(NoOpenSessionError):
            orchestrator.confirm()

    def test_restart_while_open_rejected(self, orchestrator):
        orchestrator.select("1")

        with pytest.raises(PipelineStateError):
            orchestrator.start()


class TestConfirm:
    """Submission, settlement and pruning."""

    @responses.activate
    def test_accepted_removes_and_prunes(self, sms_db, build, journal, alerts):
        """Accepted submission removes the candidate and deletes the source message."""
        _success()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()
        orchestrator.select("1")
        orchestrator.update_tag("rent")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is True
        assert outcome.pruned is True
        assert orchestrator.candidates() == []
        assert orchestrator.state == PipelineState.IDLE
        assert sms_ids(db) == []
        assert alerts.alerts == []
        assert len(responses.calls) == 1

        record = journal.get("1")
        assert record.status == JournalStatus.RECONCILED
        assert record.tags == "RENT"
        assert record.pruned_at is not None

    @responses.activate
    def test_rejected_keeps_candidate(self, sms_db, build, journal, alerts):
        """Rejected submission keeps everything and alerts the user."""
        _error()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()
        orchestrator.select("1")
        orchestrator.update_tag("rent")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is False
        assert outcome.submit_result.failure == FailureKind.REJECTED
        assert outcome.prune_result is None
        assert orchestrator.state == PipelineState.FAILED_VISIBLE
        assert sms_ids(db) == [1]
        assert alerts.alerts == [("Error", "Failed to save the data to the ledger.")]

        candidate = orchestrator.store.get("1")
        assert candidate.status == CandidateStatus.PENDING
        assert candidate.tag_input == "rent"
        assert candidate.amount == "2,500.00"
        assert journal.get("1").status == JournalStatus.FAILED

    @responses.activate
    def test_transport_failure_alert(self, sms_db, build, alerts):
        responses.add(responses.POST, ENDPOINT_URL, status=503)
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()
        orchestrator.select("1")

        outcome = orchestrator.confirm()

        assert outcome.submit_result.failure == FailureKind.TRANSPORT
        assert alerts.alerts == [("Error", "Failed to save data.")]
        assert [c.id for c in orchestrator.candidates()] == ["1"]

    @responses.activate
    def test_retry_after_failure(self, sms_db, build):
        _error()
        _success()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()
        orchestrator.select("1")
        orchestrator.confirm()

        orchestrator.select("1")
        orchestrator.update_tag("rent")
        outcome = orchestrator.confirm()

        assert outcome.reconciled is True
        assert orchestrator.candidates() == []
        assert len(responses.calls) == 2

    @responses.activate
    def test_prune_failure_is_fail_open(self, sms_db, build, journal, monkeypatch):
        _success()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()

        def refuse(message_id):
            raise MessageStoreError("database is read-only")

        monkeypatch.setattr(orchestrator.message_store, "delete_message", refuse)
        orchestrator.select("1")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is True
        assert outcome.pruned is False
        assert orchestrator.candidates() == []
        assert orchestrator.state == PipelineState.IDLE
        assert sms_ids(db) == [1]
        assert journal.get("1").pruned_at is None
        assert len(responses.calls) == 1

    @responses.activate
    def test_reconciled_message_never_resubmitted(self, sms_db, build, journal, monkeypatch):
        """A later run only retries the delete for an accepted message."""
        _success()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}, {"_id": 2, "body": SAMPLE_DEBIT_SMS}])
        first = build(db)
        first.start()
        monkeypatch.setattr(
            first.message_store,
            "delete_message",
            MagicMock(side_effect=MessageStoreError("locked")),
        )
        first.select("1")
        first.confirm()
        assert sms_ids(db) == [1, 2]

        second = build(db)
        second.start()

        assert [c.id for c in second.candidates()] == ["2"]
        assert sms_ids(db) == [2]
        assert journal.get("1").pruned_at is not None
        assert len(responses.calls) == 1

    @responses.activate
    def test_journal_reconciled_between_fetch_and_confirm(self, sms_db, build, journal):
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()
        journal.record_attempt("1", "CREDIT", "2,500.00", "RENT")
        journal.mark_reconciled("1")
        orchestrator.select("1")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is True
        assert outcome.submit_result is None
        assert len(responses.calls) == 0
        assert sms_ids(db) == []

    @responses.activate
    def test_journal_write_failure_blocks_submission(self, sms_db, fixed_clock, alerts):
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        journal = MagicMock()
        journal.reconciled_ids.return_value = set()
        journal.is_reconciled.return_value = False
        journal.record_attempt.side_effect = OSError("disk full")
        orchestrator = InboxOrchestrator(
            SqliteMessageStore(db),
            LedgerClient(ENDPOINT_URL, clock=fixed_clock),
            StaticPermissionGate(),
            journal=journal,
            alert=alerts,
        )
        orchestrator.start()
        orchestrator.select("1")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is False
        assert len(responses.calls) == 0
        assert orchestrator.state == PipelineState.FAILED_VISIBLE
        assert alerts.alerts == [("Error", "Failed to save data.")]

    @responses.activate
    def test_without_journal(self, sms_db, build):
        _success()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db, use_journal=False)
        orchestrator.start()
        orchestrator.select("1")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is True
        assert sms_ids(db) == []

    @responses.activate
    def test_journal_update_failure_keeps_success(self, sms_db, build, journal, monkeypatch):
        _success()
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}])
        orchestrator = build(db)
        orchestrator.start()

        def mark_reconciled(message_id, payload_json=None):
            raise OSError("disk full")

        monkeypatch.setattr(journal, "mark_reconciled", mark_reconciled)
        orchestrator.select("1")

        outcome = orchestrator.confirm()

        assert outcome.reconciled is True
        assert orchestrator.candidates() == []
        assert sms_ids(db) == []
        assert journal.get("1").status == JournalStatus.PENDING


class TestCatchUpPrune:
    """Messages the journal holds as reconciled."""

    @pytest.fixture
    def db(self, sms_db, journal):
        db = sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}, {"_id": 2, "body": SAMPLE_DEBIT_SMS}])
        journal.record_attempt("1", "CREDIT", "2,500.00", "RENT")
        journal.mark_reconciled("1")
        return db

    def test_start_prunes_by_default(self, db, build, journal):
        orchestrator = build(db)
        orchestrator.start()

        assert [c.id for c in orchestrator.candidates()] == ["2"]
        assert sms_ids(db) == [2]
        assert journal.get("1").pruned_at is not None

    def test_start_without_prune_leaves_store(self, db, build, journal):
        orchestrator = build(db)
        orchestrator.start(prune_reconciled=False)

        assert [c.id for c in orchestrator.candidates()] == ["2"]
        assert sms_ids(db) == [1, 2]
        assert journal.get("1").pruned_at is None


class TestCancelState:
    """cancel() is only valid once candidates are loaded."""

    def test_before_start(self, sms_db, build):
        orchestrator = build(sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}]))

        with pytest.raises(PipelineStateError):
            orchestrator.cancel()

    def test_after_denial(self, sms_db, build):
        orchestrator = build(sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}]), granted=False)
        orchestrator.start()

        with pytest.raises(PipelineStateError):
            orchestrator.cancel()

    def test_idle_without_selection_is_noop(self, sms_db, build):
        orchestrator = build(sms_db([{"_id": 1, "body": SAMPLE_CREDIT_SMS}]))
        orchestrator.start()

        orchestrator.cancel()

        assert orchestrator.state == PipelineState.IDLE
        assert len(orchestrator.candidates()) == 1
