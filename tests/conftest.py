"""Test fixtures and utilities."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
from fixtures import create_sms_db

from sms_ledger.extractors import ExtractionResult, TransactionType
from sms_ledger.schemas import RawMessage, TransactionCandidate


@pytest.fixture
def sms_db(tmp_path):
    """Factory fixture: build a message database from row dicts."""

    def _create(rows: list[dict]) -> Path:
        return create_sms_db(tmp_path / "mmssms.db", rows)

    return _create


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary journal database path for testing."""
    return tmp_path / "test_state.db"


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 12, 9, 30, 15, 123000, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock(fixed_now):
    """Clock returning a fixed submission time."""
    return lambda: fixed_now


@pytest.fixture
def make_candidate():
    """Factory for candidates without going through the extractor."""

    def _make(
        message_id: str = "101",
        amount: str = "2,500.00",
        transaction_type: TransactionType = TransactionType.CREDIT,
        body: str = "Your account is credited for INR 2,500.00",
    ) -> TransactionCandidate:
        return TransactionCandidate(
            message=RawMessage(id=message_id, address="VM-HDFCBK", body=body),
            extraction=ExtractionResult(transaction_type=transaction_type, amount=amount),
        )

    return _make
