"""Tests for the ledger payload builder."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from sms_ledger.extractors import TransactionType
from sms_ledger.schemas import build_ledger_payload, format_timestamp


class TestFormatTimestamp:
    """Tests for ISO-8601 submission timestamps."""

    def test_utc_with_milliseconds(self, fixed_now):
        assert format_timestamp(fixed_now) == "2024-03-12T09:30:15.123Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 1, 0, 0, 0)) == "2024-01-01T00:00:00.000Z"

    def test_converted_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        moment = datetime(2024, 1, 1, 5, 30, 0, tzinfo=ist)

        assert format_timestamp(moment) == "2024-01-01T00:00:00.000Z"


class TestBuildLedgerPayload:
    """Tests for build_ledger_payload()."""

    def test_fields(self, make_candidate, fixed_clock):
        candidate = make_candidate(amount="2,500.00", transaction_type=TransactionType.CREDIT)

        payload = build_ledger_payload(candidate, "rent", clock=fixed_clock)

        assert payload.to_dict() == {
            "type": "CREDIT",
            "amount": "2,500.00",
            "date": "2024-03-12T09:30:15.123Z",
            "tags": "RENT",
        }

    def test_exactly_four_fields(self, make_candidate, fixed_clock):
        payload = build_ledger_payload(make_candidate(), "x", clock=fixed_clock)

        assert set(json.loads(payload.to_json())) == {"type", "amount", "date", "tags"}

    def test_debit_and_empty_tag(self, make_candidate, fixed_clock):
        candidate = make_candidate(amount="500", transaction_type=TransactionType.DEBIT)

        payload = build_ledger_payload(candidate, "", clock=fixed_clock)

        assert payload.type == "DEBIT"
        assert payload.amount == "500"
        assert payload.tags == ""

    def test_mixed_case_tag_upper_cased(self, make_candidate, fixed_clock):
        payload = build_ledger_payload(make_candidate(), "Food, Travel", clock=fixed_clock)

        assert payload.tags == "FOOD, TRAVEL"

    def test_uses_submission_time(self, make_candidate):
        before = datetime.now(timezone.utc)
        payload = build_ledger_payload(make_candidate(), "rent")

        submitted = datetime.fromisoformat(payload.date.replace("Z", "+00:00"))
        assert submitted >= before.replace(microsecond=(before.microsecond // 1000) * 1000)

    def test_missing_amount_rejected(self, make_candidate, fixed_clock):
        with pytest.raises(ValueError, match="amount"):
            build_ledger_payload(make_candidate(amount=""), "rent", clock=fixed_clock)
