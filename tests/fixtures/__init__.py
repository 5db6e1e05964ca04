"""
Test fixtures for SMS messages.

This module provides:
- Sample bank and non-bank SMS bodies
- Helpers to build and inspect an Android-style ``sms`` table
"""

import sqlite3
from pathlib import Path

ENDPOINT_URL = "https://ledger.test/macros/s/test-deployment/exec"

SAMPLE_CREDIT_SMS = "Your account is credited for INR 2,500.00"
SAMPLE_DEBIT_SMS = (
    "A/c XX4321 debited for INR 500 on 12-03-24 towards UPI/Ref 408211. "
    "Not you? Call 1800-000-000"
)
SAMPLE_OTP_SMS = "Your OTP for login is 482913. Do not share it with anyone."
SAMPLE_PROMO_SMS = "Get INR 500 cashback on your next recharge!"


def create_sms_db(path: Path, rows: list[dict]) -> Path:
    """Create an ``sms`` table populated with rows.

    Each row needs ``_id`` and ``body``; ``address`` defaults to a bank
    sender, ``type`` to inbox (1) and ``date`` to a value that keeps the
    given order newest-first.
    """
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(
            """
            CREATE TABLE sms (
                _id INTEGER PRIMARY KEY,
                address TEXT,
                body TEXT,
                type INTEGER,
                date INTEGER
            )
        """
        )
        for position, row in enumerate(rows):
            conn.execute(
                "INSERT INTO sms (_id, address, body, type, date) VALUES (?, ?, ?, ?, ?)",
                (
                    row["_id"],
                    row.get("address", "VM-HDFCBK"),
                    row["body"],
                    row.get("type", 1),
                    row.get("date", 1_700_000_000_000 - position),
                ),
            )
        conn.commit()
    finally:
        conn.close()
    return path


def sms_ids(path: Path) -> list[int]:
    """All message ids left in an ``sms`` table."""
    conn = sqlite3.connect(str(path))
    try:
        return [row[0] for row in conn.execute("SELECT _id FROM sms ORDER BY _id")]
    finally:
        conn.close()
