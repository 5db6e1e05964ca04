"""
SQLite-based reconciliation journal.

Tables:
- reconciliations: one row per source message that was submitted to the
  ledger, with the outcome and whether the message was pruned afterwards

The journal lets a later run recognize messages the ledger already accepted
(for example when pruning failed) so they are never submitted twice.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class JournalStatus(str, Enum):
    """Outcome of a ledger submission."""

    PENDING = "PENDING"  # Sent, outcome not yet recorded
    RECONCILED = "RECONCILED"
    FAILED = "FAILED"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class JournalRecord:
    """Record of one message's reconciliation."""

    message_id: str
    transaction_type: str
    amount: str
    tags: str
    status: JournalStatus
    error_message: str | None
    payload_json: str | None
    created_at: str
    reconciled_at: str | None
    pruned_at: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "JournalRecord":
        """Create from database row."""
        return cls(
            message_id=row["message_id"],
            transaction_type=row["transaction_type"],
            amount=row["amount"],
            tags=row["tags"],
            status=JournalStatus(row["status"]),
            error_message=row["error_message"],
            payload_json=row["payload_json"],
            created_at=row["created_at"],
            reconciled_at=row["reconciled_at"],
            pruned_at=row["pruned_at"],
        )


class ReconciliationJournal:
    """
    SQLite-backed journal of ledger submissions.

    Safe for the single-writer pipeline; connections are opened per call.
    """

    def __init__(self, db_path: Path | str):
        """
        Initialize the journal.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reconciliations (
                    message_id TEXT PRIMARY KEY,
                    transaction_type TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    tags TEXT NOT NULL,
                    status TEXT NOT NULL,
                    error_message TEXT,
                    payload_json TEXT,
                    created_at TEXT NOT NULL,
                    reconciled_at TEXT,
                    pruned_at TEXT
                )
            """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_reconciliations_status "
                "ON reconciliations(status)"
            )

    def record_attempt(
        self,
        message_id: str,
        transaction_type: str,
        amount: str,
        tags: str,
    ) -> None:
        """Record a submission as PENDING before it is sent.

        A previous FAILED attempt for the same message is overwritten.
        """
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO reconciliations
                (message_id, transaction_type, amount, tags, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(message_id) DO UPDATE SET
                    transaction_type = excluded.transaction_type,
                    amount = excluded.amount,
                    tags = excluded.tags,
                    status = excluded.status,
                    error_message = NULL,
                    payload_json = NULL,
                    created_at = excluded.created_at
            """,
                (
                    message_id,
                    transaction_type,
                    amount,
                    tags,
                    JournalStatus.PENDING.value,
                    _now(),
                ),
            )

    def mark_reconciled(self, message_id: str, payload_json: str | None = None) -> None:
        """Mark a submission as accepted by the ledger."""
        with self._transaction() as conn:
            conn.execute(
                """
                UPDATE reconciliations
                SET status = ?, reconciled_at = ?, error_message = NULL,
                    payload_json = COALESCE(?, payload_json)
                WHERE message_id = ?
            """,
                (JournalStatus.RECONCILED.value, _now(), payload_json, message_id),
            )

    def mark_failed(
        self, message_id: str, error_message: str, payload_json: str | None = None
    ) -> None:
        """Mark a submission as failed with an error message."""
        with self._transaction() as conn:
            conn.execute(
                """
                UPDATE reconciliations
                SET status = ?, error_message = ?, payload_json = COALESCE(?, payload_json)
                WHERE message_id = ?
            """,
                (JournalStatus.FAILED.value, error_message, payload_json, message_id),
            )

    def mark_pruned(self, message_id: str) -> None:
        """Record that the source message was deleted from the device store."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE reconciliations SET pruned_at = ? WHERE message_id = ?",
                (_now(), message_id),
            )

    def get(self, message_id: str) -> JournalRecord | None:
        """Get the journal record for a message."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM reconciliations WHERE message_id = ?", (message_id,)
            ).fetchone()
            return JournalRecord.from_row(row) if row else None

    def is_reconciled(self, message_id: str) -> bool:
        """Check if the ledger already accepted this message."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM reconciliations WHERE message_id = ? AND status = ?",
                (message_id, JournalStatus.RECONCILED.value),
            ).fetchone()
            return row is not None

    def reconciled_ids(self) -> set[str]:
        """All message ids the ledger accepted."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT message_id FROM reconciliations WHERE status = ?",
                (JournalStatus.RECONCILED.value,),
            ).fetchall()
            return {row["message_id"] for row in rows}

    def get_unpruned(self) -> list[JournalRecord]:
        """Accepted submissions whose source message is still on the device."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM reconciliations
                WHERE status = ? AND pruned_at IS NULL
                ORDER BY created_at ASC
            """,
                (JournalStatus.RECONCILED.value,),
            ).fetchall()
            return [JournalRecord.from_row(row) for row in rows]

    def get_stats(self) -> dict[str, Any]:
        """Get journal statistics."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) as count FROM reconciliations GROUP BY status"
            ).fetchall()
            by_status = {row["status"]: row["count"] for row in rows}
            unpruned = conn.execute(
                "SELECT COUNT(*) as count FROM reconciliations "
                "WHERE status = ? AND pruned_at IS NULL",
                (JournalStatus.RECONCILED.value,),
            ).fetchone()

            return {
                "submissions_total": sum(by_status.values()),
                "reconciled": by_status.get(JournalStatus.RECONCILED.value, 0),
                "failed": by_status.get(JournalStatus.FAILED.value, 0),
                "pending": by_status.get(JournalStatus.PENDING.value, 0),
                "awaiting_prune": unpruned["count"] if unpruned else 0,
            }
