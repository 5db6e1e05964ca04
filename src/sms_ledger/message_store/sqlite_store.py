"""
SQLite message store adapter.

Reads the ``sms`` table of an Android ``mmssms.db`` export (or any database
with the same columns)::

    sms(_id INTEGER PRIMARY KEY, address TEXT, body TEXT, type INTEGER, date INTEGER)

The ``type`` column holds the Android box code.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..schemas.candidate import RawMessage
from .base import MessageStore, MessageStoreError

logger = logging.getLogger(__name__)

# Telephony.TextBasedSmsColumns message types
BOX_TYPES = {
    "inbox": 1,
    "sent": 2,
    "draft": 3,
    "outbox": 4,
}


class SqliteMessageStore(MessageStore):
    """Message store backed by a SQLite ``sms`` table."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self.db_path.exists():
            raise MessageStoreError(f"Message database not found: {self.db_path}")
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise MessageStoreError(f"Failed to open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise MessageStoreError(f"Message store error: {e}") from e
        finally:
            conn.close()

    def list_messages(self, box: str = "inbox") -> list[RawMessage]:
        if box not in BOX_TYPES:
            raise MessageStoreError(f"Unknown message box: {box}")

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT _id, address, body FROM sms WHERE type = ? ORDER BY date DESC, _id DESC",
                (BOX_TYPES[box],),
            ).fetchall()

        messages = [RawMessage.from_store_row(dict(row)) for row in rows]
        logger.debug(f"Read {len(messages)} message(s) from {box}")
        return messages

    def delete_message(self, message_id: str) -> bool:
        try:
            numeric_id = int(message_id)
        except (TypeError, ValueError):
            raise MessageStoreError(f"Message id must be numeric, got {message_id!r}")

        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sms WHERE _id = ?", (numeric_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.debug(f"Deleted message {numeric_id}")
        return deleted
