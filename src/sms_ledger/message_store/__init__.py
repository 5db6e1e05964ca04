"""
Device message store adapters.

Provides:
- MessageStore: read/delete interface
- SqliteMessageStore: Android ``sms`` table export
"""

from .base import MessageStore, MessageStoreError
from .sqlite_store import BOX_TYPES, SqliteMessageStore

__all__ = [
    "BOX_TYPES",
    "MessageStore",
    "MessageStoreError",
    "SqliteMessageStore",
]
