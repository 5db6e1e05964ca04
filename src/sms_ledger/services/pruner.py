"""Source pruner: deletes a message from the device store after reconciliation.

Pruning is fail-open. Once the ledger accepted a transaction, nothing that
happens here may undo or repeat that submission; a message that could not
be deleted simply stays on the device.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sms_ledger.message_store import MessageStoreError

if TYPE_CHECKING:
    from sms_ledger.message_store import MessageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PruneResult:
    """Outcome of one delete request."""

    message_id: str
    ok: bool
    error: str | None = None


class SourcePruner:
    """Issues exactly one delete per call and never raises for store failures."""

    def __init__(self, message_store: MessageStore) -> None:
        self.message_store = message_store

    def prune(self, message_id: str) -> PruneResult:
        """Delete the source message for a reconciled candidate.

        Args:
            message_id: Id of the message in the device store.

        Returns:
            PruneResult; ok is False when the store rejected the delete or
            the message was already gone.
        """
        try:
            deleted = self.message_store.delete_message(message_id)
        except MessageStoreError as e:
            logger.warning(f"Failed to delete message {message_id}: {e}")
            return PruneResult(message_id=message_id, ok=False, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error deleting message {message_id}")
            return PruneResult(message_id=message_id, ok=False, error=str(e))

        if not deleted:
            logger.warning(f"Message {message_id} was already gone from the store")
            return PruneResult(message_id=message_id, ok=False, error="message not found")

        logger.info(f"Deleted source message {message_id}")
        return PruneResult(message_id=message_id, ok=True)
