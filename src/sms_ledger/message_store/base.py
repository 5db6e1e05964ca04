"""
Device message store interface.
"""

from abc import ABC, abstractmethod

from ..schemas.candidate import RawMessage


class MessageStoreError(Exception):
    """Base exception for message store failures."""

    pass


class MessageStore(ABC):
    """
    Read/delete access to the on-device message store.

    Implementations only ever read messages and delete them by id; message
    contents are never modified.
    """

    @abstractmethod
    def list_messages(self, box: str = "inbox") -> list[RawMessage]:
        """
        List all messages in a box.

        Raises:
            MessageStoreError: If the store cannot be read
        """
        pass

    @abstractmethod
    def delete_message(self, message_id: str) -> bool:
        """
        Delete one message by id.

        Returns:
            True if a message was deleted, False if the store had no such message

        Raises:
            MessageStoreError: If the store rejects the deletion
        """
        pass
