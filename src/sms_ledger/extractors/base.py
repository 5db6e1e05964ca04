"""
Base extractor interface and common types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Direction of money movement described by a message."""

    CREDIT = "CREDIT"
    DEBIT = "DEBIT"

    @classmethod
    def from_keyword(cls, keyword: str) -> "TransactionType":
        """Map a matched keyword ("credited"/"debited", any case) to a type."""
        normalized = keyword.strip().lower()
        if normalized == "credited":
            return cls.CREDIT
        if normalized == "debited":
            return cls.DEBIT
        raise ValueError(f"Unknown transaction keyword: {keyword!r}")


@dataclass(frozen=True)
class ExtractionResult:
    """Structured fields pulled out of one message body.

    amount is the matched substring exactly as it appeared in the message
    (thousands separators and decimal point included).
    """

    transaction_type: TransactionType
    amount: str
    keyword: str = ""  # Keyword as written in the message, for debugging

    def amount_as_decimal(self) -> Optional[Decimal]:
        """Numeric view of the amount for display; never written back."""
        try:
            return Decimal(self.amount.replace(",", ""))
        except InvalidOperation:
            return None


class BaseExtractor(ABC):
    """
    Base class for message extractors.

    Each extractor recognizes one message format. Extractors are pure:
    the same body always produces the same result.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging."""
        pass

    @abstractmethod
    def extract(self, body: str) -> Optional[ExtractionResult]:
        """
        Extract transaction fields from a message body.

        Args:
            body: Raw message text

        Returns:
            ExtractionResult, or None if the message is not a transaction
        """
        pass

    def can_extract(self, body: str) -> bool:
        """Check if this extractor recognizes the message."""
        return self.extract(body) is not None
