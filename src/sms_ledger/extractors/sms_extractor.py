"""
Pattern extractor for Indian bank SMS alerts.

Recognizes messages such as::

    Your a/c XX1234 is credited for INR 2,500.00 on 01-02-24.
    A/c XX1234 debited for INR 500 towards UPI/...

Only the "credited|debited for INR <amount>" form is supported.
"""

import logging
import re
from typing import Optional

from .base import BaseExtractor, ExtractionResult, TransactionType

logger = logging.getLogger(__name__)

# Amount: digits and commas, optional decimal part. A sentence-ending period
# after the number is not consumed.
TRANSACTION_PATTERN = re.compile(
    r"\b(credited|debited)\s+for\s+INR\s+(\d[\d,]*(?:\.\d+)?)",
    re.IGNORECASE,
)


class InrSmsExtractor(BaseExtractor):
    """Extracts credit/debit alerts denominated in INR."""

    @property
    def name(self) -> str:
        return "inr_sms"

    def extract(self, body: str) -> Optional[ExtractionResult]:
        if not body or not isinstance(body, str):
            return None

        match = TRANSACTION_PATTERN.search(body)
        if not match:
            return None

        keyword, amount = match.group(1), match.group(2)
        return ExtractionResult(
            transaction_type=TransactionType.from_keyword(keyword),
            amount=amount,
            keyword=keyword,
        )


_default_extractor = InrSmsExtractor()


def extract(body: str) -> Optional[ExtractionResult]:
    """Extract transaction fields from a message body using the default extractor."""
    return _default_extractor.extract(body)
