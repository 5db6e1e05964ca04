"""
Message extractors.

Provides:
- InrSmsExtractor: "credited/debited for INR <amount>" bank alerts
- extract(): module-level convenience using the default extractor
- Base classes for custom extractors
"""

from .base import BaseExtractor, ExtractionResult, TransactionType
from .sms_extractor import TRANSACTION_PATTERN, InrSmsExtractor, extract

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "InrSmsExtractor",
    "TRANSACTION_PATTERN",
    "TransactionType",
    "extract",
]
