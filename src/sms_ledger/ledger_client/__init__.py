"""
Remote ledger API client.

Provides:
- Single POST submission of an annotated transaction
- Strict success detection ("status": "success")
- Timeout-bounded calls, no automatic retries
"""

from .client import (
    FailureKind,
    LedgerAPIError,
    LedgerClient,
    LedgerConnectionError,
    LedgerError,
    LedgerResponseError,
    SubmitResult,
)

__all__ = [
    "FailureKind",
    "LedgerAPIError",
    "LedgerClient",
    "LedgerConnectionError",
    "LedgerError",
    "LedgerResponseError",
    "SubmitResult",
]
