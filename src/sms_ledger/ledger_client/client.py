"""
Remote ledger client implementation.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..schemas.candidate import TransactionCandidate
from ..schemas.ledger_payload import LedgerPayload, build_ledger_payload, utc_now

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "success"


class LedgerError(Exception):
    """Base exception for ledger client errors."""

    pass


class LedgerAPIError(LedgerError):
    """Endpoint returned an HTTP error response."""

    def __init__(self, status_code: int, message: str, response_body: str | None = None):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Ledger API error {status_code}: {message}")


class LedgerConnectionError(LedgerError):
    """Failed to connect to the ledger, or the request timed out."""

    pass


class LedgerResponseError(LedgerError):
    """Response body was not a JSON object."""

    def __init__(self, message: str, response_body: str | None = None):
        self.response_body = response_body
        super().__init__(message)


class FailureKind(str, Enum):
    """Why a submission did not succeed."""

    REJECTED = "REJECTED"  # Well-formed response without the success marker
    TRANSPORT = "TRANSPORT"  # Network, HTTP or parse failure


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one ledger submission."""

    ok: bool
    failure: FailureKind | None = None
    message: str = ""
    response_body: str | None = None
    payload: LedgerPayload | None = None

    @classmethod
    def success(cls, payload: LedgerPayload, response_body: str | None = None) -> "SubmitResult":
        return cls(ok=True, message="accepted", response_body=response_body, payload=payload)

    @classmethod
    def rejected(
        cls, message: str, payload: LedgerPayload | None = None, response_body: str | None = None
    ) -> "SubmitResult":
        return cls(
            ok=False,
            failure=FailureKind.REJECTED,
            message=message,
            response_body=response_body,
            payload=payload,
        )

    @classmethod
    def transport_error(
        cls, message: str, payload: LedgerPayload | None = None, response_body: str | None = None
    ) -> "SubmitResult":
        return cls(
            ok=False,
            failure=FailureKind.TRANSPORT,
            message=message,
            response_body=response_body,
            payload=payload,
        )


class LedgerClient:
    """
    Client for the remote ledger endpoint.

    One POST per submission, no retries. Only a response carrying
    ``"status": "success"`` counts as accepted.
    """

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        endpoint_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize ledger client.

        Args:
            endpoint_url: Full URL of the ledger endpoint
            timeout: Request timeout in seconds
            clock: Source of the submission timestamp
        """
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.clock = clock

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

        # A retried POST could book the same transaction twice
        adapter = HTTPAdapter(max_retries=Retry(total=0))
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _request(self, payload: LedgerPayload) -> dict:
        """POST the payload and return the decoded JSON object."""
        logger.debug(f"API Request: POST {self.endpoint_url}")
        logger.debug(f"Request body: {payload.to_json()}")

        try:
            response = self.session.post(
                self.endpoint_url,
                data=payload.to_json().encode("utf-8"),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise LedgerConnectionError(
                f"Request to ledger timed out after {self.timeout}s: {e}"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise LedgerConnectionError(f"Failed to connect to ledger: {e}") from e
        except requests.exceptions.RequestException as e:
            raise LedgerError(f"Request failed: {e}") from e

        logger.debug(f"Response status: {response.status_code}")

        if not response.ok:
            raise LedgerAPIError(
                status_code=response.status_code,
                message=response.reason or "",
                response_body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LedgerResponseError(
                f"Ledger response is not valid JSON: {e}", response_body=response.text
            ) from e

        if not isinstance(data, dict):
            raise LedgerResponseError(
                f"Ledger response is not a JSON object: {type(data).__name__}",
                response_body=response.text,
            )

        return data

    def submit(self, candidate: TransactionCandidate, tag: str) -> SubmitResult:
        """
        Submit one annotated candidate to the ledger.

        Never raises for remote or transport problems; they are reported in
        the returned SubmitResult.

        Args:
            candidate: Candidate being reconciled
            tag: Tag entered by the user

        Returns:
            SubmitResult with ok=True only if the ledger reported success
        """
        payload = build_ledger_payload(candidate, tag, clock=self.clock)

        try:
            data = self._request(payload)
        except LedgerAPIError as e:
            logger.error(f"Ledger rejected request for message {candidate.id}: {e}")
            return SubmitResult.transport_error(str(e), payload, e.response_body)
        except LedgerResponseError as e:
            logger.error(f"Unreadable ledger response for message {candidate.id}: {e}")
            return SubmitResult.transport_error(str(e), payload, e.response_body)
        except LedgerError as e:
            logger.error(f"Ledger request failed for message {candidate.id}: {e}")
            return SubmitResult.transport_error(str(e), payload)

        body = json.dumps(data, ensure_ascii=False)
        status = data.get("status")
        if status == SUCCESS_STATUS:
            logger.info(f"Ledger accepted message {candidate.id} ({payload.type} {payload.amount})")
            return SubmitResult.success(payload, body)

        logger.warning(f"Ledger did not accept message {candidate.id}: status={status!r}")
        return SubmitResult.rejected(f"Ledger returned status {status!r}", payload, body)
