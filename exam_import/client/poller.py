"""Client-side polling of an import job until it settles.

The poller issues one status request at a time and waits a fixed interval
between requests. It stops when the job reaches review, completes or fails,
after ``max_attempts`` successful polls without a terminal status, after
``max_consecutive_errors`` failed requests in a row, or when cancelled.

Successful polls and failed requests are counted separately: a failed
request never moves the poller closer to the timeout, and any successful
request resets the error streak.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

import httpx

from exam_import.core.schema import StatusResponse

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0
MAX_ATTEMPTS = 120
MAX_CONSECUTIVE_ERRORS = 3


class StatusFetchError(RuntimeError):
    """Raised when a single status request cannot be completed."""


@dataclass(slots=True)
class PollOutcome:
    """How polling ended.

    ``state`` is one of ``ready``, ``completed``, ``failed``, ``timeout``,
    ``unreachable`` or ``cancelled``.
    """

    state: str
    attempts: int
    status: StatusResponse | None = None
    error: str | None = None

    @property
    def questions_found(self) -> int:
        return (self.status.questions_found or 0) if self.status else 0

    @property
    def lessons_found(self) -> int:
        return (self.status.lessons_found or 0) if self.status else 0


class ImportStatusPoller:
    """Poll ``GET /api/import/status/{id}`` until the import settles."""

    def __init__(
        self,
        import_id: str,
        *,
        base_url: str = "http://localhost:8000",
        http_client: httpx.Client | None = None,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS,
        on_status: Callable[[StatusResponse], None] | None = None,
    ) -> None:
        self._import_id = import_id
        self._status_url = f"{base_url.rstrip('/')}/api/import/status/{import_id}"
        self._client = http_client or httpx.Client(timeout=10.0)
        self._owns_client = http_client is None
        self._interval = interval
        self._max_attempts = max_attempts
        self._max_consecutive_errors = max_consecutive_errors
        self._on_status = on_status
        self._cancelled = threading.Event()
        self.attempts = 0
        self.consecutive_errors = 0

    def __enter__(self) -> "ImportStatusPoller":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def fetch_status(self) -> StatusResponse:
        try:
            response = self._client.get(self._status_url)
        except httpx.HTTPError as exc:
            raise StatusFetchError(f"Failed to check status: {exc}") from exc
        if not response.is_success:
            raise StatusFetchError(f"Failed to check status: HTTP {response.status_code}")
        try:
            return StatusResponse.model_validate(response.json())
        except ValueError as exc:
            raise StatusFetchError(f"Failed to check status: malformed response ({exc})") from exc

    def run(self) -> PollOutcome:
        """Poll until a terminal condition; the first request is sent immediately."""

        while not self._cancelled.is_set():
            try:
                status = self.fetch_status()
            except StatusFetchError as exc:
                self.consecutive_errors += 1
                logger.warning(
                    "Status poll for %s failed (%d in a row): %s",
                    self._import_id,
                    self.consecutive_errors,
                    exc,
                )
                if self.consecutive_errors >= self._max_consecutive_errors:
                    return PollOutcome("unreachable", self.attempts, error="Failed to check status")
            else:
                self.consecutive_errors = 0
                if self._on_status is not None:
                    self._on_status(status)
                if status.status == "ready_for_review":
                    return PollOutcome("ready", self.attempts, status=status)
                if status.status == "completed":
                    return PollOutcome("completed", self.attempts, status=status)
                if status.status == "failed":
                    error = status.error_message or "Import failed"
                    return PollOutcome("failed", self.attempts, status=status, error=error)
                self.attempts += 1
                if self.attempts >= self._max_attempts:
                    return PollOutcome("timeout", self.attempts, status=status, error="Import timed out")

            if self._cancelled.wait(self._interval):
                break
        return PollOutcome("cancelled", self.attempts)

    def cancel(self) -> None:
        self._cancelled.set()

    def close(self) -> None:
        self.cancel()
        if self._owns_client:
            self._client.close()


def wait_for_import(import_id: str, **kwargs) -> PollOutcome:
    """Poll an import to completion with a throwaway poller."""

    with ImportStatusPoller(import_id, **kwargs) as poller:
        return poller.run()
