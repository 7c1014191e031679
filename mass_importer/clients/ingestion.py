"""Submission of finalized records to the catalogue ingestion endpoint."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..exceptions import AuthenticationError, RetriesExhaustedError, SubmissionValidationError
from ..utils.logging import setup_logger
from ..utils.retry import RetryConfig, execute_with_retry
from .base import BaseApiClient, unwrap_data

logger = setup_logger(__name__, context={"stage": "submitting"})


@dataclass(slots=True)
class SubmissionResult:
    """Successful (or server-deduplicated) submission of one record."""

    artwork_id: str | None
    status_code: int
    duplicate: bool = False
    dry_run: bool = False


class IngestionClient(Protocol):
    async def submit(self, payload: dict[str, Any]) -> SubmissionResult: ...


class HttpIngestionClient(BaseApiClient):
    """POSTs one record at a time and categorises the response.

    - 2xx: success
    - 409: the server already holds this record (duplicate, not a failure)
    - 400/422 and other non-retryable 4xx: :class:`SubmissionValidationError`
    - 401/403: :class:`AuthenticationError` (run fatal)
    - 429/5xx/timeouts: retried, then :class:`RetriesExhaustedError`
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        endpoint_path: str = "/api/mass-import/artworks",
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(base_url, token=token, timeout=timeout, transport=transport)
        self.endpoint_path = endpoint_path
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep

    async def submit(self, payload: dict[str, Any]) -> SubmissionResult:
        async def _send() -> httpx.Response:
            return await self.http.post(self.endpoint_path, json=payload)

        response = await execute_with_retry(
            _send,
            retry_config=self.retry_config,
            operation="submission",
            log=logger,
            sleep=self._sleep,
        )
        return self._categorise(response)

    @staticmethod
    def _categorise(response: httpx.Response) -> SubmissionResult:
        status = response.status_code
        if 200 <= status < 300:
            return SubmissionResult(
                artwork_id=_extract_id(response),
                status_code=status,
            )
        if status == 409:
            return SubmissionResult(
                artwork_id=_extract_id(response),
                status_code=status,
                duplicate=True,
            )
        if status in (401, 403):
            raise AuthenticationError(
                f"Ingestion endpoint rejected credentials (HTTP {status})"
            )
        if status == 429 or status >= 500:
            # Reached only when the status is not in the retry forcelist.
            raise RetriesExhaustedError(
                f"Ingestion endpoint returned HTTP {status}", attempts=1, last_status=status
            )
        raise SubmissionValidationError(
            f"Ingestion endpoint rejected record (HTTP {status}): {_error_detail(response)}",
            status_code=status,
        )


class DryRunIngestionClient:
    """Ingestion stand-in for dry runs: accepts everything, writes nothing."""

    def __init__(self) -> None:
        self.submitted: list[dict[str, Any]] = []

    async def submit(self, payload: dict[str, Any]) -> SubmissionResult:
        self.submitted.append(payload)
        return SubmissionResult(
            artwork_id=f"dry-run-{uuid.uuid4().hex[:12]}",
            status_code=200,
            dry_run=True,
        )


def _extract_id(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    data = unwrap_data(payload)
    if isinstance(data, dict):
        value = data.get("id") or data.get("artwork_id")
        return str(value) if value is not None else None
    return None


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:300] or response.reason_phrase
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            if payload.get(key):
                return str(payload[key])
    return str(payload)[:300]
