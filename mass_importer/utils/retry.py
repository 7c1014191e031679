"""Async retry utilities for HTTP collaborators."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, cast

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from ..exceptions import RetriesExhaustedError
from ..monitoring.metrics import record_http_retry

logger = logging.getLogger(__name__)


class RetryableStatusError(Exception):
    """Internal exception used to signal retryable HTTP status codes."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"Retryable HTTP status {response.status_code}")
        self.response = response


_RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.TransportError,
    RetryableStatusError,
)


class RetryConfig(BaseModel):
    """Configuration object describing HTTP retry behaviour.

    ``max_retries`` counts retries, not attempts: a request is sent at most
    ``max_retries + 1`` times.
    """

    model_config = ConfigDict(extra="forbid")

    max_retries: int = Field(default=3, ge=0)
    backoff_seconds: float = Field(default=1.0, gt=0)
    max_backoff_seconds: float | None = Field(default=30.0, gt=0)
    jitter: float = Field(default=0.0, ge=0)
    status_forcelist: list[int] = Field(default_factory=lambda: [429, 500, 502, 503, 504])
    respect_retry_after: bool = True

    @field_validator("status_forcelist", mode="before")
    @classmethod
    def _coerce_status_codes(cls, value: Any) -> list[int]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple, set)):
            raise ValueError("status_forcelist must be a sequence of integers")
        coerced: list[int] = []
        for item in value:
            try:
                coerced.append(int(item))
            except (TypeError, ValueError) as exc:
                raise ValueError("status_forcelist entries must be integers") from exc
        return coerced

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry_response(self, response: httpx.Response) -> bool:
        """Return True when the HTTP response warrants a retry."""

        if response.status_code in self.status_forcelist:
            return True
        return response.status_code >= 500 and 500 in self.status_forcelist

    def backoff_for(self, retry_number: int) -> float:
        """Exponential delay before retry ``retry_number`` (1-based)."""

        delay = self.backoff_seconds * (2 ** (max(retry_number, 1) - 1))
        if self.max_backoff_seconds is not None:
            delay = min(delay, self.max_backoff_seconds)
        return delay

    def describe(self) -> dict[str, Any]:
        """Return a serialisable summary useful for logging/metrics."""

        return {
            "max_retries": self.max_retries,
            "backoff_seconds": self.backoff_seconds,
            "max_backoff_seconds": self.max_backoff_seconds,
            "jitter": self.jitter,
            "status_forcelist": sorted(self.status_forcelist),
        }


def _parse_retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    trimmed = value.strip()
    if trimmed == "":
        return None
    if trimmed.isdigit():
        return max(float(trimmed), 0.0)
    try:
        parsed = parsedate_to_datetime(trimmed)
    except (TypeError, ValueError):
        logger.warning("Failed to parse Retry-After header: %s", value)
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    now = datetime.now(timezone.utc)
    delay = (parsed - now).total_seconds()
    return max(delay, 0.0)


def _wait_strategy(config: RetryConfig) -> Callable[[RetryCallState], float]:
    def _wait(retry_state: RetryCallState) -> float:
        delay = config.backoff_for(retry_state.attempt_number)

        outcome = retry_state.outcome
        if config.respect_retry_after and outcome is not None and outcome.failed:
            exception = outcome.exception()
            if isinstance(exception, RetryableStatusError):
                header_delay = _parse_retry_after(exception.response.headers.get("retry-after"))
                if header_delay is not None:
                    delay = header_delay
                    if config.max_backoff_seconds is not None:
                        delay = min(delay, config.max_backoff_seconds)

        if config.jitter > 0:
            delay += random.uniform(0, config.jitter)
        return max(delay, 0.0)

    return _wait


async def execute_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    retry_config: RetryConfig,
    operation: str,
    log: logging.Logger | logging.LoggerAdapter | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """Execute an HTTP request with retries according to the provided configuration.

    Non-retryable responses (any status outside ``status_forcelist``) are returned
    to the caller untouched so it can categorise them.

    Raises:
        RetriesExhaustedError: When every permitted attempt ended in a retryable
            status or a timeout/transport error.
    """

    logger_to_use = log or logger
    if isinstance(logger_to_use, logging.LoggerAdapter):
        sleep_logger = cast(logging.Logger, logger_to_use.logger)
    else:
        sleep_logger = logger_to_use

    def _before_sleep(retry_state: RetryCallState) -> None:
        record_http_retry(operation)
        before_sleep_log(sleep_logger, logging.WARNING)(retry_state)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=_wait_strategy(retry_config),
        retry=retry_if_exception_type(_RETRYABLE_EXCEPTIONS),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=False,
    )

    try:
        async for attempt in retrying:
            with attempt:
                response = await send()
                if retry_config.should_retry_response(response):
                    raise RetryableStatusError(response)
                return response
    except RetryError as exc:
        last = exc.last_attempt.exception()
        attempts = exc.last_attempt.attempt_number
        if isinstance(last, RetryableStatusError):
            raise RetriesExhaustedError(
                f"{operation} failed after {attempts} attempts: "
                f"HTTP {last.response.status_code}",
                attempts=attempts,
                last_status=last.response.status_code,
            ) from last
        raise RetriesExhaustedError(
            f"{operation} failed after {attempts} attempts: {last}",
            attempts=attempts,
        ) from last

    raise RuntimeError("Retry loop exited without producing a response")  # pragma: no cover
