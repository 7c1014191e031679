"""Tests for retry utilities."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest
from pydantic import ValidationError

from mass_importer.exceptions import RetriesExhaustedError
from mass_importer.utils.retry import (
    RetryableStatusError,
    RetryConfig,
    _parse_retry_after,
    execute_with_retry,
)


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _sequence(*responses: httpx.Response | Exception):
    queue = list(responses)
    calls: list[int] = []

    async def _send() -> httpx.Response:
        calls.append(1)
        step = queue.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    return _send, calls


class TestRetryConfig:
    """Test suite for RetryConfig model."""

    def test_defaults(self):
        config = RetryConfig()

        assert config.max_retries == 3
        assert config.max_attempts == 4
        assert config.backoff_seconds == 1.0
        assert config.status_forcelist == [429, 500, 502, 503, 504]
        assert config.respect_retry_after is True

    def test_backoff_grows_exponentially_and_caps(self):
        config = RetryConfig(backoff_seconds=1.0, max_backoff_seconds=5.0)

        assert [config.backoff_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_should_retry_response(self):
        config = RetryConfig(status_forcelist=[429])

        assert config.should_retry_response(httpx.Response(429))
        assert not config.should_retry_response(httpx.Response(503))
        assert not config.should_retry_response(httpx.Response(400))

    def test_status_forcelist_coercion(self):
        assert RetryConfig(status_forcelist=("429", 503)).status_forcelist == [429, 503]
        assert RetryConfig(status_forcelist=None).status_forcelist == []

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_retries": -1}, {"backoff_seconds": 0}, {"jitter": -0.1}, {"status_forcelist": "500"}],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            RetryConfig(**kwargs)


class TestParseRetryAfter:
    """Retry-After header parsing."""

    def test_seconds(self):
        assert _parse_retry_after("7") == 7.0

    def test_missing_or_blank(self):
        assert _parse_retry_after(None) is None
        assert _parse_retry_after("  ") is None

    def test_http_date(self):
        future = datetime.now(timezone.utc) + timedelta(seconds=30)
        delay = _parse_retry_after(format_datetime(future, usegmt=True))
        assert 25 <= delay <= 31

    def test_garbage(self):
        assert _parse_retry_after("soon") is None


class TestRetryableStatusError:
    def test_message(self):
        error = RetryableStatusError(httpx.Response(503))
        assert "Retryable HTTP status 503" in str(error)


@pytest.mark.asyncio
class TestExecuteWithRetry:
    """Retry loop behaviour."""

    async def test_three_rate_limits_then_success(self):
        sleep = _RecordingSleep()
        send, calls = _sequence(
            httpx.Response(429), httpx.Response(429), httpx.Response(429), httpx.Response(201)
        )

        response = await execute_with_retry(
            send, retry_config=RetryConfig(max_retries=3), operation="submission", sleep=sleep
        )

        assert response.status_code == 201
        assert len(calls) == 4
        assert sleep.delays == [1.0, 2.0, 4.0]
        assert sleep.delays == sorted(sleep.delays)

    async def test_exhaustion_never_exceeds_max_retries(self):
        sleep = _RecordingSleep()
        send, calls = _sequence(*[httpx.Response(503) for _ in range(10)])

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await execute_with_retry(
                send, retry_config=RetryConfig(max_retries=2), operation="submission", sleep=sleep
            )

        assert len(calls) == 3
        assert len(sleep.delays) == 2
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_status == 503

    async def test_non_retryable_status_returned_immediately(self):
        sleep = _RecordingSleep()
        send, calls = _sequence(httpx.Response(422))

        response = await execute_with_retry(
            send, retry_config=RetryConfig(), operation="submission", sleep=sleep
        )

        assert response.status_code == 422
        assert len(calls) == 1
        assert sleep.delays == []

    async def test_transport_errors_are_retried(self):
        sleep = _RecordingSleep()
        send, calls = _sequence(httpx.ConnectError("refused"), httpx.Response(200))

        response = await execute_with_retry(
            send, retry_config=RetryConfig(), operation="corpus", sleep=sleep
        )

        assert response.status_code == 200
        assert len(calls) == 2

    async def test_transport_exhaustion_has_no_status(self):
        send, _ = _sequence(httpx.ReadTimeout("slow"), httpx.ReadTimeout("slow"))

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await execute_with_retry(
                send,
                retry_config=RetryConfig(max_retries=1),
                operation="corpus",
                sleep=_RecordingSleep(),
            )

        assert exc_info.value.last_status is None

    async def test_retry_after_header_overrides_backoff(self):
        sleep = _RecordingSleep()
        send, _ = _sequence(httpx.Response(429, headers={"Retry-After": "3"}), httpx.Response(200))

        await execute_with_retry(send, retry_config=RetryConfig(), operation="submission", sleep=sleep)

        assert sleep.delays == [3.0]

    async def test_retry_after_ignored_when_disabled(self):
        sleep = _RecordingSleep()
        send, _ = _sequence(httpx.Response(429, headers={"Retry-After": "3"}), httpx.Response(200))

        await execute_with_retry(
            send,
            retry_config=RetryConfig(respect_retry_after=False),
            operation="submission",
            sleep=sleep,
        )

        assert sleep.delays == [1.0]

    async def test_other_exceptions_propagate(self):
        send, calls = _sequence(RuntimeError("bug"))

        with pytest.raises(RuntimeError):
            await execute_with_retry(send, retry_config=RetryConfig(), operation="x", sleep=_RecordingSleep())

        assert len(calls) == 1
