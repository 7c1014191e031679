"""Tests for the HTTP ingestion client."""

from __future__ import annotations

import json

import httpx
import pytest

from mass_importer.clients.ingestion import DryRunIngestionClient, HttpIngestionClient
from mass_importer.exceptions import (
    AuthenticationError,
    RetriesExhaustedError,
    SubmissionValidationError,
)
from mass_importer.utils.retry import RetryConfig


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _client(handler, *, sleep=None, retry_config=None) -> HttpIngestionClient:
    return HttpIngestionClient(
        "https://catalogue.test",
        token="secret-token",
        retry_config=retry_config or RetryConfig(max_retries=3),
        transport=httpx.MockTransport(handler),
        sleep=sleep or _RecordingSleep(),
    )


@pytest.mark.asyncio
class TestHttpIngestionClient:
    """Response categorisation and retries."""

    async def test_rate_limited_three_times_then_created(self):
        """429 x3 then 201: three retries with growing delays, then success."""
        statuses = [429, 429, 429, 201]
        sleep = _RecordingSleep()

        def handler(request: httpx.Request) -> httpx.Response:
            status = statuses.pop(0)
            if status == 201:
                return httpx.Response(201, json={"data": {"id": "artwork-77"}})
            return httpx.Response(status)

        async with _client(handler, sleep=sleep) as client:
            result = await client.submit({"title": "Angel of Victory"})

        assert result.artwork_id == "artwork-77"
        assert result.status_code == 201
        assert not result.duplicate
        assert len(sleep.delays) == 3
        assert sleep.delays[0] < sleep.delays[1] < sleep.delays[2]
        assert statuses == []

    async def test_request_shape(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"artwork_id": 12})

        async with _client(handler) as client:
            result = await client.submit({"title": "x"})

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/mass-import/artworks"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert json.loads(request.content) == {"title": "x"}
        assert result.artwork_id == "12"

    async def test_conflict_is_duplicate(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"data": {"id": "artwork-3"}})

        async with _client(handler) as client:
            result = await client.submit({})

        assert result.duplicate
        assert result.artwork_id == "artwork-3"

    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failure_is_fatal(self, status):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status)

        async with _client(handler) as client:
            with pytest.raises(AuthenticationError):
                await client.submit({})

    async def test_validation_rejection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "title is required"})

        async with _client(handler) as client:
            with pytest.raises(SubmissionValidationError) as exc_info:
                await client.submit({})

        assert exc_info.value.status_code == 422
        assert "title is required" in str(exc_info.value)

    async def test_server_errors_exhaust_retries(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(502)

        async with _client(handler, retry_config=RetryConfig(max_retries=1)) as client:
            with pytest.raises(RetriesExhaustedError):
                await client.submit({})

        assert calls == 2

    async def test_unlisted_server_error_is_not_retried(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with _client(handler, retry_config=RetryConfig(status_forcelist=[429])) as client:
            with pytest.raises(RetriesExhaustedError) as exc_info:
                await client.submit({})

        assert exc_info.value.attempts == 1


@pytest.mark.asyncio
async def test_dry_run_client_accepts_everything():
    client = DryRunIngestionClient()

    result = await client.submit({"title": "x"})

    assert result.dry_run
    assert result.artwork_id.startswith("dry-run-")
    assert client.submitted == [{"title": "x"}]
