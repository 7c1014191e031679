"""Shared httpx plumbing for API collaborators."""

from __future__ import annotations

from typing import Any

import httpx

from ..utils.logging import setup_logger

logger = setup_logger(__name__)


class BaseApiClient:
    """Owns one ``httpx.AsyncClient`` bound to an API base URL.

    Use as an async context manager, or call :meth:`aclose` explicitly.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        if token:
            request_headers.setdefault("Authorization", f"Bearer {token}")

        client_kwargs: dict[str, Any] = {
            "base_url": base_url,
            "headers": request_headers,
            "timeout": timeout,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> BaseApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def unwrap_data(payload: Any, key: str | None = None) -> Any:
    """Return ``payload['data'][key]`` tolerating flat responses."""

    data = payload.get("data", payload) if isinstance(payload, dict) else payload
    if key is None:
        return data
    if isinstance(data, dict):
        return data.get(key, [])
    return data
