"""Reverse geocoding against a Nominatim-compatible service."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from ..exceptions import GeocodingError, RetriesExhaustedError
from ..schemas.records import LocationDetails
from ..utils.logging import setup_logger
from ..utils.retry import RetryConfig, execute_with_retry
from .base import BaseApiClient

logger = setup_logger(__name__, context={"stage": "enhancing"})


class Geocoder(Protocol):
    async def reverse(self, lat: float, lon: float) -> LocationDetails: ...


class NominatimGeocoder(BaseApiClient):
    """Reverse lookups via ``/reverse?format=jsonv2``.

    Nominatim's usage policy requires an identifying User-Agent. Throttling
    (429) and transient 5xx responses are retried with a short budget; the
    final failure is reported as :class:`GeocodingError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        user_agent: str,
        timeout: float = 10.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            headers={"User-Agent": user_agent},
            transport=transport,
        )
        self.retry_config = retry_config or RetryConfig(max_retries=2, max_backoff_seconds=10.0)
        self._sleep = sleep

    async def reverse(self, lat: float, lon: float) -> LocationDetails:
        params = {"format": "jsonv2", "lat": f"{lat:.6f}", "lon": f"{lon:.6f}", "zoom": 18}

        async def _send() -> httpx.Response:
            return await self.http.get("/reverse", params=params)

        try:
            response = await execute_with_retry(
                _send,
                retry_config=self.retry_config,
                operation="geocoding",
                log=logger,
                sleep=self._sleep,
            )
        except (RetriesExhaustedError, httpx.HTTPError) as exc:
            raise GeocodingError(f"Reverse geocoding request failed: {exc}") from exc

        if response.status_code != 200:
            raise GeocodingError(f"Reverse geocoding returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise GeocodingError("Reverse geocoding returned invalid JSON") from exc

        if not isinstance(payload, dict) or "error" in payload:
            raise GeocodingError(f"Reverse geocoding found no result for ({lat}, {lon})")
        return location_from_nominatim(payload)


def location_from_nominatim(payload: dict[str, Any]) -> LocationDetails:
    address = payload.get("address") or {}
    city = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("municipality")
    )
    return LocationDetails(
        display_name=payload.get("display_name"),
        country=address.get("country"),
        country_code=(address.get("country_code") or None),
        state=address.get("state") or address.get("province"),
        city=city,
        suburb=address.get("suburb"),
        neighbourhood=address.get("neighbourhood") or address.get("quarter"),
    )
