"""Attach reverse-geocoded location details to import records."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..clients.geocoding import Geocoder
from ..exceptions import GeocodingError
from ..schemas.records import LocationDetails, RawImportRecord
from ..utils.logging import setup_logger
from .cache import LocationCache

logger = setup_logger(__name__, context={"stage": "enhancing"})


@dataclass(slots=True)
class EnhancementResult:
    record: RawImportRecord
    from_cache: bool = False
    warnings: list[str] = field(default_factory=list)


class LocationEnhancer:
    """Cache-first reverse geocoding with a minimum interval between requests.

    Failures never stop an item: the record is returned unchanged with a warning.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        cache: LocationCache,
        *,
        min_interval_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.geocoder = geocoder
        self.cache = cache
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_request_at: float | None = None
        self.requests_made = 0

    async def enhance(self, record: RawImportRecord) -> EnhancementResult:
        if record.location is not None and not record.location.is_empty():
            return EnhancementResult(record=record, from_cache=True)

        cached = self.cache.get(record.lat, record.lon)
        if cached is not None:
            return EnhancementResult(record=_with_location(record, cached), from_cache=True)

        await self._respect_rate_limit()
        try:
            details = await self.geocoder.reverse(record.lat, record.lon)
        except GeocodingError as exc:
            message = f"Location enhancement failed: {exc}"
            logger.warning(message, extra={"source_id": record.external_id, "status": "degraded"})
            return EnhancementResult(record=record, warnings=[message])

        self.cache.put(record.lat, record.lon, details)
        return EnhancementResult(record=_with_location(record, details))

    async def _respect_rate_limit(self) -> None:
        now = self._clock()
        if self._last_request_at is not None:
            wait = self.min_interval_seconds - (now - self._last_request_at)
            if wait > 0:
                logger.debug("Waiting %.2fs before next geocoding request", wait)
                await self._sleep(wait)
                now = self._clock()
        self._last_request_at = now
        self.requests_made += 1

    def flush(self) -> None:
        self.cache.flush()


def _with_location(record: RawImportRecord, details: LocationDetails) -> RawImportRecord:
    update: dict[str, object] = {"location": details}
    if not record.neighborhood and details.neighbourhood:
        update["neighborhood"] = details.neighbourhood
    return record.model_copy(update=update)
