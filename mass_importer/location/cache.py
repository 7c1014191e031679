"""Coordinate-keyed cache of reverse geocoding results."""

from __future__ import annotations

import json
from pathlib import Path

from cachetools import LRUCache
from pydantic import ValidationError as PydanticValidationError

from ..schemas.records import LocationDetails
from ..utils.file_io import atomic_write_text
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"stage": "enhancing"})

CoordinateKey = tuple[float, float]


def coordinate_key(lat: float, lon: float, *, precision: int = 4) -> CoordinateKey:
    """Round coordinates so nearby points share a cache entry (4 places is ~11 m)."""

    return (round(lat, precision), round(lon, precision))


def _format_key(key: CoordinateKey) -> str:
    return f"{key[0]},{key[1]}"


def _parse_key(raw: str) -> CoordinateKey:
    lat, lon = raw.split(",", 1)
    return (float(lat), float(lon))


class LocationCache:
    """In-memory LRU of lookups, optionally persisted to a JSON file."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        max_size: int = 10_000,
        precision: int = 4,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.precision = precision
        self._entries: LRUCache[CoordinateKey, LocationDetails] = LRUCache(maxsize=max_size)
        self._dirty = False
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            for key, value in raw.items():
                self._entries[_parse_key(key)] = LocationDetails.model_validate(value)
        except (OSError, ValueError, AttributeError, PydanticValidationError) as exc:
            logger.warning("Ignoring unreadable location cache %s: %s", self.path, exc)
            self._entries.clear()

    def get(self, lat: float, lon: float) -> LocationDetails | None:
        return self._entries.get(coordinate_key(lat, lon, precision=self.precision))

    def put(self, lat: float, lon: float, details: LocationDetails) -> None:
        self._entries[coordinate_key(lat, lon, precision=self.precision)] = details
        self._dirty = True

    def flush(self) -> None:
        """Write the cache to disk if it has changed since the last flush."""

        if self.path is None or not self._dirty:
            return
        payload = {
            _format_key(key): details.model_dump(exclude_none=True)
            for key, details in self._entries.items()
        }
        atomic_write_text(self.path, json.dumps(payload, indent=2, sort_keys=True))
        self._dirty = False

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, coordinates: object) -> bool:
        if not isinstance(coordinates, tuple) or len(coordinates) != 2:
            return False
        lat, lon = coordinates
        return coordinate_key(lat, lon, precision=self.precision) in self._entries
