"""Base importer abstract class for all source formats."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError, InputLoadError, RecordValidationError
from ..schemas.records import RawImportRecord
from ..utils.file_io import read_text_file
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"stage": "loading"})

# Containers a JSON object may use to hold its record array.
RECORD_CONTAINER_KEYS: tuple[str, ...] = ("records", "data", "features")


class ImporterOptions(BaseModel):
    """Options shared by every importer."""

    model_config = ConfigDict(extra="forbid")

    source: str | None = Field(None, description="Source name recorded on every record")
    encoding: str = "utf-8"
    max_bytes: int | None = Field(default=256 * 1024 * 1024, ge=1)


@dataclass(slots=True)
class LoadedEntry:
    """One input item after mapping: a valid record or a validation error."""

    index: int
    source_id: str
    record: RawImportRecord | None = None
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.record is not None


@dataclass(slots=True)
class ImportBatch:
    importer: str
    source: str
    entries: list[LoadedEntry] = field(default_factory=list)

    @property
    def records(self) -> list[RawImportRecord]:
        return [entry.record for entry in self.entries if entry.record is not None]

    @property
    def invalid(self) -> list[LoadedEntry]:
        return [entry for entry in self.entries if entry.record is None]

    def sliced(self, offset: int = 0, limit: int | None = None) -> ImportBatch:
        """Return the ``offset``/``limit`` window, re-indexed from zero."""

        end = None if limit is None else offset + limit
        window = self.entries[offset:end]
        return ImportBatch(
            importer=self.importer,
            source=self.source,
            entries=[
                LoadedEntry(index=i, source_id=e.source_id, record=e.record, error=e.error)
                for i, e in enumerate(window)
            ],
        )


class BaseImporter(ABC):
    """
    Abstract base class for source importers.

    Each importer maps one raw source item into the fields of a
    :class:`RawImportRecord` (``map_data``), derives its stable identifier
    (``generate_id``) and validates the result (``validate``).
    """

    name: ClassVar[str] = "base"
    default_source: ClassVar[str] = "unknown"
    options_model: ClassVar[type[ImporterOptions]] = ImporterOptions

    def __init__(self, options: dict[str, Any] | None = None, *, source: str | None = None):
        try:
            self.options = self.options_model.model_validate(options or {})
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid options for importer '{self.name}': {exc}") from exc
        self.source = source or self.options.source or self.default_source

    @abstractmethod
    def map_data(self, item: dict[str, Any]) -> dict[str, Any]:
        """Map one raw source item to RawImportRecord fields."""

    @abstractmethod
    def generate_id(self, item: dict[str, Any], index: int) -> str | None:
        """Return the stable source identifier of ``item``, or ``None`` if it has none."""

    def fallback_id(self, index: int) -> str:
        """Positional identifier for items without one of their own."""

        return f"{self.source}-{index}"

    def extract_items(self, payload: Any) -> list[Any]:
        """Locate the record array inside a decoded input document."""

        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in RECORD_CONTAINER_KEYS:
                value = payload.get(key)
                if isinstance(value, list):
                    return value
            raise InputLoadError(
                "Input object has no record array "
                f"(expected one of: {', '.join(RECORD_CONTAINER_KEYS)})"
            )
        raise InputLoadError(f"Unsupported input top level: {type(payload).__name__}")

    def validate(self, mapped: dict[str, Any], *, index: int) -> RawImportRecord:
        """Build a RawImportRecord, converting schema errors to RecordValidationError."""

        try:
            return RawImportRecord.model_validate(mapped)
        except PydanticValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}"
                for error in exc.errors()
            )
            raise RecordValidationError(
                problems, index=index, source_id=mapped.get("external_id")
            ) from exc

    async def load(self, path: str | Path) -> ImportBatch:
        """Read, decode and map the input file at ``path``.

        Raises:
            InputLoadError: If the file cannot be read or is not a supported document.
        """
        text = await asyncio.to_thread(
            read_text_file,
            path,
            max_bytes=self.options.max_bytes,
            encoding=self.options.encoding,
        )
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InputLoadError(f"Input file {path} is not valid JSON: {exc}") from exc
        return self.parse(payload)

    def parse(self, payload: Any) -> ImportBatch:
        items = self.extract_items(payload)
        batch = ImportBatch(importer=self.name, source=self.source)
        for index, item in enumerate(items):
            batch.entries.append(self._load_entry(item, index))

        logger.info(
            "Loaded %d items (%d invalid) with importer '%s'",
            len(batch.entries),
            len(batch.invalid),
            self.name,
        )
        return batch

    def _load_entry(self, item: Any, index: int) -> LoadedEntry:
        if not isinstance(item, dict):
            return LoadedEntry(
                index=index,
                source_id=f"item-{index}",
                error=f"item is a {type(item).__name__}, expected an object",
            )

        source_id = self.fallback_id(index)
        try:
            own_id = self.generate_id(item, index)
            if own_id is not None:
                source_id = own_id
            mapped = self.map_data(item)
            mapped.setdefault("external_id", source_id)
            # Positional ids are unstable across files and never used for reference matching.
            mapped.setdefault("external_id_generated", own_id is None)
            mapped.setdefault("source", self.source)
            record = self.validate(mapped, index=index)
        except RecordValidationError as exc:
            return LoadedEntry(index=index, source_id=source_id, error=str(exc))
        except (TypeError, ValueError, KeyError, AttributeError) as exc:
            return LoadedEntry(index=index, source_id=source_id, error=f"cannot map item: {exc}")
        return LoadedEntry(index=index, source_id=source_id, record=record)


def extract_coordinates(item: dict[str, Any]) -> tuple[float | None, float | None]:
    """Find a lat/lon pair in the common shapes used by open-data exports.

    Checks a GeoJSON ``geometry`` point, ``geo_point_2d``, ``lat``/``lon`` and
    ``latitude``/``longitude`` (also inside ``properties``), in that order.
    """

    geometry = item.get("geometry")
    geom = item.get("geom")
    if not geometry and isinstance(geom, dict):
        geometry = geom.get("geometry")
    if isinstance(geometry, dict) and geometry.get("type") == "Point":
        coordinates = geometry.get("coordinates") or []
        if len(coordinates) >= 2:
            return _as_float(coordinates[1]), _as_float(coordinates[0])

    for container in (item, item.get("properties") or {}):
        if not isinstance(container, dict):
            continue
        point = container.get("geo_point_2d")
        if isinstance(point, dict):
            return _as_float(point.get("lat")), _as_float(point.get("lon"))
        for lat_key, lon_key in (("lat", "lon"), ("lat", "lng"), ("latitude", "longitude")):
            if lat_key in container and lon_key in container:
                return _as_float(container[lat_key]), _as_float(container[lon_key])
    return None, None


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def photo_entries(value: Any) -> list[dict[str, Any]]:
    """Normalise photo references given as URLs, objects or lists of either."""

    if value is None:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    photos: list[dict[str, Any]] = []
    for entry in value:
        if isinstance(entry, str) and entry.strip():
            photos.append({"url": entry.strip()})
        elif isinstance(entry, dict) and entry.get("url"):
            photos.append(
                {
                    "url": str(entry["url"]).strip(),
                    "caption": entry.get("caption"),
                    "credit": entry.get("credit"),
                }
            )
    return photos
