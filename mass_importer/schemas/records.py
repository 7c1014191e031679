"""Pydantic schemas for source records and stored corpus entities."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LifecycleStatus(str, Enum):
    """Lifecycle status reported by the source system."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    REMOVED = "removed"
    UNKNOWN = "unknown"


class PhotoReference(BaseModel):
    """A remote photo attached to a source record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., min_length=1, description="Remote photo URL")
    caption: str | None = Field(None, description="Optional caption")
    credit: str | None = Field(None, description="Optional photographer credit")

    @field_validator("url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("photo url must use http or https")
        return value


class LocationDetails(BaseModel):
    """Human readable location fields produced by reverse geocoding."""

    model_config = ConfigDict(frozen=True)

    display_name: str | None = None
    country: str | None = None
    country_code: str | None = None
    state: str | None = None
    city: str | None = None
    suburb: str | None = None
    neighbourhood: str | None = None

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class RawImportRecord(BaseModel):
    """One source-provided artwork to import.

    Records are immutable; pipeline stages that enrich a record return a copy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    external_id: str = Field(..., min_length=1, description="Identifier within the source")
    external_id_generated: bool = Field(
        False, description="True when the importer derived the id from the item position"
    )
    source: str = Field(..., min_length=1, description="Source name (provenance)")
    lat: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")
    title: str = Field(..., min_length=1, max_length=200, description="Artwork title")
    description: str | None = Field(None, max_length=10_000)
    artists: list[str] = Field(default_factory=list, description="Artist names")
    material: str | None = None
    artwork_type: str | None = None
    installation_year: str | None = None
    address: str | None = None
    neighborhood: str | None = None
    site_name: str | None = None
    photos: list[PhotoReference] = Field(default_factory=list)
    registry_id: str | None = Field(None, description="Optional external registry ID")
    tags: dict[str, str] = Field(default_factory=dict)
    status: LifecycleStatus = LifecycleStatus.UNKNOWN
    location: LocationDetails | None = None

    @field_validator("artists", mode="before")
    @classmethod
    def _coerce_artists(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("artists must be a string or a list of strings")
        names = [str(item).strip() for item in value if item is not None]
        return [name for name in names if name]

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("tags must be a mapping of key/value pairs")
        coerced: dict[str, str] = {}
        for key, item in value.items():
            if item is None:
                continue
            if isinstance(item, bool):
                coerced[str(key)] = "yes" if item else "no"
            elif isinstance(item, (str, int, float)):
                coerced[str(key)] = str(item)
            else:
                raise ValueError(f"tag '{key}' must be a scalar value")
        return coerced

    @field_validator("registry_id", "installation_year", mode="before")
    @classmethod
    def _stringify_identifier(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def reference_ids(self) -> set[str]:
        """Identifiers usable for exact reference matching."""

        ids: set[str] = set()
        if not self.external_id_generated:
            ids.update({self.external_id, f"{self.source}:{self.external_id}"})
        if self.registry_id:
            ids.add(self.registry_id)
            ids.add(f"{self.source}:{self.registry_id}")
        return ids


class CandidateEntity(BaseModel):
    """An existing stored artwork or artist considered as a duplicate target."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: Literal["artwork", "artist"] = "artwork"
    title: str = ""
    lat: float | None = None
    lon: float | None = None
    artists: list[str] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)
    reference_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime(1970, 1, 1, tzinfo=timezone.utc)
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {str(key): str(item) for key, item in value.items() if item is not None}

    @field_validator("created_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None
