"""Pydantic schemas for per-run import configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.retry import RetryConfig
from .outcomes import SimilarityWeights


class MatchingConfig(BaseModel):
    """Duplicate detection options."""

    model_config = ConfigDict(extra="forbid")

    weights: SimilarityWeights = Field(default_factory=SimilarityWeights)
    radius_m: float = Field(default=100.0, gt=0)
    max_candidates: int = Field(default=50, ge=1)
    high_threshold: float = Field(default=0.80, ge=0, le=1)
    warn_threshold: float = Field(default=0.65, ge=0, le=1)
    possible_duplicate_action: Literal["create", "reject"] = "create"
    merge_tags_on_duplicate: bool = True
    query_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _check_threshold_order(self) -> MatchingConfig:
        if self.warn_threshold > self.high_threshold:
            raise ValueError("warn_threshold must not exceed high_threshold")
        return self


class ArtistConfig(BaseModel):
    """Artist resolution options."""

    model_config = ConfigDict(extra="forbid")

    match_threshold: float = Field(default=0.95, ge=0, le=1)
    create_missing: bool = True
    fail_on_error: bool = False
    search_limit: int = Field(default=10, ge=1)


class PhotoFetchPolicy(BaseModel):
    """Download, retry and validation policy for photos."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    max_retries: int = Field(default=3, ge=0)
    timeout_seconds: float = Field(default=10.0, gt=0)
    backoff_seconds: float = Field(default=0.5, gt=0)
    max_backoff_seconds: float = Field(default=8.0, gt=0)
    max_bytes: int = Field(default=15 * 1024 * 1024, ge=1)
    fail_record_on_photo_error: bool = False

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            max_backoff_seconds=self.max_backoff_seconds,
        )


class IngestionConfig(BaseModel):
    """Submission endpoint options."""

    model_config = ConfigDict(extra="forbid")

    endpoint_path: str = "/api/mass-import/artworks"
    timeout_seconds: float = Field(default=30.0, gt=0)
    retry: RetryConfig = Field(default_factory=RetryConfig)


class GeocodingConfig(BaseModel):
    """Reverse geocoding (location enhancement) options."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    min_interval_seconds: float = Field(default=1.0, ge=0)
    timeout_seconds: float = Field(default=10.0, gt=0)
    cache_size: int = Field(default=10_000, ge=1)
    precision: int = Field(default=4, ge=0, le=8)
    retry: RetryConfig = Field(
        default_factory=lambda: RetryConfig(max_retries=2, max_backoff_seconds=10.0)
    )


class Bounds(BaseModel):
    """Optional geographic filter applied to loaded records."""

    model_config = ConfigDict(extra="forbid")

    north: float = Field(..., ge=-90, le=90)
    south: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)
    west: float = Field(..., ge=-180, le=180)

    @model_validator(mode="after")
    def _check_order(self) -> Bounds:
        if self.south > self.north:
            raise ValueError("bounds.south must be <= bounds.north")
        return self

    def contains(self, lat: float, lon: float) -> bool:
        if not self.south <= lat <= self.north:
            return False
        if self.west <= self.east:
            return self.west <= lon <= self.east
        # Box crossing the antimeridian.
        return lon >= self.west or lon <= self.east


class RunOptions(BaseModel):
    """Run-level behaviour switches."""

    model_config = ConfigDict(extra="forbid")

    dry_run: bool = False
    strict_validation: bool = True
    inter_item_delay_seconds: float = Field(default=0.0, ge=0)
    offset: int = Field(default=0, ge=0)
    limit: int | None = Field(default=None, ge=1)
    bounds: Bounds | None = None


class ImportRunConfig(BaseModel):
    """Validated configuration for one import run."""

    model_config = ConfigDict(extra="forbid")

    importer: str = "geojson"
    importer_options: dict[str, Any] = Field(default_factory=dict)
    source: str | None = Field(None, description="Source name applied when records lack one")
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    artists: ArtistConfig = Field(default_factory=ArtistConfig)
    photos: PhotoFetchPolicy = Field(default_factory=PhotoFetchPolicy)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    run: RunOptions = Field(default_factory=RunOptions)
    report_formats: list[str] = Field(default_factory=lambda: ["json", "text"])

    @field_validator("importer")
    @classmethod
    def _normalize_importer(cls, value: str) -> str:
        return value.strip().lower()
