"""Shared fixtures: in-memory collaborators and isolated settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from mass_importer.checkpoint.store import CheckpointStore
from mass_importer.reporting.generator import ReportGenerator
from mass_importer.schemas.records import CandidateEntity, RawImportRecord
from mass_importer.schemas.run_config import ImportRunConfig
from mass_importer.testing import InMemoryCorpus, ScriptedIngestion
from mass_importer.utils.config import get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Point every on-disk location at a temporary directory."""

    base = tmp_path_factory.mktemp("mass-import")
    monkeypatch.setenv("MASS_IMPORT_CHECKPOINT_DIR", str(base / "checkpoints"))
    monkeypatch.setenv("MASS_IMPORT_REPORT_DIR", str(base / "reports"))
    monkeypatch.setenv("MASS_IMPORT_PHOTO_CACHE_DIR", str(base / "photos"))
    monkeypatch.setenv("MASS_IMPORT_LOCATION_CACHE_PATH", str(base / "location-cache.json"))

    get_settings(reload=True)
    yield
    get_settings(reload=True)


@pytest.fixture
def make_record():
    """Factory for valid import records with overridable fields."""

    def _make(**overrides: Any) -> RawImportRecord:
        data: dict[str, Any] = {
            "external_id": "osm-1",
            "source": "osm",
            "lat": 49.2827,
            "lon": -123.1207,
            "title": "Angel of Victory",
        }
        data.update(overrides)
        return RawImportRecord.model_validate(data)

    return _make


@pytest.fixture
def make_candidate():
    def _make(candidate_id: str = "art-1", **overrides: Any) -> CandidateEntity:
        data: dict[str, Any] = {
            "id": candidate_id,
            "title": "Angel of Victory",
            "lat": 49.2827,
            "lon": -123.1207,
        }
        data.update(overrides)
        return CandidateEntity.model_validate(data)

    return _make


@pytest.fixture
def corpus() -> InMemoryCorpus:
    return InMemoryCorpus()


@pytest.fixture
def ingestion() -> ScriptedIngestion:
    return ScriptedIngestion()


@pytest.fixture
def checkpoint_store(tmp_path: Path) -> CheckpointStore:
    return CheckpointStore(tmp_path / "checkpoints")


@pytest.fixture
def report_generator(tmp_path: Path) -> ReportGenerator:
    return ReportGenerator(tmp_path / "reports")


@pytest.fixture
def run_config() -> ImportRunConfig:
    """Fast configuration: no geocoding, no photos, no inter-item delay."""

    return ImportRunConfig.model_validate(
        {
            "importer": "geojson",
            "geocoding": {"enabled": False},
            "photos": {"enabled": False},
        }
    )


@pytest.fixture
def write_json(tmp_path: Path):
    """Write ``payload`` as JSON under tmp_path and return the path."""

    def _write(payload: Any, name: str = "input.geojson") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
