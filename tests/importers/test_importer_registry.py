"""Tests for the importer registry and base importer behaviour."""

from __future__ import annotations

import json
from typing import Any

import pytest

from mass_importer.exceptions import ConfigurationError, ImporterNotFoundError, InputLoadError
from mass_importer.importers import (
    BaseImporter,
    GeoJSONImporter,
    JSONArrayImporter,
    VancouverImporter,
    get_importer,
    list_importers,
    register_importer,
)
from mass_importer.importers.base import extract_coordinates, photo_entries


class TestImporterRegistry:
    """Test suite for importer registration and lookup."""

    def test_builtin_importers(self):
        assert list_importers() == ["geojson", "json", "vancouver"]
        assert get_importer("geojson") is GeoJSONImporter
        assert get_importer("JSON") is JSONArrayImporter
        assert get_importer("vancouver") is VancouverImporter

    def test_unknown_importer_lists_available(self):
        with pytest.raises(ImporterNotFoundError) as exc_info:
            get_importer("csv")

        message = str(exc_info.value)
        assert "Importer 'csv' is not registered" in message
        assert "geojson, json, vancouver" in message

    def test_register_custom_importer(self, monkeypatch):
        from mass_importer import importers

        monkeypatch.setattr(importers, "_IMPORTER_REGISTRY", dict(importers._IMPORTER_REGISTRY))

        class CustomImporter(JSONArrayImporter):
            name = "custom"

        register_importer("Custom", CustomImporter)

        assert get_importer("custom") is CustomImporter
        assert "custom" in list_importers()


class TestBaseImporter:
    """Shared loading and validation."""

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError, match="Invalid options for importer 'geojson'"):
            GeoJSONImporter({"id_field": "ref"})

    def test_source_precedence(self):
        assert JSONArrayImporter().source == "json-import"
        assert JSONArrayImporter({"source": "from-options"}).source == "from-options"
        assert JSONArrayImporter({"source": "from-options"}, source="explicit").source == "explicit"

    @pytest.mark.parametrize(
        "payload",
        [
            [{"id": 1}],
            {"records": [{"id": 1}]},
            {"data": [{"id": 1}]},
            {"features": [{"id": 1}]},
        ],
    )
    def test_record_containers(self, payload):
        assert JSONArrayImporter().extract_items(payload) == [{"id": 1}]

    @pytest.mark.parametrize("payload", [{"items": []}, "text", 42])
    def test_unsupported_documents(self, payload):
        with pytest.raises(InputLoadError):
            JSONArrayImporter().extract_items(payload)

    def test_non_object_items_become_invalid_entries(self):
        batch = JSONArrayImporter().parse(["not a record", 3])

        assert [entry.source_id for entry in batch.entries] == ["item-0", "item-1"]
        assert all(not entry.valid for entry in batch.entries)
        assert "expected an object" in batch.entries[0].error

    def test_validation_error_lists_fields(self):
        batch = JSONArrayImporter().parse([{"id": "x", "lat": 200, "lon": 0, "title": ""}])

        [entry] = batch.invalid
        assert entry.source_id == "x"
        assert "lat:" in entry.error
        assert "title:" in entry.error

    @pytest.mark.asyncio
    async def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{")

        with pytest.raises(InputLoadError, match="not valid JSON"):
            await JSONArrayImporter().load(path)

    @pytest.mark.asyncio
    async def test_load_respects_max_bytes(self, tmp_path):
        path = tmp_path / "big.json"
        path.write_text(json.dumps([{"id": i} for i in range(100)]))

        with pytest.raises(InputLoadError, match="max_bytes"):
            await JSONArrayImporter({"max_bytes": 64}).load(path)

    def test_sliced_window_is_reindexed(self):
        batch = JSONArrayImporter().parse(
            [{"id": str(i), "lat": 49.0, "lon": -123.0, "title": f"t{i}"} for i in range(6)]
        )

        window = batch.sliced(2, 3)

        assert [entry.index for entry in window.entries] == [0, 1, 2]
        assert [entry.source_id for entry in window.entries] == ["2", "3", "4"]
        assert len(batch.sliced(4).entries) == 2


class TestCoordinateExtraction:
    """Common coordinate shapes."""

    @pytest.mark.parametrize(
        ("item", "expected"),
        [
            ({"geometry": {"type": "Point", "coordinates": [-123.1, 49.2]}}, (49.2, -123.1)),
            ({"geom": {"geometry": {"type": "Point", "coordinates": ["-123.1", "49.2"]}}}, (49.2, -123.1)),
            ({"geo_point_2d": {"lat": 49.2, "lon": -123.1}}, (49.2, -123.1)),
            ({"lat": "49.2", "lng": "-123.1"}, (49.2, -123.1)),
            ({"properties": {"latitude": 49.2, "longitude": -123.1}}, (49.2, -123.1)),
            ({"lat": True, "lon": -123.1}, (None, -123.1)),
            ({}, (None, None)),
        ],
    )
    def test_shapes(self, item: dict[str, Any], expected):
        assert extract_coordinates(item) == expected


def test_photo_entries_normalises_shapes():
    assert photo_entries(None) == []
    assert photo_entries(" https://a/1.jpg ") == [{"url": "https://a/1.jpg"}]
    assert photo_entries([{"url": "https://a/2.jpg", "credit": "x"}, {"caption": "no url"}, ""]) == [
        {"url": "https://a/2.jpg", "caption": None, "credit": "x"}
    ]


def test_base_importer_is_abstract():
    with pytest.raises(TypeError):
        BaseImporter()  # type: ignore[abstract]
