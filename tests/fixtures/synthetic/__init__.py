"""Synthetic data fixtures package for testing."""

from __future__ import annotations

from . import geojson_fixtures, vancouver_fixtures

__all__ = [
    "geojson_fixtures",
    "vancouver_fixtures",
]
