"""Reverse geocoding enrichment."""
from .cache import LocationCache, coordinate_key
from .enhancer import EnhancementResult, LocationEnhancer

__all__ = ["EnhancementResult", "LocationCache", "LocationEnhancer", "coordinate_key"]
