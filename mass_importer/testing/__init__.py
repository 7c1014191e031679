"""Testing utilities for the mass importer."""

from .fakes import InMemoryCorpus, ScriptedIngestion, StaticGeocoder

__all__ = ["InMemoryCorpus", "ScriptedIngestion", "StaticGeocoder"]
