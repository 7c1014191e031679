"""Deduplicating, resumable mass import of public-art records."""

__version__ = "0.1.0"
