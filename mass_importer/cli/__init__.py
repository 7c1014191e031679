"""Command line entry points."""
from .main import cli, main

__all__ = ["cli", "main"]
