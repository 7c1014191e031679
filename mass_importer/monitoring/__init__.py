"""Monitoring package initialization."""
