"""Run report generation."""
from .generator import ReportGenerator, RunStatistics, build_counts

__all__ = ["ReportGenerator", "RunStatistics", "build_counts"]
