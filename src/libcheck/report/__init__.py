"""Compatibility aggregation and reporting."""

from .aggregate import (
    AggregateReport,
    BoardStats,
    CompatibilityStatus,
    ExampleBucket,
    LibraryReport,
    aggregate,
    aggregate_directory,
    classify,
    format_percent,
    library_url,
    load_result_sets,
)
from .summary import format_summary
from .versions import sort_versions, version_key

__all__ = [
    "AggregateReport",
    "BoardStats",
    "CompatibilityStatus",
    "ExampleBucket",
    "LibraryReport",
    "aggregate",
    "aggregate_directory",
    "classify",
    "format_percent",
    "format_summary",
    "library_url",
    "load_result_sets",
    "sort_versions",
    "version_key",
]
