"""Parallel batch testing of installed libraries."""

from .progress import ProgressTracker
from .scheduler import (
    BatchAborted,
    BatchScheduler,
    BatchSummary,
    select_libraries,
    strip_version_suffix,
)

__all__ = [
    "BatchAborted",
    "BatchScheduler",
    "BatchSummary",
    "ProgressTracker",
    "select_libraries",
    "strip_version_suffix",
]
