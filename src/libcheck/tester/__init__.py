"""Per-library test orchestration."""

from .orchestrator import LibraryTester, ResultSetMismatch, build_probe_sketch

__all__ = [
    "LibraryTester",
    "ResultSetMismatch",
    "build_probe_sketch",
]
