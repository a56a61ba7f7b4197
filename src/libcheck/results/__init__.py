"""Result records and their on-disk store."""

from .models import (
    CompilationResult,
    ExampleOutcome,
    LibraryResultSet,
    ObservationKey,
    TestObservation,
)
from .store import (
    CorruptResultFile,
    ResultStore,
    ResultStoreError,
    read_results_file,
    write_results_file,
)

__all__ = [
    "CompilationResult",
    "CorruptResultFile",
    "ExampleOutcome",
    "LibraryResultSet",
    "ObservationKey",
    "ResultStore",
    "ResultStoreError",
    "TestObservation",
    "read_results_file",
    "write_results_file",
]
