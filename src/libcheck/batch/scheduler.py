"""
Batch scheduler - Test many libraries with a pool of workers.

Architecture:
    discover libraries -> queue -> N worker threads -> LibraryTester
                                        |
                                        v
                                   ResultStore (one file per library)

Each worker owns its own toolchain client for the whole run; clients are
created one at a time. Workers pull library names from a single shared
queue until they receive a stop sentinel.

Error policy:
    - per-library problems (bad manifest, mismatched result file) are logged
      and the batch continues
    - environment problems (core not installed, arduino-cli unusable, result
      directory not writable) abort the whole batch with BatchAborted
"""

import fnmatch
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from libcheck.batch.progress import ProgressTracker
from libcheck.config import CheckConfig
from libcheck.library import ManifestError
from libcheck.results import LibraryResultSet, ResultStore
from libcheck.tester import LibraryTester, ResultSetMismatch
from libcheck.toolchain import CompileAdapter

AdapterFactory = Callable[[], CompileAdapter]

PER_LIBRARY_ERRORS = (ResultSetMismatch, ManifestError)

# Join granularity so KeyboardInterrupt reaches the main thread
JOIN_INTERVAL = 0.5


class BatchAborted(Exception):
    """Raised when an environment error stops a batch run."""

    pass


@dataclass
class BatchSummary:
    """Outcome of a batch run."""

    total: int = 0
    tested: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def strip_version_suffix(name: str) -> str:
    """Drop a trailing '@version' from a library name."""
    return name.split("@", 1)[0]


def select_libraries(installed: Sequence[str], patterns: Sequence[str] = ()) -> list[str]:
    """Choose which installed libraries to test.

    Args:
        installed: Installed library names, optionally suffixed '@version'
        patterns: Glob patterns such as "Arduino_*"; empty means all

    Returns:
        Sorted, de-duplicated library names without version suffix
    """
    names = {strip_version_suffix(name) for name in installed}
    if patterns:
        names = {name for name in names if any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)}
    return sorted(names)


class BatchScheduler:
    """Runs the LibraryTester over many libraries in parallel."""

    def __init__(
        self,
        config: CheckConfig,
        adapter_factory: AdapterFactory,
        store: ResultStore,
        tester: Optional[LibraryTester] = None,
    ):
        """Initialize the scheduler.

        Args:
            config: Run configuration (boards, threads, force flag)
            adapter_factory: Creates a new toolchain client per worker
            store: Result file store
            tester: Library tester (defaults to one built from config)
        """
        self.config = config
        self.adapter_factory = adapter_factory
        self.store = store
        self.tester = tester or LibraryTester(config)

        self._init_lock = threading.Lock()
        self._summary_lock = threading.Lock()
        self._abort = threading.Event()
        self._fatal_error: Optional[BaseException] = None

    def discover_libraries(self, patterns: Sequence[str] = ()) -> list[str]:
        """List the installed libraries matching the given glob patterns."""
        adapter = self.adapter_factory()
        return select_libraries(adapter.list_installed_libraries(), patterns)

    def run(self, patterns: Sequence[str] = ()) -> BatchSummary:
        """Test every selected library.

        Args:
            patterns: Glob filters on library names; empty means all

        Returns:
            BatchSummary of tested and skipped libraries

        Raises:
            BatchAborted: If an environment error stopped the run
        """
        self._abort.clear()
        self._fatal_error = None

        try:
            self.store.ensure_directory()
            libraries = self.discover_libraries(patterns)
        except Exception as e:
            raise BatchAborted(f"Cannot start batch: {e}") from e

        summary = BatchSummary(total=len(libraries))
        logging.info(f"Total libraries: {len(libraries)}")
        if not libraries:
            return summary

        num_workers = min(self.config.threads, len(libraries))
        jobs: "queue.Queue[Optional[str]]" = queue.Queue()
        for name in libraries:
            jobs.put(name)
        for _ in range(num_workers):
            jobs.put(None)

        tracker = ProgressTracker(len(libraries))
        workers = [
            threading.Thread(
                target=self._worker,
                args=(worker_id, jobs, tracker, summary),
                name=f"libcheck-worker-{worker_id}",
                daemon=True,
            )
            for worker_id in range(num_workers)
        ]
        for worker in workers:
            worker.start()

        try:
            for worker in workers:
                while worker.is_alive():
                    worker.join(JOIN_INTERVAL)
        except KeyboardInterrupt:
            self._abort.set()
            raise

        if self._fatal_error is not None:
            raise BatchAborted(f"Batch aborted: {self._fatal_error}") from self._fatal_error

        return summary

    def _worker(
        self,
        worker_id: int,
        jobs: "queue.Queue[Optional[str]]",
        tracker: ProgressTracker,
        summary: BatchSummary,
    ) -> None:
        """Pull libraries from the queue until the stop sentinel."""
        adapter: Optional[CompileAdapter] = None
        with self._init_lock:
            if not self._abort.is_set():
                logging.info(f"[#{worker_id}] Initializing toolchain client")
                try:
                    adapter = self.adapter_factory()
                except Exception as e:
                    self._fail(worker_id, e)
                else:
                    logging.info(f"[#{worker_id}] Done initializing toolchain client")

        while True:
            name = jobs.get()
            if name is None:
                return
            if adapter is None or self._abort.is_set():
                continue

            try:
                tested = self._test_one(name, adapter)
            except PER_LIBRARY_ERRORS as e:
                logging.error(f"[#{worker_id}] Skipping {name}: {e}")
                tested = False
            except Exception as e:
                self._fail(worker_id, e)
                continue

            with self._summary_lock:
                (summary.tested if tested else summary.skipped).append(name)

            done, eta = tracker.record_completion()
            logging.info(f"[#{worker_id}] done {done}/{tracker.total} libs (ETA: {eta:.0f}s)")

    def _test_one(self, name: str, adapter: CompileAdapter) -> bool:
        """Test one library and persist its results.

        Returns:
            False if the library could not be read and nothing was saved
        """
        prior: LibraryResultSet = self.store.load(name)
        results = self.tester.test_library_by_name(name, prior, self.config.force, adapter)
        if results is prior or not results.name:
            return False
        self.store.save(results)
        return True

    def _fail(self, worker_id: int, error: BaseException) -> None:
        """Record the first fatal error and stop all workers."""
        logging.error(f"[#{worker_id}] Fatal error: {type(error).__name__}: {error}")
        with self._summary_lock:
            if self._fatal_error is None:
                self._fatal_error = error
        self._abort.set()
