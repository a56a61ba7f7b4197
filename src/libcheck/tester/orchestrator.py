"""
Library test orchestration.

This module tests one library against every configured board:

1. Read library.properties
2. Locate (or temporarily create) the library's main header
3. Generate a probe sketch that only includes the library headers
4. For each board:
   - resolve the installed version of the board's core
   - skip the board if this (version, board, core version) is already tested
   - compile the probe sketch, then every bundled example
   - record a TestObservation

Compiler errors are results, not failures: they are recorded as FAIL. Only a
broken environment (core not installed, arduino-cli missing) raises.
"""

import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from libcheck.config import CheckConfig
from libcheck.library import (
    LibraryLayout,
    LibraryManifest,
    ManifestError,
    read_manifest,
    sanitize_name,
)
from libcheck.results import (
    CompilationResult,
    ExampleOutcome,
    LibraryResultSet,
    TestObservation,
)
from libcheck.toolchain import (
    CompileAdapter,
    CompileOutcome,
    CompileTimeout,
    core_from_fqbn,
)

PROBE_SKETCH_NAME = "test"


class ResultSetMismatch(Exception):
    """Raised when prior results belong to a different library."""

    pass


def build_probe_sketch(manifest: LibraryManifest) -> str:
    """Generate the source of a sketch that only includes the library.

    Uses the explicit ``includes`` from library.properties when present,
    otherwise the conventional main header.

    Args:
        manifest: Parsed library.properties

    Returns:
        Sketch source code
    """
    headers = manifest.includes or [manifest.header_file]
    lines = [f"#include <{header}>" for header in headers]
    lines.append("void setup() {}")
    lines.append("void loop() {}")
    return "\n".join(lines) + "\n"


class LibraryTester:
    """Tests libraries against the boards of a CheckConfig."""

    def __init__(self, config: CheckConfig):
        """Initialize the tester.

        Args:
            config: Run configuration (boards, scratch location)
        """
        self.config = config

    def test_library_by_name(
        self,
        name: str,
        prior_results: LibraryResultSet,
        force_retest: bool,
        adapter: CompileAdapter,
    ) -> LibraryResultSet:
        """Test an installed library given its (unsanitized) name."""
        libraries_dir = self.config.libraries_dir
        if libraries_dir is None:
            libraries_dir = adapter.get_user_directory() / "libraries"
        return self.test_library(libraries_dir / sanitize_name(name), prior_results, force_retest, adapter)

    def test_library(
        self,
        library_path: Path,
        prior_results: LibraryResultSet,
        force_retest: bool,
        adapter: CompileAdapter,
    ) -> LibraryResultSet:
        """Test one library against every configured board.

        Args:
            library_path: Library root directory
            prior_results: Results from earlier runs (may be empty)
            force_retest: Re-test combinations that already have results
            adapter: Toolchain handle owned by the caller

        Returns:
            Updated result set; ``prior_results`` unchanged if the library
            cannot be read

        Raises:
            ResultSetMismatch: If prior_results belong to another library
            CoreVersionUnavailable: If a board's core is not installed
            AdapterUnavailable: If the toolchain client cannot be run
        """
        layout = LibraryLayout(Path(library_path).resolve())
        if not layout.exists:
            logging.error(f"Library not found in directory: {layout.lib_dir}")
            return prior_results

        try:
            manifest = read_manifest(layout.lib_dir)
        except ManifestError as e:
            logging.error(str(e))
            return prior_results

        label = manifest.name_and_version
        if prior_results.name and prior_results.name != manifest.name:
            raise ResultSetMismatch(
                f"[{label}] Library name mismatch; known: {prior_results.name}, tested: {manifest.name}"
            )

        results = LibraryResultSet(name=manifest.name, tests=list(prior_results.tests))
        logging.info(f"[{label}] Start testing")

        core_versions: dict[str, str] = {}
        with self._main_header(layout, manifest) as header_created, self._probe_sketch(manifest) as sketch_dir:
            for fqbn in self.config.fqbns:
                core = core_from_fqbn(fqbn)
                if core not in core_versions:
                    core_versions[core] = adapter.get_installed_core_version(core)
                core_version = core_versions[core]

                key = (manifest.version, fqbn, core_version)
                if not force_retest:
                    if results.has(key):
                        logging.info(f"[{label}] skipping {fqbn}, already tested")
                        continue
                else:
                    results = results.without(key)

                outcome = self._compile(adapter, sketch_dir, layout.lib_dir, fqbn, label)
                examples = tuple(self._test_examples(adapter, layout, fqbn, label))

                results.tests.append(
                    TestObservation(
                        version=manifest.version,
                        architectures=tuple(manifest.architectures),
                        fqbn=fqbn,
                        core=core,
                        core_version=core_version,
                        result=CompilationResult.from_bool(outcome.passed),
                        log=outcome.output,
                        examples=examples,
                        no_main_header=header_created,
                    )
                )

        summary = " ".join(f"{t.fqbn}={t.result.value}" for t in results.tests)
        logging.info(f"[{label}] {summary}")
        return results

    def _test_examples(
        self,
        adapter: CompileAdapter,
        layout: LibraryLayout,
        fqbn: str,
        label: str,
    ) -> Iterator[ExampleOutcome]:
        """Compile every bundled example for one board."""
        for example_dir in layout.example_dirs():
            outcome = self._compile(adapter, example_dir, layout.lib_dir, fqbn, label)
            yield ExampleOutcome(
                name=example_dir.name,
                result=CompilationResult.from_bool(outcome.passed),
                log=outcome.output,
            )

    @staticmethod
    def _compile(
        adapter: CompileAdapter,
        sketch_dir: Path,
        library_dir: Path,
        fqbn: str,
        label: str,
    ) -> CompileOutcome:
        """Compile via the adapter, turning a timeout into a failed result."""
        try:
            return adapter.compile(sketch_dir, library_dir, fqbn)
        except CompileTimeout as e:
            logging.warning(f"[{label}] {sketch_dir.name} on {fqbn}: {e}")
            return CompileOutcome(passed=False, output=f"{e.output}\n{e}".lstrip())

    @contextmanager
    def _main_header(self, layout: LibraryLayout, manifest: LibraryManifest) -> Iterator[bool]:
        """Make sure the main header exists for the duration of a run.

        An empty header is created when the library has none, which still
        lets its .cpp files be compiled. It is removed again afterwards.

        Yields:
            True if the header had to be created
        """
        header_file = manifest.header_file
        if layout.find_header(header_file) is not None:
            yield False
            return

        header_path = layout.canonical_header_path(header_file)
        logging.info(f"[{manifest.name_and_version}] Main header file not found, creating an empty one: {header_file}")
        created: Optional[Path] = None
        try:
            header_path.touch()
            created = header_path
        except OSError as e:
            logging.warning(f"[{manifest.name_and_version}] Could not create {header_path}: {e}")

        try:
            yield True
        finally:
            if created is not None:
                created.unlink(missing_ok=True)

    @contextmanager
    def _probe_sketch(self, manifest: LibraryManifest) -> Iterator[Path]:
        """Create the probe sketch in a scratch directory removed on exit."""
        scratch_root = self.config.scratch_root
        if scratch_root is not None:
            Path(scratch_root).mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="libcheck-", dir=scratch_root) as tmp_dir:
            sketch_dir = Path(tmp_dir) / PROBE_SKETCH_NAME
            sketch_dir.mkdir()
            (sketch_dir / f"{PROBE_SKETCH_NAME}.ino").write_text(build_probe_sketch(manifest), encoding="utf-8")
            yield sketch_dir
