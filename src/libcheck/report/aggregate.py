"""
Compatibility aggregation.

Folds every stored LibraryResultSet into an AggregateReport:

- each (library, board) pair gets one CompatibilityStatus, crossing the
  compile result with whether the library claims the board's architecture
- per-board counts of each status, plus the libraries never tested on it
- corpus-wide counts (libraries compatible with all boards, with none, ...)
- the distribution of the number of bundled examples

The fold is independent of input order: observations of a library are sorted
by (library version, core version) first, so the newest observation for a
board always wins.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from libcheck.library import sanitize_name
from libcheck.report.versions import sort_versions, version_key
from libcheck.results import (
    CorruptResultFile,
    LibraryResultSet,
    ResultStore,
    TestObservation,
    read_results_file,
)
from libcheck.toolchain import architecture_from_fqbn, core_from_fqbn, core_in_architectures
from libcheck.toolchain.boards import WILDCARD_ARCHITECTURE

LIBRARY_URL_PREFIX = "https://www.arduino.cc/reference/en/libraries/"

_URL_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]")


class CompatibilityStatus(Enum):
    """Compile result crossed with declared compatibility."""

    PASS_CLAIM = "PASS_CLAIM"
    PASS_NOCLAIM = "PASS_NOCLAIM"
    FAIL_CLAIM = "FAIL_CLAIM"
    FAIL_NOCLAIM = "FAIL_NOCLAIM"

    @property
    def passed(self) -> bool:
        return self in (CompatibilityStatus.PASS_CLAIM, CompatibilityStatus.PASS_NOCLAIM)

    @property
    def claimed(self) -> bool:
        return self in (CompatibilityStatus.PASS_CLAIM, CompatibilityStatus.FAIL_CLAIM)


_STATUS_TABLE = {
    (True, True): CompatibilityStatus.PASS_CLAIM,
    (True, False): CompatibilityStatus.PASS_NOCLAIM,
    (False, True): CompatibilityStatus.FAIL_CLAIM,
    (False, False): CompatibilityStatus.FAIL_NOCLAIM,
}


def classify(observation: TestObservation) -> CompatibilityStatus:
    """Classify one observation.

    The library claims the board when its declared architectures contain the
    wildcard or the architecture of the board's core.
    """
    core = observation.core or core_from_fqbn(observation.fqbn)
    claims = core_in_architectures(core, list(observation.architectures))
    return _STATUS_TABLE[(observation.passed, claims)]


def library_url(name: str) -> str:
    """Library page URL, derived the same way as the Arduino.cc library list."""
    slug = name.strip().replace(" ", "-").lower()
    slug = _URL_UNSAFE_CHARS.sub("", slug)
    return f"{LIBRARY_URL_PREFIX}{slug}/"


def format_percent(count: int, total: int) -> str:
    """Format ``count`` as a percentage of ``total`` with one decimal.

    Returns "0.0%" when total is zero.
    """
    if total == 0:
        return "0.0%"
    return f"{count / total * 100:.1f}%"


def order_observations(tests: Iterable[TestObservation]) -> list[TestObservation]:
    """Sort observations by library version, then core version.

    Ties are broken on the raw strings, the board and the result so the order
    never depends on the input order.
    """
    return sorted(
        tests,
        key=lambda t: (
            version_key(t.version),
            t.version,
            version_key(t.core_version),
            t.core_version,
            t.fqbn,
            t.result.value,
        ),
    )


@dataclass
class BoardStats:
    """Per-board compatibility counts."""

    name: str
    architecture: str
    versions: list[str] = field(default_factory=list)
    pass_claim: int = 0
    pass_noclaim: int = 0
    fail_claim: int = 0
    fail_noclaim: int = 0
    explicit_claim: int = 0
    fail_claim_asterisk: int = 0
    untested: int = 0

    @property
    def claim(self) -> int:
        return self.pass_claim + self.fail_claim

    @property
    def claim_mismatch(self) -> int:
        """Libraries whose claim disagrees with the compile result."""
        return self.pass_noclaim + self.fail_claim

    @property
    def passed(self) -> int:
        return self.pass_claim + self.pass_noclaim

    @property
    def failed(self) -> int:
        return self.fail_claim + self.fail_noclaim

    @property
    def fail_explicit_claim(self) -> int:
        return self.fail_claim - self.fail_claim_asterisk

    def count(self, status: CompatibilityStatus) -> int:
        """Number of libraries with the given status on this board."""
        return {
            CompatibilityStatus.PASS_CLAIM: self.pass_claim,
            CompatibilityStatus.PASS_NOCLAIM: self.pass_noclaim,
            CompatibilityStatus.FAIL_CLAIM: self.fail_claim,
            CompatibilityStatus.FAIL_NOCLAIM: self.fail_noclaim,
        }[status]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "architecture": self.architecture,
            "versions": list(self.versions),
            "pass_claim": self.pass_claim,
            "pass_noclaim": self.pass_noclaim,
            "fail_claim": self.fail_claim,
            "fail_noclaim": self.fail_noclaim,
            "claim": self.claim,
            "explicit_claim": self.explicit_claim,
            "claim_mismatch": self.claim_mismatch,
            "pass": self.passed,
            "fail": self.failed,
            "untested": self.untested,
            "fail_claim_asterisk": self.fail_claim_asterisk,
            "fail_explicit_claim": self.fail_explicit_claim,
        }


@dataclass
class LibraryReport:
    """Per-library compatibility map."""

    name: str
    version: str
    url: str
    report_file: str
    board_compatibility: dict[str, CompatibilityStatus] = field(default_factory=dict)
    board_results: dict[str, TestObservation] = field(default_factory=dict)
    examples: list[str] = field(default_factory=list)
    declares_any_architecture: bool = False

    def count(self, *statuses: CompatibilityStatus) -> int:
        """Number of boards with any of the given statuses."""
        return sum(1 for status in self.board_compatibility.values() if status in statuses)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "url": self.url,
            "report_file": self.report_file,
            "board_compatibility": {
                board: self.board_compatibility[board].value for board in sorted(self.board_compatibility)
            },
            "board_results": {board: self.board_results[board].to_dict() for board in sorted(self.board_results)},
            "examples": list(self.examples),
            "declares_any_architecture": self.declares_any_architecture,
        }


@dataclass
class ExampleBucket:
    """Number of libraries shipping ``num`` examples."""

    num: int
    count: int


@dataclass
class AggregateReport:
    """Compatibility statistics over all tested libraries."""

    num_libs: int = 0
    num_boards: int = 0
    boards: list[BoardStats] = field(default_factory=list)
    libraries: list[LibraryReport] = field(default_factory=list)
    examples: list[ExampleBucket] = field(default_factory=list)
    num_libs_asterisk: int = 0
    num_libs_claim_all_boards: int = 0
    num_libs_claim_no_boards: int = 0
    num_libs_pass_all_boards: int = 0
    num_libs_pass_no_boards: int = 0
    num_libs_fail_claim: int = 0
    num_libs_asterisk_fail: int = 0
    generated_at: Optional[datetime] = None

    @property
    def has_untested(self) -> bool:
        return any(board.untested > 0 for board in self.boards)

    def percent(self, count: int) -> str:
        """Format a library count as a share of all tested libraries."""
        return format_percent(count, self.num_libs)

    def board(self, name: str) -> Optional[BoardStats]:
        for board in self.boards:
            if board.name == name:
                return board
        return None

    def library(self, name: str) -> Optional[LibraryReport]:
        for library in self.libraries:
            if library.name == name:
                return library
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "num_libs": self.num_libs,
            "num_boards": self.num_boards,
            "num_libs_asterisk": self.num_libs_asterisk,
            "num_libs_claim_all_boards": self.num_libs_claim_all_boards,
            "num_libs_claim_no_boards": self.num_libs_claim_no_boards,
            "num_libs_pass_all_boards": self.num_libs_pass_all_boards,
            "num_libs_pass_no_boards": self.num_libs_pass_no_boards,
            "num_libs_fail_claim": self.num_libs_fail_claim,
            "num_libs_asterisk_fail": self.num_libs_asterisk_fail,
            "has_untested": self.has_untested,
            "boards": [board.to_dict() for board in self.boards],
            "examples": [{"num": bucket.num, "count": bucket.count} for bucket in self.examples],
            "libraries": [library.to_dict() for library in self.libraries],
        }


def aggregate(
    result_sets: Iterable[LibraryResultSet],
    generated_at: Optional[datetime] = None,
) -> AggregateReport:
    """Build the compatibility report from result sets.

    Result sets sharing a library name are merged. Result sets without a
    name or without observations are ignored.

    Args:
        result_sets: Stored results, in any order
        generated_at: Timestamp recorded in the report

    Returns:
        AggregateReport with boards and libraries sorted by name
    """
    merged: dict[str, list[TestObservation]] = {}
    for result_set in result_sets:
        if result_set.name and result_set.tests:
            merged.setdefault(result_set.name, []).extend(result_set.tests)

    versions: dict[str, str] = {}
    board_core_versions: dict[str, set[str]] = {}
    compatibility: dict[str, dict[str, CompatibilityStatus]] = {}
    results: dict[str, dict[str, TestObservation]] = {}
    asterisk: set[str] = set()
    num_examples: Counter[int] = Counter()

    for name in sorted(merged):
        tests = order_observations(merged[name])
        compatibility[name] = {}
        results[name] = {}
        for test in tests:
            versions[name] = test.version
            board_core_versions.setdefault(test.fqbn, set()).add(test.core_version)
            compatibility[name][test.fqbn] = classify(test)
            results[name][test.fqbn] = test

        newest = tests[-1]
        if WILDCARD_ARCHITECTURE in newest.architectures:
            asterisk.add(name)
        num_examples[len(newest.examples)] += 1

    report = AggregateReport(
        num_libs=len(versions),
        num_boards=len(board_core_versions),
        num_libs_asterisk=len(asterisk),
        generated_at=generated_at,
    )

    for board_name in sorted(board_core_versions):
        board = BoardStats(
            name=board_name,
            architecture=architecture_from_fqbn(board_name),
            versions=sort_versions(list(board_core_versions[board_name])),
        )
        for lib_name, statuses in compatibility.items():
            status = statuses.get(board_name)
            if status is None:
                continue
            if status is CompatibilityStatus.PASS_CLAIM:
                board.pass_claim += 1
            elif status is CompatibilityStatus.PASS_NOCLAIM:
                board.pass_noclaim += 1
            elif status is CompatibilityStatus.FAIL_CLAIM:
                board.fail_claim += 1
            else:
                board.fail_noclaim += 1

            if status.claimed and lib_name not in asterisk:
                board.explicit_claim += 1
            if status is CompatibilityStatus.FAIL_CLAIM and lib_name in asterisk:
                board.fail_claim_asterisk += 1

        board.untested = report.num_libs - (board.passed + board.failed)
        report.boards.append(board)

    for lib_name in sorted(versions):
        statuses = compatibility[lib_name]
        example_names = {example.name for test in results[lib_name].values() for example in test.examples}
        library = LibraryReport(
            name=lib_name,
            version=versions[lib_name],
            url=library_url(lib_name),
            report_file=f"{sanitize_name(lib_name)}.html",
            board_compatibility=dict(statuses),
            board_results=dict(results[lib_name]),
            examples=sorted(example_names),
            declares_any_architecture=lib_name in asterisk,
        )
        report.libraries.append(library)

        total_claim = library.count(CompatibilityStatus.PASS_CLAIM, CompatibilityStatus.FAIL_CLAIM)
        total_pass = library.count(CompatibilityStatus.PASS_CLAIM, CompatibilityStatus.PASS_NOCLAIM)
        total_fail = library.count(CompatibilityStatus.FAIL_CLAIM, CompatibilityStatus.FAIL_NOCLAIM)
        total_fail_claim = library.count(CompatibilityStatus.FAIL_CLAIM)

        if total_claim == report.num_boards:
            report.num_libs_claim_all_boards += 1
        if total_claim == 0:
            report.num_libs_claim_no_boards += 1
        if total_pass == report.num_boards:
            report.num_libs_pass_all_boards += 1
        if total_pass == 0:
            report.num_libs_pass_no_boards += 1
        if total_fail_claim > 0:
            report.num_libs_fail_claim += 1
        if total_fail > 0 and lib_name in asterisk:
            report.num_libs_asterisk_fail += 1

    report.examples = [ExampleBucket(num=num, count=count) for num, count in sorted(num_examples.items())]
    return report


def load_result_sets(datadir: Path) -> list[LibraryResultSet]:
    """Read every result file in a directory, skipping unreadable ones."""
    result_sets = []
    for path in ResultStore(datadir).iter_files():
        try:
            result_set = read_results_file(path)
        except CorruptResultFile as e:
            logging.warning(f"Skipping {e}")
            continue
        if result_set is None:
            logging.warning(f"Skipping unreadable result file: {path}")
            continue
        result_sets.append(result_set)
    return result_sets


def aggregate_directory(datadir: Path, generated_at: Optional[datetime] = None) -> AggregateReport:
    """Aggregate all result files stored in ``datadir``."""
    return aggregate(load_result_sets(datadir), generated_at=generated_at)
