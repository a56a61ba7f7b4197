"""Compile adapter boundary.

The orchestration engine never compiles anything itself. It talks to the
toolchain through this interface, so tests can inject fakes and each worker
can own an independent handle.

Error taxonomy:
    - A compiler rejecting a sketch is data: ``CompileOutcome(passed=False)``
    - ``CompileTimeout``: the compile exceeded its deadline (recorded as FAIL)
    - ``CoreVersionUnavailable``: the board's core is not installed (fatal)
    - ``AdapterUnavailable``: the toolchain client cannot be run (fatal)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class AdapterError(Exception):
    """Base exception for toolchain adapter failures."""

    pass


class AdapterUnavailable(AdapterError):
    """Raised when the toolchain client cannot be reached or misbehaves."""

    pass


class CoreVersionUnavailable(AdapterError):
    """Raised when the installed version of a core cannot be resolved."""

    pass


class CompileTimeout(AdapterError):
    """Raised when a single compile exceeds its deadline."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


@dataclass
class CompileOutcome:
    """Result of compiling one sketch against one board."""

    passed: bool
    output: str = ""


class CompileAdapter(ABC):
    """Interface to the external toolchain client.

    Calls are blocking and may be slow. Two identical calls are not assumed
    to produce identical output. A handle is not safe to share between
    threads.
    """

    @abstractmethod
    def compile(self, sketch_dir: Path, library_dir: Path, fqbn: str) -> CompileOutcome:
        """Compile a sketch directory with one extra library for a board.

        Raises:
            CompileTimeout: If the compile exceeds its deadline
            AdapterUnavailable: If the toolchain client cannot be run
        """

    @abstractmethod
    def get_installed_core_version(self, core: str) -> str:
        """Return the installed version of a core (e.g. 'arduino:avr').

        Raises:
            CoreVersionUnavailable: If the core is not installed
        """

    @abstractmethod
    def list_installed_libraries(self) -> list[str]:
        """Return the names of all installed libraries."""

    @abstractmethod
    def get_user_directory(self) -> Path:
        """Return the sketchbook directory holding ``libraries/``."""
