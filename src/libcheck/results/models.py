"""
Typed records for library test results.

One ``LibraryResultSet`` per library holds every ``TestObservation`` ever
recorded for it. An observation is identified by the triple
(library version, FQBN, core version); the orchestrator keeps that key unique
within a result set.

JSON shape of a result file:
    {
      "name": "Servo",
      "tests": [
        {
          "version": "1.2.1",
          "architectures": ["avr", "sam"],
          "fqbn": "arduino:avr:uno",
          "core": "arduino:avr",
          "core_version": "1.8.6",
          "result": "PASS",
          "log": "...",
          "examples": [{"name": "Sweep", "result": "PASS", "log": "..."}],
          "no_main_header": false
        }
      ]
    }
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

ObservationKey = tuple[str, str, str]


class CompilationResult(Enum):
    """Outcome of a single compile."""

    PASS = "PASS"
    FAIL = "FAIL"

    @classmethod
    def from_bool(cls, passed: bool) -> "CompilationResult":
        """Convert a pass/fail flag."""
        return cls.PASS if passed else cls.FAIL


@dataclass(frozen=True)
class ExampleOutcome:
    """Result of compiling one bundled example sketch."""

    name: str
    result: CompilationResult
    log: str = ""

    @property
    def passed(self) -> bool:
        return self.result is CompilationResult.PASS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"name": self.name, "result": self.result.value, "log": self.log}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExampleOutcome":
        """Create ExampleOutcome from dictionary."""
        return cls(
            name=data["name"],
            result=CompilationResult(data["result"]),
            log=data.get("log", ""),
        )


@dataclass(frozen=True)
class TestObservation:
    """One trial of (library version, board, core version).

    Attributes:
        version: Library version at trial time
        architectures: Architectures declared by the library at trial time
        fqbn: Board the library was compiled for
        core: Core owning the board (e.g. 'arduino:avr')
        core_version: Installed version of the core
        result: Result of compiling the probe sketch
        log: Compiler output of the probe sketch
        examples: Results of the bundled examples
        no_main_header: True when an empty main header had to be created
    """

    __test__ = False  # not a pytest test class

    version: str
    architectures: tuple[str, ...]
    fqbn: str
    core: str
    core_version: str
    result: CompilationResult
    log: str = ""
    examples: tuple[ExampleOutcome, ...] = ()
    no_main_header: bool = False

    @property
    def key(self) -> ObservationKey:
        """Identity of the observation within a result set."""
        return (self.version, self.fqbn, self.core_version)

    @property
    def passed(self) -> bool:
        return self.result is CompilationResult.PASS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": self.version,
            "architectures": list(self.architectures),
            "fqbn": self.fqbn,
            "core": self.core,
            "core_version": self.core_version,
            "result": self.result.value,
            "log": self.log,
            "examples": [example.to_dict() for example in self.examples],
            "no_main_header": self.no_main_header,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TestObservation":
        """Create TestObservation from dictionary."""
        return cls(
            version=data.get("version", ""),
            architectures=tuple(data.get("architectures") or ()),
            fqbn=data["fqbn"],
            core=data.get("core", ""),
            core_version=data.get("core_version", ""),
            result=CompilationResult(data["result"]),
            log=data.get("log", ""),
            examples=tuple(ExampleOutcome.from_dict(e) for e in data.get("examples") or ()),
            no_main_header=data.get("no_main_header", False),
        )


@dataclass
class LibraryResultSet:
    """All observations recorded for one library."""

    name: str = ""
    tests: list[TestObservation] = field(default_factory=list)

    def find(self, key: ObservationKey) -> Optional[TestObservation]:
        """Return the observation with the given key, if any."""
        for observation in self.tests:
            if observation.key == key:
                return observation
        return None

    def has(self, key: ObservationKey) -> bool:
        return self.find(key) is not None

    def without(self, key: ObservationKey) -> "LibraryResultSet":
        """Return a copy with every observation matching ``key`` removed."""
        return LibraryResultSet(
            name=self.name,
            tests=[observation for observation in self.tests if observation.key != key],
        )

    def keys(self) -> list[ObservationKey]:
        return [observation.key for observation in self.tests]

    def copy(self) -> "LibraryResultSet":
        return LibraryResultSet(name=self.name, tests=list(self.tests))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"name": self.name, "tests": [t.to_dict() for t in self.tests]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LibraryResultSet":
        """Create LibraryResultSet from dictionary.

        Raises:
            ValueError: If the data is not a result set object
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return cls(
            name=data.get("name") or "",
            tests=[TestObservation.from_dict(t) for t in data.get("tests") or ()],
        )
