"""
Unit tests for result records.
"""

import pytest

from libcheck.results import (
    CompilationResult,
    ExampleOutcome,
    LibraryResultSet,
    TestObservation,
)
from libcheck.toolchain import core_from_fqbn


def observation(version="1.0.0", fqbn="arduino:avr:uno", core_version="1.8.6", result=CompilationResult.PASS, **kwargs):
    return TestObservation(
        version=version,
        architectures=kwargs.pop("architectures", ("avr",)),
        fqbn=fqbn,
        core=core_from_fqbn(fqbn),
        core_version=core_version,
        result=result,
        **kwargs,
    )


class TestTestObservation:
    """Tests for TestObservation."""

    def test_key(self):
        assert observation().key == ("1.0.0", "arduino:avr:uno", "1.8.6")

    def test_passed(self):
        assert observation().passed
        assert not observation(result=CompilationResult.FAIL).passed

    def test_to_dict_field_names(self):
        data = observation(log="ok", no_main_header=True).to_dict()

        assert data == {
            "version": "1.0.0",
            "architectures": ["avr"],
            "fqbn": "arduino:avr:uno",
            "core": "arduino:avr",
            "core_version": "1.8.6",
            "result": "PASS",
            "log": "ok",
            "examples": [],
            "no_main_header": True,
        }

    def test_from_dict_with_examples(self):
        data = observation(
            examples=(
                ExampleOutcome("Sweep", CompilationResult.PASS, "ok"),
                ExampleOutcome("Knob", CompilationResult.FAIL, "error"),
            )
        ).to_dict()

        restored = TestObservation.from_dict(data)

        assert restored.examples[1].name == "Knob"
        assert restored.examples[1].result is CompilationResult.FAIL
        assert restored == TestObservation.from_dict(data)

    def test_from_dict_defaults_optional_fields(self):
        restored = TestObservation.from_dict({"fqbn": "arduino:avr:uno", "result": "FAIL"})

        assert restored.version == ""
        assert restored.architectures == ()
        assert restored.examples == ()
        assert restored.no_main_header is False

    def test_from_dict_rejects_unknown_result(self):
        with pytest.raises(ValueError):
            TestObservation.from_dict({"fqbn": "arduino:avr:uno", "result": "MAYBE"})

    def test_from_dict_requires_fqbn(self):
        with pytest.raises(KeyError):
            TestObservation.from_dict({"result": "PASS"})


class TestLibraryResultSet:
    """Tests for LibraryResultSet."""

    def test_empty_round_trip(self):
        assert LibraryResultSet.from_dict(LibraryResultSet().to_dict()) == LibraryResultSet()

    def test_round_trip(self):
        results = LibraryResultSet(
            name="Servo",
            tests=[observation(), observation(fqbn="arduino:samd:mkr1000", result=CompilationResult.FAIL)],
        )

        assert LibraryResultSet.from_dict(results.to_dict()) == results

    def test_null_tests_treated_as_empty(self):
        assert LibraryResultSet.from_dict({"name": "Servo", "tests": None}).tests == []

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValueError):
            LibraryResultSet.from_dict([])

    def test_find_and_has(self):
        results = LibraryResultSet(name="Servo", tests=[observation()])

        assert results.has(("1.0.0", "arduino:avr:uno", "1.8.6"))
        assert not results.has(("1.0.1", "arduino:avr:uno", "1.8.6"))
        assert results.find(("1.0.1", "arduino:avr:uno", "1.8.6")) is None

    def test_without_removes_matching_key_only(self):
        results = LibraryResultSet(
            name="Servo",
            tests=[observation(), observation(core_version="1.8.5")],
        )

        trimmed = results.without(("1.0.0", "arduino:avr:uno", "1.8.6"))

        assert trimmed.keys() == [("1.0.0", "arduino:avr:uno", "1.8.5")]
        assert len(results.tests) == 2

    def test_copy_is_independent(self):
        results = LibraryResultSet(name="Servo", tests=[observation()])
        copied = results.copy()
        copied.tests.append(observation(version="2.0.0"))

        assert len(results.tests) == 1
