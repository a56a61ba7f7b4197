"""Shared fixtures for libcheck unit tests."""

from pathlib import Path
from typing import Callable, Optional

import pytest

from libcheck.config import CheckConfig
from libcheck.toolchain import (
    CompileAdapter,
    CompileOutcome,
    CoreVersionUnavailable,
)


class FakeAdapter(CompileAdapter):
    """In-memory compile adapter recording every call.

    Args:
        core_versions: Installed core versions by core id
        results: Compile result by (sketch dir name, fqbn); default PASS
        libraries: Names returned by list_installed_libraries
        user_dir: Sketchbook directory
        on_compile: Optional hook called with (sketch_dir, library_dir, fqbn)
    """

    def __init__(
        self,
        core_versions: Optional[dict[str, str]] = None,
        results: Optional[dict[tuple[str, str], bool]] = None,
        libraries: Optional[list[str]] = None,
        user_dir: Optional[Path] = None,
        on_compile: Optional[Callable[[Path, Path, str], None]] = None,
    ):
        self.core_versions = core_versions if core_versions is not None else {"arduino:avr": "1.8.6"}
        self.results = results or {}
        self.libraries = libraries or []
        self.user_dir = user_dir or Path("/nonexistent")
        self.on_compile = on_compile
        self.compiles: list[tuple[str, str]] = []
        self.sketch_dirs: list[Path] = []
        self.version_queries: list[str] = []

    def compile(self, sketch_dir: Path, library_dir: Path, fqbn: str) -> CompileOutcome:
        self.compiles.append((sketch_dir.name, fqbn))
        self.sketch_dirs.append(sketch_dir)
        if self.on_compile is not None:
            self.on_compile(sketch_dir, library_dir, fqbn)
        passed = self.results.get((sketch_dir.name, fqbn), True)
        return CompileOutcome(passed=passed, output=f"compiled {sketch_dir.name} for {fqbn}")

    def get_installed_core_version(self, core: str) -> str:
        self.version_queries.append(core)
        if core not in self.core_versions:
            raise CoreVersionUnavailable(f"Platform not found: {core}")
        return self.core_versions[core]

    def list_installed_libraries(self) -> list[str]:
        return list(self.libraries)

    def get_user_directory(self) -> Path:
        return self.user_dir


def write_library(
    root: Path,
    name: str,
    version: str = "1.0.0",
    architectures: str = "*",
    includes: Optional[str] = None,
    header: bool = True,
    use_src: bool = True,
    examples: tuple[str, ...] = (),
) -> Path:
    """Create a minimal library directory on disk and return its path."""
    dir_name = "".join(c if c.isalnum() or c in "_.-" else "_" for c in name)
    lib_dir = root / dir_name
    lib_dir.mkdir(parents=True)

    lines = [f"name={name}", f"version={version}", f"architectures={architectures}"]
    if includes is not None:
        lines.append(f"includes={includes}")
    (lib_dir / "library.properties").write_text("\n".join(lines) + "\n")

    source_dir = lib_dir / "src" if use_src else lib_dir
    source_dir.mkdir(exist_ok=True)
    if header:
        (source_dir / f"{dir_name}.h").write_text("#pragma once\n")

    for example in examples:
        example_dir = lib_dir / "examples" / example
        example_dir.mkdir(parents=True)
        (example_dir / f"{example_dir.name}.ino").write_text("void setup() {}\nvoid loop() {}\n")

    return lib_dir


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def make_adapter():
    """Factory building FakeAdapter instances with custom behavior."""
    return FakeAdapter


@pytest.fixture
def make_library(tmp_path):
    """Factory creating libraries under tmp_path/libraries."""
    libraries_dir = tmp_path / "libraries"

    def _make(name: str, **kwargs) -> Path:
        return write_library(libraries_dir, name, **kwargs)

    return _make


@pytest.fixture
def uno_config(tmp_path) -> CheckConfig:
    return CheckConfig(
        fqbns=["arduino:avr:uno"],
        scratch_root=tmp_path / "scratch",
        user_dir=tmp_path,
    )