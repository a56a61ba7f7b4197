"""Toolchain boundary: the compile adapter and FQBN helpers."""

from .adapter import (
    AdapterError,
    AdapterUnavailable,
    CompileAdapter,
    CompileOutcome,
    CompileTimeout,
    CoreVersionUnavailable,
)
from .arduino_cli import ArduinoCliClient
from .boards import architecture_from_fqbn, core_from_fqbn, core_in_architectures

__all__ = [
    "AdapterError",
    "AdapterUnavailable",
    "ArduinoCliClient",
    "CompileAdapter",
    "CompileOutcome",
    "CompileTimeout",
    "CoreVersionUnavailable",
    "architecture_from_fqbn",
    "core_from_fqbn",
    "core_in_architectures",
]
