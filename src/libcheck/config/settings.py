"""
Run configuration for libcheck.

Configuration is an explicit ``CheckConfig`` value passed to the scheduler,
the orchestrator and the toolchain client. It is assembled from, in order of
increasing precedence:

1. Built-in defaults
2. An optional INI file with a ``[libcheck]`` section
3. ``LIBCHECK_*`` environment variables
4. Command-line overrides

Example libcheck.ini:
    [libcheck]
    fqbn =
        arduino:avr:uno
        esp32:esp32:esp32
    datadir = results
    threads = 4
    compile_timeout = 300
"""

import configparser
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

CONFIG_SECTION = "libcheck"
ENV_PREFIX = "LIBCHECK_"
DEFAULT_COMPILE_TIMEOUT = 600.0
DEFAULT_CLI_PATH = "arduino-cli"
KNOWN_KEYS = (
    "fqbn",
    "datadir",
    "cli_datadir",
    "user_dir",
    "additional_urls",
    "threads",
    "force",
    "compile_timeout",
    "cli_path",
    "scratch_root",
)


class ConfigError(Exception):
    """Exception raised for invalid configuration values."""

    pass


@dataclass
class CheckConfig:
    """Settings for one libcheck run.

    Attributes:
        fqbns: Boards to test against, in order
        datadir: Directory holding one result file per library
        cli_datadir: Custom arduino-cli data directory (data/, downloads/, user/)
        user_dir: Sketchbook directory, resolved from arduino-cli when None
        additional_urls: Extra Boards Manager URLs
        threads: Number of parallel workers for batch runs
        force: Re-test combinations that already have results
        compile_timeout: Deadline in seconds for a single compile
        cli_path: arduino-cli executable
        scratch_root: Parent directory for temporary probe sketches
    """

    fqbns: list[str] = field(default_factory=list)
    datadir: Optional[Path] = None
    cli_datadir: Optional[Path] = None
    user_dir: Optional[Path] = None
    additional_urls: list[str] = field(default_factory=list)
    threads: int = 1
    force: bool = False
    compile_timeout: float = DEFAULT_COMPILE_TIMEOUT
    cli_path: str = DEFAULT_CLI_PATH
    scratch_root: Optional[Path] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check value ranges and board identifiers.

        Raises:
            ConfigError: If a value is out of range or an FQBN is malformed
        """
        if self.threads < 1:
            raise ConfigError(f"threads must be at least 1, got {self.threads}")
        if self.compile_timeout <= 0:
            raise ConfigError(f"compile_timeout must be positive, got {self.compile_timeout}")
        for fqbn in self.fqbns:
            parts = fqbn.split(":")
            if len(parts) < 3 or not all(parts[:3]):
                raise ConfigError(f"Invalid FQBN '{fqbn}', expected vendor:architecture:board")

    @property
    def libraries_dir(self) -> Optional[Path]:
        """Directory where installed libraries live, if known."""
        user_dir = self.resolved_user_dir
        return user_dir / "libraries" if user_dir else None

    @property
    def resolved_user_dir(self) -> Optional[Path]:
        """Sketchbook directory implied by the configuration, if any."""
        if self.user_dir is not None:
            return self.user_dir
        if self.cli_datadir is not None:
            return self.cli_datadir / "user"
        return None

    def with_overrides(self, **overrides: Any) -> "CheckConfig":
        """Return a copy with non-None overrides applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)


def _split_values(value: str) -> list[str]:
    """Split a list value on commas and newlines."""
    tokens = value.replace(",", "\n").split("\n")
    return [token.strip() for token in tokens if token.strip()]


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def _parse_number(key: str, value: str, kind: type) -> Any:
    try:
        return kind(value)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e


def _convert(raw: Mapping[str, str]) -> dict[str, Any]:
    """Convert raw string settings into CheckConfig field values."""
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "fqbn":
            values["fqbns"] = _split_values(value)
        elif key == "additional_urls":
            values["additional_urls"] = _split_values(value)
        elif key in ("datadir", "cli_datadir", "user_dir", "scratch_root"):
            values[key] = Path(value).expanduser() if value.strip() else None
        elif key == "threads":
            values["threads"] = _parse_number(key, value, int)
        elif key == "compile_timeout":
            values["compile_timeout"] = _parse_number(key, value, float)
        elif key == "force":
            values["force"] = _parse_bool(key, value)
        elif key == "cli_path":
            values["cli_path"] = value.strip()
        else:
            raise ConfigError(f"Unknown configuration key: {key}")
    return values


def read_config_file(ini_path: Path) -> dict[str, str]:
    """Read the [libcheck] section of an INI file.

    Raises:
        ConfigError: If the file doesn't exist or cannot be parsed
    """
    if not ini_path.exists():
        raise ConfigError(f"Configuration file not found: {ini_path}")

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(ini_path, encoding="utf-8")
    except configparser.Error as e:
        raise ConfigError(f"Failed to parse {ini_path}: {e}") from e

    if CONFIG_SECTION not in parser:
        return {}
    return {key: value for key, value in parser[CONFIG_SECTION].items()}


def read_environment(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Collect LIBCHECK_* variables, e.g. LIBCHECK_CLI_DATADIR -> cli_datadir."""
    environ = os.environ if environ is None else environ
    values = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX):].lower()
        if key in KNOWN_KEYS:
            values[key] = value
    return values


def load_config(
    ini_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> CheckConfig:
    """Build a CheckConfig from file, environment and explicit overrides.

    Args:
        ini_path: Optional INI file with a [libcheck] section
        environ: Environment mapping (defaults to os.environ)
        **overrides: CheckConfig field values; None means "not given"

    Returns:
        Validated CheckConfig

    Raises:
        ConfigError: If any source holds an invalid value
    """
    values: dict[str, Any] = {}
    if ini_path is not None:
        values.update(_convert(read_config_file(ini_path)))
    values.update(_convert(read_environment(environ)))
    values.update({key: value for key, value in overrides.items() if value is not None})
    return CheckConfig(**values)
