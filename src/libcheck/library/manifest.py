"""
library.properties reader.

This module parses the metadata file shipped with every Arduino library and
extracts the fields needed to decide what to compile and how to classify the
results.

Example library.properties:
    name=Servo
    version=1.2.1
    architectures=avr,megaavr,sam
    includes=Servo.h
"""

import configparser
import re
from dataclasses import dataclass, field
from pathlib import Path

MANIFEST_FILE = "library.properties"

# library.properties has no sections, configparser needs one
_SECTION = "library"

_UNSAFE_NAME_CHARS = re.compile(r"[^0-9A-Za-z_.\-]")


class ManifestError(Exception):
    """Base exception for library.properties problems."""

    pass


class ManifestNotFound(ManifestError):
    """Raised when library.properties is missing or unreadable."""

    pass


class ManifestInvalid(ManifestError):
    """Raised when library.properties cannot be parsed or has no name."""

    pass


@dataclass
class LibraryManifest:
    """Parsed library.properties contents.

    Attributes:
        path: Library root directory
        name: Declared library name
        version: Declared version string (may be empty)
        architectures: Declared architectures, "*" means any
        includes: Explicit headers to include, empty when not declared
    """

    path: Path
    name: str
    version: str = ""
    architectures: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)

    @property
    def name_and_version(self) -> str:
        """Label used to prefix log messages (e.g. 'Servo@1.2.1')."""
        return f"{self.name}@{self.version}"

    @property
    def header_file(self) -> str:
        """File name of the conventional main header."""
        return f"{sanitize_name(self.name)}.h"


def sanitize_name(name: str) -> str:
    """Convert a library name into the form used for directories and headers.

    Every character outside [0-9A-Za-z_.-] becomes an underscore, matching
    the naming used by the Arduino library manager.

    Args:
        name: Library display name (e.g. "Adafruit GFX Library")

    Returns:
        Sanitized name (e.g. "Adafruit_GFX_Library")
    """
    return _UNSAFE_NAME_CHARS.sub("_", name)


def split_list(value: str) -> list[str]:
    """Split a comma-separated property, dropping empty tokens."""
    return [token.strip() for token in value.split(",") if token.strip()]


def _flatten(content: str) -> str:
    """Normalize a properties file into one key=value per line.

    Leading whitespace never continues the previous value, and section
    headers are dropped so every key lands in the synthetic section.
    """
    lines = []
    for line in content.splitlines():
        line = line.strip()
        if line.startswith("[") and line.endswith("]"):
            continue
        lines.append(line)
    return "\n".join(lines)


def read_manifest(library_path: Path) -> LibraryManifest:
    """Parse library.properties from a library root directory.

    Args:
        library_path: Library root directory

    Returns:
        LibraryManifest for the library

    Raises:
        ManifestNotFound: If the file doesn't exist or cannot be read
        ManifestInvalid: If the file cannot be parsed or declares no name
    """
    library_path = Path(library_path)
    manifest_path = library_path / MANIFEST_FILE

    try:
        content = manifest_path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        raise ManifestNotFound(f"Could not open {MANIFEST_FILE}: {library_path}") from e

    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=("#", ";"),
        interpolation=None,
        strict=False,
    )
    # Keep key case as written
    parser.optionxform = str  # type: ignore[assignment,method-assign]

    try:
        parser.read_string(f"[{_SECTION}]\n{_flatten(content)}", source=str(manifest_path))
    except configparser.Error as e:
        raise ManifestInvalid(f"Failed to parse {manifest_path}: {e}") from e

    properties = parser[_SECTION]
    name = properties.get("name", "").strip()
    if not name:
        raise ManifestInvalid(f"No library name found in {MANIFEST_FILE}: {library_path}")

    return LibraryManifest(
        path=library_path,
        name=name,
        version=properties.get("version", "").strip(),
        architectures=split_list(properties.get("architectures", "")),
        includes=split_list(properties.get("includes", "")),
    )
