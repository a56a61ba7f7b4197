"""On-disk layout of an installed Arduino library.

Libraries come in two layouts:
- 1.5 format: sources and headers under ``src/``
- legacy format: sources and headers in the library root

Examples live under ``examples/``, one sketch per directory, possibly nested
in category folders (``examples/Basics/Blink/Blink.ino``).
"""

import os
from pathlib import Path
from typing import Iterator, Optional

SKETCH_SUFFIX = ".ino"


class LibraryLayout:
    """Paths inside a library root directory."""

    def __init__(self, lib_dir: Path):
        """Initialize library layout.

        Args:
            lib_dir: Library root directory (contains library.properties)
        """
        self.lib_dir = Path(lib_dir)
        self.src_dir = self.lib_dir / "src"
        self.examples_dir = self.lib_dir / "examples"

    @property
    def exists(self) -> bool:
        """Check if the library directory exists."""
        return self.lib_dir.is_dir()

    def find_header(self, header_file: str) -> Optional[Path]:
        """Look for a header in src/, then in the library root.

        Args:
            header_file: Header file name (e.g. "Servo.h")

        Returns:
            Path to the header, or None if neither location has it
        """
        for candidate in (self.src_dir / header_file, self.lib_dir / header_file):
            if candidate.is_file():
                return candidate
        return None

    def canonical_header_path(self, header_file: str) -> Path:
        """Location where a missing main header should be created."""
        if self.src_dir.is_dir():
            return self.src_dir / header_file
        return self.lib_dir / header_file

    def iter_sketch_entries(self) -> Iterator[tuple[Path, bool]]:
        """Walk the examples directory lazily.

        Each call starts a fresh traversal. No ordering is guaranteed.

        Yields:
            (path, is_sketch) for every file below examples/
        """
        if not self.examples_dir.is_dir():
            return

        for root, _dirs, files in os.walk(self.examples_dir):
            for name in files:
                yield Path(root) / name, name.endswith(SKETCH_SUFFIX)

    def example_dirs(self) -> Iterator[Path]:
        """Yield every example directory that directly contains a sketch file."""
        seen: set[Path] = set()
        for path, is_sketch in self.iter_sketch_entries():
            if not is_sketch:
                continue
            example_dir = path.parent
            if example_dir in seen:
                continue
            seen.add(example_dir)
            yield example_dir
