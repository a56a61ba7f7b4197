"""Result file persistence.

Results are stored one JSON file per library, named after the sanitized
library name, in a data directory:

    results/
    ├── Servo.json
    ├── Adafruit_GFX_Library.json
    └── ...

The result file is the only record of what has already been tested. Writes
go to a temporary file first and are moved into place atomically, so an
interrupted run never leaves a truncated file behind.
"""

import json
import logging
from pathlib import Path
from typing import Iterator, Optional

from libcheck.library.manifest import sanitize_name
from libcheck.results.models import LibraryResultSet

RESULT_SUFFIX = ".json"


class ResultStoreError(Exception):
    """Raised when result files cannot be written."""

    pass


class CorruptResultFile(ResultStoreError):
    """Raised when an existing result file cannot be decoded."""

    pass


def read_results_file(path: Path) -> Optional[LibraryResultSet]:
    """Read one result file.

    Args:
        path: Path to a result JSON file

    Returns:
        The result set, or None if the file doesn't exist or can't be opened

    Raises:
        CorruptResultFile: If the file exists but is not a valid result set
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError:
        return None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptResultFile(f"Invalid JSON in {path}: {e}") from e

    try:
        return LibraryResultSet.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptResultFile(f"Invalid result data in {path}: {e}") from e


def write_results_file(path: Path, results: LibraryResultSet) -> None:
    """Write one result file atomically.

    Raises:
        ResultStoreError: If the file cannot be written
    """
    temp_file = path.with_suffix(path.suffix + ".tmp")
    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(results.to_dict(), f, indent=2)
            f.write("\n")
        temp_file.replace(path)
    except OSError as e:
        temp_file.unlink(missing_ok=True)
        raise ResultStoreError(f"Could not save test results to {path}: {e}") from e


class ResultStore:
    """Directory of per-library result files."""

    def __init__(self, datadir: Path):
        """Initialize the store.

        Args:
            datadir: Directory holding the result files
        """
        self.datadir = Path(datadir)

    def path_for(self, library_name: str) -> Path:
        """Result file path for a library name."""
        return self.datadir / f"{sanitize_name(library_name)}{RESULT_SUFFIX}"

    def ensure_directory(self) -> None:
        """Create the data directory if needed.

        Raises:
            ResultStoreError: If the directory cannot be created
        """
        try:
            self.datadir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResultStoreError(f"Cannot create data directory {self.datadir}: {e}") from e

    def load(self, library_name: str) -> LibraryResultSet:
        """Load prior results for a library.

        A missing file yields an empty result set. A corrupt file is logged
        and also treated as empty, so the library gets re-tested and the file
        rewritten.
        """
        path = self.path_for(library_name)
        try:
            results = read_results_file(path)
        except CorruptResultFile as e:
            logging.warning(f"Ignoring corrupt result file: {e}")
            results = None
        return results if results is not None else LibraryResultSet()

    def save(self, results: LibraryResultSet) -> Path:
        """Persist a library's result set.

        Returns:
            Path of the written file

        Raises:
            ResultStoreError: If the result set has no name or cannot be written
        """
        if not results.name:
            raise ResultStoreError("Cannot save a result set without a library name")
        self.ensure_directory()
        path = self.path_for(results.name)
        write_results_file(path, results)
        return path

    def iter_files(self) -> Iterator[Path]:
        """Yield result files in directory listing order."""
        if not self.datadir.is_dir():
            return
        for path in self.datadir.iterdir():
            if path.is_file() and path.suffix == RESULT_SUFFIX:
                yield path
