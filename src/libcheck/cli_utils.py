"""CLI utility functions for libcheck.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting
- Path validation
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure the root logger for a CLI run.

    Args:
        verbose: Log DEBUG messages to the console instead of INFO
        log_file: Optional file receiving a rotating copy of the log
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Replace handlers from a previous call in the same process
    for handler in list(logger.handlers):
        if getattr(handler, "_libcheck_handler", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler._libcheck_handler = True  # type: ignore[attr-defined]
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
        )
        file_handler._libcheck_handler = True  # type: ignore[attr-defined]
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Batch aborted")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        """Print formatted success message."""
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message."""
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_error(title: str, error: Exception) -> None:
        """Print an expected error and exit with status 1."""
        ErrorFormatter.print_error(title, str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates input paths and directories."""

    @staticmethod
    def validate_directory(path: Path, what: str = "Path") -> None:
        """Validate that a path exists and is a directory.

        Args:
            path: Path to validate
            what: Description used in the error message

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not path.exists():
            print(f"{ErrorFormatter.RED}✗ Error: {what} does not exist: {path}{ErrorFormatter.RESET}")
            sys.exit(2)
        if not path.is_dir():
            print(f"{ErrorFormatter.RED}✗ Error: {what} is not a directory: {path}{ErrorFormatter.RESET}")
            sys.exit(2)
