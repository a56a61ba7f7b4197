"""
Command-line interface for libcheck.

This module provides the `libcheck` CLI tool for compiling Arduino libraries
against a set of boards and reporting their compatibility.
"""

import argparse
import json
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from libcheck import __version__
from libcheck.batch import BatchAborted, BatchScheduler
from libcheck.cli_utils import ErrorFormatter, PathValidator, setup_logging
from libcheck.config import CheckConfig, ConfigError, load_config
from libcheck.library import ManifestError, read_manifest
from libcheck.report import aggregate_directory, format_summary
from libcheck.results import LibraryResultSet, ResultStore, ResultStoreError
from libcheck.tester import LibraryTester, ResultSetMismatch
from libcheck.toolchain import AdapterError, ArduinoCliClient

REPORT_FILE = "report.json"


@dataclass
class TestArgs:
    """Arguments for the test command."""

    __test__ = False  # not a pytest test class

    library_path: Path
    config: CheckConfig
    verbose: bool = False


@dataclass
class TestAllArgs:
    """Arguments for the testall command."""

    __test__ = False  # not a pytest test class

    config: CheckConfig
    patterns: list[str] = field(default_factory=list)
    verbose: bool = False


@dataclass
class ReportArgs:
    """Arguments for the report command."""

    datadir: Path
    output: Optional[Path] = None
    verbose: bool = False


def test_command(args: TestArgs) -> None:
    """Test a single library on the configured boards.

    Examples:
        libcheck test ~/Arduino/libraries/Servo --fqbn arduino:avr:uno
        libcheck test ./MyLib --fqbn arduino:avr:uno,esp32:esp32:esp32
        libcheck test ./MyLib --fqbn arduino:avr:uno --datadir results
    """
    config = args.config
    try:
        adapter = ArduinoCliClient(config)
        tester = LibraryTester(config)

        store = ResultStore(config.datadir) if config.datadir else None
        prior = LibraryResultSet()
        if store is not None:
            # The result file is named after the library, read it first
            prior = store.load(read_manifest(args.library_path).name)

        results = tester.test_library(args.library_path, prior, config.force, adapter)

        if store is not None and results.name:
            store.save(results)

        print(json.dumps(results.to_dict(), indent=2))
        sys.exit(0)

    except (ManifestError, ResultSetMismatch, AdapterError, ResultStoreError) as e:
        ErrorFormatter.handle_error("Test failed", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def testall_command(args: TestAllArgs) -> None:
    """Incrementally test all installed libraries.

    Examples:
        libcheck testall --datadir results --fqbn arduino:avr:uno
        libcheck testall "Arduino_*" --datadir results -j 4
        libcheck testall --datadir results --force
    """
    config = args.config
    try:
        if config.datadir is None:
            raise ConfigError("Missing required --datadir option")

        scheduler = BatchScheduler(
            config=config,
            adapter_factory=lambda: ArduinoCliClient(config),
            store=ResultStore(config.datadir),
        )

        start_time = time.time()
        summary = scheduler.run(args.patterns)
        elapsed = time.time() - start_time

        ErrorFormatter.print_success(f"Tested {len(summary.tested)}/{summary.total} libraries")
        if summary.skipped:
            print(f"Skipped: {', '.join(sorted(summary.skipped))}")
        print(f"Time: {elapsed:.2f}s")
        sys.exit(0)

    except (ConfigError, BatchAborted) as e:
        ErrorFormatter.handle_error("Batch failed", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def report_command(args: ReportArgs) -> None:
    """Aggregate stored results into a compatibility report.

    Examples:
        libcheck report --datadir results
        libcheck report --datadir results -o report
    """
    try:
        PathValidator.validate_directory(args.datadir, "Data directory")
        report = aggregate_directory(args.datadir, generated_at=datetime.now())
        print(format_summary(report))

        if args.output is not None:
            args.output.mkdir(parents=True, exist_ok=True)
            report_path = args.output / REPORT_FILE
            with open(report_path, "w", encoding="utf-8") as f:
                json.dump(report.to_dict(), f, indent=2)
            print()
            print(f"Report data written to {report_path}")
        sys.exit(0)

    except PermissionError as e:
        ErrorFormatter.handle_error("Error: Permission denied", e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _split_fqbns(values: Optional[list[str]]) -> Optional[list[str]]:
    """Flatten repeated and comma-separated --fqbn values."""
    if not values:
        return None
    return [fqbn.strip() for value in values for fqbn in value.split(",") if fqbn.strip()]


def _config_from_args(parsed_args: argparse.Namespace) -> CheckConfig:
    """Build the run configuration from parsed arguments."""
    return load_config(
        ini_path=parsed_args.config,
        fqbns=_split_fqbns(parsed_args.fqbn),
        datadir=parsed_args.datadir,
        cli_datadir=parsed_args.cli_datadir,
        additional_urls=parsed_args.additional_urls.split(",") if parsed_args.additional_urls else None,
        compile_timeout=parsed_args.timeout,
        threads=getattr(parsed_args, "threads", None),
        force=True if parsed_args.force else None,
    )


def main() -> None:
    """libcheck - Arduino library compatibility checker."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--datadir",
        type=Path,
        default=None,
        help="The directory where test results are stored",
    )
    common.add_argument(
        "--cli-datadir",
        type=Path,
        default=None,
        help="A custom directory for arduino-cli data",
    )
    common.add_argument(
        "--additional-urls",
        default=None,
        help="Comma-separated list of additional URLs for the Boards Manager",
    )
    common.add_argument(
        "--fqbn",
        action="append",
        default=None,
        help="The FQBN(s) to compile the library against (repeatable, comma-separated)",
    )
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="INI file with a [libcheck] section",
    )
    common.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline in seconds for a single compile (default: 600)",
    )
    common.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Re-test all library-core combinations even if already seen",
    )
    common.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write the log to this file",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    parser = argparse.ArgumentParser(
        prog="libcheck",
        description="Compile Arduino libraries on multiple boards to check their compatibility",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"libcheck {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Test command
    test_parser = subparsers.add_parser(
        "test",
        parents=[common],
        help="Test a single library",
    )
    test_parser.add_argument(
        "library_path",
        type=Path,
        help="Library directory (contains library.properties)",
    )

    # Testall command
    testall_parser = subparsers.add_parser(
        "testall",
        parents=[common],
        help="Incrementally test all installed libraries",
    )
    testall_parser.add_argument(
        "patterns",
        nargs="*",
        default=[],
        help="Glob patterns selecting libraries (default: all installed)",
    )
    testall_parser.add_argument(
        "-j",
        "--threads",
        type=int,
        default=None,
        help="How many parallel jobs to run (default: 1)",
    )

    # Report command
    report_parser = subparsers.add_parser(
        "report",
        parents=[common],
        help="Generate a compatibility report from stored results",
    )
    report_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Directory to write report.json to",
    )

    # Parse arguments
    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(verbose=parsed_args.verbose, log_file=parsed_args.log_file)

    try:
        config = _config_from_args(parsed_args)
    except ConfigError as e:
        ErrorFormatter.handle_error("Invalid configuration", e)
        return

    # Execute command
    if parsed_args.command == "test":
        PathValidator.validate_directory(parsed_args.library_path, "Library path")
        if not config.fqbns:
            ErrorFormatter.handle_error("Invalid configuration", ConfigError("At least one --fqbn is required"))
        test_command(TestArgs(library_path=parsed_args.library_path, config=config, verbose=parsed_args.verbose))
    elif parsed_args.command == "testall":
        if not config.fqbns:
            ErrorFormatter.handle_error("Invalid configuration", ConfigError("At least one --fqbn is required"))
        testall_command(TestAllArgs(config=config, patterns=parsed_args.patterns, verbose=parsed_args.verbose))
    elif parsed_args.command == "report":
        if config.datadir is None:
            ErrorFormatter.handle_error("Invalid configuration", ConfigError("Missing required --datadir option"))
            return
        report_command(ReportArgs(datadir=config.datadir, output=parsed_args.output, verbose=parsed_args.verbose))


if __name__ == "__main__":
    main()
