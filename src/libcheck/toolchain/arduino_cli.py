"""arduino-cli backed compile adapter.

This module runs the ``arduino-cli`` executable via subprocess. Every
invocation has a deadline; when it expires the whole process tree is
terminated so a hung toolchain cannot block a worker forever.

Design:
    - One ArduinoCliClient per worker thread, never shared
    - Data directory overrides go into the child environment only
    - JSON output of both older (bare list) and newer (wrapped object)
      arduino-cli releases is accepted
"""

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Optional

import psutil

from libcheck.config import CheckConfig
from libcheck.toolchain.adapter import (
    AdapterUnavailable,
    CompileAdapter,
    CompileOutcome,
    CompileTimeout,
    CoreVersionUnavailable,
)

# Deadline for metadata queries (core list, lib list, config dump)
QUERY_TIMEOUT = 120.0


def kill_process_tree(pid: int) -> int:
    """Terminate a process and all of its children.

    Args:
        pid: PID of the root process

    Returns:
        Number of processes signalled
    """
    try:
        root_proc = psutil.Process(pid)
        processes = root_proc.children(recursive=True) + [root_proc]
    except psutil.NoSuchProcess:
        return 0

    killed_count = 0
    for proc in reversed(processes):
        try:
            proc.terminate()
            killed_count += 1
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            logging.warning(f"Failed to terminate process {proc.pid}: {e}")

    _gone, alive = psutil.wait_procs(processes, timeout=3)
    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            logging.warning(f"Failed to force kill process {proc.pid}: {e}")

    return killed_count


class ArduinoCliClient(CompileAdapter):
    """Compile adapter driving the arduino-cli executable."""

    def __init__(self, config: CheckConfig):
        """Initialize the client.

        Args:
            config: Run configuration (cli path, data dirs, timeouts)
        """
        self.config = config
        self.cli_path = config.cli_path
        self.env = self._build_env(config)

    @staticmethod
    def _build_env(config: CheckConfig) -> dict[str, str]:
        """Environment for arduino-cli child processes."""
        env = dict(os.environ)
        if config.cli_datadir is not None:
            datadir = Path(config.cli_datadir)
            env["ARDUINO_DIRECTORIES_DATA"] = str(datadir / "data")
            env["ARDUINO_DIRECTORIES_DOWNLOADS"] = str(datadir / "downloads")
            env["ARDUINO_DIRECTORIES_USER"] = str(datadir / "user")
        if config.user_dir is not None:
            env["ARDUINO_DIRECTORIES_USER"] = str(config.user_dir)
        if config.additional_urls:
            env["ARDUINO_BOARD_MANAGER_ADDITIONAL_URLS"] = " ".join(config.additional_urls)
        return env

    def _run(self, args: list[str], timeout: float) -> tuple[int, str]:
        """Run arduino-cli with a deadline.

        Args:
            args: Arguments after the executable
            timeout: Deadline in seconds

        Returns:
            Tuple of (return code, combined stdout/stderr)

        Raises:
            AdapterUnavailable: If the executable cannot be started
            CompileTimeout: If the deadline expires
        """
        cmd = [self.cli_path] + args
        logging.debug(f"==> {' '.join(cmd)}")

        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=self.env,
            )
        except OSError as e:
            raise AdapterUnavailable(f"Cannot run {self.cli_path}: {e}") from e

        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            kill_process_tree(proc.pid)
            output, _ = proc.communicate()
            raise CompileTimeout(
                f"{' '.join(cmd)} timed out after {timeout:.0f}s",
                output=output or "",
            )

        return proc.returncode, output or ""

    def _query_json(self, args: list[str]) -> Any:
        """Run a metadata query with --format json and decode the output."""
        try:
            returncode, output = self._run(args + ["--format", "json"], QUERY_TIMEOUT)
        except CompileTimeout as e:
            raise AdapterUnavailable(str(e)) from e

        if returncode != 0:
            raise AdapterUnavailable(f"arduino-cli {' '.join(args)} failed:\n{output}")

        try:
            return json.loads(output) if output.strip() else None
        except json.JSONDecodeError as e:
            raise AdapterUnavailable(f"Unexpected output from arduino-cli {' '.join(args)}: {e}") from e

    def compile(self, sketch_dir: Path, library_dir: Path, fqbn: str) -> CompileOutcome:
        """Compile a sketch with one extra library for a board."""
        returncode, output = self._run(
            ["compile", "--fqbn", fqbn, "--library", str(library_dir), str(sketch_dir)],
            self.config.compile_timeout,
        )
        return CompileOutcome(passed=returncode == 0, output=output)

    def get_installed_core_version(self, core: str) -> str:
        """Return the installed version of a core such as 'arduino:avr'."""
        data = self._query_json(["core", "list"])
        if isinstance(data, dict):
            platforms = data.get("platforms") or []
        else:
            platforms = data or []

        for platform in platforms:
            if platform.get("id") != core:
                continue
            version = platform.get("installed_version") or platform.get("installed")
            if version:
                return version

        raise CoreVersionUnavailable(f"Platform not found: {core}")

    def list_installed_libraries(self) -> list[str]:
        """Return the names of all installed libraries."""
        data = self._query_json(["lib", "list"])
        if isinstance(data, dict):
            entries = data.get("installed_libraries") or []
        else:
            entries = data or []

        names = []
        for entry in entries:
            library = entry.get("library") or {}
            name = library.get("name")
            if name:
                names.append(name)
        return names

    def get_user_directory(self) -> Path:
        """Return the sketchbook directory configured in arduino-cli."""
        if self.config.resolved_user_dir is not None:
            return Path(self.config.resolved_user_dir)

        data = self._query_json(["config", "dump"]) or {}
        if not isinstance(data, dict):
            raise AdapterUnavailable(f"Unexpected arduino-cli config dump: {type(data).__name__}")
        # arduino-cli >= 1.0 nests settings under "config"
        settings: Any = data.get("config", data)
        directories: Any = settings.get("directories") if isinstance(settings, dict) else None
        user_dir: Optional[str] = directories.get("user") if isinstance(directories, dict) else None
        if not user_dir or not isinstance(user_dir, str):
            raise AdapterUnavailable("arduino-cli config has no directories.user entry")
        return Path(user_dir)
