"""
Unit tests for the arduino-cli compile adapter.

subprocess.Popen and psutil are mocked; no arduino-cli is needed.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import psutil
import pytest

from libcheck.config import CheckConfig
from libcheck.toolchain import (
    AdapterUnavailable,
    ArduinoCliClient,
    CompileTimeout,
    CoreVersionUnavailable,
)
from libcheck.toolchain.arduino_cli import kill_process_tree


def make_process(output="", returncode=0, pid=4242):
    """Create a mock Popen object."""
    proc = MagicMock()
    proc.pid = pid
    proc.returncode = returncode
    proc.communicate.return_value = (output, None)
    return proc


@pytest.fixture
def config():
    return CheckConfig(fqbns=["arduino:avr:uno"], compile_timeout=30)


@pytest.fixture
def client(config):
    return ArduinoCliClient(config)


class TestEnvironment:
    """Tests for the child process environment."""

    def test_cli_datadir_sets_directories(self, tmp_path):
        client = ArduinoCliClient(CheckConfig(cli_datadir=tmp_path))

        assert client.env["ARDUINO_DIRECTORIES_DATA"] == str(tmp_path / "data")
        assert client.env["ARDUINO_DIRECTORIES_DOWNLOADS"] == str(tmp_path / "downloads")
        assert client.env["ARDUINO_DIRECTORIES_USER"] == str(tmp_path / "user")

    def test_user_dir_overrides_cli_datadir(self, tmp_path):
        client = ArduinoCliClient(CheckConfig(cli_datadir=tmp_path, user_dir=tmp_path / "sketchbook"))

        assert client.env["ARDUINO_DIRECTORIES_USER"] == str(tmp_path / "sketchbook")

    def test_additional_urls_joined(self):
        client = ArduinoCliClient(CheckConfig(additional_urls=["https://a/index.json", "https://b/index.json"]))

        assert client.env["ARDUINO_BOARD_MANAGER_ADDITIONAL_URLS"] == "https://a/index.json https://b/index.json"


class TestCompile:
    """Tests for ArduinoCliClient.compile."""

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_compile_success(self, mock_popen, client):
        mock_popen.return_value = make_process("Sketch uses 924 bytes", returncode=0)

        outcome = client.compile(Path("/tmp/sketch"), Path("/libs/Servo"), "arduino:avr:uno")

        assert outcome.passed is True
        assert outcome.output == "Sketch uses 924 bytes"
        cmd = mock_popen.call_args[0][0]
        assert cmd == [
            "arduino-cli",
            "compile",
            "--fqbn",
            "arduino:avr:uno",
            "--library",
            str(Path("/libs/Servo")),
            str(Path("/tmp/sketch")),
        ]
        mock_popen.return_value.communicate.assert_called_once_with(timeout=30)

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_compile_failure_is_outcome(self, mock_popen, client):
        mock_popen.return_value = make_process("error: Servo.h: No such file", returncode=1)

        outcome = client.compile(Path("/tmp/sketch"), Path("/libs/Servo"), "arduino:avr:uno")

        assert outcome.passed is False
        assert "No such file" in outcome.output

    @patch("libcheck.toolchain.arduino_cli.kill_process_tree")
    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_compile_timeout_kills_tree(self, mock_popen, mock_kill, client):
        proc = make_process()
        proc.communicate.side_effect = [
            subprocess.TimeoutExpired(cmd="arduino-cli", timeout=30),
            ("partial output", None),
        ]
        mock_popen.return_value = proc

        with pytest.raises(CompileTimeout) as exc_info:
            client.compile(Path("/tmp/sketch"), Path("/libs/Servo"), "arduino:avr:uno")

        mock_kill.assert_called_once_with(4242)
        assert exc_info.value.output == "partial output"

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_missing_executable(self, mock_popen, client):
        mock_popen.side_effect = FileNotFoundError("arduino-cli")

        with pytest.raises(AdapterUnavailable):
            client.compile(Path("/tmp/sketch"), Path("/libs/Servo"), "arduino:avr:uno")


class TestQueries:
    """Tests for metadata queries."""

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_core_version_new_format(self, mock_popen, client):
        data = {"platforms": [{"id": "arduino:avr", "installed_version": "1.8.6"}]}
        mock_popen.return_value = make_process(json.dumps(data))

        assert client.get_installed_core_version("arduino:avr") == "1.8.6"
        cmd = mock_popen.call_args[0][0]
        assert cmd[1:] == ["core", "list", "--format", "json"]

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_core_version_legacy_format(self, mock_popen, client):
        data = [{"id": "esp32:esp32", "installed": "2.0.14"}]
        mock_popen.return_value = make_process(json.dumps(data))

        assert client.get_installed_core_version("esp32:esp32") == "2.0.14"

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_core_not_installed(self, mock_popen, client):
        mock_popen.return_value = make_process(json.dumps({"platforms": []}))

        with pytest.raises(CoreVersionUnavailable, match="arduino:samd"):
            client.get_installed_core_version("arduino:samd")

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_query_failure(self, mock_popen, client):
        mock_popen.return_value = make_process("Error: unknown command", returncode=1)

        with pytest.raises(AdapterUnavailable):
            client.get_installed_core_version("arduino:avr")

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_query_bad_json(self, mock_popen, client):
        mock_popen.return_value = make_process("not json")

        with pytest.raises(AdapterUnavailable):
            client.list_installed_libraries()

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_list_installed_libraries(self, mock_popen, client):
        data = {
            "installed_libraries": [
                {"library": {"name": "Servo", "version": "1.2.1"}},
                {"library": {"name": "Adafruit GFX Library"}},
                {"library": {}},
            ]
        }
        mock_popen.return_value = make_process(json.dumps(data))

        assert client.list_installed_libraries() == ["Servo", "Adafruit GFX Library"]

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_list_installed_libraries_empty(self, mock_popen, client):
        mock_popen.return_value = make_process("{}")

        assert client.list_installed_libraries() == []

    def test_user_directory_from_config(self, tmp_path):
        client = ArduinoCliClient(CheckConfig(cli_datadir=tmp_path))

        assert client.get_user_directory() == tmp_path / "user"

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_user_directory_from_config_dump(self, mock_popen, client):
        data = {"config": {"directories": {"user": "/home/me/Arduino"}}}
        mock_popen.return_value = make_process(json.dumps(data))

        assert client.get_user_directory() == Path("/home/me/Arduino")

    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_user_directory_missing(self, mock_popen, client):
        mock_popen.return_value = make_process(json.dumps({"directories": {}}))

        with pytest.raises(AdapterUnavailable):
            client.get_user_directory()

    @pytest.mark.parametrize("payload", [["directories"], "user", {"config": ["x"]}, {"directories": "x"}])
    @patch("libcheck.toolchain.arduino_cli.subprocess.Popen")
    def test_user_directory_unexpected_shape(self, mock_popen, client, payload):
        mock_popen.return_value = make_process(json.dumps(payload))

        with pytest.raises(AdapterUnavailable):
            client.get_user_directory()


class TestKillProcessTree:
    """Tests for kill_process_tree."""

    @patch("libcheck.toolchain.arduino_cli.psutil")
    def test_terminates_children_and_root(self, mock_psutil):
        child = Mock(pid=2)
        root = Mock(pid=1)
        root.children.return_value = [child]
        mock_psutil.Process.return_value = root
        mock_psutil.NoSuchProcess = psutil.NoSuchProcess
        mock_psutil.Error = psutil.Error
        mock_psutil.wait_procs.return_value = ([child, root], [])

        assert kill_process_tree(1) == 2
        child.terminate.assert_called_once()
        root.terminate.assert_called_once()
        root.kill.assert_not_called()

    @patch("libcheck.toolchain.arduino_cli.psutil")
    def test_force_kills_survivors(self, mock_psutil):
        root = Mock(pid=1)
        root.children.return_value = []
        mock_psutil.Process.return_value = root
        mock_psutil.NoSuchProcess = psutil.NoSuchProcess
        mock_psutil.Error = psutil.Error
        mock_psutil.wait_procs.return_value = ([], [root])

        kill_process_tree(1)

        root.kill.assert_called_once()

    @patch("libcheck.toolchain.arduino_cli.psutil")
    def test_process_already_gone(self, mock_psutil):
        mock_psutil.NoSuchProcess = psutil.NoSuchProcess
        mock_psutil.Process.side_effect = psutil.NoSuchProcess(1)

        assert kill_process_tree(1) == 0
