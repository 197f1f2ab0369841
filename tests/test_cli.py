"""
Tests for the prompro Command
=============================

These tests run the click command with CliRunner. The serial device is
replaced by a scripted port so the full startup sequence runs without a
programmer attached.
"""

from unittest.mock import patch

import click
import pytest
import serial
from click.testing import CliRunner

from prompro import __version__
from prompro.catalog import Catalog
from prompro.cli.errors import ExitCode, error_prefix, exit_code_for
from prompro.cli.prompro import apply_overrides, format_catalog, main
from prompro.config import Settings, parse_config_string
from prompro.errors import (
    ConfigFileError,
    DeviceIOError,
    DeviceNotReadyError,
    DownloadError,
    EmptySegmentsError,
    SelectionTimeoutError,
    SerialOpenError,
    UnknownEpromTypeError,
)

from conftest import SAMPLE_CONFIG, FakePort, programmer_replies


@pytest.fixture
def runner():
    return CliRunner()


def run(runner, args, port=None):
    """Invoke the command with `port` standing in for the serial device."""
    with patch("prompro.session.open_serial_port", return_value=port) as opener:
        result = runner.invoke(main, args)
    return result, opener


# =============================================================================
# Exit Code Mapping
# =============================================================================

class TestExitCodes:
    """Tests for exception to exit code mapping."""

    @pytest.mark.parametrize("error, code", [
        (ConfigFileError("bad"), ExitCode.CONFIG_ERROR),
        (UnknownEpromTypeError("X"), ExitCode.UNKNOWN_TYPE),
        (EmptySegmentsError("X"), ExitCode.UNKNOWN_TYPE),
        (SerialOpenError("busy", device="/dev/x"), ExitCode.SERIAL_OPEN_ERROR),
        (DeviceIOError("gone", device="/dev/x"), ExitCode.READ_ERROR),
        (DeviceNotReadyError(), ExitCode.NOT_READY),
        (SelectionTimeoutError("27256", 10000), ExitCode.SELECTION_TIMEOUT),
        (DownloadError("denied", "out.bin"), ExitCode.DOWNLOAD_ERROR),
        (click.BadParameter("nope"), ExitCode.INVALID_ARGS),
        (RuntimeError("boom"), ExitCode.INTERNAL_ERROR),
    ])
    def test_exit_code_for(self, error, code):
        assert exit_code_for(error) == code

    def test_exit_codes_distinct(self):
        assert len({int(c) for c in ExitCode}) == len(ExitCode)

    def test_prefixes(self):
        assert error_prefix(DeviceNotReadyError()) == "Handshake error: "
        assert error_prefix(SelectionTimeoutError("A", 1)) == "Selection error: "
        assert error_prefix(KeyError("x")) == "Internal error: "


# =============================================================================
# Helper Tests
# =============================================================================

class TestHelpers:
    """Tests for option handling helpers."""

    def test_apply_overrides(self):
        settings = Settings(device="/dev/ttyS0", baud_rate=9600, rtscts=True)
        updated = apply_overrides(settings, "/dev/ttyUSB1", 19200, False)
        assert updated.device == "/dev/ttyUSB1"
        assert updated.baud_rate == 19200
        assert updated.rtscts is False

    def test_apply_no_overrides(self):
        settings = Settings(device="/dev/ttyS0")
        assert apply_overrides(settings, None, None, None) == settings

    def test_format_catalog_marks_default(self):
        catalog = parse_config_string(SAMPLE_CONFIG).catalog
        lines = format_catalog(catalog, "2764").splitlines()
        assert lines[0] == "* 2764 (segsize=8192; 2764@0)"
        assert lines[1] == "      8192 bytes, selects 2764"
        assert lines[2].startswith("  27C256")
        assert lines[-1] == "  EMPTY (segsize=1024; no segments)"
        assert len(lines) == 7

    def test_format_catalog_shows_image_and_selections(self):
        catalog = parse_config_string(SAMPLE_CONFIG).catalog
        text = format_catalog(catalog)
        # Both halves share one device type, so one select is shown
        assert "      65536 bytes, selects 27256" in text.splitlines()

    def test_format_empty_catalog(self):
        assert format_catalog(Catalog()) == "No EPROM types configured."


# =============================================================================
# Command Tests
# =============================================================================

class TestMain:
    """Tests for the prompro command."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--download" in result.output
        assert "--list-types" in result.output

    def test_select_default_type(self, runner, config_file):
        port = FakePort(replies=programmer_replies(["2764"]))
        result, opener = run(runner, ["--config", str(config_file)], port)

        assert result.exit_code == 0, result.output
        assert "Dev='/dev/ttyFAKE0', baud=9600, rtscts=1, eprom=2764" in result.output
        assert "Ready." in result.output
        assert "Selected 2764." in result.output
        assert port.written == [b"\r", b"S2764\r"]
        assert not port.is_open
        opener.assert_called_once_with("/dev/ttyFAKE0", 9600, True)

    def test_type_option(self, runner, config_file):
        port = FakePort(replies=programmer_replies(["27C256"]))
        result, _ = run(runner, ["-c", str(config_file), "-t", "27C256"], port)

        assert result.exit_code == 0, result.output
        assert port.select_commands() == [b"S27C256\r"]

    def test_serial_overrides(self, runner, config_file):
        port = FakePort(replies=programmer_replies(["2764"]))
        result, opener = run(
            runner,
            ["-c", str(config_file), "-p", "/dev/ttyUSB3", "-b", "19200", "--no-rtscts"],
            port,
        )

        assert result.exit_code == 0, result.output
        assert "Dev='/dev/ttyUSB3', baud=19200, rtscts=0" in result.output
        opener.assert_called_once_with("/dev/ttyUSB3", 19200, False)

    def test_unknown_type(self, runner, config_file):
        result, opener = run(runner, ["-c", str(config_file), "-t", "27C010"], FakePort())

        assert result.exit_code == ExitCode.UNKNOWN_TYPE
        assert "Unknown EPROM type '27C010'" in result.output
        opener.assert_not_called()

    def test_type_without_segments(self, runner, config_file):
        result, opener = run(runner, ["-c", str(config_file), "-t", "EMPTY"], FakePort())

        assert result.exit_code == ExitCode.UNKNOWN_TYPE
        assert "no segments" in result.output
        opener.assert_not_called()

    def test_not_ready(self, runner, config_file):
        port = FakePort()
        result, _ = run(runner, ["-c", str(config_file)], port)

        assert result.exit_code == ExitCode.NOT_READY
        assert "PROMPRO-8 is not ready" in result.output
        assert "Ready." not in result.output
        assert not port.is_open

    def test_selection_timeout(self, runner, config_file):
        port = FakePort(replies=programmer_replies())
        result, _ = run(runner, ["-c", str(config_file)], port)

        assert result.exit_code == ExitCode.SELECTION_TIMEOUT
        assert "Ready." in result.output
        assert "Selection error" in result.output

    def test_serial_open_error(self, runner, config_file):
        error = SerialOpenError("No such device", device="/dev/ttyFAKE0")
        with patch("prompro.session.open_serial_port", side_effect=error):
            result = runner.invoke(main, ["-c", str(config_file)])

        assert result.exit_code == ExitCode.SERIAL_OPEN_ERROR
        assert "Unable to open serial device /dev/ttyFAKE0" in result.output

    def test_io_error_names_phase(self, runner, config_file):
        port = FakePort()
        port.read_error = OSError("device disconnected")
        result, _ = run(runner, ["-c", str(config_file)], port)

        assert result.exit_code == ExitCode.READ_ERROR
        assert "handshake: device disconnected" in result.output

    def test_port_configure_error_is_read_error(self, runner, config_file):
        """A port that fails to reconfigure its timeout is an I/O error."""
        port = FakePort()
        port.timeout_error = serial.SerialException(
            "Could not configure port: (9, 'Bad file descriptor')"
        )
        result, _ = run(runner, ["-c", str(config_file)], port)

        assert result.exit_code == ExitCode.READ_ERROR
        assert "handshake: Could not configure port" in result.output
        assert not port.is_open

    def test_missing_configuration(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.chdir(tmp_path)
        result, opener = run(runner, [], FakePort())

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Missing or invalid" in result.output
        opener.assert_not_called()

    def test_malformed_configuration(self, runner, tmp_path):
        path = tmp_path / "bad.xml"
        path.write_text("<prompro><serial></prompro>")
        result, _ = run(runner, ["-c", str(path)], FakePort())

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "XML parse error" in result.output

    def test_list_types(self, runner, config_file):
        result, opener = run(runner, ["-c", str(config_file), "--list-types"])

        assert result.exit_code == 0
        assert "* 2764" in result.output
        assert "27C512 (segsize=32768; 27256@0, 27256@32768)" in result.output
        opener.assert_not_called()

    def test_list_ports(self, runner):
        with patch("prompro.cli.prompro.list_serial_ports", return_value=[]):
            result = runner.invoke(main, ["--list-ports"])

        assert result.exit_code == 0
        assert "No serial ports found." in result.output

    def test_download(self, runner, config_file, tmp_path):
        dest = tmp_path / "image.bin"
        port = FakePort(replies=programmer_replies(["27256"]))
        result, _ = run(
            runner, ["-c", str(config_file), "-t", "27C512", "-d", str(dest)], port
        )

        assert result.exit_code == 0, result.output
        assert "Segment 1/2: use=27256 offset=0" in result.output
        assert "Segment 2/2: use=27256 offset=32768" in result.output
        assert "Downloaded 0 of 65536 bytes (2 segments)" in result.output
        assert dest.exists()
        # Consecutive segments share a device type: one select in total
        assert port.select_commands() == [b"S27256\r"]

    def test_download_unwritable(self, runner, config_file, tmp_path):
        dest = tmp_path / "missing" / "image.bin"
        port = FakePort(replies=programmer_replies(["2764"]))
        result, _ = run(runner, ["-c", str(config_file), "-d", str(dest)], port)

        assert result.exit_code == ExitCode.DOWNLOAD_ERROR
        assert "Download error" in result.output
        assert not port.is_open
