"""
CLI Error Handling
==================

Maps controller exceptions to messages and exit codes. Each fatal condition
gets its own exit code so that scripts driving the programmer can tell a
missing device from an unresponsive one.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from prompro.errors import (
    ConfigurationError,
    DeviceIOError,
    DeviceNotReadyError,
    DownloadError,
    EpromTypeError,
    SelectionTimeoutError,
    SerialOpenError,
)


class ExitCode(IntEnum):
    """Exit codes for the prompro command."""
    SUCCESS = 0
    CONFIG_ERROR = 1        # Missing or invalid configuration
    INVALID_ARGS = 2        # Invalid command-line arguments
    SERIAL_OPEN_ERROR = 3   # Serial device cannot be opened
    READ_ERROR = 4          # I/O error talking to the device
    NOT_READY = 5           # No prompt during the handshake
    SELECTION_TIMEOUT = 6   # No prompt after a select command
    UNKNOWN_TYPE = 7        # EPROM type unknown or has no segments
    DOWNLOAD_ERROR = 8      # Destination file cannot be written
    INTERNAL_ERROR = 9      # Unexpected internal error


# Ordered so that subclasses are matched before their bases
_ERROR_TABLE: tuple[tuple[type, ExitCode, str], ...] = (
    (EpromTypeError, ExitCode.UNKNOWN_TYPE, "Configuration error: "),
    (ConfigurationError, ExitCode.CONFIG_ERROR, "Configuration error: "),
    (SerialOpenError, ExitCode.SERIAL_OPEN_ERROR, "Serial error: "),
    # DeviceIOError carries its phase in the message
    (DeviceIOError, ExitCode.READ_ERROR, "I/O error: "),
    (DeviceNotReadyError, ExitCode.NOT_READY, "Handshake error: "),
    (SelectionTimeoutError, ExitCode.SELECTION_TIMEOUT, "Selection error: "),
    (DownloadError, ExitCode.DOWNLOAD_ERROR, "Download error: "),
    (click.BadParameter, ExitCode.INVALID_ARGS, "Error: "),
)


def exit_code_for(error: Exception) -> ExitCode:
    """Return the exit code that reports `error`."""
    for error_type, code, _ in _ERROR_TABLE:
        if isinstance(error, error_type):
            return code
    return ExitCode.INTERNAL_ERROR


def error_prefix(error: Exception) -> str:
    """Message prefix naming the phase or family of `error`."""
    for error_type, _, prefix in _ERROR_TABLE:
        if isinstance(error, error_type):
            return prefix
    return "Internal error: "


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report `error` on stderr and exit with its exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors

    Raises:
        SystemExit: Always
    """
    code = exit_code_for(error)
    click.echo(f"{error_prefix(error)}{error}", err=True)

    if code == ExitCode.INTERNAL_ERROR and verbose:
        traceback.print_exc()

    sys.exit(code)
