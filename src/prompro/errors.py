"""
PROMPRO Error Hierarchy
=======================

This module defines the exception hierarchy for the PROMPRO-8 controller.
All exceptions inherit from PromproError, allowing callers to catch every
controller-related error with a single except clause if desired.

Exception Hierarchy
-------------------
PromproError (base)
├── ConfigurationError (configuration and catalog)
│   ├── ConfigFileError - configuration file missing, unreadable or malformed
│   └── EpromTypeError - requested EPROM type cannot be used
│       ├── UnknownEpromTypeError - name not present in the catalog
│       └── EmptySegmentsError - type has no segments configured
├── CommsError (serial communication)
│   ├── DeviceIOError - OS-level failure reading or writing the device
│   │   └── SerialOpenError - serial device cannot be opened or configured
│   ├── ReadTimeout - a single byte read timed out
│   └── ProtocolError - device did not answer as the protocol requires
│       ├── DeviceNotReadyError - no prompt during the startup handshake
│       └── SelectionTimeoutError - no prompt after a select command
└── DownloadError - destination file cannot be opened or written

Failure Policy
--------------
Every error here is terminal for the current run. The programmer needs a
human (new EPROM, cabling, power) before a retry could succeed, so nothing
in the controller retries; errors propagate to the command line front end,
which maps each family to its own exit code.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class PromproError(Exception):
    """
    Base exception for all PROMPRO controller errors.

    Example:
        try:
            session.handshake()
        except PromproError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(PromproError):
    """
    Invalid or incomplete configuration.

    Raised when:
    - An EPROM type has an empty segment list
    - A numeric configuration value is out of range
    - No configuration could be loaded at all

    Configuration errors are always detected before any device I/O.
    """
    pass


class ConfigFileError(ConfigurationError):
    """
    Configuration file cannot be used.

    Raised when the XML file is missing, unreadable, malformed, or carries
    a non-numeric value where a number is required.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class EpromTypeError(ConfigurationError):
    """Requested EPROM type is unknown or misconfigured."""
    pass


class UnknownEpromTypeError(EpromTypeError):
    """Requested EPROM type is not defined in the catalog."""

    def __init__(self, name: str, known: tuple[str, ...] = ()):
        self.name = name
        self.known = known
        message = f"Unknown EPROM type '{name}'"
        if known:
            message += f" (known types: {', '.join(known)})"
        super().__init__(message)


class EmptySegmentsError(EpromTypeError):
    """EPROM type exists but has no segments to select or download."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"EPROM type {name} has no segments configured")


# =============================================================================
# Communication Exceptions
# =============================================================================

class CommsError(PromproError):
    """Base exception for serial communication errors."""
    pass


class DeviceIOError(CommsError):
    """
    OS-level failure on the serial channel.

    Raised when:
    - The device was unplugged mid-session
    - Permission to the device was revoked
    - The driver reported an error on read or write

    Attributes:
        device: Serial device path, when known
        phase: Session phase in which the failure happened
               ("handshake", "selection", "download"), when known
    """

    def __init__(
        self,
        message: str,
        device: Optional[str] = None,
        phase: Optional[str] = None,
    ):
        self.message = message
        self.device = device
        self.phase = phase
        super().__init__(message)

    def __str__(self) -> str:
        text = self.message
        if self.device:
            text = f"{text}: device {self.device}"
        if self.phase:
            text = f"{self.phase}: {text}"
        return text


class SerialOpenError(DeviceIOError):
    """
    Serial device cannot be opened or configured.

    Distinguished from DeviceIOError so the front end can report
    "unable to open" separately from a failure during the session.
    """

    def __str__(self) -> str:
        if self.device:
            return f"{self.message}: Unable to open serial device {self.device}"
        return self.message


class ReadTimeout(CommsError):
    """
    No byte arrived within the read timeout.

    This is the Channel's per-read timeout signal. The prompt synchronizer
    converts it to a False result, so it never reaches the user directly.
    """
    pass


class ProtocolError(CommsError):
    """
    Device protocol error.

    Raised when the device is present (the channel works) but does not
    answer with the prompt where the protocol requires one.
    """
    pass


class DeviceNotReadyError(ProtocolError):
    """No prompt received in answer to the startup handshake."""

    def __init__(self, message: str = "PROMPRO-8 is not ready"):
        super().__init__(message)


class SelectionTimeoutError(ProtocolError):
    """
    No prompt received after a select-type command.

    Attributes:
        device_type_id: Device type identifier that was being selected
        timeout_ms: Timeout that elapsed, in milliseconds
    """

    def __init__(self, device_type_id: str, timeout_ms: int):
        self.device_type_id = device_type_id
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Timed out selecting device type '{device_type_id}' "
            f"(no prompt within {timeout_ms} ms)"
        )


# =============================================================================
# Download Exceptions
# =============================================================================

class DownloadError(PromproError):
    """
    Destination file cannot be opened or written.

    Attributes:
        path: Destination path
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{message}: {path}"
        super().__init__(message)
