"""
Serial Byte Channel
===================

A thin duplex byte stream over an opened serial port. The PROMPRO-8
protocol only ever needs two primitives:

- write a short command string
- read one byte, giving up after a timeout

Timeouts are per call, and the channel owns the port's read timeout.
Interrupted system calls are retried inside pyserial, so a caller only ever
sees a byte, a ReadTimeout, or a DeviceIOError.

Tracing
-------
When tracing is enabled every byte written and read is logged at DEBUG
level on the ``prompro.trace`` logger. Tracing is purely observational.
"""

import logging
from typing import TYPE_CHECKING, Final, Optional

from prompro.comms.serial import close_serial_port
from prompro.errors import DeviceIOError, ReadTimeout

if TYPE_CHECKING:
    import serial

# Configure module logger
logger = logging.getLogger(__name__)

# Raw byte trace sink
trace_logger = logging.getLogger("prompro.trace")

# Default per-read timeout in milliseconds
DEFAULT_READ_TIMEOUT_MS: Final[int] = 2000


def _format_trace(data: bytes) -> str:
    """Render bytes for the trace log: printable ASCII plus hex."""
    text = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in data)
    return f"{data.hex(' ')} |{text}|"


class Channel:
    """
    Byte channel to the programmer.

    Usage:
        port = open_serial_port('/dev/ttyUSB0', baud_rate=9600)
        channel = Channel(port, device='/dev/ttyUSB0')
        channel.write(b'\\r')
        ch = channel.read_byte(2000)
    """

    def __init__(
        self,
        port: "serial.Serial",
        device: Optional[str] = None,
        trace: bool = False,
    ):
        """
        Args:
            port: Opened serial port (or any object with the same read,
                  write, flush and timeout interface).
            device: Device path, used in error messages.
            trace: Log raw bytes to the ``prompro.trace`` logger.
        """
        self.port = port
        self.device = device if device is not None else getattr(port, "port", None)
        self.trace = trace

    def write(self, data: bytes) -> None:
        """
        Write raw bytes and wait until they have been transmitted.

        Raises:
            DeviceIOError: If the underlying write fails.
        """
        if self.trace:
            trace_logger.debug("TX %s", _format_trace(data))
        try:
            self.port.write(data)
            self.port.flush()
        # serial.SerialException derives from IOError
        except OSError as e:
            raise DeviceIOError(str(e), device=self.device) from e

    def read_byte(self, timeout_ms: int = DEFAULT_READ_TIMEOUT_MS) -> int:
        """
        Read a single byte.

        Args:
            timeout_ms: How long to wait for this byte, in milliseconds.

        Returns:
            The byte value (0-255).

        Raises:
            ReadTimeout: If no byte arrived within timeout_ms.
            DeviceIOError: If the device is no longer readable.
        """
        timeout = max(timeout_ms, 0) / 1000.0
        try:
            # Setting timeout reconfigures the tty, so only do it on change
            if self.port.timeout != timeout:
                self.port.timeout = timeout
            data = self.port.read(1)
        except OSError as e:
            raise DeviceIOError(str(e), device=self.device) from e

        if not data:
            raise ReadTimeout(f"No data within {timeout_ms} ms")

        if self.trace:
            trace_logger.debug("RX %s", _format_trace(data))
        return data[0]

    def close(self) -> None:
        """Close the underlying port. Safe to call more than once."""
        close_serial_port(self.port)

