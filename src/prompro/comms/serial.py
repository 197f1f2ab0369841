"""
Serial Port Utilities for the PROMPRO-8
=======================================

This module opens, closes and enumerates the serial port that connects
the host to the PROMPRO-8 EPROM programmer. It handles:

- Port enumeration for the `--list-ports` command
- Port configuration for the programmer's line settings
- Error translation from pyserial into controller exceptions

Serial Port Settings
--------------------
The PROMPRO-8 uses these settings:
- Baud Rate: configurable (must match the DIP switches on the unit)
- Data Bits: 8
- Parity: Odd
- Stop Bits: 1
- Flow Control: RTS/CTS optional, no XON/XOFF

Line settings are applied once when the port is opened. Pending input and
output is discarded at the same time so that stale bytes from a previous
session are never mistaken for a prompt.
"""

import logging
from dataclasses import dataclass
from typing import Final, Optional

import serial
import serial.tools.list_ports

from prompro.errors import SerialOpenError

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Standard rates the host side can be configured for
VALID_BAUD_RATES: Final[tuple[int, ...]] = (
    110, 300, 600, 1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200,
)

# Default baud rate when configuration does not specify one
DEFAULT_BAUD_RATE: Final[int] = 9600

# USB Vendor IDs for common USB-serial adapters
USB_VENDOR_IDS: Final[dict[int, str]] = {
    0x0403: "FTDI",
    0x10C4: "Silicon Labs",
    0x067B: "Prolific",
    0x1A86: "QinHeng",
}


# =============================================================================
# Port Information
# =============================================================================

@dataclass(frozen=True)
class PortInfo:
    """
    Information about an available serial port.

    Attributes:
        device: System device path (e.g., '/dev/ttyUSB0', 'COM3')
        description: Human-readable description from the driver
        manufacturer: Device manufacturer (if available)
        vid: USB Vendor ID (None for non-USB ports)
        pid: USB Product ID (None for non-USB ports)
    """

    device: str
    description: str
    manufacturer: Optional[str]
    vid: Optional[int]
    pid: Optional[int]

    @property
    def is_usb(self) -> bool:
        """Return True if this is a USB-serial adapter."""
        return self.vid is not None

    @property
    def vendor_name(self) -> Optional[str]:
        """Return the vendor name for known USB adapters."""
        if self.vid is not None:
            return USB_VENDOR_IDS.get(self.vid)
        return None

    def __str__(self) -> str:
        parts = [self.device]
        if self.description:
            parts.append(f"- {self.description}")
        if self.vendor_name:
            parts.append(f"({self.vendor_name})")
        return " ".join(parts)


def list_serial_ports() -> list[PortInfo]:
    """
    List all available serial ports on the system.

    Returns:
        List of PortInfo objects describing available ports.
    """
    ports = []

    for port in serial.tools.list_ports.comports():
        ports.append(PortInfo(
            device=port.device,
            description=port.description or "",
            manufacturer=port.manufacturer,
            vid=port.vid,
            pid=port.pid,
        ))
        logger.debug(
            "Found port: %s (vid=%s, pid=%s)",
            port.device,
            f"{port.vid:04X}" if port.vid else "N/A",
            f"{port.pid:04X}" if port.pid else "N/A",
        )

    return ports


def format_port_list(ports: list[PortInfo]) -> str:
    """Format a list of ports for display, one port per line."""
    if not ports:
        return "No serial ports found."
    return "\n".join(f"  {port}" for port in ports)


# =============================================================================
# Port Configuration
# =============================================================================

def open_serial_port(
    device: str,
    baud_rate: int = DEFAULT_BAUD_RATE,
    rtscts: bool = False,
) -> serial.Serial:
    """
    Open and configure a serial port for the PROMPRO-8.

    The port is configured for raw 8-bit transfer with odd parity and one
    stop bit. RTS/CTS flow control is enabled only when requested.

    Args:
        device: Serial port device path (e.g., '/dev/ttyUSB0', 'COM3').
        baud_rate: Baud rate, must match the programmer's switches.
        rtscts: Enable RTS/CTS hardware flow control.

    Returns:
        Configured and opened serial.Serial object.

    Raises:
        SerialOpenError: If the port cannot be opened or configured.
        ValueError: If baud_rate is not a valid value.

    Note:
        The caller is responsible for closing the port when done.
    """
    if baud_rate not in VALID_BAUD_RATES:
        valid_str = ", ".join(str(b) for b in VALID_BAUD_RATES)
        raise ValueError(
            f"Invalid baud rate: {baud_rate}. Valid rates: {valid_str}"
        )

    logger.info(
        "Opening serial port: %s at %d baud (rtscts=%s)",
        device, baud_rate, rtscts
    )

    try:
        port = serial.Serial(
            port=device,
            baudrate=baud_rate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_ODD,
            stopbits=serial.STOPBITS_ONE,
            timeout=None,
            xonxoff=False,
            rtscts=rtscts,
            dsrdtr=False,
        )

        # Flush anything in transit in either direction
        port.reset_input_buffer()
        port.reset_output_buffer()

        logger.debug("Port opened: %s", device)
        return port

    except serial.SerialException as e:
        error_msg = str(e)

        if "Permission denied" in error_msg:
            raise SerialOpenError(
                "Permission denied. You may need to add your user to the "
                "'dialout' group: sudo usermod -a -G dialout $USER",
                device=device,
            ) from e
        elif "No such file" in error_msg or "not found" in error_msg.lower():
            raise SerialOpenError(
                "No such device (use 'prompro --list-ports')",
                device=device,
            ) from e
        elif "busy" in error_msg.lower() or "in use" in error_msg.lower():
            raise SerialOpenError(
                "Device busy, close any other programs using the port",
                device=device,
            ) from e
        else:
            raise SerialOpenError(error_msg, device=device) from e


def close_serial_port(port: Optional[serial.Serial]) -> None:
    """
    Safely close a serial port.

    Errors during close are logged, not raised.
    """
    if port is None:
        return

    try:
        if port.is_open:
            port.close()
            logger.debug("Serial port closed")
    except Exception as e:
        logger.warning("Error closing serial port: %s", e)
