"""
PROMPRO Communication Module
============================

This module provides the serial side of the PROMPRO-8 controller.

Module Structure
----------------
- **serial**: Serial port utilities (enumeration, configuration)
- **channel**: Byte channel with per-read timeouts and optional tracing
- **protocol**: Prompt synchronization and the select-type command

Quick Start
-----------
    from prompro.comms import (
        Channel,
        PromptSynchronizer,
        TypeSelector,
        open_serial_port,
    )

    port = open_serial_port('/dev/ttyUSB0', baud_rate=9600, rtscts=True)
    channel = Channel(port)
    sync = PromptSynchronizer(channel)

    channel.write(b'\\r')
    if sync.wait_for_prompt():
        TypeSelector(channel, sync).select('27256')

    channel.close()

Thread Safety
-------------
The communication classes are NOT thread-safe. There is exactly one session
with the programmer at a time.
"""

from prompro.comms.channel import (
    DEFAULT_READ_TIMEOUT_MS,
    Channel,
)
from prompro.comms.protocol import (
    COMMAND_TERMINATOR,
    DEFAULT_SELECT_TIMEOUT_MS,
    PROMPT_BYTE,
    SELECT_COMMAND,
    PromptSynchronizer,
    TypeSelector,
    frame_select_command,
)
from prompro.comms.serial import (
    DEFAULT_BAUD_RATE,
    VALID_BAUD_RATES,
    PortInfo,
    close_serial_port,
    format_port_list,
    list_serial_ports,
    open_serial_port,
)

__all__ = [
    # Channel
    "DEFAULT_READ_TIMEOUT_MS",
    "Channel",
    # Protocol
    "COMMAND_TERMINATOR",
    "DEFAULT_SELECT_TIMEOUT_MS",
    "PROMPT_BYTE",
    "SELECT_COMMAND",
    "PromptSynchronizer",
    "TypeSelector",
    "frame_select_command",
    # Serial
    "DEFAULT_BAUD_RATE",
    "VALID_BAUD_RATES",
    "PortInfo",
    "close_serial_port",
    "format_port_list",
    "list_serial_ports",
    "open_serial_port",
]
