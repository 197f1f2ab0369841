"""
PROMPRO-8 Command Protocol
==========================

This module implements the command side of the PROMPRO-8 serial protocol.
The protocol is synchronous single-shot request/response:

- The host sends a short ASCII command terminated by carriage return.
- The programmer answers with a prompt byte ``*`` once it is ready for the
  next command.

Commands used by the controller:

    ┌──────────────┬───────────────────┬──────────────────────────────┐
    │ Purpose      │ Bytes sent        │ Success                      │
    ├──────────────┼───────────────────┼──────────────────────────────┤
    │ Handshake    │ \\r                │ ``*`` within read timeout    │
    │ Select type  │ S <id> \\r         │ ``*`` within select timeout  │
    └──────────────┴───────────────────┴──────────────────────────────┘

Anything the programmer prints before the prompt (echo, banners, status
text) is read and discarded.

Timing
------
Every byte read uses the full timeout passed to ``wait_for_prompt``. A
device that keeps sending non-prompt bytes can therefore hold the caller for
longer than one timeout; the wait only ends on a prompt or on a single read
that sees no byte at all.
"""

import logging
from typing import Final, Optional

from prompro.catalog import EpromType
from prompro.comms.channel import DEFAULT_READ_TIMEOUT_MS, Channel
from prompro.errors import ReadTimeout, SelectionTimeoutError

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Protocol Constants
# =============================================================================

# Ready / acknowledgment byte sent by the programmer
PROMPT_BYTE: Final[int] = 0x2A  # '*'

# Line terminator for all commands
COMMAND_TERMINATOR: Final[bytes] = b"\r"

# Select-type command letter
SELECT_COMMAND: Final[bytes] = b"S"

# Default timeout for a select command (selection is slower than polling)
DEFAULT_SELECT_TIMEOUT_MS: Final[int] = 10000


def frame_select_command(device_type_id: str) -> bytes:
    """
    Build the wire bytes for a select-type command.

    Example:
        >>> frame_select_command("27256")
        b'S27256\\r'
    """
    return SELECT_COMMAND + device_type_id.encode("ascii") + COMMAND_TERMINATOR


# =============================================================================
# Prompt Synchronizer
# =============================================================================

class PromptSynchronizer:
    """
    Waits for the programmer's ``*`` prompt.

    Usage:
        sync = PromptSynchronizer(channel)
        channel.write(b'\\r')
        if not sync.wait_for_prompt():
            raise DeviceNotReadyError()
    """

    def __init__(self, channel: Channel, default_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS):
        self.channel = channel
        self.default_timeout_ms = default_timeout_ms

    def wait_for_prompt(self, timeout_ms: Optional[int] = None) -> bool:
        """
        Read and discard bytes until the prompt byte arrives.

        Args:
            timeout_ms: Timeout applied to each individual byte read. None
                        or a non-positive value selects the default read
                        timeout.

        Returns:
            True when the prompt was read, False when a read timed out.

        Raises:
            DeviceIOError: If the channel fails. Timeouts never raise.
        """
        if timeout_ms is None or timeout_ms <= 0:
            timeout_ms = self.default_timeout_ms

        discarded = 0
        while True:
            try:
                ch = self.channel.read_byte(timeout_ms)
            except ReadTimeout:
                logger.debug(
                    "No prompt within %d ms (%d bytes discarded)",
                    timeout_ms, discarded
                )
                return False

            if ch == PROMPT_BYTE:
                logger.debug("Prompt received (%d bytes discarded)", discarded)
                return True
            discarded += 1


# =============================================================================
# Type Selector
# =============================================================================

class TypeSelector:
    """
    Issues select-type commands and remembers the last confirmed selection.

    The selection is recorded only after the programmer has answered with a
    prompt. Selecting the type that is already selected sends nothing, so a
    download over consecutive segments sharing a device type issues a
    single command.
    """

    def __init__(
        self,
        channel: Channel,
        synchronizer: PromptSynchronizer,
        select_timeout_ms: int = DEFAULT_SELECT_TIMEOUT_MS,
    ):
        self.channel = channel
        self.synchronizer = synchronizer
        self.select_timeout_ms = select_timeout_ms
        self._current: Optional[str] = None

    @property
    def current(self) -> Optional[str]:
        """Device type last confirmed by the programmer, if any."""
        return self._current

    def select(self, device_type_id: str) -> bool:
        """
        Make `device_type_id` the programmer's active device type.

        Args:
            device_type_id: Identifier sent with the S command.

        Returns:
            True if a select command was sent, False if the type was
            already selected.

        Raises:
            SelectionTimeoutError: If the programmer did not prompt within
                                   the select timeout.
            DeviceIOError: If the channel fails.
        """
        if device_type_id == self._current:
            logger.debug("Device type %s already selected", device_type_id)
            return False

        logger.info("Selecting device type %s", device_type_id)
        self.channel.write(frame_select_command(device_type_id))

        if not self.synchronizer.wait_for_prompt(self.select_timeout_ms):
            raise SelectionTimeoutError(device_type_id, self.select_timeout_ms)

        self._current = device_type_id
        return True

    def select_default(self, eprom_type: EpromType) -> bool:
        """
        Select the device type of the first segment of `eprom_type`.

        Raises:
            ConfigurationError: If the type has no segments. Nothing is
                                written to the channel in that case.
        """
        return self.select(eprom_type.first_segment.device_type_id)
