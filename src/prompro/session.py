"""
Programmer Session
==================

A Session is the single context object for one run against the PROMPRO-8.
It owns the channel for its whole lifetime and wires together the prompt
synchronizer, the type selector and the download orchestrator.

Typical Use
-----------
    config = load_config()
    with Session.open(config.settings, config.catalog) as session:
        session.activate("27C256")
        session.handshake()
        session.select_default()
        session.download("image.bin")

The channel is closed when the with block exits, whether normally or
through an exception.

Phases
------
Channel failures are tagged with the phase in which they happened
("handshake", "selection", "download") so that the reported error names it.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from prompro.catalog import Catalog, EpromType
from prompro.comms.channel import Channel
from prompro.comms.protocol import COMMAND_TERMINATOR, PromptSynchronizer, TypeSelector
from prompro.comms.serial import VALID_BAUD_RATES, open_serial_port
from prompro.config import Settings
from prompro.download import (
    DownloadOrchestrator,
    DownloadResult,
    ProgressCallback,
    SegmentReader,
)
from prompro.errors import ConfigurationError, DeviceIOError, DeviceNotReadyError

logger = logging.getLogger(__name__)


@contextmanager
def _phase(name: str) -> Iterator[None]:
    """Tag channel failures raised inside the block with a phase name."""
    try:
        yield
    except DeviceIOError as e:
        if e.phase is None:
            e.phase = name
        raise


def resolve_eprom_type(catalog: Catalog, name: Optional[str]) -> EpromType:
    """
    Look up an EPROM type and check it can be used.

    Raises:
        ConfigurationError: If no name is given.
        UnknownEpromTypeError: If the name is not in the catalog.
        EmptySegmentsError: If the type has no segments.
    """
    if not name:
        raise ConfigurationError("No EPROM type given and no default configured")
    eprom_type = catalog.lookup(name)
    eprom_type.require_segments()
    return eprom_type


class Session:
    """
    One session with the programmer.

    Attributes:
        channel: Byte channel to the device
        settings: Scalar settings in effect
        catalog: EPROM catalog
        eprom_type: Active EPROM type (set by activate())
        synchronizer: Prompt synchronizer bound to the channel
        selector: Type selector bound to the channel
    """

    def __init__(
        self,
        channel: Channel,
        settings: Settings,
        catalog: Catalog,
        reader: Optional[SegmentReader] = None,
    ):
        self.channel = channel
        self.settings = settings
        self.catalog = catalog
        self.eprom_type: Optional[EpromType] = None
        self.synchronizer = PromptSynchronizer(channel, settings.read_timeout_ms)
        self.selector = TypeSelector(
            channel, self.synchronizer, settings.select_timeout_ms
        )
        self.orchestrator = DownloadOrchestrator(channel, self.selector, reader)
        self._closed = False

    @classmethod
    def open(
        cls,
        settings: Settings,
        catalog: Catalog,
        trace: bool = False,
        reader: Optional[SegmentReader] = None,
    ) -> "Session":
        """
        Open the configured serial device and create a session on it.

        Raises:
            ConfigurationError: If no serial device is configured or the
                                baud rate is not supported.
            SerialOpenError: If the device cannot be opened.
        """
        if not settings.device:
            raise ConfigurationError("No serial device configured")
        if settings.baud_rate not in VALID_BAUD_RATES:
            raise ConfigurationError(f"Unsupported baud rate: {settings.baud_rate}")
        port = open_serial_port(settings.device, settings.baud_rate, settings.rtscts)
        channel = Channel(port, device=settings.device, trace=trace)
        return cls(channel, settings, catalog, reader)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the channel. Only the first call has any effect."""
        if self._closed:
            return
        self._closed = True
        self.channel.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def activate(self, name: Optional[str] = None) -> EpromType:
        """
        Make an EPROM type from the catalog the active type.

        No device I/O is performed, so configuration problems surface
        before anything is sent to the programmer.

        Args:
            name: EPROM type name; defaults to the configured default.

        Raises:
            UnknownEpromTypeError: If the name is not in the catalog.
            ConfigurationError: If no name is given or configured, or the
                                type has no segments.
        """
        eprom_type = resolve_eprom_type(self.catalog, name or self.settings.eprom_type)
        self.eprom_type = eprom_type
        logger.debug("Active EPROM type: %s", eprom_type)
        return eprom_type

    def handshake(self) -> None:
        """
        Confirm the programmer is present and ready.

        Raises:
            DeviceNotReadyError: If no prompt answers the bare terminator.
            DeviceIOError: If the channel fails.
        """
        with _phase("handshake"):
            self.channel.write(COMMAND_TERMINATOR)
            if not self.synchronizer.wait_for_prompt():
                raise DeviceNotReadyError()
        logger.info("Programmer ready")

    def select(self, device_type_id: str) -> bool:
        """Select a device type by identifier (see TypeSelector.select)."""
        with _phase("selection"):
            return self.selector.select(device_type_id)

    def select_default(self) -> bool:
        """
        Select the first segment's device type of the active EPROM type.

        Raises:
            ConfigurationError: If no type is active or it has no segments.
            SelectionTimeoutError: If the programmer does not confirm.
        """
        with _phase("selection"):
            return self.selector.select_default(self._require_active())

    def download(
        self,
        destination: Union[str, Path],
        progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        """Download the active EPROM type to `destination`."""
        eprom_type = self._require_active()
        with _phase("download"):
            return self.orchestrator.download(eprom_type, destination, progress)

    def _require_active(self) -> EpromType:
        if self.eprom_type is None:
            raise ConfigurationError("No EPROM type is active")
        return self.eprom_type
