"""
prompro - Host Controller for the PROMPRO-8 EPROM Programmer
============================================================

This package drives a PROMPRO-8 EPROM programmer over a serial line. It
synchronizes with the programmer's ``*`` prompt, selects the internal
device configuration for a logical EPROM part, and walks the part's
segments to download an image to a local file.

Main Components
---------------
- **catalog**: EPROM types and their segments
- **config**: XML configuration loading (~/.prompro.xml, ./.prompro.xml)
- **comms**: Serial port, byte channel, prompt and select protocol
- **download**: Segment-by-segment download to a file
- **session**: One run against the programmer

Quick Start
-----------
    >>> from prompro import Session, load_config
    >>> config = load_config()
    >>> with Session.open(config.settings, config.catalog) as session:
    ...     session.activate("27C256")
    ...     session.handshake()
    ...     session.select_default()

Or use the command-line tool:
    $ prompro --type 27C256
    $ prompro --type 27C512 --download image.bin
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from prompro.catalog import Catalog, EpromType, Segment
from prompro.config import Config, Settings, load_config, load_config_file
from prompro.download import (
    DownloadOrchestrator,
    DownloadResult,
    NullSegmentReader,
    SegmentReader,
)
from prompro.errors import (
    PromproError,
    ConfigurationError,
    ConfigFileError,
    EpromTypeError,
    UnknownEpromTypeError,
    EmptySegmentsError,
    CommsError,
    DeviceIOError,
    SerialOpenError,
    ReadTimeout,
    ProtocolError,
    DeviceNotReadyError,
    SelectionTimeoutError,
    DownloadError,
)
from prompro.session import Session

__all__ = [
    "__version__",
    # Data model
    "Catalog",
    "EpromType",
    "Segment",
    # Configuration
    "Config",
    "Settings",
    "load_config",
    "load_config_file",
    # Download
    "DownloadOrchestrator",
    "DownloadResult",
    "NullSegmentReader",
    "SegmentReader",
    # Session
    "Session",
    # Errors
    "PromproError",
    "ConfigurationError",
    "ConfigFileError",
    "EpromTypeError",
    "UnknownEpromTypeError",
    "EmptySegmentsError",
    "CommsError",
    "DeviceIOError",
    "SerialOpenError",
    "ReadTimeout",
    "ProtocolError",
    "DeviceNotReadyError",
    "SelectionTimeoutError",
    "DownloadError",
]
