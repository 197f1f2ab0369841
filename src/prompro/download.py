"""
Segment Download
================

Drives a download of a logical EPROM image to a local file, one segment at
a time:

1. Select the segment's device type (only sent when the type changes).
2. Retrieve the segment's bytes through a SegmentReader.
3. Write those bytes to the destination at the segment's offset.

Payload Retrieval
-----------------
The PROMPRO-8 bulk transfer command framing is not part of the command set
implemented here. Retrieval is therefore delegated to a SegmentReader. The
default NullSegmentReader retrieves nothing: the download still walks and
selects every segment and leaves a properly created, closed file behind.
A reader that knows the transfer framing can be passed in without changing
the orchestration.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

from prompro.catalog import EpromType, Segment
from prompro.comms.channel import Channel
from prompro.comms.protocol import TypeSelector
from prompro.errors import DownloadError

# Configure module logger
logger = logging.getLogger(__name__)

# Progress callback: (segment index, segment count, segment)
ProgressCallback = Callable[[int, int, Segment], None]


class SegmentReader(Protocol):
    """Retrieves the payload of one segment after it has been selected."""

    def read_segment(self, channel: Channel, segment: Segment, size: int) -> bytes:
        ...


class NullSegmentReader:
    """SegmentReader that retrieves no payload."""

    def __init__(self) -> None:
        self._warned = False

    def read_segment(self, channel: Channel, segment: Segment, size: int) -> bytes:
        if not self._warned:
            logger.warning(
                "Segment payload transfer is not implemented; "
                "the destination file will not contain EPROM data"
            )
            self._warned = True
        return b""


@dataclass(frozen=True)
class DownloadResult:
    """
    Summary of a completed download.

    Attributes:
        destination: File that was written
        segments: Number of segments processed
        selections: Number of select commands actually sent
        bytes_written: Total payload bytes written
        image_size: Size of the full EPROM image
    """

    destination: Path
    segments: int
    selections: int
    bytes_written: int
    image_size: int = 0


class DownloadOrchestrator:
    """
    Walks the segments of an EPROM type and writes them to a file.

    Usage:
        orchestrator = DownloadOrchestrator(channel, selector)
        result = orchestrator.download(eprom_type, "image.bin")
    """

    def __init__(
        self,
        channel: Channel,
        selector: TypeSelector,
        reader: Optional[SegmentReader] = None,
    ):
        self.channel = channel
        self.selector = selector
        self.reader = reader if reader is not None else NullSegmentReader()

    def download(
        self,
        eprom_type: EpromType,
        destination: Union[str, Path],
        progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        """
        Download every segment of `eprom_type` into `destination`.

        Args:
            eprom_type: Active EPROM type.
            destination: Output file path, created or truncated.
            progress: Optional callback invoked before each segment.

        Returns:
            DownloadResult describing what was done.

        Raises:
            ConfigurationError: If the type has no segments (before any I/O).
            DownloadError: If the destination cannot be opened or written.
            SelectionTimeoutError: If a segment's selection is not confirmed.
            DeviceIOError: If the channel fails.
        """
        eprom_type.require_segments()
        path = Path(destination)
        total = len(eprom_type.segments)
        logger.info(
            "Downloading %s (%d bytes) to %s; device types: %s",
            eprom_type.name, eprom_type.image_size, path,
            ", ".join(eprom_type.device_type_ids())
        )

        try:
            out = open(path, "wb")
        except OSError as e:
            raise DownloadError(
                f"{e.strerror or e}: unable to open for writing", str(path)
            ) from e

        selections = 0
        bytes_written = 0

        # The with block closes (and flushes) the file on every exit path
        with out:
            for index, segment in enumerate(eprom_type.segments):
                if progress is not None:
                    progress(index, total, segment)

                if self.selector.select(segment.device_type_id):
                    selections += 1

                data = self.reader.read_segment(
                    self.channel, segment, eprom_type.segment_size
                )
                if not data:
                    continue

                try:
                    out.seek(segment.offset)
                    out.write(data)
                except OSError as e:
                    raise DownloadError(
                        f"{e.strerror or e}: write failed at offset {segment.offset}",
                        str(path),
                    ) from e
                bytes_written += len(data)
                logger.debug(
                    "Wrote %d bytes for %s at offset %d",
                    len(data), segment.device_type_id, segment.offset
                )

        logger.info(
            "Download of %s complete: %d segments, %d selections, %d bytes",
            eprom_type.name, total, selections, bytes_written
        )
        return DownloadResult(
            destination=path,
            segments=total,
            selections=selections,
            bytes_written=bytes_written,
            image_size=eprom_type.image_size,
        )
