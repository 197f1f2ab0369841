"""
EPROM Catalog
=============

The data model that maps a logical, user-selectable EPROM part number to
the internal device configurations the PROMPRO-8 must be told to use.

A logical EPROM image is split into one or more segments. Each segment
names the device type identifier sent with the select command and the byte
offset within the logical image at which that segment's bytes begin:

    27C512 (64 KB image, segment size 32 KB)
    ┌──────────────────────┬──────────────────────┐
    │ use=27256 offset=0   │ use=27256 offset=32K │
    └──────────────────────┴──────────────────────┘

The order of segments is significant. It defines offset order within the
image and the order in which select commands are issued during a download.

Catalog entries are built once from configuration and never mutated.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Optional

from prompro.errors import ConfigurationError, EmptySegmentsError, UnknownEpromTypeError

logger = logging.getLogger(__name__)


# =============================================================================
# Segment and EPROM Type
# =============================================================================

@dataclass(frozen=True)
class Segment:
    """
    One contiguous region of a logical EPROM image.

    Attributes:
        device_type_id: Token sent to the device to select its configuration
        offset: Byte offset of this region within the logical image
    """

    device_type_id: str
    offset: int = 0

    def __post_init__(self) -> None:
        if not self.device_type_id:
            raise ConfigurationError("Segment device type identifier is empty")
        # Sent verbatim inside the S command
        if not (self.device_type_id.isascii() and self.device_type_id.isprintable()):
            raise ConfigurationError(
                f"Segment device type identifier {self.device_type_id!r} "
                f"must be printable ASCII"
            )
        if self.offset < 0:
            raise ConfigurationError(
                f"Segment offset must be non-negative, got {self.offset}"
            )


@dataclass(frozen=True)
class EpromType:
    """
    A logical EPROM part as presented to the user.

    Attributes:
        name: Configuration name (e.g. "27C256")
        segment_size: Size in bytes of each segment
        segments: Ordered segment descriptions

    Example:
        >>> t = EpromType("27C256", 32768, (Segment("27256", 0),))
        >>> t.first_segment.device_type_id
        '27256'
    """

    name: str
    segment_size: int = 0
    segments: tuple[Segment, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("EPROM type name is empty")
        if self.segment_size < 0:
            raise ConfigurationError(
                f"EPROM type {self.name}: segment size must be non-negative"
            )
        # Accept any iterable of segments but store an immutable tuple
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))

    @property
    def first_segment(self) -> Segment:
        """Return the first segment, or raise if there are none."""
        self.require_segments()
        return self.segments[0]

    @property
    def image_size(self) -> int:
        """Size in bytes of the logical image covered by all segments."""
        if not self.segments:
            return 0
        return max(seg.offset for seg in self.segments) + self.segment_size

    def require_segments(self) -> None:
        """
        Check that this type can be used for selection or download.

        Raises:
            EmptySegmentsError: If the segment list is empty.
        """
        if not self.segments:
            raise EmptySegmentsError(self.name)

    def device_type_ids(self) -> list[str]:
        """
        Device type identifiers in the order select commands are issued.

        Consecutive segments sharing an identifier produce a single entry,
        since the device is only told to reselect when the type changes.
        """
        ids: list[str] = []
        for seg in self.segments:
            if not ids or ids[-1] != seg.device_type_id:
                ids.append(seg.device_type_id)
        return ids

    def __str__(self) -> str:
        uses = ", ".join(
            f"{seg.device_type_id}@{seg.offset}" for seg in self.segments
        )
        return f"{self.name} (segsize={self.segment_size}; {uses or 'no segments'})"


# =============================================================================
# Catalog
# =============================================================================

class Catalog(Mapping[str, EpromType]):
    """
    Read-only mapping of EPROM type name to EpromType.

    Names are unique. When built from several configuration sources, an
    entry from a later source replaces an earlier entry with the same name.
    """

    def __init__(self, types: Optional[Iterable[EpromType]] = None):
        self._types: dict[str, EpromType] = {}
        for eprom_type in types or ():
            if eprom_type.name in self._types:
                logger.debug("Replacing EPROM type definition: %s", eprom_type.name)
            self._types[eprom_type.name] = eprom_type

    def __getitem__(self, name: str) -> EpromType:
        return self._types[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"Catalog({sorted(self._types)!r})"

    def lookup(self, name: str) -> EpromType:
        """
        Look up an EPROM type by name.

        Raises:
            UnknownEpromTypeError: If the name is not in the catalog.
        """
        try:
            return self._types[name]
        except KeyError:
            raise UnknownEpromTypeError(name, tuple(sorted(self._types))) from None

    def merged(self, other: "Catalog") -> "Catalog":
        """Return a new catalog with entries of `other` overriding this one."""
        return Catalog(list(self.values()) + list(other.values()))
