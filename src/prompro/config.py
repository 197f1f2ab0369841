"""
PROMPRO Configuration
=====================

Configuration is read from XML files. By default both of these are read,
in order, when they exist:

- ``~/.prompro.xml`` (per-user defaults)
- ``./.prompro.xml`` (per-project overrides)

A later file overrides any serial or default setting it specifies and
replaces EPROM types of the same name. An invalid file in the default
search is logged and skipped. At least one file must load.

File Format
-----------
    <prompro>
      <serial device="/dev/ttyUSB0" baud="9600" rtscts="1"/>
      <timeouts read="2000" select="10000"/>
      <eproms>
        <eprom type="27C512" segsize="32768">
          <segment use="27256" offset="0"/>
          <segment use="27256" offset="32768"/>
        </eprom>
      </eproms>
      <defaults eprom="27C512"/>
    </prompro>

Every child of an ``<eprom>`` element describes a segment; the element name
itself is not significant. Timeouts are in milliseconds.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, List, Optional, Union

from prompro.catalog import Catalog, EpromType, Segment
from prompro.comms.channel import DEFAULT_READ_TIMEOUT_MS
from prompro.comms.protocol import DEFAULT_SELECT_TIMEOUT_MS
from prompro.comms.serial import DEFAULT_BAUD_RATE
from prompro.errors import ConfigFileError, ConfigurationError

logger = logging.getLogger(__name__)

# Name of the configuration file looked up in $HOME and the current directory
CONFIG_FILENAME = ".prompro.xml"


@dataclass(frozen=True)
class Settings:
    """
    Scalar settings consumed by the controller.

    Attributes:
        device: Serial device path
        baud_rate: Serial baud rate
        rtscts: Enable RTS/CTS flow control
        eprom_type: Default EPROM type name
        read_timeout_ms: Per-byte read timeout for prompt polling
        select_timeout_ms: Per-byte read timeout after a select command
    """

    device: str = ""
    baud_rate: int = DEFAULT_BAUD_RATE
    rtscts: bool = False
    eprom_type: str = ""
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    select_timeout_ms: int = DEFAULT_SELECT_TIMEOUT_MS


@dataclass(frozen=True)
class Config:
    """Settings and catalog loaded from one or more files."""

    settings: Settings = field(default_factory=Settings)
    catalog: Catalog = field(default_factory=Catalog)
    sources: tuple[Path, ...] = ()


def default_config_paths() -> List[Path]:
    """Configuration files searched when no explicit path is given."""
    return [Path.home() / CONFIG_FILENAME, Path(".") / CONFIG_FILENAME]


# =============================================================================
# XML Parsing
# =============================================================================

def _int_attr(
    elem: ET.Element,
    name: str,
    source: str,
    default: Optional[int] = None,
) -> Optional[int]:
    """Read a non-negative integer attribute."""
    value = elem.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        number = int(value.strip(), 0)
    except ValueError:
        raise ConfigFileError(
            f"<{elem.tag}> attribute {name}={value!r} is not an integer", source
        ) from None
    if number < 0:
        raise ConfigFileError(
            f"<{elem.tag}> attribute {name}={value!r} must not be negative", source
        )
    return number


def _parse_eprom(elem: ET.Element, source: str) -> EpromType:
    name = elem.get("type", "")
    if not name:
        raise ConfigFileError("<eprom> element without a type attribute", source)

    segments = []
    for seg in elem:
        use = seg.get("use", "")
        if not use:
            raise ConfigFileError(
                f"segment of EPROM type {name} has no 'use' attribute", source
            )
        offset = _int_attr(seg, "offset", source, 0)
        try:
            segments.append(Segment(use, offset))
        except ConfigurationError as e:
            raise ConfigFileError(f"EPROM type {name}: {e}", source) from e

    return EpromType(
        name=name,
        segment_size=_int_attr(elem, "segsize", source, 0),
        segments=tuple(segments),
    )


def parse_config(root: ET.Element, base: Optional[Config] = None, source: str = "<config>") -> Config:
    """
    Apply a parsed ``<prompro>`` document on top of `base`.

    Args:
        root: Root element of the document.
        base: Configuration to override (defaults to an empty one).
        source: Name used in error messages.

    Returns:
        New Config with the document applied.

    Raises:
        ConfigFileError: If the document is not a valid configuration.
    """
    if base is None:
        base = Config()
    if root.tag != "prompro":
        raise ConfigFileError(
            f"root element is <{root.tag}>, expected <prompro>", source
        )

    changes = {}

    serial_node = root.find("serial")
    if serial_node is not None:
        if serial_node.get("device"):
            changes["device"] = serial_node.get("device")
        baud = _int_attr(serial_node, "baud", source)
        if baud is not None:
            changes["baud_rate"] = baud
        rtscts = _int_attr(serial_node, "rtscts", source)
        if rtscts is not None:
            changes["rtscts"] = bool(rtscts)

    timeouts_node = root.find("timeouts")
    if timeouts_node is not None:
        read_ms = _int_attr(timeouts_node, "read", source)
        if read_ms:
            changes["read_timeout_ms"] = read_ms
        select_ms = _int_attr(timeouts_node, "select", source)
        if select_ms:
            changes["select_timeout_ms"] = select_ms

    defaults_node = root.find("defaults")
    if defaults_node is not None and defaults_node.get("eprom"):
        changes["eprom_type"] = defaults_node.get("eprom")

    types = []
    eproms_node = root.find("eproms")
    if eproms_node is not None:
        types = [_parse_eprom(elem, source) for elem in eproms_node]

    return Config(
        settings=replace(base.settings, **changes),
        catalog=base.catalog.merged(Catalog(types)),
        sources=base.sources,
    )


def parse_config_string(text: str, base: Optional[Config] = None) -> Config:
    """Parse configuration from an XML string."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ConfigFileError(f"XML parse error: {e}") from e
    return parse_config(root, base)


# =============================================================================
# File Loading
# =============================================================================

def load_config_file(path: Union[str, Path], base: Optional[Config] = None) -> Config:
    """
    Load one configuration file on top of `base`.

    Raises:
        ConfigFileError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        line, column = e.position
        raise ConfigFileError(
            f"XML parse error at line {line}, column {column}", str(path)
        ) from e
    except OSError as e:
        raise ConfigFileError(e.strerror or str(e), str(path)) from e

    config = parse_config(tree.getroot(), base, str(path))
    logger.debug("Loaded configuration from %s", path)
    return replace(config, sources=config.sources + (path,))


def load_config(paths: Optional[Iterable[Union[str, Path]]] = None) -> Config:
    """
    Load configuration.

    With no explicit paths the default search list is used: missing files
    are skipped, and an invalid file is reported and skipped so the next
    one still loads. Explicit paths must all exist and be valid.

    Raises:
        ConfigFileError: If no configuration file was loaded, or an explicit
                         file is invalid.
    """
    explicit = paths is not None
    candidates = [Path(p) for p in paths] if explicit else default_config_paths()

    config = Config()
    for path in candidates:
        if explicit:
            config = load_config_file(path, config)
            continue
        if not path.exists():
            logger.debug("No configuration at %s", path)
            continue
        try:
            config = load_config_file(path, config)
        except ConfigFileError as e:
            logger.error("Ignoring configuration file: %s", e)

    if not config.sources:
        raise ConfigFileError(
            f"Missing or invalid ~/{CONFIG_FILENAME} and/or ./{CONFIG_FILENAME} files"
        )
    return config
