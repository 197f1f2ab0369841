"""
prompro - PROMPRO-8 Command-Line Interface
==========================================

This module implements the command-line front end for the PROMPRO-8
EPROM programmer. It loads the XML configuration, checks the requested
EPROM type, opens the serial line, waits for the programmer's prompt and
selects the EPROM type. With --download it then walks every segment of the
type and writes the image to a file.

Usage Examples
--------------
Select the default EPROM type from the configuration:
    $ prompro

Select a specific type:
    $ prompro --type 27C256

Download a multi-segment part to a file:
    $ prompro --type 27C512 --download image.bin

Show configured EPROM types or serial ports:
    $ prompro --list-types
    $ prompro --list-ports

Configuration
-------------
Settings are read from ~/.prompro.xml and then ./.prompro.xml (the latter
overrides the former), or only from the file given with --config. Command
line options override the file.

Exit Codes
----------
0 - Success
1 - Missing or invalid configuration
2 - Invalid arguments
3 - Serial device cannot be opened
4 - I/O error talking to the programmer
5 - Programmer not ready (no prompt at handshake)
6 - Selection timeout
7 - Unknown or misconfigured EPROM type
8 - Download file error
9 - Unexpected internal error
"""

import logging
from dataclasses import replace
from typing import Optional

import click

from prompro import __version__
from prompro.catalog import Catalog, Segment
from prompro.cli.errors import handle_cli_exception
from prompro.comms.serial import format_port_list, list_serial_ports
from prompro.config import Config, Settings, load_config
from prompro.session import Session, resolve_eprom_type

# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """
    Options shared by the command's phases.
    """

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self.verbose = verbose
        self.debug = debug

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )
        if self.debug:
            logging.getLogger("prompro.trace").setLevel(logging.DEBUG)


def apply_overrides(
    settings: Settings,
    port: Optional[str],
    baud: Optional[int],
    rtscts: Optional[bool],
) -> Settings:
    """Return `settings` with command-line overrides applied."""
    changes = {}
    if port:
        changes["device"] = port
    if baud is not None:
        changes["baud_rate"] = baud
    if rtscts is not None:
        changes["rtscts"] = rtscts
    return replace(settings, **changes)


def format_catalog(catalog: Catalog, default: str = "") -> str:
    """Format the catalog for --list-types, one EPROM type per line."""
    if not catalog:
        return "No EPROM types configured."

    lines = []
    for name in sorted(catalog):
        marker = "*" if name == default else " "
        eprom_type = catalog[name]
        lines.append(f"{marker} {eprom_type}")
        if eprom_type.segments:
            lines.append(
                f"      {eprom_type.image_size} bytes, selects "
                f"{' -> '.join(eprom_type.device_type_ids())}"
            )
    return "\n".join(lines)


def segment_progress(index: int, total: int, segment: Segment) -> None:
    """Progress line printed before each downloaded segment."""
    click.echo(
        f"Segment {index + 1}/{total}: use={segment.device_type_id} "
        f"offset={segment.offset}"
    )


# =============================================================================
# Main Command
# =============================================================================

@click.command()
@click.option(
    "-t", "--type", "eprom_name",
    type=str,
    default=None,
    help="EPROM type to select (default: from configuration)",
)
@click.option(
    "-d", "--download",
    type=click.Path(dir_okay=False),
    default=None,
    help="Download the EPROM image to this file",
)
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Configuration file (default: ~/.prompro.xml and ./.prompro.xml)",
)
@click.option(
    "-p", "--port",
    type=str,
    default=None,
    help="Serial device (overrides configuration)",
)
@click.option(
    "-b", "--baud",
    type=int,
    default=None,
    help="Baud rate (overrides configuration)",
)
@click.option(
    "--rtscts/--no-rtscts",
    default=None,
    help="Enable or disable RTS/CTS flow control (overrides configuration)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "-D", "--debug",
    is_flag=True,
    help="Trace raw serial bytes",
)
@click.option(
    "--list-types",
    is_flag=True,
    help="List configured EPROM types and exit",
)
@click.option(
    "--list-ports",
    is_flag=True,
    help="List available serial ports and exit",
)
@click.version_option(version=__version__, prog_name="prompro")
def main(
    eprom_name: Optional[str],
    download: Optional[str],
    config_path: Optional[str],
    port: Optional[str],
    baud: Optional[int],
    rtscts: Optional[bool],
    verbose: bool,
    debug: bool,
    list_types: bool,
    list_ports: bool,
) -> None:
    """
    Control a PROMPRO-8 EPROM programmer over a serial line.

    Waits for the programmer's prompt, selects the EPROM type and,
    with --download, writes every segment of the EPROM to a file.
    """
    ctx = Context(verbose=verbose, debug=debug)
    ctx.setup_logging()

    if list_ports:
        click.echo("Available serial ports:")
        click.echo(format_port_list(list_serial_ports()))
        return

    try:
        config: Config = load_config([config_path] if config_path else None)
        logger.debug(
            "Configuration loaded from %s",
            ", ".join(str(p) for p in config.sources)
        )
        settings = apply_overrides(config.settings, port, baud, rtscts)

        if list_types:
            click.echo(format_catalog(config.catalog, settings.eprom_type))
            return

        eprom_type = resolve_eprom_type(
            config.catalog, eprom_name or settings.eprom_type
        )

        click.echo(
            f"Dev='{settings.device}', baud={settings.baud_rate}, "
            f"rtscts={int(settings.rtscts)}, eprom={eprom_type.name}"
        )

        with Session.open(settings, config.catalog, trace=debug) as session:
            session.activate(eprom_type.name)
            session.handshake()
            click.echo("Ready.")

            session.select_default()
            click.echo(f"Selected {eprom_type.name}.")

            if download:
                result = session.download(download, progress=segment_progress)
                click.echo(
                    f"Downloaded {result.bytes_written} of {result.image_size} bytes "
                    f"({result.segments} segments) to {result.destination}"
                )

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
