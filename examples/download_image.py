#!/usr/bin/env python3
"""
PROMPRO-8 Download Demo
=======================

This script shows how to drive the programmer from Python instead of the
prompro command:
1. Load the configuration
2. Open a session and wait for the programmer's prompt
3. Select an EPROM type
4. Download every segment to a file

Usage:
    python examples/download_image.py 27C512 image.bin
"""

import logging
import sys

from prompro import PromproError, Session, load_config


def main():
    if len(sys.argv) != 3:
        print("usage: download_image.py EPROM_TYPE OUTPUT")
        return 2
    eprom_name, output = sys.argv[1:]

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    # ==========================================================================
    # 1. Load configuration
    # ==========================================================================
    # Same search as the command: ~/.prompro.xml then ./.prompro.xml.
    # examples/prompro.xml is a starting point.
    try:
        config = load_config()
    except PromproError as e:
        print(f"Error: {e}")
        return 1
    print(f"Device: {config.settings.device} @ {config.settings.baud_rate}")

    try:
        with Session.open(config.settings, config.catalog) as session:
            # ==================================================================
            # 2. Activate and handshake
            # ==================================================================
            eprom = session.activate(eprom_name)
            print(f"EPROM: {eprom}")
            session.handshake()

            # ==================================================================
            # 3. Select, then download
            # ==================================================================
            session.select_default()

            def progress(index, total, segment):
                print(f"  [{index + 1}/{total}] {segment.device_type_id} @ {segment.offset:#06x}")

            result = session.download(output, progress=progress)
            print(f"Wrote {result.bytes_written} bytes to {result.destination}")
    except PromproError as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
