"""
PROMPRO Command-Line Interface
==============================

This package provides the ``prompro`` command, a Click-based front end for
the PROMPRO-8 EPROM programmer, and the mapping from controller errors to
exit codes.
"""

__all__ = ["prompro"]
