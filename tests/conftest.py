"""
Shared Test Fixtures
====================

Provides a scripted stand-in for a pyserial port so the protocol can be
exercised without a programmer attached.
"""

from collections import deque
from typing import Callable, Dict, Iterable, List, Optional

import pytest


class FakePort:
    """
    Scripted serial port.

    Bytes queued with feed() are returned one read at a time. When the queue
    is empty a read returns b"" as pyserial does on timeout. Replies can be
    attached to exact written commands so that a write of b"S27256\\r" queues
    b"*" automatically, mimicking the programmer.

    Attributes:
        written: Every write, in order
        read_timeouts: Timeout value in effect for each read call
        timeout_sets: Number of times the timeout was assigned
    """

    def __init__(self, incoming: bytes = b"", replies: Optional[Dict[bytes, bytes]] = None):
        self.port = "/dev/ttyFAKE0"
        self._timeout: Optional[float] = None
        self.timeout_sets = 0
        self.timeout_error: Optional[Exception] = None
        self.is_open = True
        self.written: List[bytes] = []
        self.read_timeouts: List[Optional[float]] = []
        self.replies = dict(replies or {})
        self._incoming = deque(incoming)
        self.read_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @timeout.setter
    def timeout(self, value: Optional[float]) -> None:
        # pyserial reconfigures the tty here, which fails on a dead device
        if self.timeout_error is not None:
            raise self.timeout_error
        self.timeout_sets += 1
        self._timeout = value

    def feed(self, data: bytes) -> None:
        self._incoming.extend(data)

    def read(self, size: int = 1) -> bytes:
        self.read_timeouts.append(self.timeout)
        if self.read_error is not None:
            raise self.read_error
        out = bytearray()
        while self._incoming and len(out) < size:
            out.append(self._incoming.popleft())
        return bytes(out)

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        self.written.append(bytes(data))
        if data in self.replies:
            self.feed(self.replies[data])
        return len(data)

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        self._incoming.clear()

    def reset_output_buffer(self) -> None:
        pass

    def close(self) -> None:
        self.is_open = False

    @property
    def reads(self) -> int:
        return len(self.read_timeouts)

    @property
    def pending(self) -> int:
        return len(self._incoming)

    def select_commands(self) -> List[bytes]:
        """Written select commands, in order."""
        return [w for w in self.written if w.startswith(b"S")]


def programmer_replies(device_type_ids: Iterable[str] = ()) -> Dict[bytes, bytes]:
    """Replies of a healthy programmer: a prompt for CR and every select."""
    replies = {b"\r": b"PROMPRO-8\r\n*"}
    for device_type_id in device_type_ids:
        replies[b"S" + device_type_id.encode("ascii") + b"\r"] = b"*"
    return replies


@pytest.fixture
def fake_port() -> Callable[..., FakePort]:
    """Fixture: factory for FakePort instances."""
    return FakePort


SAMPLE_CONFIG = """<?xml version="1.0"?>
<prompro>
  <serial device="/dev/ttyFAKE0" baud="9600" rtscts="1"/>
  <eproms>
    <eprom type="2764" segsize="8192">
      <seg use="2764" offset="0"/>
    </eprom>
    <eprom type="27C256" segsize="32768">
      <seg use="27C256" offset="0"/>
    </eprom>
    <eprom type="27C512" segsize="32768">
      <seg use="27256" offset="0"/>
      <seg use="27256" offset="32768"/>
    </eprom>
    <eprom type="EMPTY" segsize="1024"/>
  </eproms>
  <defaults eprom="2764"/>
</prompro>
"""


@pytest.fixture
def config_file(tmp_path):
    """Fixture: sample configuration written to a temporary file."""
    path = tmp_path / "prompro.xml"
    path.write_text(SAMPLE_CONFIG)
    return path
