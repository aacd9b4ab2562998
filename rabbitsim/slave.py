"""Bus slave base class and the request and response types it exchanges."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

log = logging.getLogger(__name__)

BUS_WIDTH = 8
"""Width in bytes of one bus data beat."""


class Command(Enum):
    """Kind of bus transaction."""

    READ = "read"
    WRITE = "write"


@dataclass
class Request:
    """A transaction sent by a master to a slave."""

    address: int
    be: int
    cmd: Command
    wdata: bytes = bytes(BUS_WIDTH)
    srcid: int = 0
    trdid: int = 0
    slave_id: int = 0
    initial_address: Optional[int] = None

    def __post_init__(self) -> None:
        if self.initial_address is None:
            self.initial_address = self.address


@dataclass
class Response:
    """The answer a slave returns for one request."""

    rsrcid: int
    rtrdid: int
    rbe: int
    rdata: bytes = bytes(BUS_WIDTH)
    reop: bool = True
    rerror: bool = False


class DeviceError(Exception):
    """An access the device rejects; reported to the master as a bus error."""


class SimClock:
    """Simulated time, counted in picoseconds."""

    def __init__(self) -> None:
        self.now = 0

    def advance(self, ps: int) -> int:
        """Move time forward by ``ps`` picoseconds and return the new time."""
        if ps < 0:
            raise ValueError("simulated time cannot go backwards")
        self.now += ps
        return self.now


_LANES = {
    # byte access
    0x01: (0, 1), 0x02: (1, 1), 0x04: (2, 1), 0x08: (3, 1),
    0x10: (4, 1), 0x20: (5, 1), 0x40: (6, 1), 0x80: (7, 1),
    # half-word access
    0x03: (0, 2), 0x0C: (1, 2), 0x30: (2, 2), 0xC0: (3, 2),
    # word access
    0x0F: (0, 4), 0xF0: (1, 4),
    # double-word access
    0xFF: (0, 8),
}


def decode_byte_enable(be: int) -> tuple[int, int]:
    """Return ``(lane_index, width)`` for a byte-enable mask.

    The lane index counts in units of ``width``, so the byte offset within
    the bus beat is ``lane_index * width``.
    """
    try:
        return _LANES[be]
    except KeyError:
        raise DeviceError(f"unsupported byte enable 0x{be:02X}") from None


InvalidateHook = Callable[[int, int, int, int], None]


class SlaveDevice(ABC):
    """A device on the bus that answers requests from masters."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.clock = SimClock()
        self.write_invalidate = False
        self.invalidate_hook: Optional[InvalidateHook] = None
        self.processing = False

    def handle(self, request: Request) -> Optional[Response]:
        """Serve one request; returns None if it arrives while another is served."""
        if self.processing:
            log.warning("%s: received a request while processing previous one: drop it",
                        self.name)
            return None

        self.processing = True
        response = Response(rsrcid=request.srcid, rtrdid=request.trdid, rbe=request.be)
        try:
            if request.cmd is Command.WRITE:
                self.rcv_rqst(request.address, request.be, request.wdata, True)
            else:
                data = self.rcv_rqst(request.address, request.be, bytes(BUS_WIDTH), False)
                if data is not None:
                    response.rdata = bytes(data)
        except DeviceError as exc:
            log.error("%s: %s", self.name, exc)
            response.rerror = True
        finally:
            self.processing = False

        if (self.write_invalidate and request.cmd is Command.WRITE
                and self.invalidate_hook is not None):
            self.invalidate_hook(request.initial_address, request.slave_id,
                                 request.initial_address, request.srcid)
        return response

    @abstractmethod
    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        """Serve one access at offset ``ofs``.

        Returns the bus beat for a read and None for a write; raises
        DeviceError when the access is rejected.
        """