"""Traffic generator bus slave that streams the bytes of a file."""

from __future__ import annotations

import logging
import os
from typing import Optional

from .slave import BUS_WIDTH, DeviceError, SlaveDevice

log = logging.getLogger(__name__)

DATA_OFS = 0x00
"""Reading here returns the next four bytes of the file."""

WORDS_LEFT_OFS = 0x80
"""Reading here returns the number of 32-bit words left before wrapping."""

IGNORED_WRITE_OFS = 0x480
"""Writes here are accepted and ignored."""


class TrafficGeneratorDevice(SlaveDevice):
    """Replays a file byte by byte, starting over when it runs out."""

    def __init__(self, name: str, filename: str | os.PathLike[str]) -> None:
        super().__init__(name)
        self._file = open(filename, "rb")
        self.bytes_left = 0
        self._reset_input()

    def _reset_input(self) -> None:
        self._file.seek(0, os.SEEK_END)
        self.bytes_left += self._file.tell()
        self._file.seek(0, os.SEEK_SET)

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        if write:
            if ofs != IGNORED_WRITE_OFS:
                raise DeviceError(f"bad {self.name} write ofs=0x{ofs:X}, be=0x{be:X}")
            return None

        out = bytearray(BUS_WIDTH)
        if ofs == DATA_OFS:
            for i in range(4):
                if not self.bytes_left:
                    self._reset_input()
                byte = self._file.read(1)
                if byte:
                    out[i] = byte[0]
                if self.bytes_left:
                    self.bytes_left -= 1
        elif ofs == WORDS_LEFT_OFS:
            if not self.bytes_left:
                self._reset_input()
            words = (self.bytes_left + 3) // 4
            out[0:4] = (words & 0xFFFFFFFF).to_bytes(4, "little")
        else:
            raise DeviceError(f"bad {self.name} read ofs=0x{ofs:X}, be=0x{be:X}")
        return bytes(out)

    def close(self) -> None:
        """Close the underlying file."""
        self._file.close()

    def __enter__(self) -> "TrafficGeneratorDevice":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()