"""Terminal output bus slave."""

from __future__ import annotations

import logging
import os
import subprocess
from enum import IntEnum
from typing import BinaryIO, Optional, Sequence

from .slave import DeviceError, SlaveDevice

log = logging.getLogger(__name__)


class TtyRegister(IntEnum):
    """Word offsets of the registers inside one terminal."""

    WRITE = 0
    STATUS = 1
    READ = 2
    SPAN = 4


class TtyDevice(SlaveDevice):
    """A bank of terminals; each byte written to a WRITE register is sent out.

    When no output streams are given, every terminal is opened in its own
    terminal window fed through a pipe.
    """

    def __init__(self, name: str, count: int,
                 outputs: Optional[Sequence[BinaryIO]] = None) -> None:
        super().__init__(name)
        if count < 0:
            raise ValueError("terminal count cannot be negative")
        self.count = count
        self._processes: list[subprocess.Popen] = []
        self._owned = outputs is None
        if outputs is None:
            self.outputs = [self._spawn(i) for i in range(count)]
        else:
            if len(outputs) != count:
                raise ValueError(f"expected {count} outputs, got {len(outputs)}")
            self.outputs = list(outputs)

    def _spawn(self, index: int) -> BinaryIO:
        read_fd, write_fd = os.pipe()
        title = f"CPU {index}"
        args = [
            "xterm", "-sb", "-sl", "1000",
            "-l", "-lf", f"{self.name}{index:02d}",
            "-n", title, "-T", title,
            "-e", "tty_term_rw", str(read_fd), "1",
        ]
        try:
            process = subprocess.Popen(args, pass_fds=(read_fd,), start_new_session=True)
        except OSError:
            os.close(read_fd)
            os.close(write_fd)
            self.close()
            raise
        os.close(read_fd)
        self._processes.append(process)
        return os.fdopen(write_fd, "wb", buffering=0)

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        if not write:
            raise DeviceError(f"bad {self.name} read ofs=0x{ofs:X}, be=0x{be:X}")

        idx = ofs >> 2
        if be & 0xF0:
            idx += 1
            lane = bytes(data[4:8])
        else:
            lane = bytes(data[0:4])
        value = int.from_bytes(lane.ljust(4, b"\0"), "little")

        tty, reg = divmod(idx, TtyRegister.SPAN)
        if tty >= self.count:
            raise DeviceError(
                f"{self.name}: terminal {tty} out of range, ofs=0x{ofs:X}, be=0x{be:X}")
        if reg != TtyRegister.WRITE:
            raise DeviceError(f"bad {self.name} write ofs=0x{ofs:X}, be=0x{be:X}")

        log.debug("TTY_WRITE[%d]: 0x%x", tty, value & 0xFF)
        out = self.outputs[tty]
        out.write(bytes([value & 0xFF]))
        out.flush()
        return None

    def close(self) -> None:
        """Close owned pipes and stop the terminal windows."""
        if self._owned:
            for out in self.outputs:
                out.close()
        for process in self._processes:
            process.kill()
            process.wait()
        self._processes.clear()