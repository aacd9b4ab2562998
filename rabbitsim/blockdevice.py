"""Block device backed by a host file, with a register slave and a DMA master."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Protocol

from .slave import BUS_WIDTH, DeviceError, SlaveDevice

log = logging.getLogger(__name__)

_U32 = 0xFFFFFFFF


class BlockRegister(IntEnum):
    """Word offsets of the control and status registers."""

    BUFFER = 0
    LBA = 1
    COUNT = 2
    OP = 3
    STATUS = 4
    IRQ_ENABLE = 5
    SIZE = 6
    BLOCK_SIZE = 7


class BlockOp(IntEnum):
    """Operations that can be written to the OP register."""

    NOOP = 0
    READ = 1
    WRITE = 2
    FILE_NAME = 3


class BlockStatus(IntEnum):
    """Values held by the STATUS register."""

    IDLE = 0
    BUSY = 1
    READ_SUCCESS = 2
    WRITE_SUCCESS = 3
    READ_ERROR = 4
    WRITE_ERROR = 5
    ERROR = 6


@dataclass
class ControlRegisters:
    """The register bank shared by the slave and the controller."""

    status: int = BlockStatus.IDLE
    buffer: int = 0
    op: int = BlockOp.NOOP
    lba: int = 0
    count: int = 0
    size: int = 0
    block_size: int = 512
    irqen: int = 0
    irq: int = 0


class _Bus(Protocol):
    """Memory the device transfers blocks to and from; raises DeviceError on failure."""

    def read(self, addr: int, nbytes: int) -> bytes: ...

    def write(self, addr: int, data: bytes) -> None: ...


class BlockDeviceSlave(SlaveDevice):
    """Register interface of the block device."""

    def __init__(self, name: str, regs: ControlRegisters,
                 on_op_start: Callable[[], None],
                 on_irq_update: Callable[[], None]) -> None:
        super().__init__(name)
        self.regs = regs
        self.on_op_start = on_op_start
        self.on_irq_update = on_irq_update

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        idx = ofs >> 2
        high = bool(be & 0xF0)
        if high:
            idx += 1
        if write:
            lane = bytes(data[4:8] if high else data[0:4]).ljust(4, b"\0")
            self._write(ofs, be, idx, int.from_bytes(lane, "little"))
            return None
        out = bytearray(BUS_WIDTH)
        pos = 4 if high else 0
        out[pos:pos + 4] = (self._read(ofs, be, idx) & _U32).to_bytes(4, "little")
        return bytes(out)

    def _write(self, ofs: int, be: int, idx: int, value: int) -> None:
        regs = self.regs
        if idx == BlockRegister.BUFFER:
            regs.buffer = value
        elif idx == BlockRegister.LBA:
            regs.lba = value
        elif idx == BlockRegister.COUNT:
            regs.count = value
        elif idx == BlockRegister.OP:
            if regs.status != BlockStatus.IDLE:
                log.error("%s: got a command while executing another one", self.name)
                return
            regs.op = value
            self.on_op_start()
        elif idx == BlockRegister.IRQ_ENABLE:
            regs.irqen = value
            self.on_irq_update()
        else:
            log.error("bad %s write ofs=0x%X, be=0x%X", self.name, ofs, be)

    def _read(self, ofs: int, be: int, idx: int) -> int:
        regs = self.regs
        if idx == BlockRegister.BUFFER:
            return regs.buffer
        if idx == BlockRegister.LBA:
            return regs.lba
        if idx == BlockRegister.COUNT:
            return regs.count
        if idx == BlockRegister.OP:
            return regs.op
        if idx == BlockRegister.STATUS:
            value = regs.status
            if regs.status != BlockStatus.BUSY:
                regs.status = BlockStatus.IDLE
                regs.irq = 0
                self.on_irq_update()
            return value
        if idx == BlockRegister.IRQ_ENABLE:
            return regs.irqen
        if idx == BlockRegister.SIZE:
            return regs.size
        if idx == BlockRegister.BLOCK_SIZE:
            return regs.block_size
        log.error("bad %s read ofs=0x%X, be=0x%X", self.name, ofs, be)
        return 0


class BlockDevice:
    """A disk made of fixed-size blocks stored in a host file.

    Software programs the registers through ``slave``; an operation written
    to OP is carried out by ``run_pending``, which moves data between the
    host file and ``bus``.
    """

    def __init__(self, name: str, filename: Optional[str | os.PathLike[str]],
                 block_size: int, bus: _Bus) -> None:
        if block_size <= 0:
            raise ValueError("block size must be positive")
        self.name = name
        self.bus = bus
        self.irq = False
        self.regs = ControlRegisters(block_size=block_size)
        self.slave = BlockDeviceSlave(f"{name}_s", self.regs,
                                      self._op_start, self._irq_update)
        self._fd: Optional[int] = None
        self._pending = False
        self.open_host_file(filename)

    def _op_start(self) -> None:
        self._pending = True

    def _irq_update(self) -> None:
        self.irq = self.regs.irq == 1

    def _raise_irq(self) -> None:
        if self.regs.irqen:
            self.regs.irq = 1
            self._irq_update()

    def _update_size(self) -> None:
        assert self._fd is not None
        self.regs.size = (os.fstat(self._fd).st_size // self.regs.block_size) & _U32

    def open_host_file(self, fname: Optional[str | os.PathLike[str]]) -> None:
        """Close the current backing file and open ``fname``, creating it if needed."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        if not fname:
            return
        try:
            self._fd = os.open(fname, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as exc:
            log.error("%s: impossible to open file %s: %s", self.name, fname, exc)
            return
        self._update_size()

    def run_pending(self) -> bool:
        """Carry out the operation in the OP register; return whether one ran."""
        self._pending = False
        op = self.regs.op
        if op == BlockOp.NOOP:
            return False
        if op == BlockOp.READ:
            self._do_read()
        elif op == BlockOp.WRITE:
            self._do_write()
        elif op == BlockOp.FILE_NAME:
            self._do_file_name()
        else:
            log.error("%s: error in command %d", self.name, op)
            self.regs.op = BlockOp.NOOP
        return True

    def _fail(self, status: BlockStatus) -> None:
        self.regs.op = BlockOp.NOOP
        self.regs.status = status

    def _fetch(self, addr: int, size: int) -> Optional[bytes]:
        chunks = []
        try:
            for offset in range(0, size, 4):
                chunks.append(bytes(self.bus.read((addr + offset) & _U32, 4)))
        except DeviceError as exc:
            log.error("%s: %s", self.name, exc)
            return None
        return b"".join(chunks)[:size]

    def _do_read(self) -> None:
        regs = self.regs
        regs.status = BlockStatus.BUSY
        size = regs.count * regs.block_size
        try:
            if self._fd is None:
                raise OSError("no backing file")
            os.lseek(self._fd, regs.lba * regs.block_size, os.SEEK_SET)
            data = os.read(self._fd, size)
        except OSError as exc:
            log.error("%s: error in read: %s", self.name, exc)
            self._fail(BlockStatus.READ_ERROR)
            regs.count = 0
            return

        regs.count = len(data) // regs.block_size
        addr = regs.buffer
        aligned = len(data) & ~3
        offset = 0
        try:
            while offset < aligned:
                self.bus.write((addr + offset) & _U32, data[offset:offset + 4])
                offset += 4
            while offset < len(data):
                self.bus.write((addr + offset) & _U32, data[offset:offset + 1])
                offset += 1
        except DeviceError as exc:
            log.error("%s: error in read transfer: %s", self.name, exc)
            self._fail(BlockStatus.READ_ERROR)
            regs.count = offset // regs.block_size
            return

        self._raise_irq()
        regs.op = BlockOp.NOOP
        regs.status = BlockStatus.READ_SUCCESS

    def _do_write(self) -> None:
        regs = self.regs
        regs.status = BlockStatus.BUSY
        size = regs.count * regs.block_size
        data = self._fetch(regs.buffer, size)
        if data is None or self._fd is None:
            self._fail(BlockStatus.WRITE_ERROR)
            return
        try:
            os.lseek(self._fd, regs.lba * regs.block_size, os.SEEK_SET)
            os.write(self._fd, data)
        except OSError as exc:
            log.error("%s: error in write: %s", self.name, exc)
            self._fail(BlockStatus.WRITE_ERROR)
            return
        self._update_size()

        self._raise_irq()
        regs.op = BlockOp.NOOP
        regs.status = BlockStatus.WRITE_SUCCESS

    def _do_file_name(self) -> None:
        regs = self.regs
        regs.status = BlockStatus.BUSY
        size = regs.count * regs.block_size
        data = self._fetch(regs.buffer, size)
        if data is not None:
            self.open_host_file(os.fsdecode(data.split(b"\0", 1)[0]))
        if data is None or self._fd is None:
            self._fail(BlockStatus.WRITE_ERROR)
            return
        regs.op = BlockOp.NOOP
        regs.status = BlockStatus.WRITE_SUCCESS

    def close(self) -> None:
        """Close the backing file."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None