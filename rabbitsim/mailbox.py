"""Inter-processor mailbox bus slave."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Optional

from .slave import BUS_WIDTH, DeviceError, SlaveDevice

log = logging.getLogger(__name__)

GLOBAL_START_ADDR = 0x1000
"""Byte offset where the global register bank begins."""

GLOBAL_NO_REGS = 10
"""Number of 32-bit global registers."""


class MailboxRegister(IntEnum):
    """Word offsets of the registers inside one mailbox."""

    COMM = 0
    DATA = 1
    RESERVED = 2
    RESET = 3
    SPAN = 4


class MailboxStatus(IntEnum):
    """Values held by a mailbox status register."""

    CLEAR = 0
    NEW_MESSAGE = 1


def _split(ofs: int, be: int, data: bytes) -> tuple[int, bool, int]:
    """Return ``(word_index, high_lane, value)`` for a bus access."""
    idx = ofs >> 2
    high = bool(be & 0xF0)
    if high:
        idx += 1
        value = int.from_bytes(bytes(data[4:8]).ljust(4, b"\0"), "little")
    else:
        value = int.from_bytes(bytes(data[0:4]).ljust(4, b"\0"), "little")
    return idx, high, value


def _beat(value: int, high: bool) -> bytes:
    out = bytearray(BUS_WIDTH)
    pos = 4 if high else 0
    out[pos:pos + 4] = (value & 0xFFFFFFFF).to_bytes(4, "little")
    return bytes(out)


class MailboxDevice(SlaveDevice):
    """A bank of mailboxes, each raising its own interrupt line on a new command."""

    def __init__(self, name: str, count: int) -> None:
        super().__init__(name)
        if count < 0:
            raise ValueError("mailbox count cannot be negative")
        self.count = count
        self.command = [0] * count
        self.data = [0] * count
        self.status = [MailboxStatus.CLEAR] * count
        self.reserved = [0] * count
        self.global_regs = [0] * GLOBAL_NO_REGS
        self.irq = [False] * count

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        idx, high, value = _split(ofs, be, data)
        if write:
            self._write(ofs, be, idx, value)
            return None
        return _beat(self._read(ofs, be, idx), high)

    def _bad(self, ofs: int, be: int) -> DeviceError:
        return DeviceError(f"bad {self.name} access ofs=0x{ofs:X}, be=0x{be:X}")

    def _global_index(self, ofs: int, be: int, idx: int) -> int:
        idx -= GLOBAL_START_ADDR >> 2
        if idx >= GLOBAL_NO_REGS:
            raise self._bad(ofs, be)
        return idx

    def _locate(self, ofs: int, be: int, idx: int) -> tuple[int, int]:
        mailbox, reg = divmod(idx, MailboxRegister.SPAN)
        if mailbox >= self.count:
            raise self._bad(ofs, be)
        return mailbox, reg

    def _write(self, ofs: int, be: int, idx: int, value: int) -> None:
        if ofs >= GLOBAL_START_ADDR:
            self.global_regs[self._global_index(ofs, be, idx)] = value
            return

        mailbox, reg = self._locate(ofs, be, idx)
        if reg == MailboxRegister.COMM:
            log.debug("MAILBOX_COMM[%d] write: 0x%08x", mailbox, value)
            self.command[mailbox] = value
            self.status[mailbox] = MailboxStatus.NEW_MESSAGE
            self.irq[mailbox] = True
        elif reg == MailboxRegister.DATA:
            log.debug("MAILBOX_DATA[%d] write: 0x%08x", mailbox, value)
            self.data[mailbox] = value
        elif reg == MailboxRegister.RESERVED:
            log.debug("MAILBOX_RESERVED[%d] write: 0x%x", mailbox, value)
            self.reserved[mailbox] = value
        else:
            log.debug("MAILBOX_RESET[%d] write: 0x%x", mailbox, value)
            self.status[mailbox] = MailboxStatus.CLEAR
            self.irq[mailbox] = False

    def _read(self, ofs: int, be: int, idx: int) -> int:
        if ofs >= GLOBAL_START_ADDR:
            return self.global_regs[self._global_index(ofs, be, idx)]

        mailbox, reg = self._locate(ofs, be, idx)
        if reg == MailboxRegister.COMM:
            return self.command[mailbox]
        if reg == MailboxRegister.DATA:
            return self.data[mailbox]
        if reg == MailboxRegister.RESERVED:
            return self.reserved[mailbox]
        return int(self.status[mailbox])