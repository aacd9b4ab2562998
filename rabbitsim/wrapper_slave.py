"""Register maps of the processor wrapper and the slave that sets CPU speeds."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Optional

from .slave import DeviceError, SlaveDevice

log = logging.getLogger(__name__)

QEMU_ADDR_BASE = 0x82000000
"""Default base address of the wrapper register window."""

SIZE_QEMU_WRAPPER_MEMORY = 0x1000
"""Size in bytes of the wrapper register window."""

_SET_CPUS_FQ = 0
"""Word offset of the slave register that sets every processor's level."""


class ReadRegister(IntEnum):
    """Byte offsets of the readable wrapper registers."""

    GET_SYSTEMC_NO_CPUS = 0x0000
    GET_SYSTEMC_CRT_CPU_ID = 0x0004
    GET_SYSTEMC_TIME_LOW = 0x0008
    GET_SYSTEMC_TIME_HIGH = 0x000C
    GET_SYSTEMC_CRT_CPU_FV_LEVEL = 0x0010
    GET_SYSTEMC_CPU1_FV_LEVEL = 0x0014
    GET_SYSTEMC_CPU2_FV_LEVEL = 0x0018
    GET_SYSTEMC_CPU3_FV_LEVEL = 0x001C
    GET_SYSTEMC_CPU4_FV_LEVEL = 0x0020
    GET_SYSTEMC_CPU1_NCYCLES = 0x0024
    GET_SYSTEMC_CPU2_NCYCLES = 0x0028
    GET_SYSTEMC_CPU3_NCYCLES = 0x002C
    GET_SYSTEMC_CPU4_NCYCLES = 0x0030
    GET_SYSTEMC_INT_ENABLE = 0x0040
    GET_SYSTEMC_INT_STATUS = 0x0044
    GET_ALL_CPUS_NO_CYCLES = 0x0050
    GET_NO_CYCLES_CPU1 = 0x0054
    GET_NO_CYCLES_CPU2 = 0x0058
    GET_NO_CYCLES_CPU3 = 0x005C
    GET_NO_CYCLES_CPU4 = 0x0060
    GET_SYSTEMC_MAX_INT_PENDING = 0x0080
    GET_SECONDARY_STARTUP_ADDRESS = 0x0084
    GET_MEASURE_RES = 0x0100


class WriteRegister(IntEnum):
    """Byte offsets of the writable wrapper registers."""

    TEST_WRITE_SYSTEMC = 0x0000
    SYSTEMC_SHUTDOWN = 0x0004
    SET_SYSTEMC_CRT_CPU_FV_LEVEL = 0x0010
    SET_SYSTEMC_CPUX_FV_LEVEL = 0x0014
    SET_SYSTEMC_ALL_FV_LEVEL = 0x0024
    SET_SYSTEMC_INT_ENABLE = 0x0040
    LOG_END_OF_IMAGE = 0x0050
    TEST1_WRITE_SYSTEMC = 0x0060
    TEST2_WRITE_SYSTEMC = 0x0068
    TEST3_WRITE_SYSTEMC = 0x0070
    LOG_SET_THREAD_CPU = 0x0080
    SET_SECONDARY_STARTUP_ADDRESS = 0x0084
    GENERATE_SWI = 0x0088
    SWI_ACK = 0x008C
    SET_MEASURE_START = 0x0100


class WrapperAccess(ABC):
    """What a processor wrapper offers to devices that control its processors.

    A ``cpu`` of -1 in ``set_cpu_fv_level`` and ``get_no_cycles_cpu`` means
    every processor.
    """

    @abstractmethod
    def get_no_cpus(self) -> int: ...

    @abstractmethod
    def get_cpu_fv_level(self, cpu: int) -> int: ...

    @abstractmethod
    def set_cpu_fv_level(self, cpu: int, val: int) -> None: ...

    @abstractmethod
    def generate_swi(self, cpu_mask: int, swi: int) -> None: ...

    @abstractmethod
    def swi_ack(self, cpu: int, swi_mask: int) -> None: ...

    @abstractmethod
    def get_cpu_ncycles(self, cpu: int) -> int: ...

    @abstractmethod
    def get_no_cycles_cpu(self, cpu: int) -> int: ...

    @abstractmethod
    def get_int_status(self) -> int: ...

    @abstractmethod
    def get_int_enable(self) -> int: ...

    @abstractmethod
    def set_int_enable(self, val: int) -> None: ...


class QemuWrapperSlaveDevice(SlaveDevice):
    """A write-only register that sets the frequency level of every processor."""

    def __init__(self, name: str, master: Optional[WrapperAccess] = None) -> None:
        super().__init__(name)
        self.master = master

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        idx = ofs >> 2
        if not write:
            raise DeviceError(f"bad {self.name} read ofs=0x{ofs:X}, be=0x{be:X}")
        if be & 0xF0:
            idx += 1
            lane = bytes(data[4:8])
        else:
            lane = bytes(data[0:4])
        value = int.from_bytes(lane.ljust(4, b"\0"), "little")

        if idx != _SET_CPUS_FQ:
            raise DeviceError(f"bad {self.name} write ofs=0x{ofs:X}, be=0x{be:X}")
        if self.master is None:
            raise DeviceError(f"{self.name}: no wrapper attached")
        log.debug("SET_CPUS_FQ write: 0x%08x", value)
        self.master.set_cpu_fv_level(-1, value)
        return None