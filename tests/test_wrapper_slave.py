import pytest

from rabbitsim.slave import Command, DeviceError, Request
from rabbitsim.wrapper_slave import QemuWrapperSlaveDevice, WrapperAccess


class RecordingWrapper(WrapperAccess):
    def __init__(self):
        self.levels = []

    def get_no_cpus(self):
        return 4

    def get_cpu_fv_level(self, cpu):
        return 0

    def set_cpu_fv_level(self, cpu, val):
        self.levels.append((cpu, val))

    def generate_swi(self, cpu_mask, swi):
        pass

    def swi_ack(self, cpu, swi_mask):
        pass

    def get_cpu_ncycles(self, cpu):
        return 0

    def get_no_cycles_cpu(self, cpu):
        return 0

    def get_int_status(self):
        return 0

    def get_int_enable(self):
        return 0

    def set_int_enable(self, val):
        pass


def beat(low, high=0):
    return low.to_bytes(4, "little") + high.to_bytes(4, "little")


def test_write_sets_all_cpus():
    master = RecordingWrapper()
    dev = QemuWrapperSlaveDevice("wslave", master)
    assert dev.rcv_rqst(0, 0x0F, beat(3), True) is None
    assert master.levels == [(-1, 3)]


def test_high_lane_is_next_register():
    master = RecordingWrapper()
    dev = QemuWrapperSlaveDevice("wslave", master)
    with pytest.raises(DeviceError):
        dev.rcv_rqst(0, 0xF0, beat(0, 2), True)
    assert master.levels == []


def test_other_offset_is_rejected():
    master = RecordingWrapper()
    dev = QemuWrapperSlaveDevice("wslave", master)
    with pytest.raises(DeviceError):
        dev.rcv_rqst(4, 0x0F, beat(1), True)


def test_read_is_rejected():
    dev = QemuWrapperSlaveDevice("wslave", RecordingWrapper())
    with pytest.raises(DeviceError):
        dev.rcv_rqst(0, 0x0F, bytes(8), False)


def test_read_through_bus_reports_error():
    dev = QemuWrapperSlaveDevice("wslave", RecordingWrapper())
    rsp = dev.handle(Request(address=0, be=0x0F, cmd=Command.READ))
    assert rsp.rerror is True


def test_write_through_bus_succeeds():
    master = RecordingWrapper()
    dev = QemuWrapperSlaveDevice("wslave", master)
    rsp = dev.handle(Request(address=0, be=0x0F, cmd=Command.WRITE, wdata=beat(5)))
    assert rsp.rerror is False
    assert master.levels == [(-1, 5)]


def test_write_without_master_is_rejected():
    dev = QemuWrapperSlaveDevice("wslave")
    with pytest.raises(DeviceError):
        dev.rcv_rqst(0, 0x0F, beat(1), True)