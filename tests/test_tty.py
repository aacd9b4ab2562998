import io

import pytest

from rabbitsim.slave import Command, DeviceError, Request
from rabbitsim.tty import TtyDevice, TtyRegister


def _beat(low: int = 0, high: int = 0) -> bytes:
    return low.to_bytes(4, "little") + high.to_bytes(4, "little")


def _device(count: int = 2):
    outputs = [io.BytesIO() for _ in range(count)]
    return TtyDevice("tty", count, outputs), outputs


def test_write_sends_byte_to_first_terminal():
    dev, outputs = _device()
    dev.rcv_rqst(0, 0x0F, _beat(ord("A")), True)
    dev.rcv_rqst(0, 0x0F, _beat(ord("b")), True)
    assert outputs[0].getvalue() == b"Ab"
    assert outputs[1].getvalue() == b""


def test_only_low_byte_is_sent():
    dev, outputs = _device()
    dev.rcv_rqst(0, 0x0F, _beat(0x141), True)
    assert outputs[0].getvalue() == b"A"


def test_second_terminal_address():
    dev, outputs = _device()
    ofs = TtyRegister.SPAN * 4
    dev.rcv_rqst(ofs, 0x0F, _beat(ord("z")), True)
    assert outputs[1].getvalue() == b"z"
    assert outputs[0].getvalue() == b""


def test_high_lane_selects_next_word():
    dev, outputs = _device()
    dev.rcv_rqst(12, 0xF0, _beat(0, ord("q")), True)
    assert outputs[1].getvalue() == b"q"


def test_high_lane_on_write_register_hits_status():
    dev, _ = _device()
    with pytest.raises(DeviceError):
        dev.rcv_rqst(0, 0xF0, _beat(0, ord("q")), True)


def test_terminal_out_of_range():
    dev, _ = _device(1)
    with pytest.raises(DeviceError):
        dev.rcv_rqst(TtyRegister.SPAN * 4, 0x0F, _beat(1), True)


def test_read_is_rejected():
    dev, _ = _device()
    with pytest.raises(DeviceError):
        dev.rcv_rqst(0, 0x0F, bytes(8), False)


def test_read_through_bus_is_error_response():
    dev, _ = _device()
    response = dev.handle(Request(address=0, be=0x0F, cmd=Command.READ))
    assert response.rerror is True


def test_bus_write_succeeds():
    dev, outputs = _device()
    response = dev.handle(Request(address=0, be=0x0F, cmd=Command.WRITE,
                                  wdata=_beat(ord("x"))))
    assert response.rerror is False
    assert outputs[0].getvalue() == b"x"


def test_outputs_must_match_count():
    with pytest.raises(ValueError):
        TtyDevice("tty", 3, [io.BytesIO()])


def test_close_leaves_given_outputs_open():
    dev, outputs = _device()
    dev.close()
    assert outputs[0].closed is False