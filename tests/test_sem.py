import struct

import pytest

from rabbitsim.sem import SemaphoreError, SemDevice
from rabbitsim.slave import Command, Request


def beat(low, high=0):
    return struct.pack("<II", low, high)


def read_word(dev, ofs, be=0x0F):
    raw = dev.rcv_rqst(ofs, be, bytes(8), False)
    low, high = struct.unpack("<II", raw)
    return high if be == 0xF0 else low


def test_reading_free_semaphore_takes_it():
    dev = SemDevice("sem", 16)
    first = read_word(dev, 0)
    second = read_word(dev, 0)
    assert first == 0
    assert second != first
    assert read_word(dev, 0) == second


def test_upper_lane_is_an_independent_semaphore():
    dev = SemDevice("sem", 16)
    taken = read_word(dev, 0, 0xF0)
    assert taken == 0
    assert read_word(dev, 0, 0x0F) == 0
    assert struct.unpack("<I", dev.mem[4:8])[0] != 0


def test_writing_one_to_taken_marks_contended_but_reads_as_taken():
    dev = SemDevice("sem", 16)
    read_word(dev, 4)
    taken = read_word(dev, 4)
    dev.rcv_rqst(4, 0x0F, beat(1), True)
    assert struct.unpack("<I", dev.mem[4:8])[0] == 2
    assert read_word(dev, 4) == taken


def test_double_lock_is_fatal():
    dev = SemDevice("sem", 16)
    dev.rcv_rqst(0, 0x0F, beat(1), True)
    dev.rcv_rqst(0, 0x0F, beat(1), True)
    with pytest.raises(SemaphoreError):
        dev.rcv_rqst(0, 0x0F, beat(1), True)


def test_release_then_retake():
    dev = SemDevice("sem", 16)
    read_word(dev, 0)
    dev.rcv_rqst(0, 0x0F, beat(0), True)
    assert read_word(dev, 0) == 0


def test_other_values_are_stored_verbatim():
    dev = SemDevice("sem", 16)
    dev.rcv_rqst(8, 0x0F, beat(0x12345678), True)
    assert read_word(dev, 8) == 0x12345678
    assert read_word(dev, 8) == 0x12345678


def test_byte_access_round_trip_does_not_lock():
    dev = SemDevice("sem", 16)
    dev.rcv_rqst(0, 0x04, bytes([0, 0, 0x5A, 0, 0, 0, 0, 0]), True)
    got = dev.rcv_rqst(0, 0x04, bytes(8), False)
    assert got == bytes([0, 0, 0x5A, 0, 0, 0, 0, 0])
    assert dev.rcv_rqst(0, 0x04, bytes(8), False) == got


def test_half_word_round_trip():
    dev = SemDevice("sem", 16)
    payload = bytes([0, 0, 0, 0, 0, 0, 0xBE, 0xEF])
    dev.rcv_rqst(0, 0xC0, payload, True)
    assert dev.rcv_rqst(0, 0xC0, bytes(8), False) == payload


def test_memory_has_extra_beat():
    dev = SemDevice("sem", 16)
    assert dev.size == 16 + 8
    dev.rcv_rqst(16, 0xF0, beat(0, 7), True)
    assert read_word(dev, 16, 0xF0) == 7


@pytest.mark.parametrize("be", [0x05, 0xFF, 0x00])
def test_unsupported_byte_enable_is_fatal(be):
    dev = SemDevice("sem", 16)
    with pytest.raises(SemaphoreError):
        dev.rcv_rqst(0, be, bytes(8), False)


def test_offset_past_end_is_fatal():
    dev = SemDevice("sem", 16)
    with pytest.raises(SemaphoreError):
        dev.rcv_rqst(64, 0x0F, beat(1), True)


def test_fatal_error_propagates_through_handle():
    dev = SemDevice("sem", 16)
    with pytest.raises(SemaphoreError):
        dev.handle(Request(0, 0x05, Command.READ))
    assert dev.processing is False