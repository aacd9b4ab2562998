"""Simple display controller that receives its geometry and pixels one word at a time."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .slave import BUS_WIDTH, DeviceError, SlaveDevice

log = logging.getLogger(__name__)

Viewer = Callable[[bytes], None]
"""Receives the bytes of each complete frame."""

DATA_OFS = 0x000
"""Geometry words, then pixel words, are written here."""

IGNORED_WRITE_OFS = 0x880
"""Writes here are accepted and ignored."""


class RamdacDevice(SlaveDevice):
    """A double-buffered display.

    The first three words written set the width, the height and the number
    of components per pixel; every later word is four bytes of pixel data.
    When the last word of a frame arrives the frame is handed to the viewer.
    Reaching ``frames_to_simulate`` frames, if non-zero, ends the simulation
    with SystemExit(1).
    """

    def __init__(self, name: str, viewer: Optional[Viewer] = None,
                 frames_to_simulate: int = 0) -> None:
        super().__init__(name)
        self.viewer = viewer
        self.frames_to_simulate = frames_to_simulate
        self.width = 0
        self.height = 0
        self.components = 0
        self.ready = False
        self.frames = 0
        self.buf_idx = 0
        self.images: list[bytearray] = []
        self._x = 0
        self._y = 0

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        if not write:
            return bytes(BUS_WIDTH)
        if ofs == IGNORED_WRITE_OFS:
            return None
        if ofs != DATA_OFS:
            raise DeviceError(f"bad {self.name} write ofs=0x{ofs:X}, be=0x{be:X}")

        value = int.from_bytes(bytes(data[0:4]).ljust(4, b"\0"), "little")
        if not self.ready:
            self._receive_size(value)
        else:
            self._store_pixels(value)
        return None

    def _receive_size(self, value: int) -> None:
        if self.width == 0:
            self.width = value
            log.info("width %d", value)
            return
        if self.height == 0:
            self.height = value
            log.info("height %d", value)
            return
        if self.components == 0:
            if (self.width // 4) * self.components == 0 and value == 0:
                return
            self.components = value
            log.info("components %d", value)
            if (self.width // 4) * value == 0:
                raise DeviceError(f"{self.name}: frame width {self.width} is too small")
            self.ready = True
            self._x = self._y = 0
            size = value * self.width * self.height
            self.images = [bytearray(size) for _ in range(2)]

    def _store_pixels(self, value: int) -> None:
        index = self._y * self.width * self.components // 4 + self._x
        image = self.images[self.buf_idx]
        start = index * 4
        if start + 4 > len(image):
            raise DeviceError(f"{self.name}: pixel word {index} outside the frame")
        image[start:start + 4] = value.to_bytes(4, "little")

        self._x = (self._x + 1) % ((self.width // 4) * self.components)
        if not self._x:
            self._y = (self._y + 1) % self.height
        if not self._x and not self._y:
            self.frames += 1
            self._display()
            if self.frames_to_simulate and self.frames == self.frames_to_simulate:
                raise SystemExit(1)

    def _display(self) -> None:
        shown = self.buf_idx
        self.buf_idx = (self.buf_idx + 1) % 2
        if self.viewer is not None:
            self.viewer(bytes(self.images[shown]))