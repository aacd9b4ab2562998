"""Double-buffered framebuffer bus slave with YUV to RGB conversion."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable, Optional

from .slave import BUS_WIDTH, DeviceError, SlaveDevice

log = logging.getLogger(__name__)

Viewer = Callable[[bytes], None]
"""Receives the RGB bytes of each frame that is displayed."""


class FbMode(IntEnum):
    """Pixel formats the framebuffer accepts."""

    GREY = 0
    RGB32 = 1
    YVYU = 2  # packed YUV 4:2:2
    YV12 = 3  # planar YUV 4:2:0
    YV16 = 4  # planar YUV 4:2:2


def _byte_mask(lanes: int) -> int:
    """Expand a 4-bit lane mask into a 32-bit byte mask."""
    return sum(0xFF << (8 * i) for i in range(4) if lanes & (1 << i))


def _clip(value: int) -> int:
    if value >= 256:
        return 0xFF
    return value if value >= 0 else 0


def yuv2rgb(y: int, u: int, v: int) -> tuple[int, int, int]:
    """Convert one YUV sample to an ``(r, g, b)`` triple with integer arithmetic."""
    c = (y - 16) * 298
    d = u - 128
    e = v - 128
    r = (c + 409 * e + 128) >> 8
    g = (c - 100 * d - 208 * e + 128) >> 8
    b = (c + 516 * d + 128) >> 8
    return _clip(r), _clip(g), _clip(b)


class FramebufferDevice(SlaveDevice):
    """A framebuffer written word by word; a write to byte 0 shows the frame.

    Grey and RGB frames are written straight into the displayed buffers; YUV
    frames go to separate buffers and are converted to RGB on display.
    """

    def __init__(self, name: str, width: int, height: int, mode: int,
                 viewer: Optional[Viewer] = None) -> None:
        super().__init__(name)
        try:
            self.mode = FbMode(mode)
        except ValueError:
            raise ValueError(f"bad framebuffer mode {mode}") from None
        if width <= 0 or height <= 0:
            raise ValueError("framebuffer dimensions must be positive")

        self.width = width
        self.height = height
        self.viewer = viewer
        self.buf_idx = 0
        self.frames = 0

        if self.mode is FbMode.GREY:
            self.components, yuv_size = 1, 0
        elif self.mode is FbMode.RGB32:
            self.components, yuv_size = 3, 0
        elif self.mode in (FbMode.YVYU, FbMode.YV16):
            self.components, yuv_size = 3, 2 * width * height
        else:
            self.components, yuv_size = 3, (3 * width * height) >> 1

        self.yuv_size = yuv_size
        self.rgb_size = self.components * width * height
        self.rgb_images = [bytearray(self.rgb_size) for _ in range(2)]
        self.yuv_images = [bytearray(yuv_size) for _ in range(2)] if yuv_size else []

        if yuv_size:
            self._write_buf = self.yuv_images
            self.mem_size = yuv_size
        else:
            self._write_buf = self.rgb_images
            self.mem_size = self.rgb_size

        log.debug("new framebuffer: %dx%d [%d bytes]", width, height, self.rgb_size)

    def rcv_rqst(self, ofs: int, be: int, data: bytes, write: bool) -> Optional[bytes]:
        if write:
            self._write(ofs, be, data)
            return None
        log.error("bad %s read ofs=0x%X, be=0x%X", self.name, ofs, be)
        return bytes(BUS_WIDTH)

    def _write(self, ofs: int, be: int, data: bytes) -> None:
        lofs = ofs >> 2
        lanes = be & 0xFF
        lane = bytes(data[0:4])
        if lanes & 0xF0:
            lofs += 1
            lanes >>= 4
            lane = bytes(data[4:8])
        value = int.from_bytes(lane.ljust(4, b"\0"), "little")

        start = lofs * 4
        if start >= self.mem_size:
            raise DeviceError(
                f"{self.name}: write outside mem area: ofs=0x{ofs:X} / size=0x{self.mem_size:X}")

        if ofs == 0 and be & 0x1:
            self.display()

        buf = self._write_buf[self.buf_idx]
        end = min(start + 4, self.mem_size)
        current = int.from_bytes(bytes(buf[start:end]).ljust(4, b"\0"), "little")
        mask = _byte_mask(lanes & 0xF)
        merged = (current & ~mask & 0xFFFFFFFF) | (value & mask)
        buf[start:end] = merged.to_bytes(4, "little")[:end - start]

    def display(self) -> None:
        """Finish the current frame, hand it to the viewer and swap buffers."""
        if self.mode is FbMode.YV16:
            self._convert_yv16()
        shown = self.buf_idx
        self.buf_idx = (self.buf_idx + 1) % 2
        self.frames += 1
        if self.viewer is not None:
            self.viewer(bytes(self.rgb_images[shown]))

    def _convert_yv16(self) -> None:
        pixels = self.width * self.height
        yuv = self.yuv_images[self.buf_idx]
        y_plane = yuv[:pixels]
        u_plane = yuv[pixels:pixels + pixels // 2]
        v_plane = yuv[pixels + pixels // 2:pixels + 2 * (pixels // 2)]
        rgb = self.rgb_images[self.buf_idx]

        pos = 0
        for i, (u, v) in enumerate(zip(u_plane, v_plane)):
            for y in (y_plane[2 * i], y_plane[2 * i + 1]):
                rgb[pos:pos + 3] = bytes(yuv2rgb(y, u, v))
                pos += 3