"""
Frame data structures.

A Frame is one capture from a camera source in its native luma/chroma
encoding. It is owned by the pipeline for a single processing cycle and
closed as soon as its pixels have been converted.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import numpy as np

VALID_ROTATIONS = (0, 90, 180, 270)


class ColorEncoding(Enum):
    """Supported native sensor pixel formats (4:2:0 subsampled)."""

    I420 = "I420"  # Y plane, U plane, V plane
    NV12 = "NV12"  # Y plane, interleaved UV plane
    NV21 = "NV21"  # Y plane, interleaved VU plane (Android default)

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | ColorEncoding") -> "ColorEncoding":
        """Parse an encoding name, case-insensitive."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            supported = ", ".join(e.value for e in cls)
            raise ValueError(
                f"Unsupported color encoding '{value}' (supported: {supported})"
            ) from None


@dataclass(frozen=True, eq=False)
class Frame:
    """
    Single camera capture.

    Attributes:
        width: Sensor width in pixels (before rotation)
        height: Sensor height in pixels (before rotation)
        planes: Raw uint8 planes in the order defined by `encoding`
        encoding: Native pixel format of the planes
        rotation: Clockwise rotation in degrees needed to make the image upright
        frame_id: Monotonic capture index assigned by the source
        timestamp: Capture time in seconds
        release: Optional callable that frees the underlying camera buffer
    """

    width: int
    height: int
    planes: tuple[np.ndarray, ...]
    encoding: ColorEncoding = ColorEncoding.NV21
    rotation: int = 0
    frame_id: int = 0
    timestamp: float = 0.0
    release: Callable[[], None] | None = None
    _closed: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid frame size {self.width}x{self.height}")
        if self.rotation not in VALID_ROTATIONS:
            raise ValueError(
                f"Invalid rotation {self.rotation}, expected one of {VALID_ROTATIONS}"
            )
        object.__setattr__(self, "encoding", ColorEncoding.parse(self.encoding))
        object.__setattr__(self, "planes", tuple(self.planes))

    @property
    def upright_size(self) -> tuple[int, int]:
        """(width, height) after rotation correction."""
        if self.rotation in (90, 270):
            return (self.height, self.width)
        return (self.width, self.height)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Release the underlying camera resource. Safe to call more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self.release is not None:
            self.release()

    @classmethod
    def from_buffer(
        cls,
        buffer: np.ndarray,
        width: int,
        height: int,
        encoding: "ColorEncoding | str" = ColorEncoding.I420,
        **kwargs,
    ) -> "Frame":
        """
        Split a contiguous 4:2:0 buffer of height*3/2 rows into planes.

        The buffer layout must match `encoding`: three planes for I420,
        Y followed by one interleaved chroma plane for NV12/NV21.
        """
        encoding = ColorEncoding.parse(encoding)
        flat = np.ascontiguousarray(buffer, dtype=np.uint8).reshape(-1)
        luma_size = width * height
        chroma_w, chroma_h = width // 2, height // 2
        if flat.size < luma_size + 2 * chroma_w * chroma_h:
            raise ValueError(
                f"Buffer of {flat.size} bytes too small for {width}x{height} {encoding}"
            )
        y =flat[:luma_size].reshape(height, width)
        if encoding is ColorEncoding.I420:
            quarter = chroma_w * chroma_h
            u = flat[luma_size : luma_size + quarter].reshape(chroma_h, chroma_w)
            v = flat[luma_size + quarter : luma_size + 2 * quarter].reshape(
                chroma_h, chroma_w
            )
            planes: tuple[np.ndarray, ...] = (y, u, v)
        else:
            uv = flat[luma_size : luma_size + chroma_h * width].reshape(chroma_h, width)
            planes = (y, uv)
        return cls(width=width, height=height, planes=planes, encoding=encoding, **kwargs)
