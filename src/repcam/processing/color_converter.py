"""
Luma/chroma to RGB conversion for camera frames.

Converts 4:2:0 sensor frames (I420, NV12, NV21) into packed RGB using the
BT.601 coefficients implemented by OpenCV, then rotates the result so it
is upright relative to the device.
"""

import logging

import cv2
import numpy as np

from ..core.errors import ConversionError
from ..core.frame import ColorEncoding, Frame

logger = logging.getLogger(__name__)

_CVT_CODES = {
    ColorEncoding.I420: cv2.COLOR_YUV2RGB_I420,
    ColorEncoding.NV12: cv2.COLOR_YUV2RGB_NV12,
    ColorEncoding.NV21: cv2.COLOR_YUV2RGB_NV21,
}

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class ColorConverter:
    """
    Converts camera frames into upright RGB images.

    The planes are packed into a reusable scratch buffer laid out the way
    OpenCV expects (height * 3/2 rows), so steady-state conversion at a
    fixed resolution does not allocate for the packing step.

    Usage:
        converter = ColorConverter(ColorEncoding.NV21)
        rgb = converter.convert(frame)
    """

    def __init__(self, encoding: ColorEncoding | str | None = None):
        """
        Initialize converter.

        Args:
            encoding: Expected frame encoding, or None to accept any supported one
        """
        self.encoding = ColorEncoding.parse(encoding) if encoding is not None else None
        self._scratch: np.ndarray | None = None

    def convert(self, frame: Frame) -> np.ndarray:
        """
        Convert a frame to an upright RGB image.

        Args:
            frame: Camera frame in a supported 4:2:0 encoding

        Returns:
            uint8 array of shape (height, width, 3) after rotation

        Raises:
            ConversionError: Planes do not match the declared size or encoding
        """
        if self.encoding is not None and frame.encoding is not self.encoding:
            raise ConversionError(
                f"Expected {self.encoding} frame, got {frame.encoding}"
            )
        code = _CVT_CODES.get(frame.encoding)
        if code is None:
            raise ConversionError(f"Unsupported encoding: {frame.encoding}")

        packed = self._pack(frame)
        try:
            rgb = cv2.cvtColor(packed, code)
        except cv2.error as e:
            raise ConversionError(f"Color conversion failed: {e}") from e

        rotate_code = _ROTATIONS.get(frame.rotation)
        if rotate_code is not None:
            rgb = cv2.rotate(rgb, rotate_code)
        return rgb

    def _pack(self, frame: Frame) -> np.ndarray:
        """Validate plane shapes and copy them into the scratch buffer."""
        width, height = frame.width, frame.height
        if width % 2 or height % 2:
            raise ConversionError(
                f"Frame size {width}x{height} must be even for 4:2:0 chroma"
            )

        expected = self._expected_shapes(frame.encoding, width, height)
        if len(frame.planes) != len(expected):
            raise ConversionError(
                f"{frame.encoding} frame needs {len(expected)} planes, "
                f"got {len(frame.planes)}"
            )
        for i, (plane, shape) in enumerate(zip(frame.planes, expected)):
            plane_shape = np.shape(plane)
            if tuple(plane_shape) != shape:
                raise ConversionError(
                    f"Plane {i} has shape {tuple(plane_shape)}, expected {shape} "
                    f"for {width}x{height} {frame.encoding}"
                )

        rows = height * 3 // 2
        if self._scratch is None or self._scratch.shape != (rows, width):
            self._scratch = np.empty((rows, width), dtype=np.uint8)
            logger.debug(f"Allocated {width}x{rows} conversion buffer")

        flat = self._scratch.reshape(-1)
        offset = 0
        for plane in frame.planes:
            data = np.asarray(plane, dtype=np.uint8).reshape(-1)
            flat[offset : offset + data.size] = data
            offset += data.size
        return self._scratch

    @staticmethod
    def _expected_shapes(
        encoding: ColorEncoding, width: int, height: int
    ) -> list[tuple[int, int]]:
        if encoding is ColorEncoding.I420:
            return [(height, width), (height // 2, width // 2), (height // 2, width // 2)]
        return [(height, width), (height // 2, width)]
