"""
Camera abstraction layer for RepCam.

Captures video from USB cameras or video files with OpenCV and hands out
Frames in the native 4:2:0 encoding the pipeline expects, the way a
phone camera delivers them.
"""

import logging
import time
from typing import Any

import cv2
import numpy as np

from .frame import ColorEncoding, Frame

logger = logging.getLogger(__name__)


def bgr_to_frame(
    image: np.ndarray,
    encoding: ColorEncoding | str = ColorEncoding.NV21,
    rotation: int = 0,
    frame_id: int = 0,
    timestamp: float = 0.0,
) -> Frame:
    """
    Encode a BGR image as a 4:2:0 Frame.

    Odd widths/heights are cropped by one pixel since chroma is subsampled 2x2.

    Args:
        image: BGR uint8 image
        encoding: Target frame encoding
        rotation: Rotation to record on the frame
        frame_id: Capture index
        timestamp: Capture time in seconds

    Returns:
        Frame holding the encoded planes
    """
    encoding = ColorEncoding.parse(encoding)
    height, width = image.shape[:2]
    width -= width % 2
    height -= height % 2
    image = np.ascontiguousarray(image[:height, :width])

    # OpenCV only encodes planar I420; NV12/NV21 chroma is interleaved below
    yuv = cv2.cvtColor(image, cv2.COLOR_BGR2YUV_I420).reshape(-1)
    luma_size = width * height
    quarter = luma_size // 4
    y = yuv[:luma_size].reshape(height, width)
    u = yuv[luma_size : luma_size + quarter].reshape(height // 2, width // 2)
    v = yuv[luma_size + quarter :].reshape(height // 2, width // 2)

    if encoding is ColorEncoding.I420:
        planes: tuple[np.ndarray, ...] = (y, u, v)
    else:
        first, second = (u, v) if encoding is ColorEncoding.NV12 else (v, u)
        uv = np.empty((height // 2, width), dtype=np.uint8)
        uv[:, 0::2] = first
        uv[:, 1::2] = second
        planes = (y, uv)

    return Frame(
        width=width,
        height=height,
        planes=planes,
        encoding=encoding,
        rotation=rotation,
        frame_id=frame_id,
        timestamp=timestamp,
    )


class Camera:
    """
    Camera abstraction for video capture.

    Supports:
    - USB webcams
    - Video files for testing
    - Configurable resolution, FPS, backend and sensor rotation

    Usage:
        camera = Camera(config['camera'], encoding=ColorEncoding.NV21)
        camera.open()
        frame = camera.read_frame()
        camera.release()

    Or as context manager:
        with Camera(config['camera']) as camera:
            frame = camera.read_frame()
    """

    # Backend mappings for OpenCV
    BACKENDS = {
        "CAP_MSMF": cv2.CAP_MSMF,
        "CAP_DSHOW": cv2.CAP_DSHOW,
        "CAP_V4L2": cv2.CAP_V4L2,
        "CAP_ANY": cv2.CAP_ANY,
    }

    def __init__(
        self, config: dict[str, Any], encoding: ColorEncoding | str = ColorEncoding.NV21
    ):
        """
        Initialize camera with configuration.

        Args:
            config: Camera configuration dictionary with keys:
                - source: int (device index) or str (video file path)
                - backend: str (CAP_MSMF, CAP_DSHOW, etc.)
                - width: int
                - height: int
                - fps: int
                - buffer_size: int
                - rotation: int (0, 90, 180, 270) recorded on each frame
            encoding: Encoding of the frames handed out by read_frame()
        """
        self.source = config.get("source", 0)
        self.backend_name = config.get("backend", "CAP_ANY")
        self.width = config.get("width", 640)
        self.height = config.get("height", 480)
        self.fps = config.get("fps", 30)
        self.buffer_size = config.get("buffer_size", 1)
        self.rotation = config.get("rotation", 0)
        self.encoding = ColorEncoding.parse(encoding)

        self._cap: cv2.VideoCapture | None = None
        self._is_open = False
        self._frame_count = 0

    @property
    def backend(self) -> int:
        """Get OpenCV backend constant."""
        return self.BACKENDS.get(self.backend_name, cv2.CAP_ANY)

    @property
    def is_open(self) -> bool:
        """Check if camera is open and ready."""
        return self._is_open and self._cap is not None and self._cap.isOpened()

    def open(self) -> bool:
        """
        Open the camera for capture.

        Returns:
            True if camera opened successfully, False otherwise.
        """
        if self._is_open:
            return True

        if isinstance(self.source, str):
            self._cap = cv2.VideoCapture(self.source)
        else:
            self._cap = cv2.VideoCapture(self.source, self.backend)

        if not self._cap.isOpened():
            logger.error(f"Failed to open camera source: {self.source}")
            return False

        if not isinstance(self.source, str):
            self._configure()

        self._is_open = True
        logger.info(
            f"Camera opened: source={self.source}, "
            f"resolution={self.width}x{self.height}, fps={self.fps}, "
            f"encoding={self.encoding}"
        )
        return True

    def _configure(self) -> None:
        """Apply camera configuration settings."""
        if self._cap is None:
            return

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.fps)
        # Buffer size (lower = less latency)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.buffer_size)

        actual_width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = self._cap.get(cv2.CAP_PROP_FPS)

        if actual_width != self.width or actual_height != self.height:
            logger.warning(
                f"Camera resolution mismatch: requested {self.width}x{self.height}, "
                f"got {actual_width}x{actual_height}"
            )

        logger.debug(f"Camera actual settings: {actual_width}x{actual_height} @ {actual_fps} FPS")

    def read(self) -> np.ndarray | None:
        """
        Read a BGR image from the camera.

        Returns:
            BGR image as numpy array, or None if read failed.
        """
        if not self.is_open:
            if not self.open():
                return None

        ret, image = self._cap.read()  # type: ignore
        if not ret:
            logger.warning("Failed to read frame from camera")
            return None

        return image

    def read_frame(self) -> Frame | None:
        """
        Read one capture as a Frame in the configured encoding.

        Returns:
            Frame, or None if read failed or the source is exhausted.
        """
        image = self.read()
        if image is None:
            return None

        self._frame_count += 1
        return bgr_to_frame(
            image,
            encoding=self.encoding,
            rotation=self.rotation,
            frame_id=self._frame_count,
            timestamp=time.time(),
        )

    def release(self) -> None:
        """Release camera resources."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logger.info("Camera released")

    def __enter__(self) -> "Camera":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.release()
