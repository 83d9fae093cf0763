"""
Tensor preparation for the classification model.

Resizes RGB images to the model input resolution with bilinear
interpolation and scales channels to [0, 1].
"""

import cv2
import numpy as np

from ..core.errors import PreprocessError


class TensorPreprocessor:
    """
    Turns RGB images into model input tensors.

    The output is a freshly allocated float32 array of shape (h, w, 3),
    row-major with interleaved R, G, B channels.

    Usage:
        preprocessor = TensorPreprocessor((224, 224))
        tensor = preprocessor.prepare(rgb)
    """

    def __init__(
        self,
        target_size: tuple[int, int] = (224, 224),
        interpolation: int = cv2.INTER_LINEAR,
    ):
        """
        Initialize preprocessor.

        Args:
            target_size: Default output size as (width, height)
            interpolation: OpenCV interpolation flag used for resizing
        """
        self.target_size = (int(target_size[0]), int(target_size[1]))
        self.interpolation = interpolation

    def prepare(
        self, image: np.ndarray, target_size: tuple[int, int] | None = None
    ) -> np.ndarray:
        """
        Resize and normalize an RGB image.

        Args:
            image: uint8 RGB array of shape (height, width, 3)
            target_size: Optional (width, height) overriding the default

        Returns:
            float32 tensor of shape (h, w, 3) with values in [0, 1]

        Raises:
            PreprocessError: Image is empty or not 3-channel
        """
        width, height = target_size or self.target_size
        if width <= 0 or height <= 0:
            raise PreprocessError(f"Invalid target size {width}x{height}")

        image = np.asarray(image)
        if image.ndim != 3 or image.shape[2] != 3:
            raise PreprocessError(f"Expected (H, W, 3) RGB image, got shape {image.shape}")
        if image.shape[0] == 0 or image.shape[1] == 0:
            raise PreprocessError(f"Degenerate image of shape {image.shape}")

        if image.dtype != np.uint8:
            image = np.clip(image, 0, 255).astype(np.uint8)

        if image.shape[1] != width or image.shape[0] != height:
            image = cv2.resize(image, (width, height), interpolation=self.interpolation)

        return image.astype(np.float32) / np.float32(255.0)
