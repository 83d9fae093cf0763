"""Frame processing components for RepCam."""

from .color_converter import ColorConverter
from .preprocessor import TensorPreprocessor

__all__ = ["ColorConverter", "TensorPreprocessor"]
