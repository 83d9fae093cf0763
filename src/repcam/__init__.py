"""
RepCam - Real-time Exercise Classification

Camera-frame classification pipeline: luma/chroma frames are converted
to RGB, resized into a fixed-size tensor, scored by an ONNX model, and
the best exercise label is reported to the caller.
"""

__version__ = "0.1.0"
__author__ = "RepCam Team"

from .core.frame import ColorEncoding, Frame
from .core.pipeline import FramePipeline, PipelineState
from .core.result import NO_RESULT, FrameFailure, LabelResult
from .core.settings import PipelineSettings

__all__ = [
    "ColorEncoding",
    "Frame",
    "FramePipeline",
    "PipelineState",
    "PipelineSettings",
    "LabelResult",
    "FrameFailure",
    "NO_RESULT",
    "__version__",
]
