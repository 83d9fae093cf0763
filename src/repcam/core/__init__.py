"""Core components for RepCam."""

from .camera import Camera
from .config import Config
from .errors import (
    ConversionError,
    InferenceError,
    LabelMismatchError,
    ModelLoadError,
    PipelineStateError,
    PreprocessError,
    RepCamError,
)
from .frame import ColorEncoding, Frame
from .pipeline import FramePipeline, PipelineState
from .result import NO_RESULT, FrameFailure, LabelResult
from .settings import PipelineSettings

__all__ = [
    "Camera",
    "Config",
    "ColorEncoding",
    "Frame",
    "FramePipeline",
    "PipelineState",
    "PipelineSettings",
    "LabelResult",
    "FrameFailure",
    "NO_RESULT",
    "RepCamError",
    "ModelLoadError",
    "LabelMismatchError",
    "ConversionError",
    "PreprocessError",
    "InferenceError",
    "PipelineStateError",
]
