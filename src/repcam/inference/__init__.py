"""Model inference components for RepCam."""

from .engine import InferenceEngine, Model
from .selector import ResultSelector

__all__ = ["InferenceEngine", "Model", "ResultSelector"]
