"""
Error taxonomy for the frame classification pipeline.

Startup errors (ModelLoadError, LabelMismatchError) are raised to the
caller synchronously. Per-frame errors (ConversionError, PreprocessError,
InferenceError) are caught by the FramePipeline worker and reported as
a FrameFailure on the result channel.
"""


class RepCamError(Exception):
    """Base class for all RepCam errors."""


class ModelLoadError(RepCamError):
    """Model bytes are malformed or the model shapes are incompatible."""


class LabelMismatchError(RepCamError):
    """Label set does not match the model output size."""


class ConversionError(RepCamError):
    """Camera frame planes are inconsistent with the declared format."""


class PreprocessError(RepCamError):
    """Image cannot be turned into an input tensor."""


class InferenceError(RepCamError):
    """Forward pass failed for a single frame."""


class PipelineStateError(RepCamError):
    """Operation is not valid in the pipeline's current state."""
