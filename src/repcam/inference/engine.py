"""
ONNX inference engine.

Loads a classification model from raw bytes with onnxruntime, validates
its input/output shapes against the configured target size and label
count, and runs single forward passes.

Thread safety: a Model must not be run from several threads at once.
FramePipeline guarantees this by running every inference on its single
worker thread.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
import onnxruntime as ort

from ..core.errors import InferenceError, ModelLoadError

logger = logging.getLogger(__name__)

FLOAT_TENSOR = "tensor(float)"


@dataclass(eq=False)
class Model:
    """
    Loaded model handle.

    Attributes:
        input_name: Name of the image input tensor
        output_name: Name of the score output tensor
        input_shape: Concrete input shape fed at run time, batch included if any
        num_outputs: Number of scores per forward pass, None if the model
            declares a symbolic output size
        load_time_ms: Time spent creating the session
    """

    input_name: str
    output_name: str
    input_shape: tuple[int, ...]
    num_outputs: int | None
    load_time_ms: float = 0.0
    _session: Any = field(default=None, repr=False)

    @property
    def is_loaded(self) -> bool:
        return self._session is not None

    @property
    def batched(self) -> bool:
        return len(self.input_shape) == 4


class InferenceEngine:
    """
    Creates, runs and releases classification models.

    Usage:
        engine = InferenceEngine(target_size=(224, 224), num_labels=5)
        model = engine.load(model_bytes)
        scores = engine.run(model, tensor)
        engine.unload(model)
    """

    def __init__(
        self,
        target_size: tuple[int, int] = (224, 224),
        num_labels: int | None = None,
        intra_op_threads: int = 1,
        providers: Sequence[str] | None = None,
    ):
        """
        Initialize engine.

        Args:
            target_size: Expected model input resolution as (width, height)
            num_labels: Expected number of output scores, or None to accept
                any output size and let the caller check Model.num_outputs
            intra_op_threads: onnxruntime intra-op thread count (0 = runtime default)
            providers: Execution providers in priority order, CPU if None
        """
        self.target_size = (int(target_size[0]), int(target_size[1]))
        self.num_labels = int(num_labels) if num_labels is not None else None
        self.intra_op_threads = int(intra_op_threads)
        self.providers = list(providers) if providers else ["CPUExecutionProvider"]

    def _session_options(self) -> ort.SessionOptions:
        options = ort.SessionOptions()
        options.intra_op_num_threads = self.intra_op_threads
        options.inter_op_num_threads = 1
        options.execution_mode = ort.ExecutionMode.ORT_SEQUENTIAL
        return options

    def _available_providers(self) -> list[str]:
        available = set(ort.get_available_providers())
        providers = [p for p in self.providers if p in available]
        if not providers:
            logger.warning(
                f"None of {self.providers} available, falling back to CPUExecutionProvider"
            )
            providers = ["CPUExecutionProvider"]
        return providers

    def load(self, model_bytes: bytes) -> Model:
        """
        Parse model bytes and prepare the model for repeated execution.

        Args:
            model_bytes: Serialized ONNX model

        Returns:
            Loaded Model

        Raises:
            ModelLoadError: Bytes are not a valid model or shapes do not match
        """
        if not model_bytes:
            raise ModelLoadError("Model bytes are empty")

        start_time = time.perf_counter()
        try:
            session = ort.InferenceSession(
                bytes(model_bytes),
                sess_options=self._session_options(),
                providers=self._available_providers(),
            )
        except Exception as e:
            raise ModelLoadError(f"Failed to parse model: {e}") from e

        inputs = session.get_inputs()
        outputs = session.get_outputs()
        if len(inputs) != 1 or not outputs:
            raise ModelLoadError(
                f"Expected one input and at least one output, "
                f"got {len(inputs)} input(s) and {len(outputs)} output(s)"
            )

        input_shape = self._validate_input(inputs[0])
        num_outputs = self._validate_output(outputs[0])
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        model = Model(
            input_name=inputs[0].name,
            output_name=outputs[0].name,
            input_shape=input_shape,
            num_outputs=num_outputs,
            load_time_ms=elapsed_ms,
            _session=session,
        )
        logger.info(
            f"Model loaded: input={model.input_name}{list(input_shape)}, "
            f"output={model.output_name}[{num_outputs}], "
            f"providers={session.get_providers()}, time={elapsed_ms:.1f}ms"
        )
        return model

    def _validate_input(self, node: Any) -> tuple[int, ...]:
        """Check the input is float (1, H, W, 3) or (H, W, 3); return the run shape."""
        if node.type != FLOAT_TENSOR:
            raise ModelLoadError(f"Input '{node.name}' must be float32, got {node.type}")

        shape = list(node.shape)
        width, height = self.target_size
        expected = [height, width, 3]
        if len(shape) == 4:
            batch = shape[0]
            if isinstance(batch, int) and batch != 1:
                raise ModelLoadError(f"Input batch dimension must be 1, got {batch}")
            dims = shape[1:]
        elif len(shape) == 3:
            dims = shape
        else:
            raise ModelLoadError(f"Input '{node.name}' must be NHWC, got shape {shape}")

        for actual, wanted in zip(dims, expected):
            # Symbolic dimensions accept whatever we feed
            if isinstance(actual, int) and actual != wanted:
                raise ModelLoadError(
                    f"Input shape {shape} incompatible with {width}x{height}x3"
                )

        return tuple([1] + expected) if len(shape) == 4 else tuple(expected)

    def _validate_output(self, node: Any) -> int | None:
        """Check the output is a float score vector, one score per label."""
        if node.type != FLOAT_TENSOR:
            raise ModelLoadError(f"Output '{node.name}' must be float32, got {node.type}")

        shape = list(node.shape)
        if not shape:
            raise ModelLoadError(f"Output '{node.name}' is a scalar")
        leading = [d for d in shape[:-1] if isinstance(d, int) and d != 1]
        if leading:
            raise ModelLoadError(f"Output shape {shape} has non-unit leading dimensions")

        size = shape[-1]
        if not isinstance(size, int):
            logger.warning(
                f"Output '{node.name}' has symbolic size '{size}', "
                f"score count will be checked per frame"
            )
            return self.num_labels
        if self.num_labels is not None and size != self.num_labels:
            raise ModelLoadError(
                f"Model produces {size} scores but {self.num_labels} labels are configured"
            )
        return size

    def run(self, model: Model, tensor: np.ndarray) -> np.ndarray:
        """
        Execute one forward pass.

        Args:
            model: Model returned by load()
            tensor: float32 input of shape (h, w, 3)

        Returns:
            1-D float32 score vector

        Raises:
            InferenceError: Model is unloaded, the tensor shape is wrong,
                or the runtime fails
        """
        session = model._session
        if session is None:
            raise InferenceError("Model is not loaded")

        tensor = np.asarray(tensor, dtype=np.float32)
        expected = model.input_shape[1:] if model.batched else model.input_shape
        if tensor.shape != expected:
            raise InferenceError(
                f"Input tensor shape {tensor.shape} does not match model input {expected}"
            )

        feed = tensor[np.newaxis, ...] if model.batched else tensor
        try:
            outputs = session.run([model.output_name], {model.input_name: feed})
        except Exception as e:
            raise InferenceError(f"Forward pass failed: {e}") from e

        scores = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
        if model.num_outputs is not None and scores.size != model.num_outputs:
            raise InferenceError(
                f"Model returned {scores.size} scores, expected {model.num_outputs}"
            )
        return scores

    def unload(self, model: Model | None) -> None:
        """Release the model session. Safe to call repeatedly or with None."""
        if model is None or model._session is None:
            return
        model._session = None
        logger.info("Model unloaded")
