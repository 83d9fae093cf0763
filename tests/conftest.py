"""
Pytest fixtures for RepCam tests.

Provides common test fixtures including:
- Tiny ONNX classifiers built in memory
- Synthetic camera frames in each supported encoding
- Test configuration
"""

import numpy as np
import pytest
from onnx import TensorProto, helper, numpy_helper

from repcam.core.camera import bgr_to_frame
from repcam.core.frame import ColorEncoding
from repcam.core.settings import PipelineSettings

LABELS = ["squat", "pushup", "plank", "lunge", "pullup"]
SMALL_SIZE = (32, 32)


def make_classifier_model(
    num_labels: int = 5,
    input_shape: tuple = (1, 224, 224, 3),
    weights: np.ndarray | None = None,
    bias: np.ndarray | None = None,
    output_shape: list | None = None,
) -> bytes:
    """
    Build a serialized ONNX classifier.

    The graph averages each color channel over the image and maps the
    three means to scores with a linear layer. By default channel c
    drives label c, so a red image scores "squat", green "pushup" and
    blue "plank".

    Args:
        num_labels: Number of output scores
        input_shape: NHWC or HWC input shape; dims may be strings (symbolic)
        weights: (channels, num_labels) weight matrix
        bias: (num_labels,) bias vector
        output_shape: Declared output shape, derived from the input if None

    Returns:
        Model bytes
    """
    channels = input_shape[-1]
    batched = len(input_shape) == 4
    if weights is None:
        weights = np.zeros((channels, num_labels), dtype=np.float32)
        for c in range(min(channels, num_labels)):
            weights[c, c] = 1.0
    if bias is None:
        bias = np.zeros(num_labels, dtype=np.float32)
    if output_shape is None:
        output_shape = [input_shape[0], num_labels] if batched else [num_labels]

    graph = helper.make_graph(
        nodes=[
            helper.make_node(
                "ReduceMean",
                ["input"],
                ["pooled"],
                axes=[1, 2] if batched else [0, 1],
                keepdims=0,
            ),
            helper.make_node("MatMul", ["pooled", "W"], ["logits"]),
            helper.make_node("Add", ["logits", "B"], ["scores"]),
        ],
        name="channel_mean_classifier",
        inputs=[helper.make_tensor_value_info("input", TensorProto.FLOAT, list(input_shape))],
        outputs=[helper.make_tensor_value_info("scores", TensorProto.FLOAT, output_shape)],
        initializer=[
            numpy_helper.from_array(np.asarray(weights, dtype=np.float32), "W"),
            numpy_helper.from_array(np.asarray(bias, dtype=np.float32), "B"),
        ],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_operatorsetid("", 13)])
    model.ir_version = 8
    return model.SerializeToString()


def make_color_frame(
    bgr: tuple[int, int, int],
    width: int = 64,
    height: int = 48,
    encoding: ColorEncoding = ColorEncoding.NV21,
    rotation: int = 0,
    frame_id: int = 0,
):
    """Build a Frame of a single solid BGR color."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = bgr
    return bgr_to_frame(image, encoding=encoding, rotation=rotation, frame_id=frame_id)


@pytest.fixture
def labels():
    """Reference exercise labels."""
    return list(LABELS)


@pytest.fixture
def model_bytes():
    """Batched 224x224 classifier with five outputs."""
    return make_classifier_model()


@pytest.fixture
def small_model_bytes():
    """Batched 32x32 classifier with five outputs."""
    return make_classifier_model(input_shape=(1, *SMALL_SIZE, 3))


@pytest.fixture
def small_settings():
    """Pipeline settings matching small_model_bytes."""
    return PipelineSettings(target_size=SMALL_SIZE, labels=tuple(LABELS))


@pytest.fixture
def green_frame():
    """Solid green NV21 frame."""
    return make_color_frame((0, 255, 0))


@pytest.fixture
def test_config():
    """Test configuration dictionary."""
    return {
        "camera": {
            "source": 0,
            "backend": "CAP_ANY",
            "width": 640,
            "height": 480,
            "fps": 30,
            "buffer_size": 1,
            "rotation": 90,
        },
        "pipeline": {
            "target_size": [224, 224],
            "labels": list(LABELS),
            "color_encoding": "NV21",
        },
        "inference": {
            "intra_op_threads": 1,
            "providers": ["CPUExecutionProvider"],
        },
        "logging": {
            "level": "INFO",
            "file": None,
        },
    }


@pytest.fixture
def build_model():
    """Factory for custom classifier models (see make_classifier_model)."""
    return make_classifier_model


@pytest.fixture
def build_frame():
    """Factory for solid-color frames (see make_color_frame)."""
    return make_color_frame
