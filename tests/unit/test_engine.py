"""
Unit tests for InferenceEngine.
"""

import numpy as np
import pytest

from repcam.core.errors import InferenceError, ModelLoadError
from repcam.inference.engine import InferenceEngine


class TestModelLoading:
    """Tests for load-time validation."""

    @pytest.fixture
    def engine(self):
        return InferenceEngine(target_size=(224, 224), num_labels=5)

    def test_load_valid_model(self, engine, model_bytes):
        model = engine.load(model_bytes)

        assert model.is_loaded
        assert model.batched
        assert model.input_shape == (1, 224, 224, 3)
        assert model.num_outputs == 5
        engine.unload(model)

    def test_load_unbatched_model(self, engine, build_model):
        model = engine.load(build_model(input_shape=(224, 224, 3)))

        assert not model.batched
        assert model.input_shape == (224, 224, 3)

    def test_symbolic_batch(self, engine, build_model):
        """A dynamic batch dimension is accepted and fed as 1."""
        model = engine.load(build_model(input_shape=("batch", 224, 224, 3)))

        assert model.input_shape == (1, 224, 224, 3)

    def test_garbage_bytes(self, engine):
        with pytest.raises(ModelLoadError):
            engine.load(b"definitely not a model")

    def test_empty_bytes(self, engine):
        with pytest.raises(ModelLoadError):
            engine.load(b"")

    def test_wrong_input_resolution(self, engine, build_model):
        with pytest.raises(ModelLoadError):
            engine.load(build_model(input_shape=(1, 128, 128, 3)))

    def test_wrong_channel_count(self, engine, build_model):
        with pytest.raises(ModelLoadError):
            engine.load(build_model(input_shape=(1, 224, 224, 4)))

    def test_batch_larger_than_one(self, engine, build_model):
        with pytest.raises(ModelLoadError):
            engine.load(build_model(input_shape=(2, 224, 224, 3)))

    def test_output_size_mismatch(self, engine, build_model):
        """Model with 4 outputs fails against 5 expected labels."""
        with pytest.raises(ModelLoadError):
            engine.load(build_model(num_labels=4))

    def test_output_size_unchecked_without_label_count(self, build_model):
        """Without num_labels the engine reports the model's own output size."""
        engine = InferenceEngine(target_size=(224, 224))
        model = engine.load(build_model(num_labels=4))

        assert model.num_outputs == 4


class TestRun:
    """Tests for forward passes."""

    @pytest.fixture
    def engine(self):
        return InferenceEngine(target_size=(224, 224), num_labels=5)

    @pytest.fixture
    def model(self, engine, model_bytes):
        model = engine.load(model_bytes)
        yield model
        engine.unload(model)

    def test_zero_tensor_round_trip(self, engine, model, labels):
        """All-zero input yields one score per label."""
        scores = engine.run(model, np.zeros((224, 224, 3), dtype=np.float32))

        assert scores.shape == (len(labels),)
        assert scores.dtype == np.float32
        np.testing.assert_allclose(scores, 0.0)

    def test_channel_means_drive_scores(self, engine, model):
        """Green input scores highest on the second label."""
        tensor = np.zeros((224, 224, 3), dtype=np.float32)
        tensor[..., 1] = 1.0

        scores = engine.run(model, tensor)

        assert int(np.argmax(scores)) == 1
        assert scores[1] == pytest.approx(1.0)

    def test_bias_applies(self, engine, build_model):
        bias = np.array([0.0, 0.0, 0.0, 0.7, 0.0], dtype=np.float32)
        model = engine.load(build_model(bias=bias))

        scores = engine.run(model, np.zeros((224, 224, 3), dtype=np.float32))

        assert int(np.argmax(scores)) == 3

    def test_repeated_runs(self, engine, model):
        tensor = np.full((224, 224, 3), 0.5, dtype=np.float32)
        first = engine.run(model, tensor)
        for _ in range(5):
            np.testing.assert_array_equal(engine.run(model, tensor), first)

    def test_unbatched_model_runs(self, engine, build_model):
        model = engine.load(build_model(input_shape=(224, 224, 3)))

        scores = engine.run(model, np.zeros((224, 224, 3), dtype=np.float32))

        assert scores.shape == (5,)

    def test_wrong_tensor_shape(self, engine, model):
        """Tensor shape must match the model input."""
        with pytest.raises(InferenceError):
            engine.run(model, np.zeros((112, 112, 3), dtype=np.float32))

    def test_run_after_unload(self, engine, model):
        engine.unload(model)

        with pytest.raises(InferenceError):
            engine.run(model, np.zeros((224, 224, 3), dtype=np.float32))


class TestUnload:
    """Tests for resource release."""

    def test_unload_is_idempotent(self, model_bytes):
        engine = InferenceEngine()
        model = engine.load(model_bytes)

        engine.unload(model)
        engine.unload(model)

        assert not model.is_loaded

    def test_unload_none(self):
        InferenceEngine().unload(None)
