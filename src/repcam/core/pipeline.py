"""
Threaded frame classification pipeline.

Runs color conversion, tensor preparation, inference and result
selection on a dedicated worker thread, one frame at a time.

Backpressure: the pipeline holds at most one frame. A frame submitted
while another is being processed is dropped, never queued, so results
always describe a recent frame.

Callers must not run inference on the pipeline's Model from other
threads; every forward pass happens on the worker thread.
"""

import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import replace
from enum import Enum
from typing import Callable, Union

from ..inference.engine import InferenceEngine, Model
from ..inference.selector import ResultSelector
from ..processing.color_converter import ColorConverter
from ..processing.preprocessor import TensorPreprocessor
from .errors import PipelineStateError, RepCamError
from .frame import Frame
from .result import FrameFailure, LabelResult
from .settings import PipelineSettings

logger = logging.getLogger(__name__)

FrameOutcome = Union[LabelResult, FrameFailure]


class PipelineState(Enum):
    """Lifecycle states of a FramePipeline."""

    IDLE = "IDLE"  # No model loaded
    READY = "READY"  # Model loaded, no frame in flight
    PROCESSING = "PROCESSING"  # One frame in flight
    STOPPED = "STOPPED"  # Model released, restartable with start()

    def __str__(self) -> str:
        return self.value


class FramePipeline:
    """
    Single-slot frame classification pipeline.

    Uses a producer-consumer pattern with a one-slot mailbox:
    - The camera thread submits frames with submit()
    - The worker thread classifies them and resolves the returned future
      and the optional on_result callback

    Usage:
        pipeline = FramePipeline(settings, on_result=show)
        pipeline.start(model_bytes)
        future = pipeline.submit(frame)  # None if dropped
        pipeline.stop()
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        on_result: Callable[[FrameOutcome], None] | None = None,
        engine: InferenceEngine | None = None,
        converter: ColorConverter | None = None,
        preprocessor: TensorPreprocessor | None = None,
        selector: ResultSelector | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Pipeline options; defaults to 224x224 input, five exercise labels, NV21
            on_result: Callback invoked on the worker thread with each outcome
            engine: Inference engine, built from settings if None
            converter: Color converter, built from settings if None
            preprocessor: Tensor preprocessor, built from settings if None
            selector: Result selector
        """
        self.settings = settings or PipelineSettings()
        self.on_result = on_result
        self.engine = engine or InferenceEngine(
            target_size=self.settings.target_size,
            intra_op_threads=self.settings.intra_op_threads,
            providers=self.settings.providers,
        )
        self.converter = converter or ColorConverter(self.settings.color_encoding)
        self.preprocessor = preprocessor or TensorPreprocessor(self.settings.target_size)
        self.selector = selector or ResultSelector()

        self._state = PipelineState.IDLE
        self._state_changed = threading.Condition()
        self._lifecycle_lock = threading.Lock()
        self._mailbox: queue.Queue[tuple[Frame, Future] | None] = queue.Queue(maxsize=1)
        self._worker_thread: threading.Thread | None = None
        self._model: Model | None = None

        # Statistics
        self.frames_processed = 0
        self.frames_failed = 0
        self.frames_dropped = 0
        self.frames_rejected = 0

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if a model is loaded and the worker is accepting frames."""
        return self._state in (PipelineState.READY, PipelineState.PROCESSING)

    @property
    def labels(self) -> tuple[str, ...]:
        return self.settings.labels

    def start(self, model_bytes: bytes) -> None:
        """
        Load the model and start the worker thread.

        Args:
            model_bytes: Serialized model

        Raises:
            ModelLoadError: Model cannot be loaded; pipeline state is unchanged
            LabelMismatchError: Model output size differs from the label count
            PipelineStateError: Pipeline is already running
        """
        with self._lifecycle_lock:
            if self._state not in (PipelineState.IDLE, PipelineState.STOPPED):
                raise PipelineStateError(f"Cannot start pipeline in state {self._state}")

            model = self.engine.load(model_bytes)
            try:
                self.selector.validate(self.labels, model.num_outputs)
            except RepCamError:
                self.engine.unload(model)
                raise

            self._model = model
            self._mailbox = queue.Queue(maxsize=1)
            self._worker_thread = threading.Thread(
                target=self._worker_loop,
                args=(self._mailbox,),
                name="FramePipeline",
                daemon=True,
            )
            with self._state_changed:
                self._state = PipelineState.READY
            self._worker_thread.start()
            logger.info(
                f"FramePipeline started: target_size={self.settings.target_size}, "
                f"labels={list(self.labels)}, encoding={self.settings.color_encoding}"
            )

    def submit(self, frame: Frame) -> "Future[FrameOutcome] | None":
        """
        Submit a frame for classification without blocking.

        Args:
            frame: Camera frame; the pipeline closes it when done with it

        Returns:
            Future resolved with a LabelResult or FrameFailure, or None if the
            frame was dropped (pipeline busy) or rejected (pipeline not started)
        """
        with self._state_changed:
            if self._state is PipelineState.READY:
                future: Future[FrameOutcome] = Future()
                future.set_running_or_notify_cancel()
                self._state = PipelineState.PROCESSING
                # Mailbox is empty whenever the state is READY
                self._mailbox.put_nowait((frame, future))
                return future
            elif self._state is PipelineState.PROCESSING:
                self.frames_dropped += 1
                reason = "busy"
            else:
                self.frames_rejected += 1
                reason = f"state {self._state}"

        logger.debug(f"Frame {frame.frame_id} dropped ({reason})")
        frame.close()
        return None

    def stop(self) -> None:
        """
        Stop the worker and release the model.

        Waits for an in-flight frame to finish first. Safe to call more
        than once; the pipeline can be started again afterwards.
        """
        on_worker = threading.current_thread() is self._worker_thread
        with self._lifecycle_lock:
            with self._state_changed:
                if self._state is PipelineState.STOPPED:
                    return
                if not on_worker:
                    while self._state is PipelineState.PROCESSING:
                        self._state_changed.wait()
                was_running = self._state is not PipelineState.IDLE
                self._state = PipelineState.STOPPED

            if was_running:
                self._mailbox.put(None)
            if self._worker_thread is not None and not on_worker:
                self._worker_thread.join()
            self._worker_thread = None

            self.engine.unload(self._model)
            self._model = None

        logger.info(
            f"FramePipeline stopped: "
            f"processed={self.frames_processed}, "
            f"failed={self.frames_failed}, "
            f"dropped={self.frames_dropped}, "
            f"rejected={self.frames_rejected}"
        )

    def _process_frame(self, frame: Frame) -> FrameOutcome:
        """
        Run one full cycle synchronously on the calling thread.

        Per-frame errors are returned as FrameFailure rather than raised.
        The frame is closed right after color conversion.
        """
        if self._model is None:
            raise PipelineStateError("Pipeline has no model loaded")

        start_time = time.perf_counter()
        stage = "convert"
        try:
            try:
                rgb = self.converter.convert(frame)
            finally:
                frame.close()

            stage = "preprocess"
            tensor = self.preprocessor.prepare(rgb)

            stage = "inference"
            scores = self.engine.run(self._model, tensor)

            stage = "select"
            result = self.selector.select(scores, self.labels)
        except RepCamError as e:
            logger.error(f"Frame {frame.frame_id} {stage} error: {e}")
            return self._failure(stage, e, frame, start_time)
        except Exception as e:
            logger.exception(f"Frame {frame.frame_id} unexpected {stage} error")
            return self._failure(stage, e, frame, start_time)

        self.frames_processed += 1
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        return replace(result, frame_id=frame.frame_id, processing_time_ms=elapsed_ms)

    def _failure(
        self, stage: str, error: Exception, frame: Frame, start_time: float
    ) -> FrameFailure:
        self.frames_failed += 1
        return FrameFailure(
            stage=stage,
            error=error,
            frame_id=frame.frame_id,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    def _worker_loop(self, mailbox: "queue.Queue[tuple[Frame, Future] | None]") -> None:
        """
        Main worker loop - processes frames from the mailbox.

        Each worker only reads the mailbox it was started with, so a worker
        stopped from its own callback never picks up frames sent to its
        replacement after a restart.
        """
        logger.debug("FramePipeline worker started")

        while True:
            item = mailbox.get()

            # Stop signal
            if item is None:
                break

            frame, future = item
            outcome = self._process_frame(frame)

            with self._state_changed:
                if self._state is PipelineState.PROCESSING:
                    self._state = PipelineState.READY
                self._state_changed.notify_all()

            future.set_result(outcome)
            if self.on_result is not None:
                try:
                    self.on_result(outcome)
                except Exception:
                    logger.exception("Result callback failed")

        logger.debug("FramePipeline worker exited")

    def stats(self) -> dict[str, int]:
        """Get frame counters."""
        return {
            "processed": self.frames_processed,
            "failed": self.frames_failed,
            "dropped": self.frames_dropped,
            "rejected": self.frames_rejected,
        }

    def __enter__(self) -> "FramePipeline":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
