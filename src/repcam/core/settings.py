"""
Typed pipeline settings built from the `pipeline` and `inference` config sections.
"""

from dataclasses import dataclass, field
from typing import Any

from .frame import ColorEncoding

DEFAULT_TARGET_SIZE = (224, 224)
DEFAULT_LABELS = ("squat", "pushup", "plank", "lunge", "pullup")


@dataclass(frozen=True)
class PipelineSettings:
    """
    Options recognized by the frame pipeline.

    Attributes:
        target_size: Model input resolution as (width, height)
        labels: Ordered labels, one per model output
        color_encoding: Native pixel format delivered by the camera
        intra_op_threads: onnxruntime intra-op thread count
        providers: onnxruntime execution providers, in priority order
    """

    target_size: tuple[int, int] = DEFAULT_TARGET_SIZE
    labels: tuple[str, ...] = DEFAULT_LABELS
    color_encoding: ColorEncoding = ColorEncoding.NV21
    intra_op_threads: int = 1
    providers: tuple[str, ...] = field(default=("CPUExecutionProvider",))

    def __post_init__(self) -> None:
        target_size = tuple(int(v) for v in self.target_size)
        if len(target_size) != 2 or min(target_size) <= 0:
            raise ValueError(f"target_size must be two positive ints, got {self.target_size}")
        object.__setattr__(self, "target_size", target_size)
        object.__setattr__(self, "labels", tuple(str(label) for label in self.labels))
        object.__setattr__(self, "color_encoding", ColorEncoding.parse(self.color_encoding))
        object.__setattr__(self, "providers", tuple(self.providers))

    @classmethod
    def from_dict(
        cls, pipeline: dict[str, Any], inference: dict[str, Any] | None = None
    ) -> "PipelineSettings":
        """Build settings from raw config sections, falling back to defaults."""
        inference = inference or {}
        return cls(
            target_size=tuple(pipeline.get("target_size", DEFAULT_TARGET_SIZE)),
            labels=tuple(pipeline.get("labels", DEFAULT_LABELS)),
            color_encoding=pipeline.get("color_encoding", ColorEncoding.NV21),
            intra_op_threads=inference.get("intra_op_threads", 1),
            providers=tuple(inference.get("providers", ("CPUExecutionProvider",))),
        )

    @classmethod
    def from_config(cls, config: Any) -> "PipelineSettings":
        """Build settings from a Config instance."""
        return cls.from_dict(config["pipeline"], config["inference"])
