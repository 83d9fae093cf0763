"""
Classification result data structures.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LabelResult:
    """
    Outcome of one successful pipeline cycle.

    Attributes:
        label: Selected label, or None for the "no result" sentinel
        score: Full-precision confidence of the selected label
        index: Position of the label in the configured label list (-1 if none)
        frame_id: Id of the frame that produced this result
        processing_time_ms: Wall time of the whole cycle in milliseconds
    """

    label: str | None
    score: float
    index: int = -1
    frame_id: int | None = None
    processing_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return True

    @property
    def has_label(self) -> bool:
        """Check if a label was selected."""
        return self.label is not None

    @property
    def display_text(self) -> str:
        """Human-readable text with the score rounded to two decimals."""
        if self.label is None:
            return "N/A"
        return f"{self.label}: {self.score:.2f}"

    def __str__(self) -> str:
        return self.display_text

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "label": self.label,
            "score": self.score,
            "index": self.index,
            "frame_id": self.frame_id,
            "processing_time_ms": round(self.processing_time_ms, 2),
            "text": self.display_text,
        }


NO_RESULT = LabelResult(label=None, score=0.0)


@dataclass(frozen=True)
class FrameFailure:
    """
    Per-frame failure reported on the result channel.

    Attributes:
        stage: Pipeline stage that failed (convert, preprocess, inference, select)
        error: The exception raised by that stage
        frame_id: Id of the frame that failed
        processing_time_ms: Time spent before the failure in milliseconds
    """

    stage: str
    error: Exception
    frame_id: int | None = None
    processing_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return False

    @property
    def display_text(self) -> str:
        return f"{self.stage} failed: {self.error}"

    def __str__(self) -> str:
        return self.display_text

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "stage": self.stage,
            "error": type(self.error).__name__,
            "message": str(self.error),
            "frame_id": self.frame_id,
            "processing_time_ms": round(self.processing_time_ms, 2),
        }
