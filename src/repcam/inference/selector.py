"""
Result selection for classification scores.

Picks the best-scoring label from a score vector. Ties go to the label
that appears first in the configured label list.
"""

from typing import Sequence

import numpy as np

from ..core.errors import LabelMismatchError
from ..core.result import NO_RESULT, LabelResult


class ResultSelector:
    """
    Maps score vectors onto labels.

    Usage:
        selector = ResultSelector()
        result = selector.select(scores, labels)
        print(result.display_text)  # "pushup: 0.90"
    """

    @staticmethod
    def validate(labels: Sequence[str], output_size: int | None) -> None:
        """
        Check a label set against the model output size at startup.

        Args:
            labels: Configured labels
            output_size: Scores produced per forward pass, None if unknown

        Raises:
            LabelMismatchError: Labels are empty or do not match the output size
        """
        if not labels:
            raise LabelMismatchError("Label list is empty")
        if output_size is not None and output_size != len(labels):
            raise LabelMismatchError(
                f"Model produces {output_size} scores but {len(labels)} labels are configured"
            )

    def select(self, scores: Sequence[float], labels: Sequence[str]) -> LabelResult:
        """
        Select the highest-scoring label.

        Args:
            scores: One score per label
            labels: Ordered labels

        Returns:
            LabelResult for the best label, or NO_RESULT if scores is empty

        Raises:
            LabelMismatchError: len(scores) != len(labels)
        """
        scores = np.asarray(scores, dtype=np.float64).reshape(-1)
        if scores.size == 0:
            return NO_RESULT
        if scores.size != len(labels):
            raise LabelMismatchError(
                f"Got {scores.size} scores for {len(labels)} labels"
            )

        # np.argmax returns the first occurrence of the maximum
        index = int(np.argmax(scores))
        return LabelResult(label=labels[index], score=float(scores[index]), index=index)

    def top_k(
        self, scores: Sequence[float], labels: Sequence[str], k: int = 3
    ) -> list[LabelResult]:
        """Return the k best labels in descending score order, ties by label order."""
        scores = np.asarray(scores, dtype=np.float64).reshape(-1)
        if scores.size == 0:
            return []
        if scores.size != len(labels):
            raise LabelMismatchError(
                f"Got {scores.size} scores for {len(labels)} labels"
            )
        order = np.argsort(-scores, kind="stable")[: max(0, k)]
        return [
            LabelResult(label=labels[i], score=float(scores[i]), index=int(i))
            for i in order
        ]
