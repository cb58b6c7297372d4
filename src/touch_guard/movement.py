"""Movement detection from successive frame fingerprints."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .frame import Frame
from .interfaces import Embedder


@dataclass(frozen=True)
class MovementResult:
    """Outcome of comparing the current frame against the previous fingerprint."""

    fingerprint: np.ndarray
    moved: bool
    distance: Optional[float]


class MovementDetector:
    """Classifies a frame as moving or still relative to the prior fingerprint.

    The fingerprint of every evaluated frame becomes the next reference, so the
    detector reacts to slow drift as well as sudden motion and settles on a new
    baseline once the scene stops changing.
    """

    def __init__(self, embedder: Embedder, threshold: float):
        self.embedder = embedder
        self.threshold = threshold

    def evaluate(self, frame: Frame, prior_fingerprint: Optional[np.ndarray]) -> MovementResult:
        """Fingerprint ``frame`` and compare it to ``prior_fingerprint``.

        Raises:
            InferenceError: the embedder failed to fingerprint or compare.
        """
        fingerprint = self.embedder.embed(frame)
        if prior_fingerprint is None:
            return MovementResult(fingerprint=fingerprint, moved=False, distance=None)

        distance = float(self.embedder.distance(fingerprint, prior_fingerprint))
        return MovementResult(fingerprint=fingerprint, moved=distance >= self.threshold, distance=distance)
