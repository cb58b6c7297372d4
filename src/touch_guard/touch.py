"""Hand coverage check and touch alert transitions."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

import numpy as np

from .errors import InferenceError
from .frame import Frame
from .interfaces import AlertSink, PreviewSink, Segmenter
from .state import TouchAlertState

logger = logging.getLogger(__name__)


class ScanOrder(Enum):
    """Row order used when accumulating mask intensity."""

    BOTTOM_UP = "bottom_up"
    TOP_DOWN = "top_down"


@dataclass(frozen=True)
class TouchResult:
    touched: bool
    # Intensity accumulated before the scan stopped
    coverage: int
    threshold: float


def coverage_threshold(mask_shape: tuple, per_pixel: float) -> float:
    """Absolute intensity sum a mask of ``mask_shape`` has to reach."""
    height, width = mask_shape[:2]
    return width * height * per_pixel


def _rows(mask: np.ndarray, order: ScanOrder) -> Iterator[np.ndarray]:
    if order is ScanOrder.BOTTOM_UP:
        return iter(mask[::-1])
    return iter(mask)


def scan_coverage(mask: np.ndarray, threshold: float, order: ScanOrder = ScanOrder.BOTTOM_UP) -> tuple[bool, int]:
    """Accumulate mask intensity row by row until ``threshold`` is reached.

    Returns whether the running sum reached the threshold and the sum at the
    point the scan stopped. Stopping early does not change the decision.
    """
    if threshold <= 0:
        return True, 0
    total = 0
    for row in _rows(mask, order):
        total += int(row.sum(dtype=np.int64))
        if total >= threshold:
            return True, total
    return False, total


def _as_mask(raw: np.ndarray) -> np.ndarray:
    mask = np.asarray(raw)
    if mask.ndim == 3 and mask.shape[2] == 1:
        mask = mask[:, :, 0]
    if mask.ndim != 2 or mask.size == 0:
        raise InferenceError(f"Segmentation returned a mask of shape {mask.shape}, expected a 2-D mask")
    return mask


class TouchDetector:
    """Decides whether a hand covers enough of the face crop to count as a touch.

    The decision uses cumulative coverage rather than peak intensity, so a few
    noisy pixels at the face boundary never trigger an alert on their own.
    """

    def __init__(
        self,
        segmenter: Segmenter,
        coverage_per_pixel: float,
        order: ScanOrder = ScanOrder.BOTTOM_UP,
        preview: Optional[PreviewSink] = None,
    ):
        self.segmenter = segmenter
        self.coverage_per_pixel = coverage_per_pixel
        self.order = order
        self.preview = preview

    def evaluate(self, frame: Frame) -> TouchResult:
        """Segment ``frame`` and reduce the mask to a touch decision.

        Raises:
            InferenceError: segmentation failed or returned a malformed mask.
        """
        mask = _as_mask(self.segmenter.segment(frame))
        if self.preview is not None:
            self.preview.show_mask(mask.copy())

        threshold = coverage_threshold(mask.shape, self.coverage_per_pixel)
        touched, coverage = scan_coverage(mask, threshold, self.order)
        return TouchResult(touched=touched, coverage=coverage, threshold=threshold)


def apply_touch(state: TouchAlertState, touched: bool, now: float, cooloff_seconds: float, sink: AlertSink) -> bool:
    """Fold one touch decision into the alert state.

    The sink hears ``True`` once per rising edge, unless the edge falls inside
    the cooloff left by the previous touched decision. Every untouched decision
    asks the sink to go quiet. Returns True when the sink was signalled.
    """
    if touched:
        rising = not state.active and now >= state.suppress_until
        if not state.active and not rising:
            logger.debug(f"Face touch within cooloff, alert suppressed until {state.suppress_until:.2f}")
        state.active = True
        state.suppress_until = now + cooloff_seconds
        if rising:
            logger.info("Face touch detected")
            sink.on_touch_changed(True)
        return rising

    if state.active:
        logger.info("Face touch cleared")
    state.active = False
    sink.on_touch_changed(False)
    return False
