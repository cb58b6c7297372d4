"""Admission gate deciding whether a frame gets analysed at all."""

import logging

logger = logging.getLogger(__name__)

# Absorbs float rounding when subtracting timestamps, so that a frame arriving
# exactly one interval after the previous one is admitted.
GATE_TOLERANCE_SECONDS = 1e-9


def elapsed_since(now: float, earlier: float) -> float:
    """Seconds from ``earlier`` to ``now``, clamped to zero on clock skew."""
    elapsed = now - earlier
    if elapsed < 0:
        logger.debug(f"Clock went backwards by {-elapsed:.6f}s, clamping interval to zero")
        return 0.0
    return elapsed


def frame_interval(target_hz: float) -> float:
    if target_hz <= 0:
        raise ValueError(f"target_hz must be positive, got {target_hz}")
    return 1.0 / target_hz


def should_process(now: float, last_frame_at: float, target_hz: float) -> bool:
    """Return True when at least one ``1 / target_hz`` interval has passed."""
    return elapsed_since(now, last_frame_at) + GATE_TOLERANCE_SECONDS >= frame_interval(target_hz)
