"""Two-level sampling rate state machine."""

import logging

from .config import TrackingConfig
from .interfaces import AlertSink
from .state import PipelineState, RateMode

logger = logging.getLogger(__name__)


class RateController:
    """Switches the frame gate between the slow and fast sampling rates.

    Movement switches to the fast rate and starts the movement cooloff, during
    which the pipeline skips movement checks entirely. The first still
    classification after the cooloff drops back to the slow rate.
    """

    def __init__(self, config: TrackingConfig, alert_sink: AlertSink):
        self.config = config
        self.alert_sink = alert_sink

    def target_hz(self, state: PipelineState) -> float:
        if state.rate_mode is RateMode.FAST:
            return self.config.fast_frame_rate
        return self.config.slow_frame_rate

    def update(self, state: PipelineState, moved: bool, now: float) -> RateMode:
        """Apply one movement classification taken at ``now``."""
        if moved:
            state.last_movement_at = now + self.config.movement_cooloff_seconds
            # Re-baseline on the first check after the cooloff
            state.fingerprint = None
            if state.rate_mode is not RateMode.FAST:
                state.rate_mode = RateMode.FAST
                logger.debug(f"Movement detected, sampling at {self.config.fast_frame_rate} Hz")
                self.alert_sink.on_movement_changed(True)
        elif state.rate_mode is RateMode.FAST and not state.in_movement_cooloff(now):
            state.rate_mode = RateMode.SLOW
            logger.debug(f"Scene still, sampling at {self.config.slow_frame_rate} Hz")
            self.alert_sink.on_movement_changed(False)
        return state.rate_mode
