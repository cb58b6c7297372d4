"""Per-frame decision pipeline: gate, movement check, touch check."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .config import TrackingConfig, validate_tracking
from .errors import ConfigurationError, InferenceError
from .frame import Frame
from .frame_clock import should_process
from .interfaces import AlertSink, Embedder, NullAlertSink, PreviewSink, Segmenter
from .movement import MovementDetector, MovementResult
from .rate import RateController
from .state import PipelineState, RateMode
from .touch import ScanOrder, TouchDetector, TouchResult, apply_touch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleResult:
    """What happened to one incoming frame."""

    processed: bool
    movement_checked: bool = False
    moved: bool = False
    distance: Optional[float] = None
    touch_checked: bool = False
    touched: bool = False
    rate_mode: RateMode = RateMode.SLOW
    error: Optional[InferenceError] = None


@dataclass(frozen=True)
class PipelineSnapshot:
    """Copy of the pipeline state that is safe to read from another thread."""

    rate_mode: RateMode
    target_hz: float
    last_frame_at: float
    last_movement_at: float
    has_fingerprint: bool
    touch_active: bool
    touch_suppress_until: float
    frames_seen: int
    frames_processed: int
    inference_errors: int

    @property
    def frames_dropped(self) -> int:
        return self.frames_seen - self.frames_processed


class TouchPipeline:
    """Runs the gate, movement and touch stages for each frame in order.

    Frames must be fed from a single thread. ``snapshot`` and
    ``update_config`` may be called from any thread. A snapshot is published
    after every frame, so readers never wait for inference to finish.
    """

    def __init__(
        self,
        config: TrackingConfig,
        embedder: Embedder,
        segmenter: Segmenter,
        alert_sink: Optional[AlertSink] = None,
        preview: Optional[PreviewSink] = None,
        clock: Callable[[], float] = time.monotonic,
        on_error: Optional[Callable[[InferenceError], None]] = None,
        scan_order: ScanOrder = ScanOrder.BOTTOM_UP,
    ):
        self.config = config
        self.alert_sink = alert_sink or NullAlertSink()
        self.preview = preview
        self._clock = clock
        self._on_error = on_error
        # Held for a whole cycle and for config swaps
        self._cycle_lock = threading.Lock()
        # Guards only the published snapshot
        self._snapshot_lock = threading.Lock()

        self.movement = MovementDetector(embedder, config.image_distance_threshold)
        self.rate = RateController(config, self.alert_sink)
        self.touch = TouchDetector(segmenter, config.hand_coverage_threshold, scan_order, preview)
        self.state = PipelineState.started_at(clock())

        self._frames_seen = 0
        self._frames_processed = 0
        self._inference_errors = 0
        self._snapshot = self._build_snapshot()

    @property
    def target_hz(self) -> float:
        return self.rate.target_hz(self.state)

    def process_frame(self, frame: Frame) -> CycleResult:
        """Run one decision cycle for ``frame``. Never raises InferenceError."""
        with self._cycle_lock:
            result = self._process(frame)
            self._publish()
        return result

    def _process(self, frame: Frame) -> CycleResult:
        now = self._clock()
        self._frames_seen += 1
        if not should_process(now, self.state.last_frame_at, self.target_hz):
            return CycleResult(processed=False, rate_mode=self.state.rate_mode)

        self._frames_processed += 1
        if self.preview is not None:
            self.preview.show_frame(frame)

        movement: Optional[MovementResult] = None
        error: Optional[InferenceError] = None
        movement_checked = not self.state.in_movement_cooloff(now)

        if movement_checked:
            try:
                movement = self.movement.evaluate(frame, self.state.fingerprint)
            except InferenceError as e:
                error = self._report(e, "Fingerprinting")
            else:
                self.state.fingerprint = movement.fingerprint
                self.rate.update(self.state, movement.moved, now)

        moved = movement is not None and movement.moved
        # Inside the cooloff the movement check is skipped and sampling stays fast
        run_touch = moved or not movement_checked

        touch: Optional[TouchResult] = None
        if run_touch:
            try:
                touch = self.touch.evaluate(frame)
            except InferenceError as e:
                error = self._report(e, "Segmentation")
            else:
                apply_touch(
                    self.state.touch, touch.touched, now, self.config.touch_cooloff_seconds, self.alert_sink
                )

        self.state.last_frame_at = self._clock()
        return CycleResult(
            processed=True,
            movement_checked=movement_checked,
            moved=moved,
            distance=movement.distance if movement else None,
            touch_checked=run_touch,
            touched=touch is not None and touch.touched,
            rate_mode=self.state.rate_mode,
            error=error,
        )

    def _report(self, error: InferenceError, stage: str) -> InferenceError:
        self._inference_errors += 1
        logger.warning(f"{stage} failed, treating frame as inactive: {error}")
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.exception("Error reporter raised")
        return error

    def update_config(self, **changes: Any) -> TrackingConfig:
        """Hot-reload tracking settings between cycles.

        Raises:
            ConfigurationError: a value is invalid, or ``mask_size`` changes
                (the segmenter is built with a fixed size). The current
                settings stay in effect.
        """
        if "mask_size" in changes and changes["mask_size"] != self.config.mask_size:
            raise ConfigurationError("mask_size only takes effect on restart")
        config = validate_tracking(self.config, **changes)
        self.apply_config(config)
        return config

    def apply_config(self, config: TrackingConfig) -> None:
        """Swap in an already validated configuration."""
        with self._cycle_lock:
            self.config = config
            self.rate.config = config
            self.movement.threshold = config.image_distance_threshold
            self.touch.coverage_per_pixel = config.hand_coverage_threshold
            self._publish()
        logger.info(
            f"Tracking settings applied: {config.slow_frame_rate}/{config.fast_frame_rate} Hz, "
            f"distance {config.image_distance_threshold}, coverage {config.hand_coverage_threshold}"
        )

    def snapshot(self) -> PipelineSnapshot:
        """State as of the end of the last cycle."""
        with self._snapshot_lock:
            return self._snapshot

    def _publish(self) -> None:
        snapshot = self._build_snapshot()
        with self._snapshot_lock:
            self._snapshot = snapshot

    def _build_snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            rate_mode=self.state.rate_mode,
            target_hz=self.target_hz,
            last_frame_at=self.state.last_frame_at,
            last_movement_at=self.state.last_movement_at,
            has_fingerprint=self.state.fingerprint is not None,
            touch_active=self.state.touch.active,
            touch_suppress_until=self.state.touch.suppress_until,
            frames_seen=self._frames_seen,
            frames_processed=self._frames_processed,
            inference_errors=self._inference_errors,
        )
