"""
Live preview window for Touch Guard.

Shows the most recent analysed frame with the pipeline status and the latest
hand mask. The decision thread only hands copies over; drawing happens on
whichever thread calls ``render``, normally the main thread.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Optional

import cv2
import numpy as np

from .frame import Frame
from .pipeline import PipelineSnapshot
from .state import RateMode

logger = logging.getLogger(__name__)


class PreviewWindow:
    """OpenCV window implementing the preview sink."""

    IDLE_COLOR = (0, 200, 0)  # Green, sampling slowly
    MOVING_COLOR = (0, 165, 255)  # Orange, sampling fast
    TOUCH_COLOR = (0, 0, 255)  # Red

    def __init__(self, window_name: str = "Touch Guard - Live Feed", mask_scale: int = 2):
        self.window_name = window_name
        self.mask_scale = mask_scale
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self._mask: Optional[np.ndarray] = None
        self._opened = False
        self._touch_count = 0
        self._was_touching = False
        self._session_start_time = time.time()

    def show_frame(self, frame: Frame) -> None:
        image = frame.image
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        with self._lock:
            self._frame = image.copy()

    def show_mask(self, mask: np.ndarray) -> None:
        with self._lock:
            self._mask = mask.copy()

    def indicator_color(self, snapshot: PipelineSnapshot) -> tuple:
        if snapshot.touch_active:
            return self.TOUCH_COLOR
        if snapshot.rate_mode is RateMode.FAST:
            return self.MOVING_COLOR
        return self.IDLE_COLOR

    def compose(self, snapshot: PipelineSnapshot) -> np.ndarray:
        """Build the display image for ``snapshot`` without touching any window."""
        with self._lock:
            frame = self._frame.copy() if self._frame is not None else None
            mask = self._mask.copy() if self._mask is not None else None

        if frame is None:
            frame = np.zeros((480, 640, 3), dtype=np.uint8)
            cv2.putText(frame, "Waiting for camera...", (150, 240), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (255, 255, 255), 2)

        if snapshot.touch_active and not self._was_touching:
            self._touch_count += 1
        self._was_touching = snapshot.touch_active

        height, width = frame.shape[:2]
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, 0), (width, 60), (0, 0, 0), -1)
        cv2.rectangle(overlay, (0, height - 40), (width, height), (0, 0, 0), -1)
        frame = cv2.addWeighted(frame, 0.6, overlay, 0.4, 0)

        color = self.indicator_color(snapshot)
        cv2.circle(frame, (30, 30), 14, color, -1)
        if snapshot.touch_active:
            status_text = "HANDS OFF YOUR FACE"
            cv2.rectangle(frame, (3, 3), (width - 3, height - 3), self.TOUCH_COLOR, 4)
        elif snapshot.rate_mode is RateMode.FAST:
            status_text = "Movement - watching closely"
        else:
            status_text = "Monitoring"
        cv2.putText(frame, status_text, (55, 40), cv2.FONT_HERSHEY_SIMPLEX, 0.9, color, 2)

        session_duration = time.time() - self._session_start_time
        minutes, seconds = int(session_duration // 60), int(session_duration % 60)
        stats_text = (
            f"{snapshot.target_hz:.0f} Hz | Session {minutes:02d}:{seconds:02d} | Touches {self._touch_count}"
            f" | Dropped {snapshot.frames_dropped} | Errors {snapshot.inference_errors}"
        )
        cv2.putText(frame, stats_text, (15, height - 14), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)
        cv2.putText(
            frame, datetime.now().strftime("%H:%M:%S"), (width - 110, 38), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2
        )

        if mask is not None:
            self._paste_mask(frame, mask)
        return frame

    def _paste_mask(self, frame: np.ndarray, mask: np.ndarray) -> None:
        thumb = cv2.resize(
            mask.astype(np.uint8),
            (mask.shape[1] * self.mask_scale, mask.shape[0] * self.mask_scale),
            interpolation=cv2.INTER_NEAREST,
        )
        thumb = cv2.cvtColor(thumb, cv2.COLOR_GRAY2BGR)
        th, tw = thumb.shape[:2]
        height, width = frame.shape[:2]
        top, left = 70, width - tw - 10
        if top + th > height or left < 0:
            return
        frame[top : top + th, left : left + tw] = thumb
        cv2.rectangle(frame, (left, top), (left + tw, top + th), (255, 255, 255), 1)

    def render(self, snapshot: PipelineSnapshot) -> bool:
        """Draw one update. Returns False once the user closes the window."""
        if not self._opened:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            cv2.resizeWindow(self.window_name, 800, 600)
            self._opened = True
            logger.info("Live feed window opened, press 'q' to quit")

        cv2.imshow(self.window_name, self.compose(snapshot))
        key = cv2.waitKey(1) & 0xFF
        if key == ord("q") or key == 27:
            logger.info("Live feed closed by user")
            return False
        if key == ord("r"):
            self.reset_statistics()
        return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) >= 1

    def reset_statistics(self) -> None:
        self._touch_count = 0
        self._session_start_time = time.time()

    def close(self) -> None:
        if self._opened:
            cv2.destroyWindow(self.window_name)
            self._opened = False
