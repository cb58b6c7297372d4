"""Collaborator contracts the decision pipeline depends on and drives."""

from typing import Protocol

import numpy as np

from .frame import Frame


class Embedder(Protocol):
    """Reduces a frame to a fingerprint and compares two fingerprints.

    Both methods raise ``InferenceError`` when the model cannot run.
    """

    def embed(self, frame: Frame) -> np.ndarray: ...

    def distance(self, first: np.ndarray, second: np.ndarray) -> float: ...


class Segmenter(Protocol):
    """Maps a frame to a fixed-size single channel hand mask (0-255)."""

    def segment(self, frame: Frame) -> np.ndarray: ...


class AlertSink(Protocol):
    """Level-triggered movement and touch notifications.

    Implementations must tolerate repeated identical calls.
    """

    def on_movement_changed(self, active: bool) -> None: ...

    def on_touch_changed(self, active: bool) -> None: ...


class PreviewSink(Protocol):
    """Receives frames and masks for display only."""

    def show_frame(self, frame: Frame) -> None: ...

    def show_mask(self, mask: np.ndarray) -> None: ...


class NullAlertSink:
    """Alert sink that ignores every notification."""

    def on_movement_changed(self, active: bool) -> None:
        pass

    def on_touch_changed(self, active: bool) -> None:
        pass
