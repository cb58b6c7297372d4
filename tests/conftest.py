"""
Pytest configuration and shared fakes for Touch Guard tests
"""

import logging
from collections import deque

import numpy as np
import pytest

from touch_guard.config import TrackingConfig
from touch_guard.errors import InferenceError
from touch_guard.frame import Frame
from touch_guard.pipeline import TouchPipeline

# Configure logging for all tests
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


class FakeClock:
    """Manually advanced clock. Times are kept in integer milliseconds."""

    def __init__(self, start_ms=0):
        self.ms = start_ms

    def __call__(self):
        return self.ms / 1000

    def advance(self, ms):
        self.ms += ms

    def set(self, ms):
        self.ms = ms


class ScriptedEmbedder:
    """Embedder whose distances come from a script.

    Each fingerprint is the 1-based call number. A script entry that is an
    exception instance is raised instead of returned.
    """

    def __init__(self, distances=(), embed_failures=()):
        self.distances = deque(distances)
        self.embed_failures = set(embed_failures)
        self.embed_calls = 0
        self.compared = []

    def embed(self, frame):
        self.embed_calls += 1
        if self.embed_calls in self.embed_failures:
            raise InferenceError(f"embed call {self.embed_calls} failed")
        return np.array([float(self.embed_calls)])

    def distance(self, first, second):
        self.compared.append((float(first[0]), float(second[0])))
        value = self.distances.popleft() if self.distances else 0.0
        if isinstance(value, Exception):
            raise value
        return value


class ScriptedSegmenter:
    """Segmenter returning scripted masks; the last mask repeats."""

    def __init__(self, masks=None, size=112):
        self.masks = deque(masks or [])
        self.last = np.zeros((size, size), dtype=np.uint8)
        self.calls = 0

    def segment(self, frame):
        self.calls += 1
        if self.masks:
            item = self.masks.popleft()
            if isinstance(item, Exception):
                raise item
            self.last = item
        return self.last


class RecordingAlertSink:
    def __init__(self):
        self.events = []

    def on_movement_changed(self, active):
        self.events.append(("movement", active))

    def on_touch_changed(self, active):
        self.events.append(("touch", active))

    def touch_events(self):
        return [active for kind, active in self.events if kind == "touch"]

    def movement_events(self):
        return [active for kind, active in self.events if kind == "movement"]


def touching_mask(size=112):
    """Mask with a 50x50 block of 255, well past the default coverage."""
    mask = np.zeros((size, size), dtype=np.uint8)
    mask[40:90, 30:80] = 255
    return mask


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def alert_sink():
    return RecordingAlertSink()


@pytest.fixture
def tracking_config():
    return TrackingConfig()


@pytest.fixture
def frame(clock):
    return Frame(image=np.zeros((48, 64, 3), dtype=np.uint8), timestamp=clock())


@pytest.fixture
def make_pipeline(clock, alert_sink, tracking_config):
    """Build a pipeline around scripted collaborators."""

    def factory(embedder=None, segmenter=None, config=None, **kwargs):
        return TouchPipeline(
            config or tracking_config,
            embedder=embedder or ScriptedEmbedder(),
            segmenter=segmenter or ScriptedSegmenter(),
            alert_sink=alert_sink,
            clock=clock,
            **kwargs,
        )

    return factory


# Pytest markers for different test categories
def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line("markers", "integration: marks tests as integration tests (may be slow)")
    config.addinivalue_line("markers", "backend: marks tests that require OpenCV or MediaPipe")
