"""
Camera discovery, a synthetic camera, and the timestamping frame source
"""

import logging
import platform
import time

import cv2
import numpy as np

from .frame import Frame

logger = logging.getLogger(__name__)


class MockCamera:
    """Synthetic capture device with a still face and a hand that swings up to it"""

    def __init__(self, width=640, height=480, fps=30):
        self.width = width
        self.height = height
        self.fps = fps
        self.frame_count = 0
        self._background = self._gradient(width, height)
        logger.info(f"MockCamera initialized: {width}x{height}")

    @staticmethod
    def _gradient(width, height):
        ramp = np.linspace(0.0, 1.0, height)[:, None]
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[:, :, 0] = (50 + ramp * 100).astype(np.uint8)  # Blue gradient
        frame[:, :, 1] = (30 + ramp * 80).astype(np.uint8)  # Green gradient
        frame[:, :, 2] = (20 + ramp * 60).astype(np.uint8)  # Red gradient
        return frame

    def read(self):
        """Generate a mock frame with a face and a hand that drifts towards it"""
        if self.fps:
            time.sleep(1.0 / self.fps)
        frame = self._background.copy()
        self.frame_count += 1

        # Face area (upper center), mostly still
        face_x = self.width // 2
        face_y = self.height // 3
        cv2.circle(frame, (face_x, face_y), self.height // 6, (100, 150, 200), -1)

        # Hand swings up to the face and back every few seconds
        phase = np.sin(self.frame_count * 0.02)
        hand_x = self.width // 3 + int(self.width // 6 * max(phase, 0))
        hand_y = int(self.height * 0.8 - (self.height * 0.45) * max(phase, 0))
        cv2.circle(frame, (hand_x, hand_y), self.height // 12, (150, 100, 100), -1)

        return True, frame

    def release(self):
        logger.info("MockCamera released")

    def isOpened(self):
        return True

    def get(self, prop):
        """Only the frame size and rate are known"""
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return self.width
        elif prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return self.height
        elif prop == cv2.CAP_PROP_FPS:
            return self.fps
        return 0

    def set(self, prop, value):
        """Resizing regenerates the background"""
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            self.width = int(value)
        elif prop == cv2.CAP_PROP_FRAME_HEIGHT:
            self.height = int(value)
        self._background = self._gradient(self.width, self.height)
        return True


def probe_camera(index, backend=cv2.CAP_ANY):
    """Describe the device at ``index``, or return None if it gives no frames."""
    cap = cv2.VideoCapture(index, backend)
    try:
        if not cap.isOpened():
            return None
        ok, _ = cap.read()
        if not ok:
            return None
        fps = cap.get(cv2.CAP_PROP_FPS)
        return {
            "index": index,
            "width": int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": int(fps) if fps > 0 else 30,
        }
    finally:
        cap.release()


def find_available_cameras(max_index=10):
    """Probe device indices 0..max_index-1 and list the ones that deliver frames"""
    found = []
    for index in range(max_index):
        info = probe_camera(index)
        if info is not None:
            found.append(info)
    logger.debug(f"Found {len(found)} camera(s): {[c['index'] for c in found]}")
    return found


def get_best_camera_index(max_index=10):
    """Front camera index: the lowest working device, usually the built-in one"""
    cameras = find_available_cameras(max_index)
    if not cameras:
        logger.warning("No cameras found")
        return None

    chosen = cameras[0]
    logger.info(f"Selected camera {chosen['index']}: {chosen['width']}x{chosen['height']} @ {chosen['fps']} fps")
    return chosen["index"]


def initialize_camera(camera_index=None, width=640, height=480):
    """Open ``camera_index`` (or the best detected device) at the requested size."""
    logger.debug(f"Initializing camera on {platform.system()} {platform.release()}, OpenCV {cv2.__version__}")

    if camera_index is None:
        logger.info("Auto-detecting cameras...")
        camera_index = get_best_camera_index()
        if camera_index is None:
            return None

    backends = [cv2.CAP_AVFOUNDATION, cv2.CAP_ANY] if platform.system() == "Darwin" else [cv2.CAP_ANY]

    for backend in backends:
        cap = cv2.VideoCapture(camera_index, backend)
        if not cap.isOpened():
            logger.debug(f"Could not open camera {camera_index} with backend {backend}")
            continue

        ret, _ = cap.read()
        if not ret:
            logger.debug(f"Could not read test frame from camera {camera_index}")
            cap.release()
            continue

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        actual_width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        actual_height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        logger.info(f"Camera {camera_index} opened at {int(actual_width)}x{int(actual_height)}")
        return cap

    logger.error(f"Failed to open camera {camera_index} with any backend")
    return None


class CameraFrameSource:
    """Wraps a capture device and stamps each image as a ``Frame``."""

    def __init__(self, cap, mirror=True, clock=None):
        self.cap = cap
        self.mirror = mirror
        self._clock = clock or time.monotonic

    def read(self):
        """Return the next frame, or None when the device stops delivering."""
        ret, image = self.cap.read()
        if not ret or image is None:
            return None
        timestamp = self._clock()
        if self.mirror:
            image = cv2.flip(image, 1)
        return Frame(image=image, timestamp=timestamp, orientation="mirrored" if self.mirror else "up")

    def release(self):
        self.cap.release()
