"""OpenCV and MediaPipe backed embedding and hand segmentation."""

import logging
from typing import Any, Tuple

import cv2
import mediapipe as mp
import numpy as np

from .errors import InferenceError
from .frame import Frame

logger = logging.getLogger(__name__)


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def _to_rgb(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


class ThumbnailEmbedder:
    """Fingerprints a frame as a small grayscale thumbnail.

    The distance is the root mean square intensity difference between two
    thumbnails, on a 0-255 scale. Sensor noise stays in the low single digits
    while a person shifting in their seat moves it well past 7.5.
    """

    def __init__(self, size: int = 32):
        self.size = size

    def embed(self, frame: Frame) -> np.ndarray:
        if frame.image.size == 0:
            raise InferenceError("Cannot fingerprint an empty frame")
        try:
            gray = _to_gray(frame.image)
            thumbnail = cv2.resize(gray, (self.size, self.size), interpolation=cv2.INTER_AREA)
        except cv2.error as e:
            raise InferenceError(f"Fingerprinting failed: {e}") from e
        return thumbnail.astype(np.float32)

    def distance(self, first: np.ndarray, second: np.ndarray) -> float:
        if first.shape != second.shape:
            raise InferenceError(f"Fingerprint shapes differ: {first.shape} vs {second.shape}")
        return float(np.sqrt(np.mean((first - second) ** 2)))


class MediaPipeHandSegmenter:
    """Renders detected hands into a square mask centred on the face.

    MediaPipe Face Mesh locates the face; hand landmarks from MediaPipe Hands
    are projected into a square crop around it and their convex hulls filled
    with 255. When no face is found the whole frame is used as the crop.
    """

    FACE_MARGIN = 1.4

    def __init__(self, mask_size: int = 112, confidence_threshold: float = 0.6):
        self.mask_size = mask_size
        self.face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=False,
            min_detection_confidence=confidence_threshold,
            min_tracking_confidence=confidence_threshold,
        )
        self.hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=2,
            model_complexity=0,
            min_detection_confidence=confidence_threshold,
            min_tracking_confidence=confidence_threshold,
        )
        logger.debug(f"MediaPipe hand segmenter ready, mask size {mask_size}")

    def segment(self, frame: Frame) -> np.ndarray:
        if frame.image.size == 0:
            raise InferenceError("Cannot segment an empty frame")
        try:
            rgb_frame = _to_rgb(frame.image)
            rgb_frame.flags.writeable = False
            face_results = self.face_mesh.process(rgb_frame)
            hand_results = self.hands.process(rgb_frame)
            crop = self._face_crop(face_results, frame.width, frame.height)
            return self._render_hands(hand_results, crop, frame.width, frame.height)
        except Exception as e:
            raise InferenceError(f"Hand segmentation failed: {e}") from e

    def _face_crop(self, face_results: Any, width: int, height: int) -> Tuple[float, float, float]:
        """Square crop (left, top, side) around the face, in pixels."""
        if not face_results.multi_face_landmarks:
            side = float(min(width, height))
            return (width - side) / 2, (height - side) / 2, side

        landmarks = face_results.multi_face_landmarks[0].landmark
        xs = np.array([lm.x for lm in landmarks]) * width
        ys = np.array([lm.y for lm in landmarks]) * height
        center_x = (xs.min() + xs.max()) / 2
        center_y = (ys.min() + ys.max()) / 2
        side = max(xs.max() - xs.min(), ys.max() - ys.min()) * self.FACE_MARGIN
        side = max(side, 1.0)
        return center_x - side / 2, center_y - side / 2, side

    def _render_hands(
        self, hand_results: Any, crop: Tuple[float, float, float], width: int, height: int
    ) -> np.ndarray:
        mask = np.zeros((self.mask_size, self.mask_size), dtype=np.uint8)
        if not hand_results.multi_hand_landmarks:
            return mask

        left, top, side = crop
        scale = self.mask_size / side
        for hand_landmarks in hand_results.multi_hand_landmarks:
            points = np.array(
                [[(lm.x * width - left) * scale, (lm.y * height - top) * scale] for lm in hand_landmarks.landmark],
                dtype=np.float32,
            )
            hull = cv2.convexHull(points).astype(np.int32)
            cv2.fillConvexPoly(mask, hull, 255)
        return mask

    def close(self) -> None:
        """Release MediaPipe resources."""
        self.hands.close()
        self.face_mesh.close()
