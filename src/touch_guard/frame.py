"""Frame container passed through the decision pipeline."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Frame:
    """A captured image and the monotonic time it was captured at.

    ``orientation`` records whether the image was mirrored before delivery, so
    that masks produced from it can be scanned in a consistent order.
    """

    image: np.ndarray
    timestamp: float
    orientation: str = "up"

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def width(self) -> int:
        return int(self.image.shape[1])
