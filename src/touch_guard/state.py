"""Mutable state owned by the decision pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np


class RateMode(Enum):
    """Sampling level of the frame gate."""

    SLOW = "slow"
    FAST = "fast"


@dataclass
class TouchAlertState:
    active: bool = False
    suppress_until: float = 0.0


@dataclass
class PipelineState:
    """Everything the pipeline carries from one frame to the next.

    Only the decision thread mutates an instance; other threads read copies
    through ``TouchPipeline.snapshot``.
    """

    last_frame_at: float
    last_movement_at: float
    fingerprint: Optional[np.ndarray] = None
    rate_mode: RateMode = RateMode.SLOW
    touch: TouchAlertState = field(default_factory=TouchAlertState)

    @classmethod
    def started_at(cls, now: float) -> "PipelineState":
        return cls(last_frame_at=now, last_movement_at=now)

    def in_movement_cooloff(self, now: float) -> bool:
        return now < self.last_movement_at
