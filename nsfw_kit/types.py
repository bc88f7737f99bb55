from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np


@dataclass
class Box:
    """
    Decoded detection.

    `bounding` is (x, y, w, h) with (x, y) the top-left corner.
    """

    label: int
    probability: float
    bounding: Tuple[float, float, float, float]

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        x, y, w, h = self.bounding
        return x, y, x + w, y + h


@dataclass(frozen=True)
class LetterboxResult:
    image: np.ndarray
    x_ratio: float
    y_ratio: float
    # (right, bottom) padding added before resizing
    pad: Tuple[int, int] = (0, 0)


@dataclass
class DetectionResult:
    boxes: List[Box] = field(default_factory=list)
    is_nsfw: bool = False


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    DETECTOR_RUNNING = "detector_running"
    NMS_RUNNING = "nms_running"
    DECODED = "decoded"
    FAILED = "failed"
