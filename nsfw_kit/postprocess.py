from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Optional, Sequence, Tuple

import numpy as np

from .labels import LABELS, NSFW_LABELS, label_name
from .types import Box, DetectionResult

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecoderConfig:
    """
    Settings for turning the NMS `selected` tensor into boxes and a verdict.
    """

    labels: Sequence[str] = LABELS
    flagged_labels: AbstractSet[str] = NSFW_LABELS
    # A flagged box must score strictly above this to set the verdict.
    nsfw_threshold: float = 0.6
    # Upper bound on rows per class; rows past topk * num_classes are dropped.
    # None trusts the row count reported by the NMS graph.
    topk: Optional[int] = None


class DetectionDecoder:
    """
    Decode post-NMS rows into `Box` objects and the content verdict.

    Expected layout (per image), as produced by the NMS graph:
    - (1, N, 4 + C): [cx, cy, w, h, class_scores...] in model-input pixels

    Boxes come out in row order as (x, y, w, h) with a top-left origin,
    scaled by the letterbox ratios.
    """

    def __init__(self, cfg: DecoderConfig = DecoderConfig()):
        self.cfg = cfg

    def decode(self, selected: np.ndarray, x_ratio: float = 1.0, y_ratio: float = 1.0) -> DetectionResult:
        rows = self._rows(selected)
        result = DetectionResult()
        if rows.shape[0] == 0:
            return result

        # compare in tensor precision so a stored 0.6 does not pass a 0.6 threshold
        threshold = rows.dtype.type(self.cfg.nsfw_threshold)

        for row in rows:
            if not row.any():
                # zero padding past the real selection
                continue
            box, scores = row[:4], row[4:]
            label = int(np.argmax(scores))  # first maximum wins ties
            score = scores[label]

            result.boxes.append(
                Box(
                    label=label,
                    probability=float(score),
                    bounding=self._rescale(box, x_ratio, y_ratio),
                )
            )

            name = label_name(label, self.cfg.labels)
            if name in self.cfg.flagged_labels and score > threshold:
                result.is_nsfw = True

        LOGGER.debug("Decoded %d boxes (nsfw=%s)", len(result.boxes), result.is_nsfw)
        return result

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _rows(self, selected: np.ndarray) -> np.ndarray:
        p = np.asarray(selected)
        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ValueError(f"Unsupported NMS output shape: {np.asarray(selected).shape}")
        if p.shape[0] and p.shape[1] < 5:
            raise ValueError(f"NMS rows need 4 box values and at least one class score, got shape {p.shape}")

        if self.cfg.topk is not None:
            limit = self.cfg.topk * max(p.shape[1] - 4, 1)
            if p.shape[0] > limit:
                LOGGER.warning("NMS returned %d rows, keeping the first %d (topk * num_classes)", p.shape[0], limit)
                p = p[:limit]
        return p

    @staticmethod
    def _rescale(box: np.ndarray, x_ratio: float, y_ratio: float) -> Tuple[float, float, float, float]:
        cx, cy, w, h = (float(v) for v in box)
        return (
            (cx - 0.5 * w) * x_ratio,
            (cy - 0.5 * h) * y_ratio,
            w * x_ratio,
            h * y_ratio,
        )


def to_pixels(box: Box, orig_size: Tuple[int, int], input_size: int) -> Box:
    """
    Map a decoded box onto source-image pixels.

    Decoded boxes live in the source image stretched to `input_size` square,
    which is the frame the boxes are rendered in. `orig_size` is (width, height).
    """

    orig_w, orig_h = orig_size
    sx = orig_w / input_size
    sy = orig_h / input_size
    x, y, w, h = box.bounding
    return Box(label=box.label, probability=box.probability, bounding=(x * sx, y * sy, w * sx, h * sy))

