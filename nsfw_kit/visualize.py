from __future__ import annotations

from typing import AbstractSet, Iterable, Optional, Sequence, Tuple

import numpy as np

from .labels import LABELS, NSFW_LABELS, label_name
from .types import Box

# BGR; flagged labels are drawn red, everything else green.
FLAGGED_COLOR = (0, 0, 255)
SAFE_COLOR = (0, 200, 0)


def _color_for_label(name: Optional[str], flagged_labels: AbstractSet[str]) -> Tuple[int, int, int]:
    return FLAGGED_COLOR if name in flagged_labels else SAFE_COLOR


def draw_boxes(
    image_bgr: np.ndarray,
    boxes: Iterable[Box],
    *,
    labels: Sequence[str] = LABELS,
    flagged_labels: AbstractSet[str] = NSFW_LABELS,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.4,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw decoded boxes on a BGR image and return a copy.

    Boxes must already be in the image's coordinate frame; decoded boxes are
    in the `input_size` square, so draw on the image resized to that square
    or map them with `postprocess.to_pixels` first.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_boxes(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for box in boxes:
        x1, y1, x2, y2 = box.as_xyxy()
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        name = label_name(box.label, labels)
        color = _color_for_label(name, flagged_labels)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        text = name if name is not None else str(box.label)
        if show_score:
            text = f"{text} {box.probability:.2f}"

        (tw, th), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Place label above the box if possible, else inside.
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            text,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
