from typing import Tuple

import numpy as np

from .errors import EmptyOrDegenerateImage
from .types import LetterboxResult


def check_size(image: np.ndarray) -> Tuple[int, int]:
    """Return (w, h), raising `EmptyOrDegenerateImage` if either is zero."""

    h, w = image.shape[:2]
    if w <= 0 or h <= 0:
        raise EmptyOrDegenerateImage(f"Image has zero area (w={w}, h={h}).")
    return w, h


def letterbox(image: np.ndarray, size: int = 320) -> LetterboxResult:
    """
    Pad an image to a square and resize it to `size` x `size`.

    Padding is black and only added to the right and bottom, so the top-left
    origin is kept and detections map back with a plain per-axis scale:

        x_ratio = max(w, h) / w
        y_ratio = max(w, h) / h

    Returns:
        LetterboxResult with the resized square, both ratios and the
        (right, bottom) padding in source pixels.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    if size <= 0:
        raise ValueError(f"size must be > 0, got {size}")

    w, h = check_size(image)
    max_size = max(w, h)

    x_pad, y_pad = max_size - w, max_size - h
    x_ratio = max_size / w
    y_ratio = max_size / h

    if x_pad or y_pad:
        padded = cv2.copyMakeBorder(image, 0, y_pad, 0, x_pad, cv2.BORDER_CONSTANT, value=0)
    else:
        padded = image

    if max_size != size:
        resized = cv2.resize(padded, (size, size), interpolation=cv2.INTER_LINEAR)
    else:
        resized = padded.copy()

    return LetterboxResult(image=resized, x_ratio=x_ratio, y_ratio=y_ratio, pad=(x_pad, y_pad))
