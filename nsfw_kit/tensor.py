from __future__ import annotations

import numpy as np


def to_blob(image_bgr: np.ndarray) -> np.ndarray:
    """
    Pack an (S, S, 3) BGR uint8 buffer into a (1, 3, S, S) float32 RGB blob in [0, 1].
    """

    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
    if image_bgr.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 image, got dtype {image_bgr.dtype}")

    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = image_bgr[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.transpose(blob, (2, 0, 1))[None, ...]
    return np.ascontiguousarray(blob, dtype=np.float32)


def make_config_tensor(topk: int, iou_threshold: float, score_threshold: float) -> np.ndarray:
    """NMS config tensor: [topk per class, iou threshold, score threshold]."""

    return np.array([topk, iou_threshold, score_threshold], dtype=np.float32)
