from __future__ import annotations

import numpy as np

from .errors import UnsupportedInputFormat

_CHANNELS = {"RGBA": 4, "BGRA": 4, "RGB": 3, "BGR": 3}


def check_channels(image: np.ndarray, channel_order: str) -> None:
    """
    Raise `UnsupportedInputFormat` unless `image` is an 8-bit (H, W, C) buffer
    with C matching `channel_order`.
    """

    if image is None or not hasattr(image, "shape"):
        raise UnsupportedInputFormat("image must be a NumPy array (H, W, C).")
    order = channel_order.upper()
    if order not in _CHANNELS:
        raise UnsupportedInputFormat(f"Unsupported channel order {channel_order!r}; expected one of {sorted(_CHANNELS)}")
    if image.ndim != 3 or image.shape[2] != _CHANNELS[order]:
        raise UnsupportedInputFormat(
            f"Expected image shape (H, W, {_CHANNELS[order]}) for {order}, got {getattr(image, 'shape', None)}"
        )
    if image.dtype != np.uint8:
        raise UnsupportedInputFormat(f"Expected an 8-bit (uint8) image, got dtype {image.dtype}")


def to_bgr(image: np.ndarray, channel_order: str = "RGBA") -> np.ndarray:
    """
    Convert a pixel buffer to 3-channel BGR, dropping alpha.

    BGR input is returned unchanged; every other order produces a new buffer.
    """

    check_channels(image, channel_order)
    order = channel_order.upper()
    if order == "BGR":
        return image
    if order == "RGB":
        return np.ascontiguousarray(image[:, :, ::-1])

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for to_bgr(). Install with `pip install opencv-python`.") from e

    code = cv2.COLOR_RGBA2BGR if order == "RGBA" else cv2.COLOR_BGRA2BGR
    return cv2.cvtColor(image, code)
