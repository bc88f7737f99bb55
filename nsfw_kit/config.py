from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class DetectorConfig:
    input_size: int = 320
    topk: int = 100
    iou_threshold: float = 0.45
    score_threshold: float = 0.25
    nsfw_threshold: float = 0.6
    model_dir: str = "model"
    model_name: str = "320n.onnx"
    nms_model_name: str = "nms-yolov8.onnx"
    providers: Optional[Tuple[str, ...]] = None
    # metadata.yaml with a `names:` block; None uses the built-in table
    labels_path: Optional[str] = None

    def __post_init__(self) -> None:
        if self.input_size < 32:
            raise ValueError("input_size must be >= 32")
        if self.topk < 1:
            raise ValueError("topk must be >= 1")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be within [0, 1]")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError("score_threshold must be within [0, 1]")
        if not 0.0 <= self.nsfw_threshold <= 1.0:
            raise ValueError("nsfw_threshold must be within [0, 1]")
        if not self.model_name or not self.nms_model_name:
            raise ValueError("model_name and nms_model_name must not be empty")

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return (1, 3, self.input_size, self.input_size)


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value.strip()


_INT_KEYS = ("input_size", "topk")
_FLOAT_KEYS = ("iou_threshold", "score_threshold", "nsfw_threshold")
_STR_KEYS = ("model_dir", "model_name", "nms_model_name", "labels_path")


def load_detector_config(path: Path) -> DetectorConfig:
    """
    Read a JSON object with any subset of the `DetectorConfig` fields.

    Missing keys keep their defaults; unknown keys are rejected.
    """

    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")

    allowed = set(_INT_KEYS) | set(_FLOAT_KEYS) | set(_STR_KEYS) | {"providers"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in _INT_KEYS:
        if key in payload:
            kwargs[key] = _require_int(payload, key)
    for key in _FLOAT_KEYS:
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    for key in _STR_KEYS:
        if key in payload:
            kwargs[key] = _require_str(payload, key)

    providers = payload.get("providers")
    if providers is not None:
        if not isinstance(providers, list) or not all(isinstance(p, str) and p for p in providers):
            raise ValueError("providers must be a list of non-empty strings")
        kwargs["providers"] = tuple(providers)

    return DetectorConfig(**kwargs)
