"""
NSFW detection on top of a YOLOv8 body-part detector and an ONNX NMS graph.

Pre/post-processing depends only on NumPy and OpenCV; ONNX Runtime is imported
when models are loaded.
"""

from .types import Box, DetectionResult, LetterboxResult, PipelineState
from .errors import (
    DetectionError,
    EmptyOrDegenerateImage,
    InferenceEngineFailure,
    ModelLoadError,
    ModelNotReadyError,
    NsfwKitError,
    UnsupportedInputFormat,
)
from .labels import LABELS, NSFW_LABELS, load_labels
from .color import to_bgr
from .letterbox import letterbox
from .tensor import make_config_tensor, to_blob
from .gateway import InferenceGateway
from .postprocess import DecoderConfig, DetectionDecoder, to_pixels
from .config import DetectorConfig, load_detector_config
from .runtime import NsfwPipeline, load_pipeline, load_pipeline_async, find_project_root, resolve_path
from .visualize import draw_boxes

__all__ = [
    "Box",
    "DetectionResult",
    "LetterboxResult",
    "PipelineState",
    "DetectionError",
    "EmptyOrDegenerateImage",
    "InferenceEngineFailure",
    "ModelLoadError",
    "ModelNotReadyError",
    "NsfwKitError",
    "UnsupportedInputFormat",
    "LABELS",
    "NSFW_LABELS",
    "load_labels",
    "to_bgr",
    "letterbox",
    "make_config_tensor",
    "to_blob",
    "InferenceGateway",
    "DecoderConfig",
    "DetectionDecoder",
    "to_pixels",
    "DetectorConfig",
    "load_detector_config",
    "NsfwPipeline",
    "load_pipeline",
    "load_pipeline_async",
    "find_project_root",
    "resolve_path",
    "draw_boxes",
]
