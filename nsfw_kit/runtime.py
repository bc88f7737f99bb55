from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import AbstractSet, Any, Callable, Optional, Sequence, Union

import numpy as np

from .color import check_channels, to_bgr
from .config import DetectorConfig
from .errors import ModelLoadError, ModelNotReadyError
from .gateway import InferenceGateway
from .labels import LABELS, NSFW_LABELS, load_labels
from .letterbox import check_size, letterbox
from .postprocess import DecoderConfig, DetectionDecoder
from .tensor import make_config_tensor, to_blob
from .types import DetectionResult, PipelineState


PathLike = Union[str, Path]
StateListener = Callable[[PipelineState], None]

LOGGER = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve a relative `model_dir`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class NsfwPipeline:
    """
    Preprocess (color, letterbox, blob) -> detector -> NMS -> decode.

    A pipeline without a gateway rejects `detect` with `ModelNotReadyError`;
    `load_pipeline` returns one that is ready. All buffers live for a single
    call, so one pipeline may serve concurrent calls.
    """

    def __init__(
        self,
        gateway: Optional[InferenceGateway] = None,
        cfg: DetectorConfig = DetectorConfig(),
        *,
        labels: Sequence[str] = LABELS,
        flagged_labels: AbstractSet[str] = NSFW_LABELS,
    ):
        self.gateway = gateway
        self.cfg = cfg
        self.decoder = DetectionDecoder(
            DecoderConfig(
                labels=tuple(labels),
                flagged_labels=frozenset(flagged_labels),
                nsfw_threshold=cfg.nsfw_threshold,
                topk=cfg.topk,
            )
        )

    @property
    def labels(self) -> Sequence[str]:
        return self.decoder.cfg.labels

    @property
    def ready(self) -> bool:
        return self.gateway is not None

    def attach(self, gateway: InferenceGateway) -> None:
        self.gateway = gateway

    def detect(
        self,
        image: np.ndarray,
        channel_order: str = "BGR",
        *,
        state_listener: Optional[StateListener] = None,
    ) -> DetectionResult:
        gateway = self.gateway
        if gateway is None:
            raise ModelNotReadyError("Models are not loaded yet; call load_pipeline() first.")

        def _enter(state: PipelineState) -> None:
            LOGGER.debug("detect: %s", state.value)
            if state_listener is not None:
                state_listener(state)

        _enter(PipelineState.IDLE)
        try:
            check_channels(image, channel_order)
            check_size(image)

            lb = letterbox(to_bgr(image, channel_order), self.cfg.input_size)
            blob = to_blob(lb.image)
            config = make_config_tensor(self.cfg.topk, self.cfg.iou_threshold, self.cfg.score_threshold)

            _enter(PipelineState.DETECTOR_RUNNING)
            output0 = gateway.run_detector(blob)
            del blob

            _enter(PipelineState.NMS_RUNNING)
            selected = gateway.run_nms(output0, config)
            del output0, config

            result = self.decoder.decode(selected, lb.x_ratio, lb.y_ratio)
        except Exception:
            _enter(PipelineState.FAILED)
            raise

        _enter(PipelineState.DECODED)
        return result

    def __call__(self, image: np.ndarray, channel_order: str = "BGR") -> DetectionResult:
        return self.detect(image, channel_order)


def load_pipeline(
    cfg: DetectorConfig = DetectorConfig(),
    *,
    root: Optional[PathLike] = "auto",
    backend_factory: Optional[Callable[[Path], Any]] = None,
) -> NsfwPipeline:
    """
    Load the detector and NMS models, warm up the detector and return a ready pipeline.

    Typical usage:
        pipe = load_pipeline(DetectorConfig(model_dir="model"))
        result = pipe.detect(cv2.imread("photo.jpg"))

    Raises:
        ModelLoadError: a model or label file is missing or malformed, onnxruntime
            is unavailable, a session could not be created or the warm-up run failed.
    """

    model_dir = resolve_path(cfg.model_dir, root=root)
    factory = backend_factory
    if factory is None:
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        factory = functools.partial(OnnxRuntimeBackend, cfg=OnnxRuntimeBackendConfig(providers=cfg.providers))

    labels: Sequence[str] = LABELS
    try:
        if cfg.labels_path:
            labels_path = resolve_path(cfg.labels_path, root=root)
            LOGGER.info("Loading label table %s", labels_path)
            labels = load_labels(labels_path)

        LOGGER.info("Loading detector model %s", model_dir / cfg.model_name)
        net = factory(model_dir / cfg.model_name)
        LOGGER.info("Loading NMS model %s", model_dir / cfg.nms_model_name)
        nms = factory(model_dir / cfg.nms_model_name)

        gateway = InferenceGateway(net.run, nms.run)
        gateway.warmup(cfg.input_shape)
    except Exception as exc:
        raise ModelLoadError(f"Failed to load models from {model_dir}: {exc}") from exc

    LOGGER.info("Models ready (providers=%s)", ",".join(getattr(net, "providers_in_use", ())))
    return NsfwPipeline(gateway, cfg, labels=labels)


async def load_pipeline_async(
    cfg: DetectorConfig = DetectorConfig(),
    *,
    root: Optional[PathLike] = "auto",
    backend_factory: Optional[Callable[[Path], Any]] = None,
) -> NsfwPipeline:
    """`load_pipeline` in a worker thread; await it before issuing `detect` calls."""

    return await asyncio.to_thread(load_pipeline, cfg, root=root, backend_factory=backend_factory)
