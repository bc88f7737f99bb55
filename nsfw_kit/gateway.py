from __future__ import annotations

import logging
from typing import Callable, Dict, Sequence

import numpy as np

from .errors import InferenceEngineFailure

LOGGER = logging.getLogger(__name__)

RunFn = Callable[[Dict[str, np.ndarray]], Dict[str, np.ndarray]]

# Tensor names baked into the detector and NMS exports.
DETECTOR_INPUT = "images"
DETECTOR_OUTPUT = "output0"
NMS_DETECTION_INPUT = "detection"
NMS_CONFIG_INPUT = "config"
NMS_OUTPUT = "selected"


class InferenceGateway:
    """
    Call boundary to the two models.

    `detector_fn` and `nms_fn` map a `{name: array}` input dict to a
    `{name: array}` output dict (`OnnxRuntimeBackend.run` in production).
    The gateway keeps no per-call state, so it can be shared between
    concurrent `detect` calls.
    """

    def __init__(self, detector_fn: RunFn, nms_fn: RunFn):
        self._detector_fn = detector_fn
        self._nms_fn = nms_fn

    def run_detector(self, blob: np.ndarray) -> np.ndarray:
        outputs = self._call("detector", self._detector_fn, {DETECTOR_INPUT: blob})
        return self._pick("detector", outputs, DETECTOR_OUTPUT)

    def run_nms(self, detection: np.ndarray, config: np.ndarray) -> np.ndarray:
        outputs = self._call(
            "nms",
            self._nms_fn,
            {NMS_DETECTION_INPUT: detection, NMS_CONFIG_INPUT: config},
        )
        selected = self._pick("nms", outputs, NMS_OUTPUT)
        if selected.ndim != 3 or selected.shape[0] != 1 or selected.shape[2] < 5:
            raise InferenceEngineFailure(
                f"nms returned '{NMS_OUTPUT}' with shape {selected.shape}; expected (1, N, 4 + num_classes)."
            )
        return selected

    def warmup(self, input_shape: Sequence[int]) -> None:
        """Run the detector once on a zero tensor."""

        LOGGER.info("Warming up detector with input shape %s", tuple(input_shape))
        self.run_detector(np.zeros(tuple(input_shape), dtype=np.float32))

    @staticmethod
    def _call(stage: str, fn: RunFn, inputs: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        try:
            return fn(inputs)
        except Exception as exc:
            raise InferenceEngineFailure(f"{stage} inference failed: {exc}") from exc

    @staticmethod
    def _pick(stage: str, outputs: Dict[str, np.ndarray], name: str) -> np.ndarray:
        if name not in outputs:
            raise InferenceEngineFailure(f"{stage} output '{name}' missing (got {sorted(outputs)}).")
        return np.asarray(outputs[name])
