from __future__ import annotations


class NsfwKitError(Exception):
    pass


class DetectionError(NsfwKitError):
    """Aborts a single `detect` call. No partial result is returned."""


class UnsupportedInputFormat(DetectionError, ValueError):
    pass


class EmptyOrDegenerateImage(DetectionError, ValueError):
    pass


class InferenceEngineFailure(DetectionError, RuntimeError):
    pass


class ModelNotReadyError(DetectionError, RuntimeError):
    pass


class ModelLoadError(NsfwKitError):
    pass
