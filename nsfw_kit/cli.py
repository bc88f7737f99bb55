from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import DetectorConfig, load_detector_config
from .errors import NsfwKitError
from .labels import LABELS, label_name
from .postprocess import to_pixels

LOGGER = logging.getLogger(__name__)

NSFW_WARNING = "Warning: This image contains NSFW content."


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect exposed body regions in an image and flag NSFW content.")
    parser.add_argument("--image", required=True, help="Path to an input image.")
    parser.add_argument("--config", default=None, help="Optional JSON detector config; flags below override it.")
    parser.add_argument("--model-dir", default=None, help="Directory holding both ONNX models (default: model).")
    parser.add_argument("--model", default=None, help="Detector model file name (default: 320n.onnx).")
    parser.add_argument("--nms-model", default=None, help="NMS model file name (default: nms-yolov8.onnx).")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size (default: 320).")
    parser.add_argument("--topk", type=int, default=None, help="Max boxes per class kept by NMS (default: 100).")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (default: 0.45).")
    parser.add_argument("--score", type=float, default=None, help="Score threshold for NMS (default: 0.25).")
    parser.add_argument("--labels", default=None, help="Optional metadata.yaml whose `names:` block replaces the label table.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with the boxes drawn.")
    parser.add_argument("--out", default=None, help="Optional output path for the visualization.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...).")
    return parser


def resolve_config(args: argparse.Namespace) -> DetectorConfig:
    cfg = load_detector_config(Path(args.config)) if args.config else DetectorConfig()

    overrides = {
        "model_dir": args.model_dir,
        "model_name": args.model,
        "nms_model_name": args.nms_model,
        "input_size": args.imgsz,
        "topk": args.topk,
        "iou_threshold": args.iou,
        "score_threshold": args.score,
        "labels_path": args.labels,
    }
    if args.onnx_providers:
        overrides["providers"] = tuple(p.strip() for p in str(args.onnx_providers).split(",") if p.strip())
    changes = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(cfg, **changes) if changes else cfg


def format_boxes(boxes, orig_size, input_size: int, labels: Sequence[str] = LABELS) -> List[str]:
    lines = []
    for box in boxes:
        name = label_name(box.label, labels) or str(box.label)
        x, y, w, h = to_pixels(box, orig_size, input_size).bounding
        lines.append(f"{name} {box.probability:.3f} [{x:.1f}, {y:.1f}, {w:.1f}, {h:.1f}]")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = resolve_config(args)
    except (ValueError, FileNotFoundError) as exc:
        parser.error(str(exc))

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for the CLI. Install with `pip install opencv-python`.") from e

    from .runtime import load_pipeline

    img = cv2.imread(args.image)
    if img is None:
        print(f"Could not read image at path: {args.image}", file=sys.stderr)
        return 1

    try:
        pipeline = load_pipeline(cfg)
        result = pipeline.detect(img, "BGR")
    except NsfwKitError as exc:
        LOGGER.debug("detection failed", exc_info=True)
        print(f"Detection failed: {exc}", file=sys.stderr)
        return 1

    h, w = img.shape[:2]
    for line in format_boxes(result.boxes, (w, h), cfg.input_size, pipeline.labels):
        print(line)
    if result.is_nsfw:
        print(NSFW_WARNING)

    if args.out or args.show:
        from .visualize import draw_boxes

        # boxes are in the input_size square the image is stretched to
        canvas = cv2.resize(img, (cfg.input_size, cfg.input_size), interpolation=cv2.INTER_LINEAR)
        vis = draw_boxes(canvas, result.boxes, labels=pipeline.labels)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                print(f"Failed to write output image: {args.out}", file=sys.stderr)
                return 1
        if args.show:
            cv2.imshow("nsfw_kit", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0
