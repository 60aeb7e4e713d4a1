from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

import cv2

from peepcam.core.analytics.pipeline import FramePipeline
from peepcam.core.config.settings import PeepSettings, parse_detector_kind
from peepcam.core.detectors.base import LAYOUTS
from peepcam.core.detectors.factory import build_detector
from peepcam.core.overlay.privacy import load_sunglasses_sprite
from peepcam.core.types import DetectorKind, PrivacyConfig, PrivacyMode, PrivacyTarget

logger = logging.getLogger("peepcam.tools.run_on_video")


class _DummyDetector:
    def __init__(self, kind: DetectorKind) -> None:
        self.kind = kind
        self.layout = LAYOUTS[kind]

    def detect(self, frame):  # pragma: no cover - trivial
        return []


def run(args):
    cap = cv2.VideoCapture(args.input)
    if not cap.isOpened():
        raise SystemExit(f"Cannot open video {args.input}")

    kind = parse_detector_kind(args.model)
    settings = PeepSettings(detector=kind.value, flip_horizontal=not args.no_flip)
    detector = _DummyDetector(kind) if args.mock else build_detector(settings, kind)
    pipeline = FramePipeline(
        detector,
        mirror=settings.flip_horizontal,
        sprite=load_sunglasses_sprite(args.sunglasses),
        eye_line_width=args.eye_line_width,
    )
    privacy = PrivacyConfig(
        enabled=args.privacy,
        mode=PrivacyMode(args.privacy_mode),
        target=PrivacyTarget(args.privacy_target),
    )

    writer = None
    outputs = []
    while True:
        ok, frame = cap.read()
        if not ok:
            break
        summary, annotated = pipeline.process(frame, privacy)
        outputs.append(asdict(summary))
        if args.annotated:
            if writer is None:
                h, w = annotated.shape[:2]
                fps = cap.get(cv2.CAP_PROP_FPS) or 15.0
                writer = cv2.VideoWriter(
                    args.annotated, cv2.VideoWriter_fourcc(*"MJPG"), float(fps), (w, h)
                )
            writer.write(annotated)
        if args.max_frames and len(outputs) >= args.max_frames:
            break
    cap.release()
    if writer is not None:
        writer.release()

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(outputs, f, indent=2)
    logger.info("Wrote %d frame summaries to %s", len(outputs), out_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the overlay pipeline on a video file")
    parser.add_argument("--input", required=True, help="Path to video file")
    parser.add_argument("--output", required=True, help="Where to save JSON output")
    parser.add_argument("--model", default="posenet", help="posenet|blazeface|pose|face")
    parser.add_argument("--annotated", default=None, help="Optional annotated .avi output")
    parser.add_argument("--privacy", action="store_true", help="Enable privacy overlays")
    parser.add_argument(
        "--privacy-mode", default="sunglasses", choices=[m.value for m in PrivacyMode]
    )
    parser.add_argument(
        "--privacy-target", default="others", choices=[t.value for t in PrivacyTarget]
    )
    parser.add_argument("--eye-line-width", type=int, default=100)
    parser.add_argument("--sunglasses", default=None, help="BGRA PNG sprite to use")
    parser.add_argument("--no-flip", action="store_true", help="Keep the camera orientation")
    parser.add_argument("--max-frames", type=int, default=0, help="Limit frames for quick tests")
    parser.add_argument(
        "--mock", action="store_true", help="Use dummy detector (no model download)"
    )
    return parser


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run(build_parser().parse_args())
