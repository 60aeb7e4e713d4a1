"""Ultralytics YOLO pose estimator integration.

Torch stays an optional runtime dependency: ONNX exports can run without
importing torch.
"""

from __future__ import annotations

import importlib
import logging
import os
from contextlib import nullcontext
from typing import Any

import numpy as np
from ultralytics import YOLO

from peepcam.core.analytics.selection import MIN_PART_CONFIDENCE
from peepcam.core.detectors.base import POSE_LAYOUT, mirror_bbox, mirror_keypoints
from peepcam.core.types import DetectedSubject, DetectorKind

logger = logging.getLogger(__name__)

YOLO_POSE_DEFAULT_MODEL = "yolo11n-pose.pt"
MAX_DETECTIONS = 5
# Ultralytics NMS works on IoU rather than a pixel radius.
NMS_IOU = 0.5


class YoloPoseDetector:
    """Multi-person pose estimator wrapped around Ultralytics YOLO.

    Keypoints follow the COCO-17 order (nose first). With `flip_horizontal` the
    returned coordinates are mirrored so they match a selfie-style display.
    """

    kind = DetectorKind.POSE
    layout = POSE_LAYOUT

    _torch_threads_configured: bool = False

    def __init__(
        self,
        model_name: str = YOLO_POSE_DEFAULT_MODEL,
        conf: float = MIN_PART_CONFIDENCE,
        *,
        flip_horizontal: bool = True,
        max_detections: int = MAX_DETECTIONS,
        nms_iou: float = NMS_IOU,
        device: str = "cpu",
    ):
        """Create a detector.

        Args:
            model_name: Model path/name understood by Ultralytics (e.g.
                `yolo11n-pose.pt` or an `.onnx` export).
            conf: Score threshold applied inside the Ultralytics predictor.
            flip_horizontal: Mirror output coordinates (webcam feeds).
            max_detections: Upper bound on returned poses.
            nms_iou: IoU threshold for non-max suppression.
            device: Torch device; ignored for ONNX exports.
        """

        self._configure_torch_threads_from_env()

        self.model_name = model_name
        self.is_onnx = model_name.lower().endswith(".onnx")
        self.device = device
        self.flip_horizontal = flip_horizontal
        self._torch_inference_mode: Any | None = None
        if not self.is_onnx:
            try:
                torch = importlib.import_module("torch")
                self._torch_inference_mode = torch.inference_mode
            except ImportError:
                self._torch_inference_mode = None
        self.model = YOLO(model_name, task="pose")

        # .to(device) raises TypeError on ONNX exports.
        if not self.is_onnx:
            try:
                self.model.to(self.device)
            except Exception:
                logger.debug("Model %s does not support .to(%s)", model_name, device)
        self.conf = conf
        self._predict_kwargs: dict[str, Any] = {
            "conf": self.conf,
            "iou": nms_iou,
            "max_det": max_detections,
            "verbose": False,
            # COCO class 0 is "person"; pose models only emit that class anyway.
            "classes": [0],
            "device": self.device,
        }

    @classmethod
    def _configure_torch_threads_from_env(cls) -> None:
        """Configure torch thread counts from `PEEP_TORCH_THREADS` (one-time)."""

        if cls._torch_threads_configured:
            return
        cls._torch_threads_configured = True

        threads_s = os.getenv("PEEP_TORCH_THREADS")
        if threads_s is None or not threads_s.strip():
            return
        try:
            torch = importlib.import_module("torch")
            torch.set_num_threads(max(1, int(threads_s)))
        except (ImportError, ValueError, RuntimeError):
            logger.warning("Ignoring PEEP_TORCH_THREADS=%r", threads_s)

    def detect(self, frame: np.ndarray, **_kwargs: Any) -> list[DetectedSubject]:
        """Run inference on a single BGR frame and return detected poses."""

        infer_ctx = (
            self._torch_inference_mode()
            if self._torch_inference_mode is not None
            else nullcontext()
        )
        with infer_ctx:
            results = self.model.predict(frame, **self._predict_kwargs)

        if not results:
            return []

        result = results[0]
        boxes = getattr(result, "boxes", None)
        kpts = getattr(result, "keypoints", None)
        if boxes is None or len(boxes) == 0 or kpts is None or kpts.data is None:
            return []

        xyxy_np = _to_numpy(boxes.xyxy)
        confs_np = _to_numpy(boxes.conf)
        kpts_np = _to_numpy(kpts.data)
        width = int(frame.shape[1])

        out: list[DetectedSubject] = []
        for bbox, conf_v, kp in zip(xyxy_np, confs_np, kpts_np, strict=False):
            box = (float(bbox[0]), float(bbox[1]), float(bbox[2]), float(bbox[3]))
            keypoints = np.asarray(kp, dtype=np.float32)
            if self.flip_horizontal:
                keypoints = mirror_keypoints(keypoints, width)
                box = mirror_bbox(box, width)
            out.append(DetectedSubject(score=float(conf_v), keypoints=keypoints, bbox=box))
        return out


def _to_numpy(value: Any) -> np.ndarray:
    """Convert a torch tensor (or array-like) to a numpy array on the CPU."""

    if hasattr(value, "cpu"):
        value = value.cpu()
    return value.numpy() if hasattr(value, "numpy") else np.asarray(value)
