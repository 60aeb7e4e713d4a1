"""MediaPipe face detection (BlazeFace) integration.

`mediapipe` is imported lazily so pose-only installs never need it.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

import cv2
import numpy as np

from peepcam.core.analytics.selection import MIN_FACE_CONFIDENCE
from peepcam.core.detectors.base import FACE_LAYOUT, mirror_bbox, mirror_keypoints
from peepcam.core.errors import DetectorUnavailableError
from peepcam.core.types import BBox, DetectedSubject, DetectorKind

logger = logging.getLogger(__name__)

FACE_LANDMARK_COUNT = 6


class MediaPipeFaceDetector:
    """Face detector producing the six BlazeFace landmarks per face.

    MediaPipe reports normalized coordinates; they are converted to pixels here.
    Landmarks carry no individual score, so each one inherits the face score.
    """

    kind = DetectorKind.FACE
    layout = FACE_LAYOUT

    def __init__(
        self,
        min_detection_confidence: float = MIN_FACE_CONFIDENCE,
        model_selection: int = 0,
        *,
        flip_horizontal: bool = True,
        annotate_boxes: bool = True,
    ) -> None:
        try:
            mp = importlib.import_module("mediapipe")
        except ImportError as e:
            raise DetectorUnavailableError(
                "MediaPipe is not installed. Install face support with: pip install 'peepcam[face]'"
            ) from e

        self.flip_horizontal = flip_horizontal
        self.annotate_boxes = annotate_boxes
        self._detector = mp.solutions.face_detection.FaceDetection(
            model_selection=int(model_selection),
            min_detection_confidence=float(min_detection_confidence),
        )
        logger.info(
            "MediaPipe face detection ready (model_selection=%s, min_conf=%.2f)",
            model_selection,
            min_detection_confidence,
        )

    def detect(self, frame: np.ndarray, **_kwargs: Any) -> list[DetectedSubject]:
        """Run face detection on a single BGR frame."""

        h, w = int(frame.shape[0]), int(frame.shape[1])
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        res = self._detector.process(rgb)
        detections = getattr(res, "detections", None) if res is not None else None
        if not detections:
            return []

        out: list[DetectedSubject] = []
        for det in detections:
            score = float(det.score[0]) if det.score else 0.0
            location = det.location_data
            rows = [
                [float(p.x) * w, float(p.y) * h, score]
                for p in list(location.relative_keypoints)[:FACE_LANDMARK_COUNT]
            ]
            if len(rows) < FACE_LANDMARK_COUNT:
                continue
            keypoints = np.asarray(rows, dtype=np.float32)

            bbox: BBox | None = None
            if self.annotate_boxes:
                rb = location.relative_bounding_box
                x1, y1 = float(rb.xmin) * w, float(rb.ymin) * h
                bbox = (x1, y1, x1 + float(rb.width) * w, y1 + float(rb.height) * h)

            if self.flip_horizontal:
                keypoints = mirror_keypoints(keypoints, w)
                if bbox is not None:
                    bbox = mirror_bbox(bbox, w)
            out.append(DetectedSubject(score=score, keypoints=keypoints, bbox=bbox))
        return out

    def close(self) -> None:
        self._detector.close()
