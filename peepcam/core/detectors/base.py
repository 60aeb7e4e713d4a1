"""Detector contract and landmark layouts.

Every model adapter returns `DetectedSubject` objects whose keypoint rows follow
one of the layouts below, so the pipeline and overlay code need one code path
for poses and faces alike.
"""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np

from peepcam.core.types import BBox, DetectedSubject, DetectorKind, LandmarkLayout

# COCO-17: 0 nose, 1 left eye, 2 right eye, 3 left ear, 4 right ear, 5..16 body.
POSE_EDGES = (
    (11, 5),
    (7, 5),
    (7, 9),
    (11, 13),
    (13, 15),
    (12, 6),
    (8, 6),
    (8, 10),
    (12, 14),
    (14, 16),
    (5, 6),
    (11, 12),
)

POSE_LAYOUT = LandmarkLayout(
    label="poses",
    anchor=0,
    right_eye=2,
    left_eye=1,
    outer=(3, 4),
    head=(0, 1, 2, 3, 4),
    edges=POSE_EDGES,
    sunglasses_calibration=110.0,
)

# BlazeFace: 0 right eye, 1 left eye, 2 nose tip, 3 mouth, 4 right ear, 5 left ear.
FACE_LAYOUT = LandmarkLayout(
    label="faces",
    anchor=2,
    right_eye=0,
    left_eye=1,
    outer=(4, 5),
    head=(0, 1, 2, 3, 4, 5),
    edges=((0, 1), (4, 0), (1, 5), (2, 3)),
    sunglasses_calibration=130.0,
    bbox_is_face=True,
)

LAYOUTS: dict[DetectorKind, LandmarkLayout] = {
    DetectorKind.POSE: POSE_LAYOUT,
    DetectorKind.FACE: FACE_LAYOUT,
}


class SubjectDetector(Protocol):
    """Minimal detector interface expected by `FramePipeline`."""

    kind: DetectorKind
    layout: LandmarkLayout

    def detect(self, frame: np.ndarray, **kwargs: Any) -> list[DetectedSubject]:
        """Return subjects in (optionally mirrored) full-frame pixel coordinates."""


def mirror_keypoints(keypoints: np.ndarray, width: int) -> np.ndarray:
    """Return a copy of `keypoints` flipped horizontally inside a `width`-wide frame."""

    out = np.array(keypoints, dtype=np.float32, copy=True)
    if out.size:
        out[:, 0] = float(width) - out[:, 0]
    return out


def mirror_bbox(bbox: BBox, width: int) -> BBox:
    x1, y1, x2, y2 = bbox
    return (float(width) - x2, y1, float(width) - x1, y2)
