"""Shared type definitions used across peepcam.

Small, stable types (points, subjects, landmark layouts, per-frame summaries)
live here so detector/overlay/pipeline code can stay strongly typed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

Frame = np.ndarray

BBox = tuple[float, float, float, float]
Point = tuple[float, float]
Edge = tuple[int, int]


class DetectorKind(str, Enum):
    POSE = "pose"
    FACE = "face"


class PrivacyMode(str, Enum):
    """How a subject is obscured when privacy mode is on."""

    EYE_LINE = "eye_line"
    RED_BOX = "red_box"
    SUNGLASSES = "sunglasses"


class PrivacyTarget(str, Enum):
    """Which subjects get obscured: everyone but the main one, or everyone."""

    OTHERS = "others"
    ALL = "all"


@dataclass
class DetectedSubject:
    """One person/face found in a frame, in pixel coordinates.

    Created fresh for every frame; there is no identity across frames.
    """

    score: float
    keypoints: np.ndarray  # shape: (N, 3) -> x, y, score
    bbox: BBox | None = None

    def point(self, index: int) -> Point:
        kp = self.keypoints[index]
        return float(kp[0]), float(kp[1])

    def part_score(self, index: int) -> float:
        return float(self.keypoints[index][2])


@dataclass(frozen=True)
class LandmarkLayout:
    """Meaning of keypoint indices for one model family."""

    label: str
    anchor: int
    right_eye: int
    left_eye: int
    outer: Edge
    head: tuple[int, ...]
    edges: tuple[Edge, ...]
    sunglasses_calibration: float
    # True when DetectedSubject.bbox already frames the face (face detectors).
    bbox_is_face: bool = False


@dataclass(frozen=True)
class PrivacyConfig:
    """Privacy settings snapshot handed to one loop iteration."""

    enabled: bool = False
    mode: PrivacyMode = PrivacyMode.SUNGLASSES
    target: PrivacyTarget = PrivacyTarget.OTHERS


@dataclass
class SubjectInfo:
    """Serializable view of a confident subject."""

    score: float
    keypoints: list[list[float]]
    bbox: BBox | None
    main: bool


@dataclass
class FrameSummary:
    """Metadata payload associated with a processed frame."""

    frame_id: int
    timestamp: float
    detector: str
    subjects: list[SubjectInfo]
    main_index: int | None
    confident_count: int
    total_count: int
    fps: float
    frame_size: tuple[int, int] = (0, 0)
    privacy: bool = False
