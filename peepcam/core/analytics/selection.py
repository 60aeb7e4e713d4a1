"""Confidence filtering and main-subject selection.

The main subject is the one whose anchor keypoint (nose for poses, nose tip
for faces) lies closest to the frame center. Selection is returned as an index
into the filtered list; subjects themselves are never flagged.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from peepcam.core.types import DetectedSubject, DetectorKind, Point

MIN_POSE_CONFIDENCE = 0.15
MIN_PART_CONFIDENCE = 0.1
MIN_FACE_CONFIDENCE = 0.15


def min_subject_confidence(kind: DetectorKind) -> float:
    """Return the subject-level score threshold for a detector kind."""

    if kind == DetectorKind.FACE:
        return MIN_FACE_CONFIDENCE
    return MIN_POSE_CONFIDENCE


def filter_by_confidence(
    subjects: Sequence[DetectedSubject], min_score: float
) -> list[DetectedSubject]:
    """Return the subjects with `score >= min_score`, in their original order."""

    return [s for s in subjects if s.score >= min_score]


def frame_center(width: int, height: int) -> Point:
    return (width / 2.0, height / 2.0)


def _distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def select_main(
    subjects: Sequence[DetectedSubject], center: Point, anchor_index: int
) -> int:
    """Return the index of the subject whose anchor is closest to `center`.

    Exact ties keep the earliest subject (strict `<`).

    Raises:
        ValueError: If `subjects` is empty.
    """

    if not subjects:
        raise ValueError("select_main() needs at least one subject")

    best = 0
    best_dist = _distance(subjects[0].point(anchor_index), center)
    for i in range(1, len(subjects)):
        dist = _distance(subjects[i].point(anchor_index), center)
        if dist < best_dist:
            best, best_dist = i, dist
    return best
