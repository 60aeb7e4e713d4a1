"""Skeleton, landmark and diagnostics drawing (OpenCV)."""

from __future__ import annotations

from collections.abc import Sequence

import cv2
import numpy as np

from peepcam.core.types import BBox, Edge, Point

Color = tuple[int, int, int]

# BGR, cycled per subject index.
COLORS: tuple[Color, ...] = (
    (0, 255, 255),  # yellow
    (255, 0, 255),  # magenta
    (255, 255, 0),  # cyan
    (0, 165, 255),  # orange
    (0, 255, 0),  # green
)
MAIN_COLOR: Color = (57, 255, 20)
TEXT_COLOR: Color = (255, 255, 255)
KEYPOINT_RADIUS = 3
LINE_WIDTH = 2


def subject_color(index: int) -> Color:
    return COLORS[index % len(COLORS)]


def mirror_frame(frame: np.ndarray) -> np.ndarray:
    """Return a horizontally flipped copy of `frame` (selfie view)."""

    return cv2.flip(frame, 1)


def draw_keypoints(
    img: np.ndarray, keypoints: np.ndarray, min_part_confidence: float, color: Color
) -> None:
    """Draw every keypoint whose score reaches `min_part_confidence`."""

    for x, y, score in keypoints:
        if score < min_part_confidence:
            continue
        cv2.circle(img, (int(x), int(y)), KEYPOINT_RADIUS, color, -1, cv2.LINE_AA)


def draw_skeleton(
    img: np.ndarray,
    keypoints: np.ndarray,
    edges: Sequence[Edge],
    min_part_confidence: float,
    color: Color,
) -> None:
    """Connect adjacent keypoints when both ends are confident."""

    n = len(keypoints)
    for a, b in edges:
        if a >= n or b >= n:
            continue
        ka, kb = keypoints[a], keypoints[b]
        if ka[2] < min_part_confidence or kb[2] < min_part_confidence:
            continue
        cv2.line(
            img,
            (int(ka[0]), int(ka[1])),
            (int(kb[0]), int(kb[1])),
            color,
            LINE_WIDTH,
            cv2.LINE_AA,
        )


def draw_bbox(img: np.ndarray, bbox: BBox, color: Color) -> None:
    x1, y1, x2, y2 = map(int, bbox)
    cv2.rectangle(img, (x1, y1), (x2, y2), color, LINE_WIDTH)


def draw_main_marker(img: np.ndarray, anchor: Point) -> None:
    """Ring the main subject's anchor point."""

    cv2.circle(img, (int(anchor[0]), int(anchor[1])), 10, MAIN_COLOR, 2, cv2.LINE_AA)


def diagnostic_text(label: str, confident: int, total: int) -> str:
    return f"{label} count (show / all): {confident} / {total}"


def draw_diagnostics(img: np.ndarray, text: str) -> None:
    cv2.putText(
        img,
        text,
        (8, 20),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        TEXT_COLOR,
        1,
        cv2.LINE_AA,
    )
