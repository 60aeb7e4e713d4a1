"""Privacy overlays: eye bar, red face box and rotated sunglasses.

All renderers draw in place on a BGR frame whose coordinates match the
subject keypoints (mirrored display space). Nothing here keeps drawing state
between calls; the sunglasses sprite is warped into a scratch layer and blended.
"""

from __future__ import annotations

import math
from pathlib import Path

import cv2
import numpy as np

from peepcam.core.analytics.selection import MIN_PART_CONFIDENCE
from peepcam.core.types import (
    BBox,
    DetectedSubject,
    LandmarkLayout,
    Point,
    PrivacyMode,
    PrivacyTarget,
)

EYE_LINE_WIDTH = 100
EYE_LINE_COLOR = (0, 0, 0)
RED_BOX_COLOR = (0, 0, 255)
RED_BOX_ALPHA = 0.5
# Sprite top edge sits this fraction of its height above the eye center.
SUNGLASSES_RAISE = 2.3
HEAD_BOX_PAD = 1.3

SPRITE_WIDTH = 220
SPRITE_HEIGHT = 80


def should_obscure(index: int, main_index: int | None, target: PrivacyTarget) -> bool:
    """Return whether subject `index` gets a privacy overlay."""

    if target == PrivacyTarget.ALL:
        return True
    return index != main_index


def sunglasses_transform(
    eye_right: Point, eye_left: Point, calibration: float
) -> tuple[Point, float, float]:
    """Return (center, angle, scale) aligning a sprite to the eye axis.

    `angle` is `atan2(dy, dx)` from the left to the right eye, and `scale` is the
    horizontal eye separation divided by `calibration` (110 for pose keypoints,
    130 for face landmarks).
    """

    dx = eye_right[0] - eye_left[0]
    dy = eye_right[1] - eye_left[1]
    center = ((eye_right[0] + eye_left[0]) / 2.0, (eye_right[1] + eye_left[1]) / 2.0)
    return center, math.atan2(dy, dx), abs(dx) / calibration


def make_sunglasses_sprite(width: int = SPRITE_WIDTH, height: int = SPRITE_HEIGHT) -> np.ndarray:
    """Render a plain BGRA sunglasses sprite with lenses on the eye line."""

    sprite = np.zeros((height, width, 4), dtype=np.uint8)
    eye_y = int(round(height / SUNGLASSES_RAISE))
    axes = (int(width * 0.2), int(height * 0.35))
    frame_color = (20, 20, 20, 255)
    lens_color = (40, 40, 40, 255)
    for cx in (width // 4, (3 * width) // 4):
        cv2.ellipse(sprite, (cx, eye_y), axes, 0, 0, 360, lens_color, -1, cv2.LINE_AA)
        cv2.ellipse(sprite, (cx, eye_y), axes, 0, 0, 360, frame_color, 3, cv2.LINE_AA)
    bridge_y = max(0, eye_y - axes[1] // 2)
    cv2.line(
        sprite,
        (width // 4 + axes[0], bridge_y),
        ((3 * width) // 4 - axes[0], bridge_y),
        frame_color,
        4,
        cv2.LINE_AA,
    )
    return sprite


def load_sunglasses_sprite(path: str | Path | None = None) -> np.ndarray:
    """Load a BGRA sprite from `path`, or build the default one.

    Images without an alpha channel are treated as fully opaque.
    """

    if path is None:
        return make_sunglasses_sprite()
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Cannot read sunglasses image: {path}")
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    elif img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    return img


def _confident(subject: DetectedSubject, index: int, min_part_confidence: float) -> bool:
    return index < len(subject.keypoints) and subject.part_score(index) >= min_part_confidence


def face_box(
    subject: DetectedSubject,
    layout: LandmarkLayout,
    min_part_confidence: float = MIN_PART_CONFIDENCE,
) -> BBox | None:
    """Return a box around the subject's face, or None if the head is not visible."""

    if layout.bbox_is_face and subject.bbox is not None:
        return subject.bbox

    pts = [subject.point(i) for i in layout.head if _confident(subject, i, min_part_confidence)]
    if not pts:
        return None
    arr = np.asarray(pts, dtype=np.float32)
    x_min, y_min = arr.min(axis=0)
    x_max, y_max = arr.max(axis=0)
    cx, cy = (x_min + x_max) / 2.0, (y_min + y_max) / 2.0
    half = max(x_max - x_min, y_max - y_min, 1.0) / 2.0 * HEAD_BOX_PAD
    return (float(cx - half), float(cy - half * 1.2), float(cx + half), float(cy + half * 1.2))


def _clip_box(bbox: BBox, width: int, height: int) -> tuple[int, int, int, int] | None:
    x1 = max(0, int(bbox[0]))
    y1 = max(0, int(bbox[1]))
    x2 = min(width, int(math.ceil(bbox[2])))
    y2 = min(height, int(math.ceil(bbox[3])))
    if x2 <= x1 or y2 <= y1:
        return None
    return x1, y1, x2, y2


def draw_eye_line(
    img: np.ndarray,
    subject: DetectedSubject,
    layout: LandmarkLayout,
    width: int = EYE_LINE_WIDTH,
    min_part_confidence: float = MIN_PART_CONFIDENCE,
) -> None:
    """Draw an opaque bar between the outer landmarks (ears), falling back to the eyes."""

    for a, b in (layout.outer, (layout.right_eye, layout.left_eye)):
        if _confident(subject, a, min_part_confidence) and _confident(subject, b, min_part_confidence):
            pa, pb = subject.point(a), subject.point(b)
            cv2.line(
                img,
                (int(pa[0]), int(pa[1])),
                (int(pb[0]), int(pb[1])),
                EYE_LINE_COLOR,
                int(width),
            )
            return


def draw_red_box(
    img: np.ndarray,
    subject: DetectedSubject,
    layout: LandmarkLayout,
    min_part_confidence: float = MIN_PART_CONFIDENCE,
) -> None:
    """Blend a translucent red rectangle over the subject's face."""

    box = face_box(subject, layout, min_part_confidence)
    if box is None:
        return
    clipped = _clip_box(box, img.shape[1], img.shape[0])
    if clipped is None:
        return
    x1, y1, x2, y2 = clipped
    roi = img[y1:y2, x1:x2]
    red = np.full_like(roi, RED_BOX_COLOR)
    cv2.addWeighted(red, RED_BOX_ALPHA, roi, 1.0 - RED_BOX_ALPHA, 0, roi)


def sunglasses_matrix(
    center: Point, angle: float, scale: float, sprite_shape: tuple[int, ...]
) -> np.ndarray:
    """Affine map from sprite pixels to frame pixels.

    The sprite is scaled by `scale`, its top edge raised `height / 2.3` above the
    eye center, then rotated by `angle` about that center.
    """

    h0, w0 = sprite_shape[:2]
    w, h = w0 * scale, h0 * scale
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    ox, oy = -w / 2.0, -h / SUNGLASSES_RAISE
    tx = center[0] + cos_a * ox - sin_a * oy
    ty = center[1] + sin_a * ox + cos_a * oy
    return np.array(
        [[scale * cos_a, -scale * sin_a, tx], [scale * sin_a, scale * cos_a, ty]],
        dtype=np.float64,
    )


def draw_sunglasses(
    img: np.ndarray,
    subject: DetectedSubject,
    layout: LandmarkLayout,
    sprite: np.ndarray,
    min_part_confidence: float = MIN_PART_CONFIDENCE,
) -> None:
    """Alpha-blend `sprite` over the eyes, rotated to the eye axis."""

    if not (
        _confident(subject, layout.right_eye, min_part_confidence)
        and _confident(subject, layout.left_eye, min_part_confidence)
    ):
        return
    center, angle, scale = sunglasses_transform(
        subject.point(layout.right_eye),
        subject.point(layout.left_eye),
        layout.sunglasses_calibration,
    )
    if scale <= 0.0:
        return

    m = sunglasses_matrix(center, angle, scale, sprite.shape)
    h0, w0 = sprite.shape[:2]
    corners = np.array([[0, 0, 1], [w0, 0, 1], [0, h0, 1], [w0, h0, 1]], dtype=np.float64)
    mapped = corners @ m.T
    clipped = _clip_box(
        (mapped[:, 0].min(), mapped[:, 1].min(), mapped[:, 0].max(), mapped[:, 1].max()),
        img.shape[1],
        img.shape[0],
    )
    if clipped is None:
        return
    x1, y1, x2, y2 = clipped

    # Warp only into the covered region instead of the whole frame.
    m_roi = m.copy()
    m_roi[0, 2] -= x1
    m_roi[1, 2] -= y1
    layer = cv2.warpAffine(
        sprite,
        m_roi,
        (x2 - x1, y2 - y1),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    alpha = layer[:, :, 3:4].astype(np.float32) / 255.0
    roi = img[y1:y2, x1:x2]
    blended = roi.astype(np.float32) * (1.0 - alpha) + layer[:, :, :3].astype(np.float32) * alpha
    roi[:] = blended.astype(np.uint8)


def render_privacy_overlay(
    img: np.ndarray,
    subject: DetectedSubject,
    mode: PrivacyMode,
    layout: LandmarkLayout,
    *,
    sprite: np.ndarray | None = None,
    eye_line_width: int = EYE_LINE_WIDTH,
    min_part_confidence: float = MIN_PART_CONFIDENCE,
) -> None:
    """Obscure one subject on `img` using `mode`.

    Subjects missing the landmarks a mode needs are left untouched.
    """

    if mode == PrivacyMode.EYE_LINE:
        draw_eye_line(img, subject, layout, eye_line_width, min_part_confidence)
    elif mode == PrivacyMode.RED_BOX:
        draw_red_box(img, subject, layout, min_part_confidence)
    elif mode == PrivacyMode.SUNGLASSES:
        if sprite is None:
            sprite = make_sunglasses_sprite()
        draw_sunglasses(img, subject, layout, sprite, min_part_confidence)
    else:
        raise ValueError(f"Unknown privacy mode: {mode}")
