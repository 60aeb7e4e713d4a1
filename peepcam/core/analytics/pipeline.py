"""Per-frame pipeline: detect, filter, pick the main subject, render.

`FramePipeline.process()` is one iteration of the render loop. It is
synchronous and keeps no subject state between frames.
"""

from __future__ import annotations

import time

import numpy as np

from peepcam.core.analytics.selection import (
    MIN_PART_CONFIDENCE,
    filter_by_confidence,
    frame_center,
    min_subject_confidence,
    select_main,
)
from peepcam.core.detectors.base import SubjectDetector
from peepcam.core.overlay.draw import (
    diagnostic_text,
    draw_bbox,
    draw_diagnostics,
    draw_keypoints,
    draw_main_marker,
    draw_skeleton,
    mirror_frame,
    subject_color,
)
from peepcam.core.overlay.privacy import (
    EYE_LINE_WIDTH,
    make_sunglasses_sprite,
    render_privacy_overlay,
    should_obscure,
)
from peepcam.core.types import DetectedSubject, FrameSummary, PrivacyConfig, SubjectInfo


class FramePipeline:
    """Detection-to-overlay pipeline around one `SubjectDetector`.

    The detector is expected to return coordinates in the same (mirrored)
    space as the displayed frame; set `mirror=False` for detectors that do not
    flip their output.
    """

    def __init__(
        self,
        detector: SubjectDetector,
        *,
        mirror: bool = True,
        sprite: np.ndarray | None = None,
        eye_line_width: int = EYE_LINE_WIDTH,
        min_part_confidence: float = MIN_PART_CONFIDENCE,
    ) -> None:
        self.detector = detector
        self.layout = detector.layout
        self.min_score = min_subject_confidence(detector.kind)
        self.min_part_confidence = min_part_confidence
        self.mirror = mirror
        self.sprite = sprite if sprite is not None else make_sunglasses_sprite()
        self.eye_line_width = eye_line_width
        self.frame_id = 0
        self._last_at = time.perf_counter()
        self._fps = 0.0

    def process(
        self, frame: np.ndarray, privacy: PrivacyConfig | None = None
    ) -> tuple[FrameSummary, np.ndarray]:
        """Run one frame through the pipeline.

        Returns the frame summary and the annotated (mirrored) image. The input
        frame is never modified.
        """

        privacy = privacy or PrivacyConfig()
        h, w = frame.shape[:2]

        subjects = self.detector.detect(frame)
        confident = filter_by_confidence(subjects, self.min_score)
        main_index: int | None = None
        if confident:
            main_index = select_main(confident, frame_center(w, h), self.layout.anchor)

        img = mirror_frame(frame) if self.mirror else frame.copy()
        self._draw_subjects(img, confident, main_index)
        if privacy.enabled:
            for i, subject in enumerate(confident):
                if should_obscure(i, main_index, privacy.target):
                    render_privacy_overlay(
                        img,
                        subject,
                        privacy.mode,
                        self.layout,
                        sprite=self.sprite,
                        eye_line_width=self.eye_line_width,
                        min_part_confidence=self.min_part_confidence,
                    )
        draw_diagnostics(img, diagnostic_text(self.layout.label, len(confident), len(subjects)))

        self.frame_id += 1
        self._update_fps()
        summary = FrameSummary(
            frame_id=self.frame_id,
            timestamp=time.time(),
            detector=self.detector.kind.value,
            subjects=[_subject_info(s, i == main_index) for i, s in enumerate(confident)],
            main_index=main_index,
            confident_count=len(confident),
            total_count=len(subjects),
            fps=self._fps,
            frame_size=(w, h),
            privacy=privacy.enabled,
        )
        return summary, img

    def _draw_subjects(
        self, img: np.ndarray, subjects: list[DetectedSubject], main_index: int | None
    ) -> None:
        for i, subject in enumerate(subjects):
            color = subject_color(i)
            draw_keypoints(img, subject.keypoints, self.min_part_confidence, color)
            draw_skeleton(img, subject.keypoints, self.layout.edges, self.min_part_confidence, color)
            if self.layout.bbox_is_face and subject.bbox is not None:
                draw_bbox(img, subject.bbox, color)
        if main_index is not None:
            draw_main_marker(img, subjects[main_index].point(self.layout.anchor))

    def _update_fps(self) -> None:
        """Exponential moving average of the loop rate."""

        now = time.perf_counter()
        dt = now - self._last_at
        self._last_at = now
        if dt <= 0:
            return
        instant = 1.0 / dt
        self._fps = instant if self._fps == 0.0 else self._fps * 0.9 + instant * 0.1


def _subject_info(subject: DetectedSubject, main: bool) -> SubjectInfo:
    return SubjectInfo(
        score=float(subject.score),
        keypoints=np.asarray(subject.keypoints, dtype=float).tolist(),
        bbox=subject.bbox,
        main=main,
    )
