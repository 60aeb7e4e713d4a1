"""Build the configured detector."""

from __future__ import annotations

from peepcam.core.config.settings import PeepSettings, detector_kind
from peepcam.core.detectors.base import SubjectDetector
from peepcam.core.types import DetectorKind


def build_detector(settings: PeepSettings, kind: DetectorKind | None = None) -> SubjectDetector:
    """Instantiate the model adapter for `kind` (defaults to `settings.detector`).

    Model libraries are imported here, on demand, so that selecting one model
    never requires the other to be installed.
    """

    kind = kind or detector_kind(settings)
    if kind == DetectorKind.FACE:
        from peepcam.core.detectors.mediapipe_face import MediaPipeFaceDetector

        return MediaPipeFaceDetector(
            model_selection=settings.face_model_selection,
            flip_horizontal=settings.flip_horizontal,
            annotate_boxes=settings.annotate_boxes,
        )

    from peepcam.core.detectors.yolo_pose import YoloPoseDetector

    return YoloPoseDetector(
        settings.pose_model_name,
        flip_horizontal=settings.flip_horizontal,
    )
