import sys
import types

import numpy as np
import pytest

import peepcam.core.detectors.yolo_pose as yolo_mod
from peepcam.core.config.settings import PeepSettings
from peepcam.core.detectors.base import mirror_bbox, mirror_keypoints
from peepcam.core.detectors.factory import build_detector
from peepcam.core.errors import DetectorUnavailableError
from peepcam.core.types import DetectorKind


class _FakeTensor:
    def __init__(self, arr):
        self._arr = np.asarray(arr, dtype=np.float32)

    def __len__(self):
        return len(self._arr)

    def cpu(self):
        return self

    def numpy(self):
        return self._arr


class _FakeBoxes:
    def __init__(self, xyxy, conf):
        self.xyxy = _FakeTensor(xyxy)
        self.conf = _FakeTensor(conf)

    def __len__(self):
        return len(self.xyxy)


class _FakeKeypoints:
    def __init__(self, data):
        self.data = _FakeTensor(data)


class _FakeResult:
    def __init__(self, boxes=None, keypoints=None):
        self.boxes = boxes
        self.keypoints = keypoints


class _FakeYOLO:
    results: list = []

    def __init__(self, model_name, task=None):
        self.model_name = model_name
        self.task = task
        self.predict_calls = []

    def to(self, device):
        return self

    def predict(self, frame, **kwargs):
        self.predict_calls.append(kwargs)
        return list(self.results)


@pytest.fixture
def fake_yolo(monkeypatch):
    monkeypatch.setattr(yolo_mod, "YOLO", _FakeYOLO)
    monkeypatch.setattr(yolo_mod.YoloPoseDetector, "_torch_threads_configured", True)
    monkeypatch.setattr(_FakeYOLO, "results", [])
    return _FakeYOLO


def _pose_result():
    kpts = np.zeros((1, 17, 3), dtype=np.float32)
    kpts[0, 0] = [10, 20, 0.9]
    kpts[0, 2] = [30, 15, 0.8]
    return _FakeResult(
        boxes=_FakeBoxes(xyxy=[[5, 5, 40, 60]], conf=[0.75]),
        keypoints=_FakeKeypoints(kpts),
    )


def test_mirror_helpers():
    kpts = np.array([[10, 5, 0.5]], dtype=np.float32)
    out = mirror_keypoints(kpts, 100)
    assert out[0].tolist() == [90, 5, 0.5]
    assert kpts[0, 0] == 10
    assert mirror_bbox((10, 1, 30, 2), 100) == (70, 1, 90, 2)


def test_yolo_pose_detect_mirrors_output(fake_yolo):
    fake_yolo.results = [_pose_result()]
    det = yolo_mod.YoloPoseDetector("model.onnx", flip_horizontal=True)
    frame = np.zeros((100, 200, 3), dtype=np.uint8)

    subjects = det.detect(frame)

    assert len(subjects) == 1
    s = subjects[0]
    assert s.score == pytest.approx(0.75)
    assert s.point(0) == pytest.approx((190.0, 20.0))
    assert s.point(2) == pytest.approx((170.0, 15.0))
    assert s.bbox == pytest.approx((160.0, 5.0, 195.0, 60.0))
    kwargs = det.model.predict_calls[0]
    assert kwargs["classes"] == [0]
    assert kwargs["max_det"] == yolo_mod.MAX_DETECTIONS
    assert kwargs["iou"] == yolo_mod.NMS_IOU


def test_yolo_pose_detect_without_flip(fake_yolo):
    fake_yolo.results = [_pose_result()]
    det = yolo_mod.YoloPoseDetector("model.onnx", flip_horizontal=False)
    s = det.detect(np.zeros((100, 200, 3), dtype=np.uint8))[0]
    assert s.point(0) == pytest.approx((10.0, 20.0))


def test_yolo_pose_detect_handles_empty_results(fake_yolo):
    det = yolo_mod.YoloPoseDetector("model.onnx")
    frame = np.zeros((10, 10, 3), dtype=np.uint8)
    assert det.detect(frame) == []

    fake_yolo.results = [_FakeResult(boxes=_FakeBoxes(xyxy=np.zeros((0, 4)), conf=[]))]
    assert det.detect(frame) == []


def _fake_mediapipe(detections):
    def _point(x, y):
        return types.SimpleNamespace(x=x, y=y)

    class _FaceDetection:
        def __init__(self, model_selection=0, min_detection_confidence=0.5):
            self.model_selection = model_selection
            self.min_detection_confidence = min_detection_confidence
            self.closed = False

        def process(self, rgb):
            return types.SimpleNamespace(detections=detections)

        def close(self):
            self.closed = True

    face_detection = types.SimpleNamespace(FaceDetection=_FaceDetection)
    mp = types.ModuleType("mediapipe")
    mp.solutions = types.SimpleNamespace(face_detection=face_detection)
    det = types.SimpleNamespace(
        score=[0.8],
        location_data=types.SimpleNamespace(
            relative_keypoints=[
                _point(0.4, 0.4),
                _point(0.6, 0.4),
                _point(0.5, 0.5),
                _point(0.5, 0.6),
                _point(0.3, 0.45),
                _point(0.7, 0.45),
            ],
            relative_bounding_box=types.SimpleNamespace(xmin=0.25, ymin=0.25, width=0.5, height=0.5),
        ),
    )
    return mp, det


def test_mediapipe_face_detect_converts_to_pixels(monkeypatch):
    from peepcam.core.detectors.mediapipe_face import MediaPipeFaceDetector

    detections = []
    mp, det = _fake_mediapipe(detections)
    detections.append(det)
    monkeypatch.setitem(sys.modules, "mediapipe", mp)

    detector = MediaPipeFaceDetector(flip_horizontal=False)
    subjects = detector.detect(np.zeros((100, 200, 3), dtype=np.uint8))

    assert len(subjects) == 1
    s = subjects[0]
    assert s.keypoints.shape == (6, 3)
    assert s.point(2) == pytest.approx((100.0, 50.0))
    assert s.part_score(0) == pytest.approx(0.8)
    assert s.bbox == pytest.approx((50.0, 25.0, 150.0, 75.0))

    detector.close()
    assert detector._detector.closed is True


def test_mediapipe_face_detect_mirrors_and_skips_boxes(monkeypatch):
    from peepcam.core.detectors.mediapipe_face import MediaPipeFaceDetector

    mp, det = _fake_mediapipe([])
    mp.solutions.face_detection.FaceDetection.process = lambda self, rgb: types.SimpleNamespace(
        detections=[det]
    )
    monkeypatch.setitem(sys.modules, "mediapipe", mp)

    detector = MediaPipeFaceDetector(flip_horizontal=True, annotate_boxes=False)
    s = detector.detect(np.zeros((100, 200, 3), dtype=np.uint8))[0]
    # Right eye (0) ends up on the right after mirroring.
    assert s.point(0)[0] == pytest.approx(120.0)
    assert s.point(1)[0] == pytest.approx(80.0)
    assert s.bbox is None


def test_mediapipe_missing_raises_detector_unavailable(monkeypatch):
    from peepcam.core.detectors.mediapipe_face import MediaPipeFaceDetector

    monkeypatch.setitem(sys.modules, "mediapipe", None)
    with pytest.raises(DetectorUnavailableError):
        MediaPipeFaceDetector()


def test_build_detector_picks_adapter(fake_yolo, monkeypatch):
    mp, _ = _fake_mediapipe([])
    monkeypatch.setitem(sys.modules, "mediapipe", mp)

    pose = build_detector(PeepSettings(pose_model_name="model.onnx"))
    assert pose.kind == DetectorKind.POSE

    face = build_detector(PeepSettings(detector="blazeface", face_model_selection=1))
    assert face.kind == DetectorKind.FACE
    assert face._detector.model_selection == 1

    overridden = build_detector(PeepSettings(pose_model_name="model.onnx"), DetectorKind.FACE)
    assert overridden.kind == DetectorKind.FACE
