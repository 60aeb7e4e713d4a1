import math

import numpy as np
import pytest

from peepcam.core.detectors.base import FACE_LAYOUT, POSE_LAYOUT
from peepcam.core.overlay import privacy as pv
from peepcam.core.types import DetectedSubject, PrivacyMode, PrivacyTarget


def _pose(eye_right=(120, 100), eye_left=(80, 100), ears=True, score=0.9):
    kpts = np.zeros((17, 3), dtype=np.float32)
    kpts[0] = [100, 110, score]
    kpts[1] = [eye_left[0], eye_left[1], score]
    kpts[2] = [eye_right[0], eye_right[1], score]
    if ears:
        kpts[3] = [eye_left[0] - 20, eye_left[1], score]
        kpts[4] = [eye_right[0] + 20, eye_right[1], score]
    return DetectedSubject(score=score, keypoints=kpts)


def test_angle_matches_eye_axis():
    _, angle, _ = pv.sunglasses_transform((10, 0), (0, 0), 110)
    assert angle == 0.0
    _, angle, _ = pv.sunglasses_transform((0, 10), (0, 0), 110)
    assert angle == pytest.approx(math.pi / 2)


def test_scale_uses_calibration_constant():
    center, _, scale = pv.sunglasses_transform((220, 50), (0, 50), 110)
    assert scale == pytest.approx(2.0)
    assert center == (110.0, 50.0)
    _, _, scale = pv.sunglasses_transform((0, 50), (260, 50), 130)
    assert scale == pytest.approx(2.0)
    assert POSE_LAYOUT.sunglasses_calibration == 110
    assert FACE_LAYOUT.sunglasses_calibration == 130


def test_doubling_eye_distance_doubles_sprite_size():
    shape = (80, 220, 4)
    _, angle1, s1 = pv.sunglasses_transform((40, 0), (0, 0), 110)
    _, angle2, s2 = pv.sunglasses_transform((80, 0), (0, 0), 110)
    m1 = pv.sunglasses_matrix((0, 0), angle1, s1, shape)
    m2 = pv.sunglasses_matrix((0, 0), angle2, s2, shape)
    w1 = np.hypot(*m1[:, 0]) * shape[1]
    w2 = np.hypot(*m2[:, 0]) * shape[1]
    h1 = np.hypot(*m1[:, 1]) * shape[0]
    h2 = np.hypot(*m2[:, 1]) * shape[0]
    assert w2 == pytest.approx(2 * w1)
    assert h2 == pytest.approx(2 * h1)


def test_sprite_top_is_raised_above_eye_center():
    m = pv.sunglasses_matrix((100, 100), 0.0, 1.0, (80, 220, 4))
    # Top-left sprite pixel lands half a width left and height/2.3 above center.
    assert m[0, 2] == pytest.approx(100 - 110)
    assert m[1, 2] == pytest.approx(100 - 80 / 2.3)


def test_should_obscure_targets():
    assert pv.should_obscure(0, 0, PrivacyTarget.ALL) is True
    assert pv.should_obscure(0, 0, PrivacyTarget.OTHERS) is False
    assert pv.should_obscure(1, 0, PrivacyTarget.OTHERS) is True


def test_eye_line_blacks_out_between_ears():
    img = np.full((200, 200, 3), 255, dtype=np.uint8)
    pv.render_privacy_overlay(img, _pose(), PrivacyMode.EYE_LINE, POSE_LAYOUT, eye_line_width=10)
    assert img[100, 100].tolist() == [0, 0, 0]
    assert img[10, 10].tolist() == [255, 255, 255]


def test_eye_line_falls_back_to_eyes_without_ears():
    img = np.full((200, 200, 3), 255, dtype=np.uint8)
    pv.render_privacy_overlay(
        img, _pose(ears=False), PrivacyMode.EYE_LINE, POSE_LAYOUT, eye_line_width=6
    )
    assert img[100, 100].tolist() == [0, 0, 0]


def test_red_box_tints_face_region():
    img = np.zeros((200, 200, 3), dtype=np.uint8)
    pv.render_privacy_overlay(img, _pose(), PrivacyMode.RED_BOX, POSE_LAYOUT)
    b, g, r = img[100, 100].tolist()
    assert r > 100 and b == 0 and g == 0
    assert img[5, 5].tolist() == [0, 0, 0]


def test_red_box_uses_face_bbox():
    kpts = np.zeros((6, 3), dtype=np.float32)
    kpts[:, 2] = 0.9
    subject = DetectedSubject(score=0.9, keypoints=kpts, bbox=(150.0, 150.0, 190.0, 190.0))
    img = np.zeros((200, 200, 3), dtype=np.uint8)
    pv.render_privacy_overlay(img, subject, PrivacyMode.RED_BOX, FACE_LAYOUT)
    assert img[170, 170, 2] > 100
    assert img[50, 50].tolist() == [0, 0, 0]


def test_sunglasses_draw_over_eyes_only():
    img = np.full((200, 200, 3), 255, dtype=np.uint8)
    before = img.copy()
    pv.render_privacy_overlay(img, _pose(), PrivacyMode.SUNGLASSES, POSE_LAYOUT)
    # Right lens sits on the right eye (image right, mirrored display space).
    assert img[100, 120].max() < 100
    assert np.array_equal(img[180:], before[180:])


def test_sunglasses_skipped_for_low_confidence_eyes():
    img = np.full((200, 200, 3), 255, dtype=np.uint8)
    pv.render_privacy_overlay(img, _pose(score=0.05), PrivacyMode.SUNGLASSES, POSE_LAYOUT)
    assert (img == 255).all()


def test_sunglasses_partially_off_frame_does_not_crash():
    img = np.full((100, 100, 3), 255, dtype=np.uint8)
    subject = _pose(eye_right=(10, 5), eye_left=(-30, 5))
    pv.render_privacy_overlay(img, subject, PrivacyMode.SUNGLASSES, POSE_LAYOUT)
    assert img.shape == (100, 100, 3)


def test_default_sprite_is_bgra_with_transparency():
    sprite = pv.make_sunglasses_sprite()
    assert sprite.shape == (pv.SPRITE_HEIGHT, pv.SPRITE_WIDTH, 4)
    assert sprite[0, 0, 3] == 0
    assert sprite[int(pv.SPRITE_HEIGHT / 2.3), pv.SPRITE_WIDTH // 4, 3] == 255


def test_load_sunglasses_sprite_from_png(tmp_path):
    import cv2

    path = tmp_path / "shades.png"
    cv2.imwrite(str(path), np.zeros((10, 20, 3), dtype=np.uint8))
    sprite = pv.load_sunglasses_sprite(path)
    assert sprite.shape == (10, 20, 4)
    with pytest.raises(FileNotFoundError):
        pv.load_sunglasses_sprite(tmp_path / "missing.png")
