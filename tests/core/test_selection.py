import numpy as np
import pytest

from peepcam.core.analytics.selection import (
    MIN_FACE_CONFIDENCE,
    MIN_POSE_CONFIDENCE,
    filter_by_confidence,
    frame_center,
    min_subject_confidence,
    select_main,
)
from peepcam.core.types import DetectedSubject, DetectorKind


def _subject(score, nose):
    kpts = np.zeros((17, 3), dtype=np.float32)
    kpts[0] = [nose[0], nose[1], 0.9]
    return DetectedSubject(score=score, keypoints=kpts)


def test_filter_keeps_scores_at_or_above_threshold_in_order():
    subjects = [_subject(0.2, (0, 0)), _subject(0.05, (1, 1)), _subject(0.15, (2, 2))]
    out = filter_by_confidence(subjects, 0.15)
    assert out == [subjects[0], subjects[2]]
    assert len(subjects) == 3


def test_filter_is_idempotent():
    subjects = [_subject(s, (0, 0)) for s in (0.9, 0.1, 0.5, 0.14, 0.15)]
    once = filter_by_confidence(subjects, 0.15)
    assert filter_by_confidence(once, 0.15) == once


def test_single_confident_subject_becomes_main():
    subjects = [_subject(0.2, (100, 100)), _subject(0.05, (10, 10))]
    confident = filter_by_confidence(subjects, 0.15)
    assert len(confident) == 1
    assert select_main(confident, (90, 90), anchor_index=0) == 0
    assert confident[0] is subjects[0]


def test_closer_subject_wins():
    subjects = [_subject(0.9, (50, 50)), _subject(0.9, (52, 52))]
    assert select_main(subjects, (0, 0), anchor_index=0) == 0
    assert select_main(subjects, (100, 100), anchor_index=0) == 1


def test_second_subject_strictly_closer_is_selected():
    subjects = [_subject(0.9, (52, 52)), _subject(0.9, (50, 50))]
    assert select_main(subjects, (0, 0), anchor_index=0) == 1


def test_ties_keep_earliest_subject():
    subjects = [_subject(0.9, (10, 0)), _subject(0.9, (-10, 0)), _subject(0.9, (0, 10))]
    assert select_main(subjects, (0, 0), anchor_index=0) == 0


def test_select_main_uses_anchor_index():
    a = _subject(0.9, (0, 0))
    b = _subject(0.9, (100, 100))
    a.keypoints[2] = [100, 100, 0.9]
    b.keypoints[2] = [0, 0, 0.9]
    assert select_main([a, b], (0, 0), anchor_index=2) == 1


def test_select_main_rejects_empty_list():
    with pytest.raises(ValueError):
        select_main([], (0, 0), anchor_index=0)


def test_thresholds_and_center():
    assert min_subject_confidence(DetectorKind.POSE) == MIN_POSE_CONFIDENCE == 0.15
    assert min_subject_confidence(DetectorKind.FACE) == MIN_FACE_CONFIDENCE == 0.15
    assert frame_center(640, 480) == (320.0, 240.0)
