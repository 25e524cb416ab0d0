from formcoach.client.exercise_detector import (
    ExerciseDetector,
    ExerciseType,
    classify_frame,
    score_pushup,
    score_squat,
    score_situp,
)
from formcoach.client.pose_utils import Landmark, PoseLandmark as P

from helpers import base_landmarks


def _frame(points):
    lms = base_landmarks()
    for idx, (x, y) in points.items():
        lms[idx] = Landmark(x, y)
    return lms


def plank_frame():
    return _frame({
        P.LEFT_SHOULDER: (0.2, 0.5),
        P.LEFT_WRIST: (0.2, 0.6),
        P.LEFT_HIP: (0.5, 0.5),
        P.LEFT_KNEE: (0.65, 0.5),
        P.LEFT_ANKLE: (0.8, 0.5),
    })


def test_plank_scores_as_pushup():
    lms = plank_frame()
    assert score_pushup(lms) == 150.0
    assert score_situp(lms) == 50.0
    assert score_squat(lms) == 0.0
    assert classify_frame(lms) == ExerciseType.PUSHUP


def test_standing_scores_as_squat():
    assert classify_frame(base_landmarks()) == ExerciseType.SQUAT


def test_tie_goes_to_first_candidate():
    lms = _frame({
        P.LEFT_SHOULDER: (0.1, 0.1),
        P.LEFT_WRIST: (0.1, 0.05),
        P.LEFT_HIP: (0.5, 0.5),
        P.LEFT_KNEE: (0.7, 0.9),
        P.LEFT_ANKLE: (0.9, 0.9),
    })
    assert score_pushup(lms) == score_situp(lms) == score_squat(lms) == 0.0
    assert classify_frame(lms) == ExerciseType.PUSHUP


def test_sixty_percent_majority_confirms():
    detector = ExerciseDetector()
    results = [detector.add_vote(ExerciseType.SQUAT) for _ in range(6)]
    results += [detector.add_vote(ExerciseType.PUSHUP) for _ in range(4)]
    assert results[:9] == [None] * 9
    assert results[9] == ExerciseType.SQUAT


def test_even_split_is_undetermined():
    detector = ExerciseDetector()
    for _ in range(5):
        detector.add_vote(ExerciseType.SQUAT)
    for _ in range(4):
        detector.add_vote(ExerciseType.PUSHUP)
    assert detector.add_vote(ExerciseType.PUSHUP) is None


def test_needs_ten_samples():
    detector = ExerciseDetector()
    for _ in range(9):
        assert detector.add_vote(ExerciseType.SITUP) is None
    assert detector.add_vote(ExerciseType.SITUP) == ExerciseType.SITUP


def test_window_evicts_oldest_votes():
    detector = ExerciseDetector()
    for _ in range(30):
        detector.add_vote(ExerciseType.SQUAT)
    for _ in range(12):
        last = detector.add_vote(ExerciseType.PUSHUP)
    assert len(detector.history) == 30
    assert last == ExerciseType.SQUAT          # 18/30

    assert detector.add_vote(ExerciseType.PUSHUP) is None   # 17 vs 13
    for _ in range(5):
        last = detector.add_vote(ExerciseType.PUSHUP)
    assert last == ExerciseType.PUSHUP         # 18/30


def test_detect_exercise_from_frames():
    detector = ExerciseDetector()
    results = [detector.detect_exercise(plank_frame()) for _ in range(10)]
    assert results[-1] == ExerciseType.PUSHUP


def test_short_frames_do_not_vote():
    detector = ExerciseDetector()
    assert detector.detect_exercise(base_landmarks()[:20]) is None
    assert detector.detect_exercise(None) is None
    assert len(detector.history) == 0


def test_reset_clears_window():
    detector = ExerciseDetector()
    for _ in range(10):
        detector.add_vote(ExerciseType.SQUAT)
    detector.reset()
    assert detector.confirmed() is None
    assert len(detector.history) == 0
