# client/exercise_detector.py

from collections import Counter, deque
from enum import Enum
from typing import Deque, Optional, Sequence

from .pose_utils import MIN_LANDMARKS, PoseLandmark


class ExerciseType(str, Enum):
    PUSHUP = "pushup"
    SITUP = "situp"
    SQUAT = "squat"
    UNKNOWN = "unknown"


# Order matters: the first candidate wins a tied score
CANDIDATES = (ExerciseType.PUSHUP, ExerciseType.SITUP, ExerciseType.SQUAT)

HISTORY_SIZE = 30
MIN_VOTES = 10
MAJORITY_SHARE = 0.6


def score_pushup(landmarks: Sequence) -> float:
    shoulder_y = landmarks[PoseLandmark.LEFT_SHOULDER].y
    ankle_y = landmarks[PoseLandmark.LEFT_ANKLE].y
    wrist_y = landmarks[PoseLandmark.LEFT_WRIST].y

    # body roughly horizontal, hands planted below the shoulders
    horizontal_score = 100 - abs(shoulder_y - ankle_y) * 200
    hands_down = 50 if wrist_y > shoulder_y else 0
    return max(0.0, horizontal_score + hands_down)


def score_situp(landmarks: Sequence) -> float:
    shoulder_y = landmarks[PoseLandmark.LEFT_SHOULDER].y
    hip_y = landmarks[PoseLandmark.LEFT_HIP].y
    knee_y = landmarks[PoseLandmark.LEFT_KNEE].y

    knee_bent = 50 if knee_y < hip_y else 0
    lying_down = 50 if shoulder_y > hip_y * 0.8 else 0
    return float(knee_bent + lying_down)


def score_squat(landmarks: Sequence) -> float:
    shoulder_x = landmarks[PoseLandmark.LEFT_SHOULDER].x
    ankle_x = landmarks[PoseLandmark.LEFT_ANKLE].x

    vertical_score = 100 - abs(shoulder_x - ankle_x) * 200
    return max(0.0, vertical_score)


SCORERS = {
    ExerciseType.PUSHUP: score_pushup,
    ExerciseType.SITUP: score_situp,
    ExerciseType.SQUAT: score_squat,
}


def classify_frame(landmarks: Sequence) -> ExerciseType:
    """Single-frame guess: highest heuristic score."""
    scores = {ex: SCORERS[ex](landmarks) for ex in CANDIDATES}
    return max(CANDIDATES, key=lambda ex: scores[ex])


class ExerciseDetector:
    """
    Auto-detects the exercise from raw landmarks.

    Per-frame guesses go into a sliding window of the last 30 frames. A type
    is confirmed only once the window holds at least 10 guesses and one label
    covers at least 60% of the window.
    """

    def __init__(self, history_size: int = HISTORY_SIZE):
        self.history: Deque[ExerciseType] = deque(maxlen=history_size)

    def detect_exercise(self, landmarks: Optional[Sequence]) -> Optional[ExerciseType]:
        if not landmarks or len(landmarks) < MIN_LANDMARKS:
            return None
        return self.add_vote(classify_frame(landmarks))

    def add_vote(self, label: ExerciseType) -> Optional[ExerciseType]:
        self.history.append(label)
        return self.confirmed()

    def confirmed(self) -> Optional[ExerciseType]:
        if len(self.history) < MIN_VOTES:
            return None

        most_common, count = Counter(self.history).most_common(1)[0]
        if count >= len(self.history) * MAJORITY_SHARE:
            return most_common
        return None

    def reset(self):
        self.history.clear()
