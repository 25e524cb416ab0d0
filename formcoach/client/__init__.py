from .events import CoachEvent, EventType
from .exercise_detector import ExerciseDetector, ExerciseType
from .features import FeatureExtractor
from .pose_utils import Landmark, angle_between
from .rep_logic import EXERCISE_CONFIG, RepCounter, Stage, TargetState
from .session import ExerciseSession, FrameResult

__all__ = [
    "CoachEvent",
    "EventType",
    "ExerciseDetector",
    "ExerciseType",
    "FeatureExtractor",
    "Landmark",
    "angle_between",
    "EXERCISE_CONFIG",
    "RepCounter",
    "Stage",
    "TargetState",
    "ExerciseSession",
    "FrameResult",
]
