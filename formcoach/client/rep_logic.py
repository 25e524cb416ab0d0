# client/rep_logic.py

import logging
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from .events import CoachEvent, EventListener, EventType
from .exercise_detector import ExerciseType
from .features import FeatureExtractor
from .pose_utils import PoseLandmark as P, joint_angle

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    UP = "up"
    DOWN = "down"


class TargetState(Enum):
    """One-shot milestone announcements; only ever moves forward."""
    NOT_PENDING = 0
    ALMOST = 1
    COMPLETE = 2


# Share of the target that counts as "almost there"
ALMOST_THERE_SHARE = 0.2


# ----------------- Per-exercise configuration -----------------
# baseline_stage is entered when angle > reset_threshold,
# counted_stage when angle < trigger_threshold while in baseline.
EXERCISE_CONFIG: Dict[ExerciseType, Dict[str, Any]] = {
    ExerciseType.PUSHUP: {
        "joints": (P.LEFT_SHOULDER, P.LEFT_ELBOW, P.LEFT_WRIST),
        "baseline_stage": Stage.UP,       # arms locked out
        "counted_stage": Stage.DOWN,
        "reset_threshold": 160.0,
        "trigger_threshold": 90.0,
    },
    ExerciseType.SITUP: {
        "joints": (P.LEFT_SHOULDER, P.LEFT_HIP, P.LEFT_KNEE),
        "baseline_stage": Stage.DOWN,     # lying flat
        "counted_stage": Stage.UP,
        "reset_threshold": 140.0,
        "trigger_threshold": 70.0,
    },
    ExerciseType.SQUAT: {
        "joints": (P.LEFT_HIP, P.LEFT_KNEE, P.LEFT_ANKLE),
        "baseline_stage": Stage.UP,       # standing
        "counted_stage": Stage.DOWN,
        "reset_threshold": 160.0,
        "trigger_threshold": 90.0,
    },
}


def get_exercise_config(exercise: ExerciseType) -> Dict[str, Any]:
    try:
        return EXERCISE_CONFIG[ExerciseType(exercise)]
    except (KeyError, ValueError):
        raise ValueError(f"No rep counting config for exercise {exercise!r}") from None


class RepCounter:
    """
    Hysteresis state machine over one joint angle.

    A rep is counted on entering the counted stage from the baseline stage,
    and closed out in the FeatureExtractor when the angle returns past the
    reset threshold, so one record covers the whole down-and-up cycle.
    """

    def __init__(
        self,
        exercise: ExerciseType,
        feature_extractor: Optional[FeatureExtractor] = None,
        on_event: Optional[EventListener] = None,
        target_count: int = 0,
    ):
        self.exercise = ExerciseType(exercise)
        self.config = get_exercise_config(self.exercise)
        self.feature_extractor = feature_extractor
        self.on_event = on_event

        self.count = 0
        self.stage: Optional[Stage] = None
        self.prev_stage: Optional[Stage] = None
        self.target_count = target_count
        self.target_state = TargetState.NOT_PENDING
        self.almost_announced = False

        self.required_landmarks = max(self.config["joints"]) + 1

    def reset(self):
        self.count = 0
        self.stage = None
        self.prev_stage = None
        self.target_state = TargetState.NOT_PENDING
        self.almost_announced = False
        if self.feature_extractor:
            self.feature_extractor.reset()

    def set_target(self, target: int):
        self.target_count = max(0, int(target))
        self.target_state = TargetState.NOT_PENDING
        self.almost_announced = False
        if self.target_count > 0:
            self._emit(EventType.TARGET_SET, value=self.target_count)

    def update(self, landmarks: Optional[Sequence], timestamp: Optional[float] = None) -> Optional[float]:
        """
        Feeds one frame. Returns the tracked joint angle, or None when the
        frame is too short to compute it.
        """
        if not landmarks or len(landmarks) < self.required_landmarks:
            return None

        cfg = self.config
        angle = joint_angle(landmarks, cfg["joints"])

        # frames before the first baseline are not part of any rep
        if self.feature_extractor and self.stage is not None:
            self.feature_extractor.add_frame(landmarks, self.exercise, timestamp)

        self.prev_stage = self.stage

        if angle > cfg["reset_threshold"]:
            self.stage = cfg["baseline_stage"]
            if self.prev_stage == cfg["counted_stage"] and self.feature_extractor:
                self.feature_extractor.end_rep(self.exercise, timestamp)

        if angle < cfg["trigger_threshold"] and self.stage == cfg["baseline_stage"]:
            self.stage = cfg["counted_stage"]
            if self.feature_extractor:
                self.feature_extractor.start_rep(timestamp)
            self.count += 1
            self._on_count_up()

        return angle

    def _on_count_up(self):
        logger.debug("%s count -> %d", self.exercise.value, self.count)

        if self.target_count <= 0:
            self._emit(EventType.COUNT_ANNOUNCED, value=self.count)
            return

        remaining = self.target_count - self.count
        if self.count >= self.target_count and self.target_state != TargetState.COMPLETE:
            self.target_state = TargetState.COMPLETE
            self._emit(EventType.GOAL_COMPLETE, value=self.count)
        elif 0 < remaining <= self.target_count * ALMOST_THERE_SHARE and not self.almost_announced:
            self.target_state = TargetState.ALMOST
            self.almost_announced = True
            self._emit(EventType.ALMOST_THERE, value=self.count)
        # once "almost there" was spoken, the rest of the set stays quiet
        elif not self.almost_announced:
            self._emit(EventType.COUNT_ANNOUNCED, value=self.count)

    def _emit(self, event_type: EventType, value: Optional[int] = None):
        if self.on_event:
            self.on_event(CoachEvent(event_type, value=value, detail=self.exercise.value))
