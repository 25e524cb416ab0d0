# client/session.py

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .events import CoachEvent, EventListener, EventType
from .exercise_detector import ExerciseDetector, ExerciseType
from .features import FeatureExtractor
from .pose_utils import MIN_LANDMARKS
from .rep_logic import RepCounter, Stage

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    exercise: Optional[ExerciseType]
    angle: Optional[float]
    count: int
    stage: Optional[Stage]
    reps_recorded: int
    completed_rep: Optional[Dict[str, Any]] = None


class ExerciseSession:
    """
    One camera stream's worth of state: detector, counter and extractor.

    Frames must be fed one at a time, in order, from a single producer.
    Independent sessions share nothing and can run on separate workers.
    """

    def __init__(
        self,
        exercise: Optional[ExerciseType] = None,
        target_count: int = 0,
        on_event: Optional[EventListener] = None,
        clock: Callable[[], float] = time.time,
        fps: int = 30,
        user_id: str = "anonymous",
    ):
        self.on_event = on_event
        self.fps = fps
        self.user_id = user_id
        self.target_count = target_count

        self.feature_extractor = FeatureExtractor(clock=clock)
        self.detector = ExerciseDetector()
        self.events: List[CoachEvent] = []

        self.auto_detect = exercise is None
        self.exercise: Optional[ExerciseType] = None
        self.counter: Optional[RepCounter] = None
        if exercise is not None:
            self._switch_exercise(ExerciseType(exercise))

    # ---------- mode / target control ----------

    def set_auto_mode(self):
        self.auto_detect = True
        self.exercise = None
        self.counter = None
        self.feature_extractor.reset()
        self.detector.reset()
        self._emit(CoachEvent(EventType.MODE_CHANGED, detail="auto"))

    def set_exercise(self, exercise: ExerciseType):
        self.auto_detect = False
        self._switch_exercise(ExerciseType(exercise))
        self._emit(CoachEvent(EventType.MODE_CHANGED, detail=self.exercise.value))

    def set_target(self, target: int):
        self.target_count = max(0, int(target))
        if self.counter:
            self.counter.set_target(self.target_count)
        elif self.target_count > 0:
            self._emit(CoachEvent(EventType.TARGET_SET, value=self.target_count))

    def reset(self):
        if self.counter:
            self.counter.reset()
        else:
            self.feature_extractor.reset()
        self._emit(CoachEvent(EventType.COUNTER_RESET))

    def _switch_exercise(self, exercise: ExerciseType):
        self.exercise = exercise
        self.counter = RepCounter(
            exercise,
            feature_extractor=self.feature_extractor,
            on_event=self._emit,
            target_count=self.target_count,
        )
        self.counter.reset()

    # ---------- frame ingestion ----------

    def process_frame(self, landmarks: Optional[Sequence], timestamp: Optional[float] = None) -> Optional[FrameResult]:
        if not landmarks or len(landmarks) < MIN_LANDMARKS:
            return None

        if self.auto_detect:
            detected = self.detector.detect_exercise(landmarks)
            if detected and detected != self.exercise:
                logger.info("Detected exercise: %s", detected.value)
                self._switch_exercise(detected)
                self._emit(CoachEvent(EventType.EXERCISE_DETECTED, detail=detected.value))

        angle = None
        completed = None
        if self.counter:
            reps_before = len(self.feature_extractor.rep_data)
            angle = self.counter.update(landmarks, timestamp)
            if len(self.feature_extractor.rep_data) > reps_before:
                completed = self.feature_extractor.rep_data[-1]

        return FrameResult(
            exercise=self.exercise,
            angle=angle,
            count=self.count,
            stage=self.counter.stage if self.counter else None,
            reps_recorded=len(self.feature_extractor.rep_data),
            completed_rep=completed,
        )

    @property
    def count(self) -> int:
        return self.counter.count if self.counter else 0

    def generate_payload(self) -> Optional[Dict[str, Any]]:
        """None when no exercise is selected or nothing was recorded yet."""
        if self.exercise is None:
            return None
        return self.feature_extractor.generate_payload(self.exercise, fps=self.fps, user_id=self.user_id)

    def _emit(self, event: CoachEvent):
        self.events.append(event)
        if self.on_event:
            self.on_event(event)
