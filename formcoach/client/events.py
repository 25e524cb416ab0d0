# client/events.py

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class EventType(str, Enum):
    COUNT_ANNOUNCED = "count_announced"
    ALMOST_THERE = "almost_there"
    GOAL_COMPLETE = "goal_complete"
    TARGET_SET = "target_set"
    MODE_CHANGED = "mode_changed"
    EXERCISE_DETECTED = "exercise_detected"
    COUNTER_RESET = "counter_reset"


# Milestones interrupt whatever the voice channel is saying
PRIORITY_EVENTS = {EventType.ALMOST_THERE, EventType.GOAL_COMPLETE}


@dataclass(frozen=True)
class CoachEvent:
    type: EventType
    value: Optional[int] = None      # rep count or target
    detail: Optional[str] = None     # mode / exercise name

    @property
    def priority(self) -> bool:
        return self.type in PRIORITY_EVENTS


EventListener = Callable[[CoachEvent], None]
