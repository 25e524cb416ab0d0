# backend/models.py
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class MetricScore(BaseModel):
    value: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    note: str = ""


class RepFeatures(BaseModel):
    rep_index: int = Field(ge=1)
    duration_sec: float
    depth: MetricScore
    alignment: MetricScore
    symmetry: MetricScore
    stability: MetricScore
    knee_tracking: MetricScore = MetricScore()
    torso_angle: MetricScore = MetricScore()
    rom: MetricScore = MetricScore()
    control: MetricScore = MetricScore()
    events: List[str] = []


class TempoStats(BaseModel):
    mean_sec_per_rep: float = 0.0
    cv: float = 0.0


class MetricStats(BaseModel):
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0


class OverallStats(BaseModel):
    tempo: TempoStats
    depth: MetricStats
    alignment: MetricStats
    symmetry: MetricStats
    stability: MetricStats


class Highlights(BaseModel):
    best_rep_index: int
    worst_rep_index: int
    trend: List[str] = []


class SessionMeta(BaseModel):
    user_id: str = "anonymous"
    session_id: str
    timestamp: str          # ISO-8601
    camera_view: str = "webcam"
    fps: int = 30


class Goal(BaseModel):
    priority: str = "form_and_safety"
    context: str = "home_training_no_equipment"


class Notes(BaseModel):
    visibility_quality: str = "ok"
    warnings: List[str] = []


class SessionPayload(BaseModel):
    meta: SessionMeta
    exercise: Literal["pushup", "situp", "squat"]
    goal: Goal = Goal()
    reps: int = Field(ge=1)
    rep_summaries: List[RepFeatures]
    overall_stats: OverallStats
    highlights: Highlights
    notes: Notes = Notes()

    @model_validator(mode="after")
    def reps_match_summaries(self):
        if self.reps != len(self.rep_summaries):
            raise ValueError(
                f"reps={self.reps} but {len(self.rep_summaries)} rep_summaries were sent"
            )
        return self


class EvaluationResponse(BaseModel):
    overall_score: int = Field(ge=0, le=100)
    comment: str
    main_issue: Optional[str] = None
    severity: Literal["none", "low", "medium", "high"] = "none"
