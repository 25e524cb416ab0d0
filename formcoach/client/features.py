# client/features.py

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .exercise_detector import ExerciseType
from .pose_utils import MIN_LANDMARKS, PoseLandmark as P, angle_between, midpoint

logger = logging.getLogger(__name__)

HEADLINE_METRICS = ("depth", "alignment", "symmetry", "stability")

# Shoulder-midpoint std-dev (normalized coords) that scores 0 stability
STABILITY_JITTER_BUDGET = 0.1
# Floor for a recorded rep's duration
MIN_REP_DURATION_SEC = 0.01
TREND_MIN_REPS = 3
TREND_DELTA = 0.1

TREND_DEGRADING = "form degrading in the second half"
TREND_IMPROVING = "form improving toward the end"

# Neutral stand-ins when a per-frame angle is missing or degenerate (0.0)
DEFAULT_JOINT_ANGLE = 180.0
DEFAULT_SITUP_TORSO = 90.0
DEFAULT_TORSO_LEAN = 0.0


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _score(value: float) -> float:
    return round(_clamp01(value), 2)


def _std(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def _metric(value: Optional[float] = None, note: str = "") -> Dict[str, Any]:
    return {"value": value, "note": note}


def torso_lean_angle(landmarks: Sequence) -> float:
    """Angle (deg) between the hip->shoulder midline and image vertical."""
    shoulder_x, shoulder_y = midpoint(landmarks[P.LEFT_SHOULDER], landmarks[P.RIGHT_SHOULDER])
    hip_x, hip_y = midpoint(landmarks[P.LEFT_HIP], landmarks[P.RIGHT_HIP])

    dx = shoulder_x - hip_x
    dy = shoulder_y - hip_y
    # image y grows downwards, so "up" is -dy
    return abs(np.degrees(np.arctan2(dx, -dy)))


def frame_angles(landmarks: Sequence, exercise: ExerciseType) -> Dict[str, float]:
    if exercise == ExerciseType.PUSHUP:
        return {
            "left_elbow": angle_between(landmarks[P.LEFT_SHOULDER], landmarks[P.LEFT_ELBOW], landmarks[P.LEFT_WRIST]),
            "right_elbow": angle_between(landmarks[P.RIGHT_SHOULDER], landmarks[P.RIGHT_ELBOW], landmarks[P.RIGHT_WRIST]),
            # plank straightness
            "left_body_line": angle_between(landmarks[P.LEFT_SHOULDER], landmarks[P.LEFT_HIP], landmarks[P.LEFT_ANKLE]),
            "right_body_line": angle_between(landmarks[P.RIGHT_SHOULDER], landmarks[P.RIGHT_HIP], landmarks[P.RIGHT_ANKLE]),
        }
    if exercise == ExerciseType.SQUAT:
        return {
            "left_knee": angle_between(landmarks[P.LEFT_HIP], landmarks[P.LEFT_KNEE], landmarks[P.LEFT_ANKLE]),
            "right_knee": angle_between(landmarks[P.RIGHT_HIP], landmarks[P.RIGHT_KNEE], landmarks[P.RIGHT_ANKLE]),
            "torso": float(torso_lean_angle(landmarks)),
        }
    if exercise == ExerciseType.SITUP:
        return {
            "left_torso": angle_between(landmarks[P.LEFT_SHOULDER], landmarks[P.LEFT_HIP], landmarks[P.LEFT_KNEE]),
            "right_torso": angle_between(landmarks[P.RIGHT_SHOULDER], landmarks[P.RIGHT_HIP], landmarks[P.RIGHT_KNEE]),
        }
    return {}


class FeatureExtractor:
    """
    Buffers the frames of the rep in progress and turns each finished rep into
    a quality record (depth, alignment, symmetry, stability, ...).

    One instance holds one session; reset() starts a new one.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.reset()

    def reset(self):
        self.session_id = self._generate_session_id()
        self.rep_data: List[Dict[str, Any]] = []
        self.current_rep_frames: List[Dict[str, Any]] = []
        self.rep_start_time: Optional[float] = None
        self.frame_count = 0

    def _generate_session_id(self) -> str:
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return now.strftime("%Y%m%d%H%M%S")

    # ------------------------------------------------------------------
    # Rep buffering
    # ------------------------------------------------------------------

    def start_rep(self, timestamp: Optional[float] = None):
        self.current_rep_frames = []
        self.rep_start_time = self._clock() if timestamp is None else timestamp

    def add_frame(self, landmarks: Optional[Sequence], exercise: ExerciseType,
                  timestamp: Optional[float] = None):
        if not landmarks or len(landmarks) < MIN_LANDMARKS:
            return

        self.frame_count += 1
        self.current_rep_frames.append({
            "landmarks": landmarks,
            "timestamp": self._clock() if timestamp is None else timestamp,
            "angles": frame_angles(landmarks, exercise),
        })

    def end_rep(self, exercise: ExerciseType,
                timestamp: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """
        Closes the rep in progress. Returns its feature record, or None when
        fewer than 2 frames were buffered (treated as a false start).
        """
        if len(self.current_rep_frames) < 2:
            logger.debug("Dropping rep with %d buffered frame(s)", len(self.current_rep_frames))
            self.current_rep_frames = []
            self.rep_start_time = None
            return None

        end_time = self._clock() if timestamp is None else timestamp
        start_time = self.rep_start_time if self.rep_start_time is not None else end_time
        duration = max(round(end_time - start_time, 2), MIN_REP_DURATION_SEC)

        features = self._calculate_rep_features(exercise)
        features["rep_index"] = len(self.rep_data) + 1
        features["duration_sec"] = duration

        self.rep_data.append(features)
        self.current_rep_frames = []
        self.rep_start_time = None

        logger.debug("Rep %d recorded (%s, %.2fs, events=%s)",
                     features["rep_index"], exercise.value, duration, features["events"])
        return features

    # ------------------------------------------------------------------
    # Per-rep scoring
    # ------------------------------------------------------------------

    def _calculate_rep_features(self, exercise: ExerciseType) -> Dict[str, Any]:
        features = {
            "depth": _metric(0.0),
            "alignment": _metric(0.0),
            "symmetry": _metric(0.0),
            "stability": _metric(0.0),
            "knee_tracking": _metric(),
            "torso_angle": _metric(),
            "rom": _metric(),
            "control": _metric(),
            "events": [],
        }

        if exercise == ExerciseType.PUSHUP:
            self._calc_pushup_features(features)
        elif exercise == ExerciseType.SQUAT:
            self._calc_squat_features(features)
        elif exercise == ExerciseType.SITUP:
            self._calc_situp_features(features)

        features["stability"] = self._calc_stability()
        return features

    def _angle_series(self, key: str, default: float) -> np.ndarray:
        return np.array([f["angles"].get(key) or default for f in self.current_rep_frames])

    def _calc_pushup_features(self, features: Dict[str, Any]):
        # depth: 180 (locked out) .. 30 (chest to floor)
        left_elbows = self._angle_series("left_elbow", DEFAULT_JOINT_ANGLE)
        right_elbows = self._angle_series("right_elbow", DEFAULT_JOINT_ANGLE)
        min_elbow = min(left_elbows.min(), right_elbows.min())

        features["depth"]["value"] = _score((180 - min_elbow) / 150)
        if min_elbow > 120:
            features["events"].append("shallow_depth")
            features["depth"]["note"] = "range too shallow"
        elif min_elbow < 45:
            features["depth"]["note"] = "full depth"

        # alignment: straight shoulder-hip-ankle line
        left_lines = self._angle_series("left_body_line", DEFAULT_JOINT_ANGLE)
        right_lines = self._angle_series("right_body_line", DEFAULT_JOINT_ANGLE)
        avg_line = (left_lines.sum() + right_lines.sum()) / (2 * len(left_lines))

        features["alignment"]["value"] = _score(avg_line / 180)
        if avg_line < 160:
            features["events"].append("hips_sag_at_bottom")
            features["alignment"]["note"] = "hips sagging"
        elif avg_line > 175:
            features["alignment"]["note"] = "solid plank line"

        avg_diff = float(np.mean(np.abs(left_elbows - right_elbows)))
        features["symmetry"]["value"] = _score(1 - avg_diff / 30)
        if avg_diff > 15:
            features["events"].append("asymmetric_movement")
            features["symmetry"]["note"] = "left/right imbalance"
        else:
            features["symmetry"]["note"] = "balanced left/right"

    def _calc_squat_features(self, features: Dict[str, Any]):
        left_knees = self._angle_series("left_knee", DEFAULT_JOINT_ANGLE)
        right_knees = self._angle_series("right_knee", DEFAULT_JOINT_ANGLE)
        min_knee = min(left_knees.min(), right_knees.min())

        features["depth"]["value"] = _score((180 - min_knee) / 90)
        if min_knee > 110:
            features["events"].append("shallow_squat")
            features["depth"]["note"] = "squat too shallow"
        elif min_knee < 80:
            features["depth"]["note"] = "full depth"

        avg_knee_diff = float(np.mean(np.abs(left_knees - right_knees)))
        knee_tracking = _score(1 - avg_knee_diff / 20)
        features["knee_tracking"]["value"] = knee_tracking
        if avg_knee_diff > 10:
            features["events"].append("knee_valgus")
            features["knee_tracking"]["note"] = "knees caving in"
        else:
            features["knee_tracking"]["note"] = "knees tracking well"

        avg_torso = float(np.mean(self._angle_series("torso", DEFAULT_TORSO_LEAN)))
        if avg_torso < 15:
            torso_score = avg_torso / 15
            features["torso_angle"]["note"] = "torso too upright"
        elif avg_torso > 45:
            torso_score = 1 - (avg_torso - 45) / 30
            features["events"].append("torso_collapse")
            features["torso_angle"]["note"] = "leaning too far forward"
        else:
            torso_score = 1.0
            features["torso_angle"]["note"] = "good torso angle"
        features["torso_angle"]["value"] = _score(torso_score)

        # no independent signal for these two: reuse knee tracking
        features["alignment"]["value"] = knee_tracking
        features["symmetry"]["value"] = knee_tracking

    def _calc_situp_features(self, features: Dict[str, Any]):
        left_torsos = self._angle_series("left_torso", DEFAULT_SITUP_TORSO)
        right_torsos = self._angle_series("right_torso", DEFAULT_SITUP_TORSO)
        avg_torsos = (left_torsos + right_torsos) / 2

        angle_range = float(avg_torsos.max() - avg_torsos.min())
        features["rom"]["value"] = _score(angle_range / 60)
        if angle_range < 40:
            features["events"].append("incomplete_lowering")
            features["rom"]["note"] = "limited range of motion"
        else:
            features["rom"]["note"] = "good range of motion"

        if len(avg_torsos) > 1:
            velocity_std = _std(np.abs(np.diff(avg_torsos)))
            features["control"]["value"] = _score(1 - velocity_std / 10)
            if velocity_std > 5:
                features["events"].append("momentum_bounce")
                features["control"]["note"] = "using momentum"
            else:
                features["control"]["note"] = "controlled movement"

        avg_diff = float(np.mean(np.abs(left_torsos - right_torsos)))
        features["symmetry"]["value"] = _score(1 - avg_diff / 20)

        features["depth"]["value"] = features["rom"]["value"]
        control = features["control"]["value"]
        features["alignment"]["value"] = 0.5 if control is None else control

    def _calc_stability(self) -> Dict[str, Any]:
        if len(self.current_rep_frames) < 2:
            return _metric(0.5, "insufficient data")

        shoulders = np.array([
            midpoint(f["landmarks"][P.LEFT_SHOULDER], f["landmarks"][P.RIGHT_SHOULDER])
            for f in self.current_rep_frames
        ])
        jitter = float(np.hypot(_std(shoulders[:, 0]), _std(shoulders[:, 1])))

        score = _score(1 - jitter / STABILITY_JITTER_BUDGET)
        note = "steady movement" if score > 0.7 else "too much sway"
        return _metric(score, note)

    # ------------------------------------------------------------------
    # Session aggregation
    # ------------------------------------------------------------------

    def generate_payload(self, exercise: ExerciseType, fps: int = 30,
                         user_id: str = "anonymous") -> Optional[Dict[str, Any]]:
        """Session summary for the scoring service; None until a rep is recorded."""
        if not self.rep_data:
            return None

        return {
            "meta": {
                "user_id": user_id,
                "session_id": self.session_id,
                "timestamp": datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat(),
                "camera_view": "webcam",
                "fps": fps,
            },
            "exercise": ExerciseType(exercise).value,
            "goal": {
                "priority": "form_and_safety",
                "context": "home_training_no_equipment",
            },
            "reps": len(self.rep_data),
            "rep_summaries": self.rep_data,
            "overall_stats": self.calculate_overall_stats(),
            "highlights": self.calculate_highlights(),
            "notes": {
                "visibility_quality": "ok",
                "warnings": [],
            },
        }

    def calculate_overall_stats(self) -> Dict[str, Dict[str, float]]:
        stats = {"tempo": {"mean_sec_per_rep": 0.0, "cv": 0.0}}
        for key in HEADLINE_METRICS:
            stats[key] = {"mean": 0.0, "min": 0.0, "max": 0.0}

        durations = [r["duration_sec"] for r in self.rep_data if r["duration_sec"] > 0]
        if durations:
            mean_dur = float(np.mean(durations))
            cv = _std(durations) / mean_dur if mean_dur > 0 else 0.0
            stats["tempo"] = {
                "mean_sec_per_rep": round(mean_dur, 2),
                "cv": round(cv, 2),
            }

        for key in HEADLINE_METRICS:
            values = [r[key]["value"] for r in self.rep_data if r[key]["value"] is not None]
            if values:
                stats[key] = {
                    "mean": round(float(np.mean(values)), 2),
                    "min": round(min(values), 2),
                    "max": round(max(values), 2),
                }

        return stats

    def calculate_highlights(self) -> Dict[str, Any]:
        if not self.rep_data:
            return {"best_rep_index": 0, "worst_rep_index": 0, "trend": []}

        scores = [(rep["rep_index"], headline_score(rep)) for rep in self.rep_data]
        # max/min keep the first rep on ties
        best = max(scores, key=lambda s: s[1])
        worst = min(scores, key=lambda s: s[1])

        trend = []
        if len(scores) >= TREND_MIN_REPS:
            half = len(scores) // 2
            first_half = float(np.mean([s for _, s in scores[:half]]))
            second_half = float(np.mean([s for _, s in scores[half:]]))

            if second_half < first_half - TREND_DELTA:
                trend.append(TREND_DEGRADING)
            elif second_half > first_half + TREND_DELTA:
                trend.append(TREND_IMPROVING)

        return {
            "best_rep_index": best[0],
            "worst_rep_index": worst[0],
            "trend": trend,
        }


def headline_score(rep: Dict[str, Any]) -> float:
    """Mean of the defined headline metrics of one rep (0 when none are)."""
    values = [rep[key]["value"] for key in HEADLINE_METRICS
              if rep.get(key) and rep[key].get("value") is not None]
    return float(np.mean(values)) if values else 0.0
