# client/pose_utils.py

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np

# Pose provider emits the 33-point BlazePose layout
MIN_LANDMARKS = 33


class PoseLandmark:
    """Indices into the 33-point pose landmark list."""
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Landmark":
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            z=float(data.get("z", 0.0)),
            visibility=float(data.get("visibility", 1.0)),
        )


def landmarks_from_dicts(items: Iterable[Dict[str, Any]]) -> List[Landmark]:
    return [Landmark.from_dict(item) for item in items]


def _xy(p) -> Tuple[float, float]:
    if hasattr(p, "x"):
        return p.x, p.y
    return p[0], p[1]


def angle_between(a, b, c) -> float:
    """
    Returns the angle (in degrees) at point b formed by points a-b-c.

    Points can be landmark objects (anything with .x / .y) or (x, y) pairs.
    Result is in [0, 180]. Coincident points give 0.0 instead of failing.
    """
    a = np.array(_xy(a), dtype=float)
    b = np.array(_xy(b), dtype=float)
    c = np.array(_xy(c), dtype=float)

    v1 = a - b
    v2 = c - b

    radians = np.arctan2(v2[1], v2[0]) - np.arctan2(v1[1], v1[0])
    angle = abs(np.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return float(angle)


def midpoint(a, b) -> Tuple[float, float]:
    ax, ay = _xy(a)
    bx, by = _xy(b)
    return (ax + bx) / 2, (ay + by) / 2


def joint_angle(landmarks: Sequence, joints: Tuple[int, int, int]) -> float:
    """Angle at the middle index of a landmark triple."""
    i, j, k = joints
    return angle_between(landmarks[i], landmarks[j], landmarks[k])
