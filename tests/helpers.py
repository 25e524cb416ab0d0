import math

from formcoach.client.pose_utils import Landmark, PoseLandmark as P

# Front-on standing pose in normalized image coords
_BASE_POINTS = {
    P.NOSE: (0.50, 0.10),
    P.LEFT_SHOULDER: (0.45, 0.25),
    P.RIGHT_SHOULDER: (0.55, 0.25),
    P.LEFT_ELBOW: (0.42, 0.40),
    P.RIGHT_ELBOW: (0.58, 0.40),
    P.LEFT_WRIST: (0.40, 0.55),
    P.RIGHT_WRIST: (0.60, 0.55),
    P.LEFT_HIP: (0.46, 0.55),
    P.RIGHT_HIP: (0.54, 0.55),
    P.LEFT_KNEE: (0.46, 0.72),
    P.RIGHT_KNEE: (0.54, 0.72),
    P.LEFT_ANKLE: (0.46, 0.90),
    P.RIGHT_ANKLE: (0.54, 0.90),
}


def base_landmarks():
    return [Landmark(*_BASE_POINTS.get(i, (0.5, 0.5))) for i in range(33)]


def with_angle(landmarks, triple, angle, length=0.1):
    """Moves the two outer points of a triple so the vertex angle is `angle`."""
    a, v, b = triple
    out = list(landmarks)
    vx, vy = out[v].x, out[v].y
    rad = math.radians(angle)
    out[a] = Landmark(vx, vy - length)
    out[b] = Landmark(vx + length * math.sin(rad), vy - length * math.cos(rad))
    return out


def pushup_frame(left, right=None):
    lms = with_angle(base_landmarks(), (P.LEFT_SHOULDER, P.LEFT_ELBOW, P.LEFT_WRIST), left)
    return with_angle(lms, (P.RIGHT_SHOULDER, P.RIGHT_ELBOW, P.RIGHT_WRIST),
                      left if right is None else right)


def squat_frame(left, right=None):
    lms = with_angle(base_landmarks(), (P.LEFT_HIP, P.LEFT_KNEE, P.LEFT_ANKLE), left)
    return with_angle(lms, (P.RIGHT_HIP, P.RIGHT_KNEE, P.RIGHT_ANKLE),
                      left if right is None else right)


def situp_frame(left, right=None):
    lms = with_angle(base_landmarks(), (P.LEFT_SHOULDER, P.LEFT_HIP, P.LEFT_KNEE), left)
    return with_angle(lms, (P.RIGHT_SHOULDER, P.RIGHT_HIP, P.RIGHT_KNEE),
                      left if right is None else right)


def to_dicts(landmarks):
    return [{"x": p.x, "y": p.y, "z": p.z, "visibility": p.visibility} for p in landmarks]


def make_rep(index, score, duration=1.0):
    rep = {
        key: {"value": score, "note": ""}
        for key in ("depth", "alignment", "symmetry", "stability")
    }
    for key in ("knee_tracking", "torso_angle", "rom", "control"):
        rep[key] = {"value": None, "note": ""}
    rep.update({"rep_index": index, "duration_sec": duration, "events": []})
    return rep


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
