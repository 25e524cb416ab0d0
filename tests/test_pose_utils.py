import itertools
import math

import pytest

from formcoach.client.pose_utils import (
    Landmark,
    angle_between,
    joint_angle,
    landmarks_from_dicts,
    midpoint,
)


def test_right_angle():
    assert angle_between((1, 0), (0, 0), (0, 1)) == pytest.approx(90.0)


def test_straight_line_is_180():
    assert angle_between((-1, 0), (0, 0), (1, 0)) == pytest.approx(180.0)


def test_reflex_heading_difference_is_folded():
    b = (math.cos(math.radians(300)), math.sin(math.radians(300)))
    assert angle_between((1, 0), (0, 0), b) == pytest.approx(60.0)


def test_returns_plain_float():
    angle = angle_between([0.2, 0.1], [0.5, 0.5], [0.9, 0.5])
    assert type(angle) is float


def test_accepts_landmark_objects():
    a, v, b = Landmark(0.5, 0.2), Landmark(0.5, 0.5), Landmark(0.8, 0.5)
    assert angle_between(a, v, b) == pytest.approx(90.0)


def test_symmetric_and_bounded():
    points = [(0.1, 0.9), (0.5, 0.5), (0.9, 0.2), (0.3, 0.1), (0.7, 0.8), (0.0, 0.4)]
    for a, v, b in itertools.permutations(points, 3):
        angle = angle_between(a, v, b)
        assert angle == angle_between(b, v, a)
        assert 0.0 <= angle <= 180.0


def test_coincident_points_do_not_raise():
    assert angle_between((0.5, 0.5), (0.5, 0.5), (0.5, 0.5)) == 0.0


def test_midpoint_and_joint_angle():
    assert midpoint((0.0, 0.0), Landmark(1.0, 0.5)) == (0.5, 0.25)
    lms = [(1, 0), (0, 0), (0, 1)]
    assert joint_angle(lms, (0, 1, 2)) == pytest.approx(90.0)


def test_landmarks_from_dicts_defaults():
    lms = landmarks_from_dicts([{"x": 0.1, "y": 0.2}, {"x": 1, "y": 2, "z": -0.3, "visibility": 0.4}])
    assert lms[0] == Landmark(0.1, 0.2, 0.0, 1.0)
    assert lms[1].z == -0.3
    assert lms[1].visibility == 0.4
