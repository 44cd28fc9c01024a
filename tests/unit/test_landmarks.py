"""
Unit tests for the typed landmark model.

Tests key resolution, visibility gating, frame construction and midpoints.
"""

import pytest
from gaitkin.core.landmarks import (
    Landmark,
    LandmarkPoint,
    PoseFrame,
    Side,
    ViewMode,
    hip_midpoint,
    lateral_sign,
    resolve_landmark_key,
)
from gaitkin.exceptions import InvalidFrameError


class TestEnums:
    """Test side and view mode helpers"""

    def test_side_opposite(self):
        assert Side.LEFT.opposite is Side.RIGHT
        assert Side.RIGHT.opposite is Side.LEFT

    def test_side_code(self):
        assert Side.LEFT.code == "L"
        assert Side.RIGHT.code == "R"

    def test_view_mode_planes(self):
        """Dual view covers both planes"""
        assert ViewMode.LATERAL.sagittal and not ViewMode.LATERAL.frontal
        assert ViewMode.FRONTAL.frontal and not ViewMode.FRONTAL.sagittal
        assert ViewMode.DUAL.sagittal and ViewMode.DUAL.frontal

    def test_view_mode_parse(self):
        assert ViewMode.parse("DUAL") is ViewMode.DUAL
        assert ViewMode.parse(ViewMode.FRONTAL) is ViewMode.FRONTAL

        with pytest.raises(ValueError):
            ViewMode.parse("top")


class TestLandmarkKeys:
    """Test string-to-key resolution at the input boundary"""

    @pytest.mark.parametrize("name", ["left_ankle", "leftAnkle", "LEFT_ANKLE"])
    def test_spellings(self, name):
        assert resolve_landmark_key(name) == (Side.LEFT, Landmark.ANKLE)

    def test_multi_word_landmark(self):
        assert resolve_landmark_key("rightFootIndex") == (Side.RIGHT, Landmark.FOOT_INDEX)
        assert resolve_landmark_key("RIGHT_FOOT_INDEX") == (Side.RIGHT, Landmark.FOOT_INDEX)

    def test_unknown_name_raises(self):
        with pytest.raises(InvalidFrameError):
            resolve_landmark_key("leftElbow")


class TestVisibility:
    """Test the visibility gate"""

    def test_threshold_is_inclusive(self):
        point = LandmarkPoint(0.5, 0.5, 0.6)
        assert point.is_visible(0.6)
        assert not point.is_visible(0.61)

    def test_missing_landmark_is_invisible(self):
        frame = PoseFrame(0.0, {})
        point = frame.get(Side.LEFT, Landmark.KNEE)
        assert point.visibility == 0.0
        assert not frame.visible(0.1, (Side.LEFT, Landmark.KNEE))

    def test_visible_requires_every_key(self, frame_factory):
        frame = frame_factory(left_hip=(0.5, 0.5, 0.9), left_knee=(0.5, 0.7, 0.2))
        assert frame.visible(0.6, (Side.LEFT, Landmark.HIP))
        assert not frame.visible(0.6, (Side.LEFT, Landmark.HIP), (Side.LEFT, Landmark.KNEE))

    def test_mean_visibility(self, frame_factory):
        frame = frame_factory(left_hip=(0.5, 0.5, 0.9), left_knee=(0.5, 0.7, 0.3))
        mean = frame.mean_visibility((Side.LEFT, Landmark.HIP), (Side.LEFT, Landmark.KNEE))
        assert abs(mean - 0.6) < 1e-9
        assert frame.mean_visibility() == 0.0


class TestPoseFrame:
    """Test frame construction"""

    def test_from_flat_accepts_dicts_and_tuples(self):
        frame = PoseFrame.from_flat(1.5, {
            'leftAnkle': {'x': 0.1, 'y': 0.9, 'visibility': 0.8},
            'right_ankle': (0.2, 0.85, 0.7),
        })
        assert frame.timestamp == 1.5
        assert frame.get(Side.LEFT, Landmark.ANKLE) == LandmarkPoint(0.1, 0.9, 0.8)
        assert frame.get(Side.RIGHT, Landmark.ANKLE).visibility == 0.7

    def test_from_flat_missing_visibility_defaults_to_zero(self):
        frame = PoseFrame.from_flat(0.0, {'leftKnee': {'x': 0.1, 'y': 0.2}})
        assert frame.get(Side.LEFT, Landmark.KNEE).visibility == 0.0

    def test_from_flat_malformed_point(self):
        with pytest.raises(InvalidFrameError):
            PoseFrame.from_flat(0.0, {'leftKnee': {'x': 0.1}})

    def test_landmarks_are_read_only(self, frame_factory):
        frame = frame_factory(left_hip=(0.5, 0.5, 0.9))
        with pytest.raises(TypeError):
            frame.landmarks[(Side.LEFT, Landmark.KNEE)] = LandmarkPoint(0, 0, 1)

    def test_to_flat_uses_snake_case(self, frame_factory):
        frame = frame_factory(leftFootIndex=(0.3, 0.9, 0.8))
        assert frame.to_flat() == {'left_foot_index': {'x': 0.3, 'y': 0.9, 'visibility': 0.8}}


class TestMidpoints:
    """Test bilateral midpoint helpers"""

    def test_hip_midpoint_takes_weaker_visibility(self, frame_factory):
        frame = frame_factory(left_hip=(0.6, 0.5, 0.9), right_hip=(0.4, 0.7, 0.5))
        mid = hip_midpoint(frame)
        assert abs(mid.x - 0.5) < 1e-9
        assert abs(mid.y - 0.6) < 1e-9
        assert mid.visibility == 0.5

    def test_lateral_sign(self, frame_factory):
        """Left hip at larger x: lateral is +x for left, -x for right"""
        frame = frame_factory(left_hip=(0.6, 0.5, 0.9), right_hip=(0.4, 0.5, 0.9))
        assert lateral_sign(frame, Side.LEFT) == 1.0
        assert lateral_sign(frame, Side.RIGHT) == -1.0

    def test_lateral_sign_coincident_hips(self, frame_factory):
        frame = frame_factory(left_hip=(0.5, 0.5, 0.9), right_hip=(0.5, 0.5, 0.9))
        assert lateral_sign(frame, Side.LEFT) is None
