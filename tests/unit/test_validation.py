"""
Unit tests for input validation and data quality checks.
"""

import pytest
from gaitkin.core.landmarks import Landmark, PoseFrame, Side
from gaitkin.exceptions import DataQualityError, InsufficientDataError, InvalidFrameError
from gaitkin.utils.validation import (
    check_data_quality,
    quality_warnings,
    validate_data_completeness,
    validate_frame_order,
    validate_frames_present,
)


class TestFrameOrder:
    """Test timestamp ordering"""

    def test_non_decreasing(self, gait_frames):
        assert validate_frame_order(gait_frames)

    def test_equal_timestamps_allowed(self):
        assert validate_frame_order([PoseFrame(0.5), PoseFrame(0.5)])

    def test_backwards(self):
        with pytest.raises(InvalidFrameError, match="backwards"):
            validate_frame_order([PoseFrame(1.0), PoseFrame(0.5)])

    def test_nan_timestamp(self):
        with pytest.raises(InvalidFrameError, match="not finite"):
            validate_frame_order([PoseFrame(float('nan'))])


class TestFramesPresent:
    """Test minimum frame count"""

    def test_empty(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            validate_frames_present([])
        assert exc_info.value.details['actual'] == 0

    def test_min_frames(self, gait_frames):
        assert validate_frames_present(gait_frames, min_frames=30)
        with pytest.raises(InsufficientDataError):
            validate_frames_present(gait_frames, min_frames=31)


class TestDataQuality:
    """Test per-landmark visibility ratios"""

    def test_fully_visible(self, gait_frames):
        quality = check_data_quality(gait_frames, 0.7)
        assert len(quality) == 2 * len(Landmark)
        assert all(ratio == 1.0 for ratio in quality.values())

    def test_occluded_knees(self, occluded_knee_frames):
        quality = check_data_quality(occluded_knee_frames, 0.6)
        assert quality['left_knee'] == 0.0
        assert quality['right_knee'] == 0.0
        assert quality['left_hip'] == 1.0

    def test_threshold_inclusive(self, gait_frames):
        assert check_data_quality(gait_frames, 0.95)['left_ankle'] == 1.0

    def test_no_frames(self):
        assert set(check_data_quality([], 0.5).values()) == {0.0}

    def test_warnings(self, occluded_knee_frames):
        warnings = quality_warnings(check_data_quality(occluded_knee_frames, 0.6))
        assert warnings == [
            'left_knee visible in 0.0% of frames',
            'right_knee visible in 0.0% of frames',
        ]

    def test_completeness(self, occluded_knee_frames):
        assert validate_data_completeness(check_data_quality(occluded_knee_frames, 0.6))

    def test_nothing_usable(self, gait_frames):
        quality = check_data_quality(gait_frames, 0.99)
        with pytest.raises(DataQualityError):
            validate_data_completeness(quality)

    def test_sides_reported(self, gait_frames):
        quality = check_data_quality(gait_frames, 0.7)
        assert {f"{s.value}_hip" for s in Side} <= set(quality)
