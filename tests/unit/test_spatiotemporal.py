"""
Unit tests for spatiotemporal metrics.

Tests cadence, step and stance timing, speed-derived lengths,
variability, symmetry and height normalization.
"""

import pytest
import numpy as np
from gaitkin.analysis.event_detector import GaitEvent, GaitEventType
from gaitkin.analysis.frontal_metrics import FrontalMetrics
from gaitkin.analysis.spatiotemporal import (
    SpatiotemporalMetrics,
    compute_metrics,
    gait_symmetry_index,
    normalize_metrics,
    step_time_variability,
)
from gaitkin.core.landmarks import Side

L, R = Side.LEFT, Side.RIGHT


def strikes(*pairs):
    return [GaitEvent(GaitEventType.HEEL_STRIKE, foot, t, 0.9) for foot, t in pairs]


WALK = strikes((L, 1 / 3), (R, 0.8), (L, 4 / 3), (R, 1.8))


class TestComputeMetrics:
    """Test metrics from heel strikes"""

    def test_no_events(self):
        metrics = compute_metrics([])
        assert metrics.steps == 0
        assert metrics.duration_s is None
        assert metrics.cadence_spm is None
        assert metrics.step_time_s is None

    def test_timing_from_event_span(self):
        metrics = compute_metrics(WALK)

        assert metrics.steps == 4
        assert metrics.duration_s == pytest.approx(1.8 - 1 / 3)
        assert metrics.cadence_spm == pytest.approx(4 / (1.8 - 1 / 3) * 60)
        assert metrics.left_step_time_s == pytest.approx(0.8 / 1.5)
        assert metrics.right_step_time_s == pytest.approx(0.7 / 1.5)
        assert metrics.step_time_s == pytest.approx(np.mean([0.7, 0.8, 0.7]) / 1.5)

    def test_stance_times_and_asymmetry(self):
        metrics = compute_metrics(WALK)

        assert metrics.stance_time_left == pytest.approx(0.7 / 1.5)
        assert metrics.stance_time_right == pytest.approx(0.8 / 1.5)
        assert metrics.stance_asymmetry_pct == pytest.approx(40.0 / 3)

    def test_no_speed_without_distance(self):
        metrics = compute_metrics(WALK)
        assert metrics.speed_mps is None
        assert metrics.step_length_m is None
        assert metrics.gait_symmetry_index is None

    def test_speed_and_lengths(self):
        metrics = compute_metrics(WALK, distance_m=2.2, duration_s=2.0)

        assert metrics.duration_s == 2.0
        assert metrics.cadence_spm == pytest.approx(120.0)
        assert metrics.speed_mps == pytest.approx(1.1)
        assert metrics.step_length_m == pytest.approx(1.1 * metrics.step_time_s)
        assert metrics.stride_length_m == pytest.approx(2 * metrics.step_length_m)
        assert metrics.left_step_length_m == pytest.approx(1.1 * 0.8 / 1.5)

    def test_symmetry_index_with_distance(self):
        metrics = compute_metrics(WALK, distance_m=2.2, duration_s=2.0)
        expected = (100 * (0.1 / 0.75) + 100 * (0.1 / 0.75)) / 2
        assert metrics.gait_symmetry_index == pytest.approx(expected)

    def test_duplicate_strikes_ignored_for_steps(self):
        events = strikes((L, 0.0), (R, 0.02), (L, 0.5))
        metrics = compute_metrics(events)
        assert metrics.left_step_time_s == pytest.approx(0.48)
        assert metrics.right_step_time_s is None

    def test_non_strike_events_ignored(self):
        extra = [GaitEvent(GaitEventType.TOE_OFF, L, 0.5, 0.85)]
        assert compute_metrics(WALK + extra).steps == 4

    def test_step_width_from_frontal(self):
        frontal = FrontalMetrics(step_width=0.12, compensation_score=100.0)
        assert compute_metrics(WALK, frontal=frontal).step_width_m == 0.12

    def test_single_strike_has_zero_span(self):
        metrics = compute_metrics(strikes((L, 1.0)))
        assert metrics.duration_s == 0.0
        assert metrics.cadence_spm is None

    def test_to_dict(self):
        result = SpatiotemporalMetrics().to_dict()
        assert result['steps'] == 0
        assert 'normalized_cadence' in result


class TestVariability:
    """Test step time variability"""

    def test_needs_three_intervals(self):
        assert step_time_variability([0.0, 0.5, 1.0]) is None

    def test_regular_steps(self):
        assert step_time_variability([0.0, 0.5, 1.0, 1.5]) == pytest.approx(0.0)

    def test_implausible_intervals_excluded(self):
        # 0.05 s and 4 s gaps are outside (0.1, 3.0)
        timestamps = [0.0, 0.5, 0.55, 1.05, 1.55, 5.55]
        assert step_time_variability(timestamps) == pytest.approx(0.0)

    def test_irregular_steps(self):
        timestamps = np.cumsum([0.0, 0.4, 0.6, 0.4, 0.6])
        assert step_time_variability(list(timestamps)) == pytest.approx(20.0)


class TestSymmetryAndNormalization:
    """Test symmetry index and dimensionless metrics"""

    def test_symmetric_gait(self):
        assert gait_symmetry_index(0.6, 0.6, 0.5, 0.5) == 0.0

    def test_missing_input(self):
        assert gait_symmetry_index(None, 0.6, 0.5, 0.5) is None
        assert gait_symmetry_index(0.6, 0.6, 0.0, 0.5) is None

    def test_normalization(self):
        result = normalize_metrics(1.2, 0.6, 110.0, 170.0)
        leg = 0.53 * 1.7

        assert result['normalized_speed'] == pytest.approx(1.2 / np.sqrt(9.81 * leg))
        assert result['normalized_step_length'] == pytest.approx(0.6 / leg)
        assert result['normalized_cadence'] == pytest.approx((110.0 / 60) / np.sqrt(9.81 / leg))

    def test_no_height(self):
        result = normalize_metrics(1.2, 0.6, 110.0, None)
        assert all(v is None for v in result.values())

    def test_partial_inputs(self):
        result = normalize_metrics(None, None, 100.0, 180.0)
        assert result['normalized_speed'] is None
        assert result['normalized_cadence'] is not None
