"""
Unit tests for signal processing utilities.

Tests smoothing, backward differences, variability and sign analysis.
"""

import numpy as np
from gaitkin.utils.signal_processing import (
    apply_savgol_filter,
    backward_difference,
    coefficient_of_variation,
    is_local_maximum,
    sign_reversals,
    velocity_and_acceleration,
)


class TestSavgolFilter:
    """Test Savitzky-Golay smoothing"""

    def test_reduces_noise(self, random_noise):
        t = np.linspace(0, 1, 30)
        clean = 30 * np.sin(2 * np.pi * t)
        noisy = clean + random_noise * 1000

        smoothed = apply_savgol_filter(noisy, window_length=7, polyorder=2)

        assert len(smoothed) == len(noisy)
        interior = slice(5, -5)
        assert np.std((smoothed - clean)[interior]) < np.std((noisy - clean)[interior])

    def test_preserves_polynomial(self):
        """Away from the edges a quadratic is reproduced exactly with polyorder >= 2"""
        x = np.arange(20, dtype=float)
        data = 0.5 * x ** 2 - x + 3
        smoothed = apply_savgol_filter(data, 5, 2)
        np.testing.assert_allclose(smoothed[2:-2], data[2:-2], atol=1e-8)

    def test_short_series_shrinks_window(self):
        data = np.array([1.0, 2.0, 4.0, 3.0, 5.0, 4.0])
        result = apply_savgol_filter(data, window_length=11, polyorder=2)
        assert len(result) == len(data)

    def test_too_short_returned_unchanged(self):
        data = np.array([1.0, 5.0, 2.0])
        np.testing.assert_array_equal(apply_savgol_filter(data, 11, 3), data)


class TestBackwardDifference:
    """Test first-order backward derivative"""

    def test_linear_signal(self):
        timestamps = np.array([0.0, 0.1, 0.2, 0.3])
        values = np.array([0.0, 1.0, 2.0, 3.0])
        np.testing.assert_allclose(backward_difference(values, timestamps), [0.0, 10.0, 10.0, 10.0])

    def test_first_sample_is_zero(self):
        result = backward_difference(np.array([5.0, 6.0]), np.array([0.0, 1.0]))
        assert result[0] == 0.0

    def test_zero_dt_carries_previous(self):
        timestamps = np.array([0.0, 1.0, 1.0, 2.0])
        values = np.array([0.0, 2.0, 7.0, 8.0])
        result = backward_difference(values, timestamps)
        assert result[2] == result[1] == 2.0
        assert result[3] == 1.0

    def test_irregular_spacing(self):
        timestamps = np.array([0.0, 0.5, 2.5])
        values = np.array([0.0, 1.0, 3.0])
        np.testing.assert_allclose(backward_difference(values, timestamps), [0.0, 2.0, 1.0])

    def test_acceleration(self):
        timestamps = np.arange(5, dtype=float)
        values = timestamps ** 2
        velocity, acceleration = velocity_and_acceleration(values, timestamps)
        np.testing.assert_allclose(velocity, [0.0, 1.0, 3.0, 5.0, 7.0])
        np.testing.assert_allclose(acceleration, [0.0, 1.0, 2.0, 2.0, 2.0])


class TestVariability:
    """Test coefficient of variation"""

    def test_constant_values(self):
        assert coefficient_of_variation([0.5, 0.5, 0.5]) == 0.0

    def test_population_sd(self):
        # mean 2, population SD 1
        assert abs(coefficient_of_variation([1.0, 3.0]) - 50.0) < 1e-9

    def test_below_min_samples(self):
        assert coefficient_of_variation([1.0, 2.0], min_samples=3) is None

    def test_zero_mean(self):
        assert coefficient_of_variation([-1.0, 1.0]) is None

    def test_nan_ignored(self):
        assert coefficient_of_variation([1.0, np.nan, 3.0]) == coefficient_of_variation([1.0, 3.0])


class TestSignAnalysis:
    """Test extremum and sign-change helpers"""

    def test_local_maximum(self):
        assert is_local_maximum([1.0, 3.0, 5.0])
        assert is_local_maximum([5.0, 5.0])
        assert not is_local_maximum([1.0, 5.0, 3.0])
        assert not is_local_maximum([])

    def test_sign_reversals(self):
        assert sign_reversals(np.array([1.0, -1.0, 2.0, -3.0])) == 3
        assert sign_reversals(np.array([1.0, 0.0, 2.0])) == 0
        assert sign_reversals(np.array([1.0])) == 0
