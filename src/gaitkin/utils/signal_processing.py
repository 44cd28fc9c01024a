"""Signal processing utilities for angle series and event timing"""
import numpy as np
from scipy import signal
from typing import Optional, Sequence, Tuple

from ..constants import EPSILON


def apply_savgol_filter(data: np.ndarray, window_length: int = 11, polyorder: int = 3) -> np.ndarray:
    """
    Apply Savitzky-Golay filter for smoothing angle trajectories.

    Args:
        data: 1D array of data points
        window_length: Length of the filter window (must be odd)
        polyorder: Order of the polynomial fit

    Returns:
        Smoothed data array; the input unchanged when too short to filter
    """
    data = np.asarray(data, dtype=float)
    if len(data) < window_length:
        window_length = len(data) if len(data) % 2 == 1 else len(data) - 1
        if window_length < polyorder + 2:
            return data

    return signal.savgol_filter(data, window_length, polyorder, mode='nearest')


def backward_difference(values: np.ndarray, timestamps: np.ndarray) -> np.ndarray:
    """
    Backward finite difference d(values)/dt.

    Index 0 is padded with 0. Where two samples share a timestamp the
    previous derivative is carried forward instead of dividing by zero.

    Args:
        values: 1D array of samples
        timestamps: 1D array of sample times (seconds), same length

    Returns:
        Derivative array of the same length as `values`
    """
    values = np.asarray(values, dtype=float)
    timestamps = np.asarray(timestamps, dtype=float)
    result = np.zeros(len(values))

    for i in range(1, len(values)):
        dt = timestamps[i] - timestamps[i - 1]
        if dt == 0:
            result[i] = result[i - 1]
        else:
            result[i] = (values[i] - values[i - 1]) / dt

    return result


def velocity_and_acceleration(values: np.ndarray, timestamps: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """First and second backward derivatives of a series"""
    velocity = backward_difference(values, timestamps)
    acceleration = backward_difference(velocity, timestamps)
    return velocity, acceleration


def coefficient_of_variation(values: Sequence[float], min_samples: int = 2) -> Optional[float]:
    """
    Coefficient of variation in percent (population SD / mean * 100).

    Returns:
        CV in percent, or None below `min_samples` or for a zero mean
    """
    arr = np.asarray(values, dtype=float)
    arr = arr[~np.isnan(arr)]
    if len(arr) < min_samples:
        return None
    mean = np.mean(arr)
    if abs(mean) < EPSILON:
        return None
    return float(np.std(arr) / abs(mean) * 100.0)


def is_local_maximum(values: Sequence[float]) -> bool:
    """True when the last value is the maximum of the window"""
    if len(values) == 0:
        return False
    return values[-1] >= max(values)


def sign_reversals(values: np.ndarray) -> int:
    """Number of sign changes in a 1D series, ignoring exact zeros"""
    arr = np.asarray(values, dtype=float)
    signs = np.sign(arr[arr != 0])
    if len(signs) < 2:
        return 0
    return int(np.sum(signs[1:] != signs[:-1]))
