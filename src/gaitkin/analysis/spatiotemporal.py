"""
Spatiotemporal metrics from heel-strike events and session scalars.

Speed and step length need the walked distance; everything else derives
from event timing. Missing inputs leave the dependent fields as None.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np

from ..constants import (
    GRAVITY,
    LEG_LENGTH_HEIGHT_RATIO,
    MIN_STEP_INTERVAL_SEC,
    STEP_INTERVAL_RANGE,
)
from ..core.landmarks import Side
from ..utils.geometry import relative_asymmetry
from ..utils.signal_processing import coefficient_of_variation
from .event_detector import GaitEvent, GaitEventType
from .frontal_metrics import FrontalMetrics

logger = logging.getLogger(__name__)

MIN_VARIABILITY_INTERVALS = 3


@dataclass(frozen=True)
class SpatiotemporalMetrics:
    duration_s: Optional[float] = None
    steps: int = 0
    speed_mps: Optional[float] = None
    cadence_spm: Optional[float] = None
    step_time_s: Optional[float] = None
    left_step_time_s: Optional[float] = None
    right_step_time_s: Optional[float] = None
    step_length_m: Optional[float] = None
    left_step_length_m: Optional[float] = None
    right_step_length_m: Optional[float] = None
    stride_length_m: Optional[float] = None
    stance_time_left: Optional[float] = None
    stance_time_right: Optional[float] = None
    stance_asymmetry_pct: Optional[float] = None
    step_time_variability: Optional[float] = None
    gait_symmetry_index: Optional[float] = None
    step_width_m: Optional[float] = None
    normalized_speed: Optional[float] = None
    normalized_step_length: Optional[float] = None
    normalized_cadence: Optional[float] = None

    def to_dict(self) -> Dict:
        return asdict(self)


def _mean(values: List[float]) -> Optional[float]:
    return float(np.mean(values)) if values else None


def _positive(value: Optional[float]) -> bool:
    return value is not None and value > 0


def step_time_variability(timestamps: List[float]) -> Optional[float]:
    """CV (%) of inter-event intervals inside the plausible step range"""
    low, high = STEP_INTERVAL_RANGE
    intervals = [b - a for a, b in zip(timestamps, timestamps[1:]) if low < b - a < high]
    return coefficient_of_variation(intervals, MIN_VARIABILITY_INTERVALS)


def gait_symmetry_index(left_step: Optional[float], right_step: Optional[float],
                        left_stance: Optional[float], right_stance: Optional[float]) -> Optional[float]:
    """Mean of step-length and stance-time relative asymmetry, in percent"""
    if not all(_positive(v) for v in (left_step, right_step, left_stance, right_stance)):
        return None
    return (relative_asymmetry(left_step, right_step) + relative_asymmetry(left_stance, right_stance)) / 2


def normalize_metrics(speed: Optional[float], step_length: Optional[float],
                      cadence: Optional[float], height_cm: Optional[float]) -> Dict[str, Optional[float]]:
    """Dimensionless speed, step length and cadence (Hof 1996)"""
    result = {'normalized_speed': None, 'normalized_step_length': None, 'normalized_cadence': None}
    if not _positive(height_cm):
        return result

    leg_length = LEG_LENGTH_HEIGHT_RATIO * height_cm / 100.0
    if speed is not None:
        result['normalized_speed'] = speed / np.sqrt(GRAVITY * leg_length)
    if step_length is not None:
        result['normalized_step_length'] = step_length / leg_length
    if cadence is not None:
        result['normalized_cadence'] = (cadence / 60.0) / np.sqrt(GRAVITY / leg_length)
    return result


def compute_metrics(events: Iterable[GaitEvent],
                    distance_m: Optional[float] = None,
                    duration_s: Optional[float] = None,
                    frontal: Optional[FrontalMetrics] = None,
                    patient_height_cm: Optional[float] = None) -> SpatiotemporalMetrics:
    """
    Compute spatiotemporal metrics from heel strikes.

    Args:
        events: Detected events; only heel strikes are used
        distance_m: Walked distance (meters)
        duration_s: Trial duration (seconds); falls back to the event span
        frontal: Frontal metrics supplying step width
        patient_height_cm: Height for normalized metrics

    Returns:
        SpatiotemporalMetrics
    """
    strikes = sorted((e for e in events if e.type is GaitEventType.HEEL_STRIKE),
                     key=lambda e: e.timestamp)
    steps = len(strikes)

    derived = max(strikes[-1].timestamp - strikes[0].timestamp, 0.0) if strikes else None
    duration = duration_s if duration_s is not None else derived

    speed = distance_m / duration if _positive(distance_m) and _positive(duration) else None
    cadence = steps / duration * 60.0 if _positive(duration) else None

    intervals = {Side.LEFT: [], Side.RIGHT: []}
    for prev, cur in zip(strikes, strikes[1:]):
        delta = cur.timestamp - prev.timestamp
        if delta > MIN_STEP_INTERVAL_SEC:
            intervals[cur.foot].append(delta)

    left_step_time = _mean(intervals[Side.LEFT])
    right_step_time = _mean(intervals[Side.RIGHT])
    step_time = _mean(intervals[Side.LEFT] + intervals[Side.RIGHT])

    def length(step: Optional[float]) -> Optional[float]:
        return speed * step if speed is not None and step is not None else None

    stance = {Side.LEFT: [], Side.RIGHT: []}
    for i, event in enumerate(strikes):
        following = next((c for c in strikes[i + 1:] if c.foot is not event.foot), None)
        if following is None:
            continue
        delta = following.timestamp - event.timestamp
        if delta > 0:
            stance[event.foot].append(delta)

    stance_left = _mean(stance[Side.LEFT])
    stance_right = _mean(stance[Side.RIGHT])
    stance_asymmetry = (relative_asymmetry(stance_left, stance_right)
                        if _positive(stance_left) and _positive(stance_right) else None)

    step_length = length(step_time)
    left_length = length(left_step_time)
    right_length = length(right_step_time)

    metrics = SpatiotemporalMetrics(
        duration_s=duration,
        steps=steps,
        speed_mps=speed,
        cadence_spm=cadence,
        step_time_s=step_time,
        left_step_time_s=left_step_time,
        right_step_time_s=right_step_time,
        step_length_m=step_length,
        left_step_length_m=left_length,
        right_step_length_m=right_length,
        stride_length_m=step_length * 2 if step_length is not None else None,
        stance_time_left=stance_left,
        stance_time_right=stance_right,
        stance_asymmetry_pct=stance_asymmetry,
        step_time_variability=step_time_variability([e.timestamp for e in strikes]),
        gait_symmetry_index=gait_symmetry_index(left_length, right_length, stance_left, stance_right),
        step_width_m=frontal.step_width if frontal is not None else None,
        **normalize_metrics(speed, step_length, cadence, patient_height_cm),
    )
    logger.debug(f"Spatiotemporal metrics from {steps} heel strikes over {duration}s")
    return metrics
