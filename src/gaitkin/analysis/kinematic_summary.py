"""
Kinematic summary: range of motion, peaks, peak timing and deviations
against normative sagittal ranges.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..constants import (
    KINEMATIC_DEVIATION_RULES,
    NORMAL_RANGES,
    SEVERITY_PENALTIES,
)
from ..core.landmarks import Side
from ..statistics.aggregator import StatisticsAggregator
from .joint_angles import DetailedKinematics, JointAngleSeries

logger = logging.getLogger(__name__)

PEAK_KEYS = ('max_ankle_df', 'max_ankle_pf', 'max_knee_flex', 'max_hip_ext', 'max_hip_flex')
TIMING_KEYS = ('ankle_df', 'knee_flex', 'hip_ext')


@dataclass(frozen=True)
class SideValues:
    """A left/right pair of optional scalars"""
    left: Optional[float] = None
    right: Optional[float] = None

    def get(self, side: Side) -> Optional[float]:
        return self.left if side is Side.LEFT else self.right

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {'left': self.left, 'right': self.right}


@dataclass(frozen=True)
class KinematicDeviation:
    joint: str
    side: str
    plane: str
    deviation: str
    severity: str
    description: str
    clinical_implication: str
    normal_range: Tuple[float, float]
    observed_value: float

    def to_dict(self) -> Dict:
        return {
            'joint': self.joint,
            'side': self.side,
            'plane': self.plane,
            'deviation': self.deviation,
            'severity': self.severity,
            'description': self.description,
            'clinical_implication': self.clinical_implication,
            'normal_range': {'min': self.normal_range[0], 'max': self.normal_range[1]},
            'observed_value': self.observed_value,
        }


@dataclass(frozen=True)
class KinematicSummary:
    """ROM, peaks and deviations for the sagittal joints; None where no data"""
    ankle_rom: Dict[str, SideValues] = field(default_factory=dict)
    knee_rom: Dict[str, SideValues] = field(default_factory=dict)
    hip_rom: Dict[str, SideValues] = field(default_factory=dict)
    peak_values: Dict[str, SideValues] = field(default_factory=dict)
    peak_timing: Dict[str, SideValues] = field(default_factory=dict)
    deviations: Tuple[KinematicDeviation, ...] = ()
    kinematic_quality_score: float = 100.0

    @classmethod
    def empty(cls) -> 'KinematicSummary':
        blank = SideValues()
        return cls(
            ankle_rom={'dorsiflexion': blank, 'plantarflexion': blank},
            knee_rom={'flexion': blank, 'extension': blank},
            hip_rom={'flexion': blank, 'extension': blank},
            peak_values={key: blank for key in PEAK_KEYS},
            peak_timing={key: blank for key in TIMING_KEYS},
        )

    def to_dict(self) -> Dict:
        def pairs(d):
            return {k: v.to_dict() for k, v in d.items()}
        return {
            'ankle_rom': pairs(self.ankle_rom),
            'knee_rom': pairs(self.knee_rom),
            'hip_rom': pairs(self.hip_rom),
            'peak_values': pairs(self.peak_values),
            'peak_timing': pairs(self.peak_timing),
            'deviations': [d.to_dict() for d in self.deviations],
            'kinematic_quality_score': self.kinematic_quality_score,
        }


def kinematic_quality_score(deviations: Iterable[KinematicDeviation]) -> float:
    """100 minus the severity penalty of each deviation, floored at 0"""
    score = 100.0
    for deviation in deviations:
        score -= SEVERITY_PENALTIES[deviation.severity]
    return max(0.0, score)


def identify_deviations(peak_values: Dict[str, SideValues]) -> List[KinematicDeviation]:
    """
    Compare peak values with the normative minimums for both sides.

    Missing peaks produce no deviation.
    """
    deviations = []
    for joint, range_key, peak_key, severe_cutoff, label, implication in KINEMATIC_DEVIATION_RULES:
        normal = NORMAL_RANGES[joint][range_key]
        pair = peak_values.get(peak_key, SideValues())
        for side in Side:
            observed = pair.get(side)
            if observed is None or observed >= normal[0]:
                continue
            deviations.append(KinematicDeviation(
                joint=joint,
                side=side.value,
                plane='sagittal',
                deviation=label,
                severity='severe' if observed < severe_cutoff else 'moderate',
                description=f"{label}: {observed:.1f} deg (normal {normal[0]:.0f}-{normal[1]:.0f} deg)",
                clinical_implication=implication,
                normal_range=normal,
                observed_value=observed,
            ))
    return deviations


def _positive_peak(series: JointAngleSeries) -> Optional[float]:
    """Largest value, floored at 0; None for an empty series"""
    if series.is_empty:
        return None
    return max(0.0, float(series.angles.max()))


def _negative_peak(series: JointAngleSeries) -> Optional[float]:
    """Magnitude of the most negative value, floored at 0; None for an empty series"""
    if series.is_empty:
        return None
    return max(0.0, -float(series.angles.min()))


class KinematicSummaryBuilder:
    """Build a KinematicSummary from DetailedKinematics"""

    def __init__(self):
        self.aggregator = StatisticsAggregator()

    def _rom(self, pair, high_key: str, low_key: str) -> Dict[str, SideValues]:
        high, low = {}, {}
        for side in Side:
            stats = self.aggregator.compute_series_stats(pair.side(side).angles) if pair else None
            high[side] = stats.max if stats else None
            low[side] = abs(stats.min) if stats else None
        return {
            high_key: SideValues(high[Side.LEFT], high[Side.RIGHT]),
            low_key: SideValues(low[Side.LEFT], low[Side.RIGHT]),
        }

    def _timing(self, pair, use_max: bool) -> SideValues:
        values = {}
        for side in Side:
            series = pair.side(side) if pair else None
            stats = self.aggregator.compute_series_stats(series.angles) if series is not None else None
            values[side] = stats.peak_timing(len(series), use_max) if stats else None
        return SideValues(values[Side.LEFT], values[Side.RIGHT])

    @staticmethod
    def _peaks(pair, func) -> SideValues:
        if pair is None:
            return SideValues()
        return SideValues(func(pair.left), func(pair.right))

    def build(self, kinematics: DetailedKinematics) -> KinematicSummary:
        """
        Summarize the sagittal series.

        Args:
            kinematics: Output of the joint angle engine

        Returns:
            KinematicSummary; the empty variant when no sagittal data exists
        """
        if kinematics.ankle is None and kinematics.knee is None and kinematics.hip is None:
            return KinematicSummary.empty()

        ankle, knee, hip = kinematics.ankle, kinematics.knee, kinematics.hip

        ankle_rom = self._rom(ankle, 'dorsiflexion', 'plantarflexion')
        peak_values = {
            'max_ankle_df': ankle_rom['dorsiflexion'],
            'max_ankle_pf': self._peaks(ankle, _negative_peak),
            'max_knee_flex': self._peaks(knee, lambda s: None if s.is_empty else float(s.angles.max())),
            'max_hip_ext': self._peaks(hip, _negative_peak),
            'max_hip_flex': self._peaks(hip, _positive_peak),
        }
        peak_timing = {
            'ankle_df': self._timing(ankle, use_max=True),
            'knee_flex': self._timing(knee, use_max=True),
            'hip_ext': self._timing(hip, use_max=False),
        }

        deviations = identify_deviations(peak_values)
        score = kinematic_quality_score(deviations)
        if deviations:
            logger.info(f"Kinematic deviations: {len(deviations)}, quality score {score:.0f}")

        return KinematicSummary(
            ankle_rom=ankle_rom,
            knee_rom=self._rom(knee, 'flexion', 'extension'),
            hip_rom=self._rom(hip, 'flexion', 'extension'),
            peak_values=peak_values,
            peak_timing=peak_timing,
            deviations=tuple(deviations),
            kinematic_quality_score=score,
        )


def build_kinematic_summary(kinematics: DetailedKinematics) -> KinematicSummary:
    return KinematicSummaryBuilder().build(kinematics)
