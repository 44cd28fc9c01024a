"""
Bilateral gait cycle comparison: per-side temporal metrics, clinical
deviations, asymmetry indices and an overall assessment.
"""
import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..constants import (
    ASYMMETRY_INTERPRETATION,
    EFFICIENCY_DEVIATION_WEIGHT,
    FAST_CYCLE_DURATION,
    FAST_CYCLE_PENALTY,
    GAIT_PHASES,
    LOADING_RESPONSE_MAX,
    LOADING_RESPONSE_SEVERE,
    MID_STANCE_MIN,
    MIN_CYCLES_COMPARISON,
    NORMAL_STANCE_PERCENT,
    NORMAL_SWING_PERCENT,
    PHASE_ASYMMETRY_MILD,
    PHASE_ASYMMETRY_MODERATE,
    PHASE_ASYMMETRY_SEVERE,
    SEVERITY_PENALTIES,
    SLOW_CYCLE_DURATION,
    SLOW_CYCLE_PENALTY,
    STANCE_PERCENT_RANGE,
    STANCE_PERCENT_SEVERE,
    SWING_PERCENT_MIN,
    SWING_PERCENT_SEVERE,
)
from ..core.landmarks import Side
from ..exceptions import InsufficientDataError
from ..utils.geometry import absolute_asymmetry, relative_asymmetry
from .cycle_segmenter import PHASE_KEYS, GaitCycle, GaitCyclePhase, cycles_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClinicalDeviation:
    phase: str
    deviation: str
    severity: str
    description: str
    clinical_significance: str

    def to_dict(self) -> Dict:
        return {
            'phase': self.phase,
            'deviation': self.deviation,
            'severity': self.severity,
            'description': self.description,
            'clinical_significance': self.clinical_significance,
        }


@dataclass(frozen=True)
class GaitCycleMetrics:
    """Averaged temporal metrics of one side"""
    stride_time: float
    step_time: float
    cadence: float
    stance_percent: float
    swing_percent: float
    double_support: float
    single_support: float
    phase_percents: Dict[str, float]
    clinical_deviations: Tuple[ClinicalDeviation, ...]
    functional_score: float
    gait_efficiency: float
    cycle_count: int

    def to_dict(self) -> Dict:
        return {
            'stride_time': self.stride_time,
            'step_time': self.step_time,
            'cadence': self.cadence,
            'stance_percent': self.stance_percent,
            'swing_percent': self.swing_percent,
            'double_support': self.double_support,
            'single_support': self.single_support,
            'phase_percents': dict(self.phase_percents),
            'clinical_deviations': [d.to_dict() for d in self.clinical_deviations],
            'functional_score': self.functional_score,
            'gait_efficiency': self.gait_efficiency,
            'cycle_count': self.cycle_count,
        }


@dataclass(frozen=True)
class AsymmetryAnalysis:
    step_time_asymmetry: float
    stance_time_asymmetry: float
    swing_time_asymmetry: float
    spatial_asymmetry: float
    temporal_asymmetry: float
    overall_asymmetry_index: float
    classification: str
    clinical_interpretation: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class GaitCycleComparison:
    left: GaitCycleMetrics
    right: GaitCycleMetrics
    asymmetry: AsymmetryAnalysis
    bilateral_deviations: Tuple[ClinicalDeviation, ...]
    overall_assessment: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'left': self.left.to_dict(),
            'right': self.right.to_dict(),
            'asymmetry': self.asymmetry.to_dict(),
            'bilateral_deviations': [d.to_dict() for d in self.bilateral_deviations],
            'overall_assessment': self.overall_assessment,
        }


# ============================================================================
# Averaging
# ============================================================================

def average_cycle(cycles: Sequence[GaitCycle]) -> GaitCycle:
    """
    Average duration and phase percentages of a set of cycles.

    Raises:
        InsufficientDataError: If no cycles are given
    """
    if not cycles:
        raise InsufficientDataError("no gait cycles to average", required=1, actual=0)
    if len(cycles) == 1:
        return cycles[0]

    duration = float(np.mean([c.duration for c in cycles]))
    phases = []
    for i, (key, name, _, _) in enumerate(GAIT_PHASES):
        percent = float(np.mean([c.phases[i].percent_of_cycle for c in cycles]))
        phases.append(GaitCyclePhase(key, name, 0.0, 0.0, 0.0, percent))

    return GaitCycle(
        foot=cycles[0].foot,
        start_time=0.0,
        end_time=duration,
        duration=duration,
        phases=tuple(phases),
    )


# ============================================================================
# Per-side metrics
# ============================================================================

def identify_cycle_deviations(cycle: GaitCycle) -> List[ClinicalDeviation]:
    """Phase-share deviations of one (averaged) cycle"""
    deviations = []
    stance = cycle.stance_percent
    swing = cycle.swing_percent
    loading = cycle.phase_percent('loading_response')
    mid_stance = cycle.phase_percent('mid_stance')
    normal_stance = f"normal: {STANCE_PERCENT_RANGE[0]:.0f}-{STANCE_PERCENT_RANGE[1]:.0f}%"

    if stance < STANCE_PERCENT_RANGE[0]:
        deviations.append(ClinicalDeviation(
            'Stance Phase', 'Reduced stance time',
            'severe' if stance < STANCE_PERCENT_SEVERE[0] else 'moderate',
            f"Stance phase {stance:.1f}% ({normal_stance})",
            'May indicate weakness, pain, or balance issues',
        ))
    elif stance > STANCE_PERCENT_RANGE[1]:
        deviations.append(ClinicalDeviation(
            'Stance Phase', 'Prolonged stance time',
            'severe' if stance > STANCE_PERCENT_SEVERE[1] else 'moderate',
            f"Stance phase {stance:.1f}% ({normal_stance})",
            'May indicate instability, weakness, or a compensatory pattern',
        ))

    if loading > LOADING_RESPONSE_MAX:
        deviations.append(ClinicalDeviation(
            'Loading Response', 'Prolonged loading response',
            'severe' if loading > LOADING_RESPONSE_SEVERE else 'moderate',
            f"Loading response {loading:.1f}% (normal: 0-12%)",
            'May indicate quadriceps weakness or knee instability',
        ))

    if swing < SWING_PERCENT_MIN:
        deviations.append(ClinicalDeviation(
            'Swing Phase', 'Reduced swing time',
            'severe' if swing < SWING_PERCENT_SEVERE else 'moderate',
            f"Swing phase {swing:.1f}% (normal: 38-42%)",
            'May indicate hip flexor weakness or spasticity',
        ))

    if mid_stance < MID_STANCE_MIN:
        deviations.append(ClinicalDeviation(
            'Mid Stance', 'Shortened mid stance', 'moderate',
            f"Mid stance {mid_stance:.1f}% (normal: 12-31%)",
            'May indicate antalgic gait or weight-bearing difficulty',
        ))

    return deviations


def functional_score(cycle: GaitCycle, deviations: Sequence[ClinicalDeviation]) -> float:
    score = 100.0
    for deviation in deviations:
        score -= SEVERITY_PENALTIES[deviation.severity]
    if cycle.duration < FAST_CYCLE_DURATION:
        score -= FAST_CYCLE_PENALTY
    if cycle.duration > SLOW_CYCLE_DURATION:
        score -= SLOW_CYCLE_PENALTY
    return max(0.0, score)


def gait_efficiency(cycle: GaitCycle) -> float:
    error = abs(cycle.stance_percent - NORMAL_STANCE_PERCENT) + abs(cycle.swing_percent - NORMAL_SWING_PERCENT)
    return float(np.clip(100.0 - error * EFFICIENCY_DEVIATION_WEIGHT, 0.0, 100.0))


def compute_cycle_metrics(cycles: Sequence[GaitCycle]) -> GaitCycleMetrics:
    """Average the cycles of one side and derive its temporal metrics"""
    avg = average_cycle(cycles)
    stride_time = avg.duration
    step_time = stride_time / 2
    deviations = identify_cycle_deviations(avg)

    return GaitCycleMetrics(
        stride_time=stride_time,
        step_time=step_time,
        cadence=60.0 / step_time,
        stance_percent=avg.stance_percent,
        swing_percent=avg.swing_percent,
        double_support=avg.double_support_percent,
        single_support=avg.single_support_percent,
        phase_percents={key: avg.phase_percent(key) for key in PHASE_KEYS},
        clinical_deviations=tuple(deviations),
        functional_score=functional_score(avg, deviations),
        gait_efficiency=gait_efficiency(avg),
        cycle_count=len(cycles),
    )


# ============================================================================
# Bilateral analysis
# ============================================================================

def interpret_asymmetry(index: float) -> Tuple[str, str]:
    """(classification, interpretation) for an overall asymmetry index"""
    for upper, label, text in ASYMMETRY_INTERPRETATION:
        if index < upper:
            return label, text
    return ASYMMETRY_INTERPRETATION[-1][1], ASYMMETRY_INTERPRETATION[-1][2]


def analyze_asymmetry(left: GaitCycleMetrics, right: GaitCycleMetrics) -> AsymmetryAnalysis:
    step = relative_asymmetry(left.step_time, right.step_time)
    stance = absolute_asymmetry(left.stance_percent, right.stance_percent)
    swing = absolute_asymmetry(left.swing_percent, right.swing_percent)
    spatial = relative_asymmetry(left.stride_time, right.stride_time)

    temporal = (step + stance + swing) / 3
    overall = (step + stance + swing + spatial) / 4
    label, text = interpret_asymmetry(overall)

    return AsymmetryAnalysis(
        step_time_asymmetry=step,
        stance_time_asymmetry=stance,
        swing_time_asymmetry=swing,
        spatial_asymmetry=spatial,
        temporal_asymmetry=temporal,
        overall_asymmetry_index=overall,
        classification=label,
        clinical_interpretation=text,
    )


def identify_bilateral_deviations(left: GaitCycleMetrics, right: GaitCycleMetrics) -> List[ClinicalDeviation]:
    """Flag phases whose left/right share differs by more than 5 points"""
    deviations = []
    for key, name, _, _ in GAIT_PHASES:
        l_pct, r_pct = left.phase_percents[key], right.phase_percents[key]
        gap = abs(l_pct - r_pct)
        if gap <= PHASE_ASYMMETRY_MILD:
            continue
        if gap > PHASE_ASYMMETRY_SEVERE:
            severity = 'severe'
        elif gap > PHASE_ASYMMETRY_MODERATE:
            severity = 'moderate'
        else:
            severity = 'mild'
        deviations.append(ClinicalDeviation(
            name, 'Bilateral asymmetry', severity,
            f"Left: {l_pct:.1f}%, Right: {r_pct:.1f}% (gap {gap:.1f} points)",
            'Asymmetric pattern may indicate unilateral impairment or compensation',
        ))
    return deviations


def overall_assessment(left: GaitCycleMetrics, right: GaitCycleMetrics,
                       asymmetry: AsymmetryAnalysis,
                       bilateral: Sequence[ClinicalDeviation]) -> Dict:
    """Pattern label, key findings and recommendations"""
    findings = []
    recommendations = []
    mean_score = (left.functional_score + right.functional_score) / 2

    if asymmetry.classification != 'symmetric':
        findings.append(f"{asymmetry.clinical_interpretation} (index {asymmetry.overall_asymmetry_index:.1f}%)")
    for side, metrics in (('Left', left), ('Right', right)):
        for deviation in metrics.clinical_deviations:
            findings.append(f"{side}: {deviation.deviation.lower()} ({deviation.severity})")
    severe_bilateral = [d for d in bilateral if d.severity == 'severe']
    if severe_bilateral:
        findings.append(f"Severe bilateral asymmetry in {len(severe_bilateral)} phase(s)")

    if asymmetry.classification in ('moderate', 'severe'):
        recommendations.append('Unilateral strengthening and balance training')
    if any(d.phase == 'Loading Response' for m in (left, right) for d in m.clinical_deviations):
        recommendations.append('Quadriceps strengthening for loading response control')
    if any(d.phase == 'Swing Phase' for m in (left, right) for d in m.clinical_deviations):
        recommendations.append('Hip flexor strengthening and spasticity assessment')
    if not recommendations:
        recommendations.append('Continue current activity level')

    if mean_score >= 85 and asymmetry.classification == 'symmetric':
        pattern = 'Normal gait cycle'
    elif mean_score >= 60:
        pattern = 'Mildly altered gait cycle'
    else:
        pattern = 'Markedly altered gait cycle'

    return {
        'pattern': pattern,
        'functional_score': mean_score,
        'key_findings': findings,
        'recommendations': recommendations,
    }


def analyze_cycles(cycles: Sequence[GaitCycle]) -> Optional[GaitCycleComparison]:
    """
    Compare left and right cycles.

    Args:
        cycles: Cycles of both feet

    Returns:
        GaitCycleComparison, or None with fewer than two cycles or a missing side
    """
    if len(cycles) < MIN_CYCLES_COMPARISON:
        logger.warning(f"Cycle comparison needs {MIN_CYCLES_COMPARISON} cycles, got {len(cycles)}")
        return None

    left_cycles = cycles_for(cycles, Side.LEFT)
    right_cycles = cycles_for(cycles, Side.RIGHT)
    if not left_cycles or not right_cycles:
        logger.warning("Cycle comparison needs cycles for both feet")
        return None

    left = compute_cycle_metrics(left_cycles)
    right = compute_cycle_metrics(right_cycles)
    asymmetry = analyze_asymmetry(left, right)
    bilateral = identify_bilateral_deviations(left, right)

    return GaitCycleComparison(
        left=left,
        right=right,
        asymmetry=asymmetry,
        bilateral_deviations=tuple(bilateral),
        overall_assessment=overall_assessment(left, right, asymmetry, bilateral),
    )
