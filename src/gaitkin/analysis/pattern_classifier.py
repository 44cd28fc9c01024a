"""
Rule-based gait pattern classification, anomaly scoring and fall risk
from spatiotemporal metrics.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..constants import SPATIOTEMPORAL_NORMAL_RANGES
from ..core.landmarks import ViewMode
from .compensation import CompensationAnalysis
from .spatiotemporal import SpatiotemporalMetrics

logger = logging.getLogger(__name__)

PATTERN_LABELS = (
    'normal', 'antalgic', 'trendelenburg', 'steppage',
    'parkinsonian', 'ataxic', 'hemiplegic', 'diplegic',
)

PATTERN_STATUSES = ('likely', 'possible', 'unlikely', 'insufficient_data', 'not_assessed')

STATUS_TEXT = {
    'likely': 'Consistent with a marked deviation',
    'possible': 'Moderate changes, correlate clinically',
    'unlikely': 'Within expected variation',
    'insufficient_data': 'Insufficient signal in the recording',
    'not_assessed': 'Requires an additional view or data',
}


@dataclass(frozen=True)
class PatternProbabilities:
    probabilities: Dict[str, float]
    primary_pattern: str

    def to_dict(self) -> Dict:
        return {'probabilities': dict(self.probabilities), 'primary_pattern': self.primary_pattern}


@dataclass(frozen=True)
class AnomalyScore:
    parameter: str
    value: float
    score: float
    severity: str
    description: str

    def to_dict(self) -> Dict:
        return {
            'parameter': self.parameter,
            'value': self.value,
            'score': self.score,
            'severity': self.severity,
            'description': self.description,
        }


@dataclass(frozen=True)
class RiskScore:
    fall_risk: float
    mobility_impairment: float
    recommendation: str
    confidence: float

    def to_dict(self) -> Dict:
        return {
            'fall_risk': self.fall_risk,
            'mobility_impairment': self.mobility_impairment,
            'recommendation': self.recommendation,
            'confidence': self.confidence,
        }


@dataclass(frozen=True)
class PatternFlag:
    id: str
    label: str
    status: str
    rationale: str

    def to_dict(self) -> Dict:
        return {'id': self.id, 'label': self.label, 'status': self.status, 'rationale': self.rationale}


def classify_patterns(metrics: SpatiotemporalMetrics) -> PatternProbabilities:
    """
    Score gait patterns from spatiotemporal rules and normalize to sum to 1.

    Args:
        metrics: Spatiotemporal metrics

    Returns:
        PatternProbabilities with the most probable label as primary
    """
    scores = {label: 0.0 for label in PATTERN_LABELS}
    scores['normal'] = 0.1

    asymmetry = metrics.stance_asymmetry_pct
    if asymmetry is not None and asymmetry > 10:
        scores['antalgic'] = min(1.0, asymmetry / 20)

    step_length, cadence = metrics.step_length_m, metrics.cadence_spm
    if step_length is not None and cadence is not None and step_length < 0.5 and cadence > 110:
        scores['parkinsonian'] = 0.8

    variability = metrics.step_time_variability
    if variability is not None and variability > 15:
        scores['ataxic'] = min(0.9, variability / 25)

    total = sum(scores.values())
    probabilities = {label: score / total for label, score in scores.items()}
    primary = max(PATTERN_LABELS, key=lambda label: probabilities[label])
    return PatternProbabilities(probabilities=probabilities, primary_pattern=primary)


def detect_anomalies(metrics: SpatiotemporalMetrics) -> List[AnomalyScore]:
    """Out-of-range parameters sorted by descending anomaly score"""
    anomalies = []
    for parameter, (low, high) in SPATIOTEMPORAL_NORMAL_RANGES.items():
        value = getattr(metrics, parameter)
        if value is None:
            continue

        if value < low:
            score = (low - value) / low if low > 0 else 0.0
            description = f"{parameter} below normal range ({low}-{high})"
        elif value > high:
            score = (value - high) / high
            description = f"{parameter} above normal range ({low}-{high})"
        else:
            continue

        if score <= 0.1:
            continue
        if score > 0.5:
            severity = 'high'
        elif score > 0.2:
            severity = 'medium'
        else:
            severity = 'low'
        anomalies.append(AnomalyScore(parameter, float(value), min(1.0, score), severity, description))

    return sorted(anomalies, key=lambda a: a.score, reverse=True)


def assess_fall_risk(metrics: SpatiotemporalMetrics) -> RiskScore:
    risk = 0.0
    speed = metrics.speed_mps
    if speed is not None:
        if speed < 0.8:
            risk += 30
        elif speed < 1.0:
            risk += 15
    if metrics.step_time_variability is not None and metrics.step_time_variability > 15:
        risk += 25
    if metrics.step_width_m is not None and metrics.step_width_m > 0.25:
        risk += 15
    if metrics.stance_asymmetry_pct is not None and metrics.stance_asymmetry_pct > 10:
        risk += 20
    risk = min(100.0, risk)

    if risk > 70:
        recommendation = 'High fall risk. Urgent clinical assessment recommended.'
    elif risk > 40:
        recommendation = 'Moderate risk. Consider physiotherapy and a balance assessment.'
    elif risk > 20:
        recommendation = 'Low to moderate risk. Regular monitoring recommended.'
    else:
        recommendation = 'Low fall risk. Maintain regular physical activity.'

    return RiskScore(fall_risk=risk, mobility_impairment=risk,
                     recommendation=recommendation, confidence=0.7)


# ============================================================================
# Pattern flags
# ============================================================================

def _antalgic_flag(metrics: SpatiotemporalMetrics) -> PatternFlag:
    asymmetry = metrics.stance_asymmetry_pct
    if asymmetry is None:
        return PatternFlag('antalgic', 'Antalgic pattern', 'insufficient_data',
                           'Not enough events to estimate stance asymmetry.')
    if asymmetry >= 15:
        status = 'likely'
    elif asymmetry >= 10:
        status = 'possible'
    else:
        status = 'unlikely'

    rationale = f"Stance asymmetry estimated at {asymmetry:.1f}%. {STATUS_TEXT[status]}."
    left, right = metrics.left_step_length_m, metrics.right_step_length_m
    if left is not None and right is not None and abs(left - right) > 0.08:
        rationale += f" Step length difference ~{abs(left - right):.2f} m."
    return PatternFlag('antalgic', 'Antalgic pattern', status, rationale)


def _trendelenburg_flag(view_mode: ViewMode,
                        compensations: Optional[CompensationAnalysis]) -> PatternFlag:
    if not view_mode.frontal:
        return PatternFlag('trendelenburg', 'Trendelenburg', 'not_assessed',
                           'A frontal view is needed to assess pelvic drop.')
    if compensations is None:
        return PatternFlag('trendelenburg', 'Trendelenburg', 'insufficient_data',
                           'Frontal compensations were not evaluated.')
    found = [c for c in compensations.detected if c.type == 'trendelenburg']
    if not found:
        return PatternFlag('trendelenburg', 'Trendelenburg', 'unlikely',
                           'No relevant pelvic drop observed.')
    status = 'likely' if found[0].severity == 'severe' else 'possible'
    return PatternFlag('trendelenburg', 'Trendelenburg', status, found[0].description)


def _steppage_flag(compensations: Optional[CompensationAnalysis]) -> PatternFlag:
    if compensations is None:
        return PatternFlag('steppage', 'Steppage', 'insufficient_data',
                           'Sagittal compensations were not evaluated.')
    found = [c for c in compensations.detected if c.type == 'steppage']
    if not found:
        return PatternFlag('steppage', 'Steppage', 'unlikely', 'No clear signs of foot drop.')
    status = 'likely' if any(c.severity == 'severe' for c in found) else 'possible'
    return PatternFlag('steppage', 'Steppage', status, found[0].description)


def _parkinsonian_flag(metrics: SpatiotemporalMetrics) -> PatternFlag:
    step_length, cadence = metrics.step_length_m, metrics.cadence_spm
    if step_length is not None and cadence is not None and step_length < 0.5 and cadence > 110:
        return PatternFlag('parkinsonian', 'Parkinsonian', 'possible',
                           f"Step length {step_length:.2f} m and cadence {cadence:.0f} spm. "
                           "Reduced arm swing not confirmed.")
    return PatternFlag('parkinsonian', 'Parkinsonian', 'unlikely',
                       'Cadence and step length within reference ranges.')


def _ataxic_flag(metrics: SpatiotemporalMetrics) -> PatternFlag:
    if not metrics.duration_s or metrics.steps < 4:
        return PatternFlag('ataxic', 'Ataxic', 'insufficient_data',
                           'More cycles are needed to assess timing variability.')
    variability = metrics.step_time_variability
    if variability is not None and variability > 15:
        return PatternFlag('ataxic', 'Ataxic', 'likely',
                           f"Step time variability {variability:.1f}%.")
    return PatternFlag('ataxic', 'Ataxic', 'unlikely', 'Regular step timing without marked oscillation.')


def evaluate_pattern_flags(metrics: SpatiotemporalMetrics,
                           view_mode: ViewMode = ViewMode.LATERAL,
                           compensations: Optional[CompensationAnalysis] = None,
                           probabilities: Optional[PatternProbabilities] = None,
                           anomalies: Optional[Sequence[AnomalyScore]] = None) -> List[PatternFlag]:
    """
    Build the per-pattern status flags.

    Args:
        metrics: Spatiotemporal metrics
        view_mode: Camera view; trendelenburg needs a frontal component
        compensations: Detected compensations
        probabilities: Rule-based pattern probabilities; computed when omitted
        anomalies: Anomaly scores; computed when omitted

    Returns:
        List of PatternFlag
    """
    view_mode = ViewMode.parse(view_mode)
    flags = [
        _antalgic_flag(metrics),
        _trendelenburg_flag(view_mode, compensations),
        _steppage_flag(compensations),
        _parkinsonian_flag(metrics),
        _ataxic_flag(metrics),
    ]

    if probabilities is None:
        probabilities = classify_patterns(metrics)
    for pattern, probability in probabilities.probabilities.items():
        if pattern == 'normal' or probability <= 0.3:
            continue
        status = 'likely' if probability > 0.7 else 'possible' if probability > 0.4 else 'unlikely'
        flags.append(PatternFlag(
            f"rule_{pattern}", f"Pattern {pattern} (rule-based)", status,
            f"Rule-based probability {probability * 100:.1f}% for pattern {pattern}.",
        ))

    if anomalies is None:
        anomalies = detect_anomalies(metrics)
    for index, anomaly in enumerate(anomalies[:3]):
        if anomaly.severity == 'high':
            flags.append(PatternFlag(
                f"anomaly_{index}", f"Anomaly: {anomaly.parameter}", 'likely',
                f"{anomaly.description} (score: {anomaly.score:.2f})",
            ))

    logger.debug(f"Pattern flags: {[(f.id, f.status) for f in flags]}")
    return flags
