"""
Pathology pattern matching.

A weighted multi-criterion scorer compares the observed spatiotemporal
metrics, stance share and detected compensations with reference patterns
for common neurological gait disorders. Criteria whose input is missing
are left out of both the earned and the possible points.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config_schema import ClassificationSettings
from ..constants import (
    BALANCE_COMPENSATIONS,
    MAX_INTERVENTIONS,
    MAX_MONITORING_ITEMS,
    NEUROLOGICAL_CONDITIONS,
    PATHOLOGY_PATTERNS,
    PATHOLOGY_POINTS,
    STANCE_FRACTION_TOLERANCE,
)
from .compensation import CompensationAnalysis
from .cycle_segmenter import GaitCycle
from .spatiotemporal import SpatiotemporalMetrics

logger = logging.getLogger(__name__)

CONDITION_RECOMMENDATIONS = {
    'stroke': (
        'Specialist neurological assessment',
        'Neuromuscular physiotherapy',
        'Assisted gait training',
        'Orthotic assessment for foot drop',
        'Occupational therapy for daily activities',
    ),
    'parkinsons': (
        'Movement disorder specialist assessment',
        'Medication optimization',
        "Parkinson's-specific physiotherapy",
        'Gait training with external cues',
        'Balance and coordination exercises',
    ),
    'cerebral_palsy': (
        'Pediatric orthopedic assessment',
        'Instrumented gait analysis',
        'Intensive neuromuscular physiotherapy',
        'Surgical assessment if indicated',
        'Specialized occupational therapy',
    ),
    'multiple_sclerosis': (
        'Regular neurological follow-up',
        'Fatigue and spasticity management',
        'Adapted physiotherapy',
        'Endurance training',
        'Walking aid assessment',
    ),
    'spinal_cord_injury': (
        'Rehabilitation medicine assessment',
        'Exoskeleton-assisted gait training',
        'Selective muscle strengthening',
        'Spasticity management',
        'Environmental adaptation',
    ),
}

CONDITION_MONITORING = {
    'parkinsons': ('Rigidity and bradykinesia', 'Medication response'),
    'stroke': ('Neurological recovery', 'Spasticity'),
    'multiple_sclerosis': ('Fatigue', 'Symptom progression'),
}

BASE_MONITORING = ('Gait speed', 'Temporal symmetry', 'Compensation pattern')
GENERAL_INTERVENTIONS = (
    'Functional gait training',
    'Targeted muscle strengthening',
    'Balance and coordination training',
)


@dataclass(frozen=True)
class PathologyIndicator:
    condition: str
    name: str
    confidence: float
    severity: str
    evidence: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {
            'condition': self.condition,
            'name': self.name,
            'confidence': self.confidence,
            'severity': self.severity,
            'evidence': list(self.evidence),
            'recommendations': list(self.recommendations),
        }


@dataclass(frozen=True)
class RiskFactors:
    fall_risk: float = 0.0
    mobility_level: str = 'independent'
    progression_risk: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'fall_risk': self.fall_risk,
            'mobility_level': self.mobility_level,
            'progression_risk': self.progression_risk,
        }


@dataclass(frozen=True)
class PathologyAnalysis:
    primary_findings: Tuple[PathologyIndicator, ...] = ()
    differential_diagnosis: Tuple[PathologyIndicator, ...] = ()
    risk_factors: RiskFactors = field(default_factory=RiskFactors)
    intervention_priorities: Tuple[str, ...] = ()
    monitoring_parameters: Tuple[str, ...] = ()
    overall_assessment: str = ''

    def to_dict(self) -> Dict:
        return {
            'primary_findings': [f.to_dict() for f in self.primary_findings],
            'differential_diagnosis': [f.to_dict() for f in self.differential_diagnosis],
            'risk_factors': self.risk_factors.to_dict(),
            'intervention_priorities': list(self.intervention_priorities),
            'monitoring_parameters': list(self.monitoring_parameters),
            'overall_assessment': self.overall_assessment,
        }


@dataclass
class PatternScore:
    """Intermediate match result for one reference pattern"""
    earned: float = 0.0
    possible: float = 0.0
    deviations: List[float] = field(default_factory=list)
    evidence: List[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        return self.earned / self.possible if self.possible > 0 else 0.0

    @property
    def deviation_magnitude(self) -> float:
        return float(np.mean(self.deviations)) if self.deviations else 0.0


def mean_stance_fraction(cycles: Sequence[GaitCycle]) -> Optional[float]:
    """Average stance share (0-1) over the accepted cycles"""
    if not cycles:
        return None
    return float(np.mean([c.stance_percent for c in cycles])) / 100.0


def determine_severity(confidence: float, deviation_magnitude: float) -> str:
    if confidence > 0.8 and deviation_magnitude > 20:
        return 'severe'
    if confidence > 0.6 and deviation_magnitude > 10:
        return 'moderate'
    return 'mild'


def condition_recommendations(condition: str, confidence: float) -> Tuple[str, ...]:
    items = list(CONDITION_RECOMMENDATIONS.get(condition, ()))
    if confidence > 0.8:
        items.insert(0, 'Urgent specialist referral')
    elif confidence > 0.6:
        items.insert(0, 'Specialist assessment recommended')
    return tuple(items)


class PathologyAnalyzer:
    """
    Score each reference pathology pattern against the observed gait.

    Args:
        config: Classification settings (confidence tiers)
    """

    def __init__(self, config: Optional[ClassificationSettings] = None):
        self.config = config or ClassificationSettings()

    @staticmethod
    def _range_criterion(score: PatternScore, label: str, value: Optional[float],
                         bounds: Tuple[float, float], points: int, fmt: str):
        if value is None:
            return
        low, high = bounds
        score.possible += points
        if low <= value <= high:
            score.earned += points
            score.evidence.append(f"Characteristic {label}: {value:{fmt}}")
        score.deviations.append(abs(value - (low + high) / 2))

    def score_pattern(self, pattern: Dict,
                      metrics: Optional[SpatiotemporalMetrics],
                      stance_fraction: Optional[float],
                      compensations: Optional[CompensationAnalysis]) -> PatternScore:
        """
        Match one reference pattern.

        Args:
            pattern: Entry of PATHOLOGY_PATTERNS
            metrics: Observed spatiotemporal metrics
            stance_fraction: Mean stance share of the gait cycles (0-1)
            compensations: Detected compensations

        Returns:
            PatternScore with earned/possible points and evidence
        """
        score = PatternScore()

        if metrics is not None:
            symmetry = (metrics.gait_symmetry_index / 100.0
                        if metrics.gait_symmetry_index is not None else None)
            self._range_criterion(score, 'speed (m/s)', metrics.speed_mps,
                                  pattern['speed'], PATHOLOGY_POINTS['speed'], '.2f')
            self._range_criterion(score, 'cadence (steps/min)', metrics.cadence_spm,
                                  pattern['cadence'], PATHOLOGY_POINTS['cadence'], '.0f')
            self._range_criterion(score, 'symmetry index', symmetry,
                                  pattern['symmetry'], PATHOLOGY_POINTS['symmetry'], '.2f')

        if compensations is not None:
            expected = pattern['compensations']
            matched = [c for c in expected if compensations.has(c)]
            points = PATHOLOGY_POINTS['compensation']
            score.possible += points
            score.earned += points * len(matched) / len(expected)
            if matched:
                score.evidence.append(f"Compensations detected: {', '.join(matched)}")

        expected_stance = pattern['stance_fraction']
        if expected_stance is not None and stance_fraction is not None:
            points = PATHOLOGY_POINTS['stance']
            score.possible += points
            gap = abs(stance_fraction - expected_stance)
            if gap < STANCE_FRACTION_TOLERANCE:
                score.earned += points
                score.evidence.append(f"Characteristic stance duration: {stance_fraction * 100:.1f}%")
            score.deviations.append(gap)

        return score

    @staticmethod
    def assess_risk_factors(metrics: Optional[SpatiotemporalMetrics],
                            compensations: Optional[CompensationAnalysis],
                            findings: Sequence[PathologyIndicator]) -> RiskFactors:
        speed = metrics.speed_mps if metrics else None
        cadence = metrics.cadence_spm if metrics else None
        asymmetry = metrics.stance_asymmetry_pct if metrics else None
        detected = compensations.types if compensations else []

        fall_risk = 0.0
        if speed is not None and speed < 0.6:
            fall_risk += 30
        if cadence is not None and cadence < 80:
            fall_risk += 20
        if asymmetry is not None and asymmetry > 20:
            fall_risk += 25
        fall_risk += 15 * sum(1 for t in detected if t in BALANCE_COMPENSATIONS)

        if (speed is not None and speed < 0.4) or len(detected) > 5:
            mobility = 'dependent'
        elif (speed is not None and speed < 0.8) or len(detected) > 2:
            mobility = 'assisted'
        else:
            mobility = 'independent'

        neurological = [f.confidence for f in findings if f.condition in NEUROLOGICAL_CONDITIONS]
        progression = float(np.mean(neurological)) * 100 if neurological else 0.0

        return RiskFactors(
            fall_risk=min(100.0, fall_risk),
            mobility_level=mobility,
            progression_risk=min(100.0, progression),
        )

    @staticmethod
    def prioritize_interventions(findings: Sequence[PathologyIndicator],
                                 compensations: Optional[CompensationAnalysis]) -> Tuple[str, ...]:
        priorities = []
        for finding in findings:
            if finding.severity == 'severe':
                priorities.append(f"Urgent management of {finding.name}")
            elif finding.severity == 'moderate':
                priorities.append(f"Treatment of {finding.name}")
        if compensations and any(c.severity == 'severe' for c in compensations.detected):
            priorities.append('Correction of critical compensations')
        priorities.extend(GENERAL_INTERVENTIONS)
        return tuple(priorities[:MAX_INTERVENTIONS])

    @staticmethod
    def define_monitoring(findings: Sequence[PathologyIndicator],
                          metrics: Optional[SpatiotemporalMetrics]) -> Tuple[str, ...]:
        parameters = list(BASE_MONITORING)
        for finding in findings:
            parameters.extend(CONDITION_MONITORING.get(finding.condition, ()))
        if metrics is not None and metrics.speed_mps is not None and metrics.speed_mps < 0.6:
            parameters.append('Fall risk')
        unique = list(dict.fromkeys(parameters))
        return tuple(unique[:MAX_MONITORING_ITEMS])

    @staticmethod
    def assessment_text(primary: Sequence[PathologyIndicator],
                        differential: Sequence[PathologyIndicator],
                        risk: RiskFactors) -> str:
        if primary:
            text = "Gait pattern consistent with " + ', '.join(
                f"{f.name} ({f.confidence:.0%})" for f in primary)
        elif differential:
            text = "No primary pathological pattern; differential considerations: " + ', '.join(
                f.name for f in differential)
        else:
            text = "No pathological gait pattern identified"
        return f"{text}. Fall risk {risk.fall_risk:.0f}/100, mobility {risk.mobility_level}."

    def analyze(self,
                metrics: Optional[SpatiotemporalMetrics],
                cycles: Sequence[GaitCycle] = (),
                compensations: Optional[CompensationAnalysis] = None) -> PathologyAnalysis:
        """
        Match all reference patterns and assemble the risk assessment.

        Args:
            metrics: Spatiotemporal metrics (speed, cadence, symmetry)
            cycles: Accepted gait cycles (stance share)
            compensations: Output of the compensation detector

        Returns:
            PathologyAnalysis with findings sorted by confidence
        """
        stance_fraction = mean_stance_fraction(cycles)
        primary, differential = [], []

        for condition, pattern in PATHOLOGY_PATTERNS.items():
            score = self.score_pattern(pattern, metrics, stance_fraction, compensations)
            confidence = score.confidence
            indicator = PathologyIndicator(
                condition=condition,
                name=pattern['name'],
                confidence=confidence,
                severity=determine_severity(confidence, score.deviation_magnitude),
                evidence=tuple(score.evidence),
                recommendations=condition_recommendations(condition, confidence),
            )
            if confidence > self.config.primary_confidence:
                primary.append(indicator)
            elif confidence > self.config.differential_confidence:
                differential.append(indicator)
            logger.debug(f"Pathology {condition}: {score.earned:.1f}/{score.possible:.1f} points")

        primary.sort(key=lambda f: f.confidence, reverse=True)
        differential.sort(key=lambda f: f.confidence, reverse=True)

        risk = self.assess_risk_factors(metrics, compensations, primary)
        analysis = PathologyAnalysis(
            primary_findings=tuple(primary),
            differential_diagnosis=tuple(differential),
            risk_factors=risk,
            intervention_priorities=self.prioritize_interventions(primary, compensations),
            monitoring_parameters=self.define_monitoring(primary, metrics),
            overall_assessment=self.assessment_text(primary, differential, risk),
        )
        logger.info(f"Pathology findings: {len(primary)} primary, {len(differential)} differential")
        return analysis


def analyze_pathology(metrics: Optional[SpatiotemporalMetrics],
                      cycles: Sequence[GaitCycle] = (),
                      compensations: Optional[CompensationAnalysis] = None,
                      config: Optional[ClassificationSettings] = None) -> PathologyAnalysis:
    return PathologyAnalyzer(config).analyze(metrics, cycles, compensations)
