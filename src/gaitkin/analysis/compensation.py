"""
Compensation pattern detection.

Each pattern is checked independently against its own clinical threshold
on sagittal peaks, frontal metrics, stance timing or trunk position. The
detector holds no state between calls: it reads the recent frame history
from the snapshot it is given.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config_schema import ClassificationSettings
from ..constants import (
    ANTALGIC_ASYMMETRY,
    ANTALGIC_ASYMMETRY_SEVERE,
    COMPENSATION_CONFIDENCE,
    CROUCH_KNEE_FLEXION,
    CROUCH_KNEE_FLEXION_SEVERE,
    ENERGY_IMPACT,
    FALL_RISK_IMPACT,
    MIN_FRAMES_ANTALGIC,
    MIN_FRAMES_TRUNK_BENDING,
    MOBILITY_IMPACT,
    NORMALIZED_TO_METERS,
    PAINFUL_PATTERNS,
    PELVIC_DROP_MODERATE,
    PELVIC_DROP_SEVERE,
    SEVERITY_PENALTIES,
    SEVERITY_WEIGHTS,
    STEP_WIDTH_VERY_WIDE,
    STEP_WIDTH_WIDE,
    STEPPAGE_HIP_FLEXION,
    STEPPAGE_HIP_FLEXION_SEVERE,
    STIFF_KNEE_FLEXION,
    STIFF_KNEE_FLEXION_SEVERE,
    TRUNK_BENDING_DEVIATION,
    TRUNK_BENDING_DEVIATION_SEVERE,
)
from ..core.frame_buffer import FrameBuffer
from ..core.landmarks import Landmark, PoseFrame, Side, ViewMode, hip_midpoint, shoulder_midpoint
from .frontal_metrics import FrontalMetrics
from .kinematic_summary import KinematicSummary
from .spatiotemporal import SpatiotemporalMetrics

logger = logging.getLogger(__name__)


# Static clinical text per pattern: causes, implication, interventions, phase, method
PATTERN_DETAILS = {
    'crouch_gait': (
        ('Hip flexor contracture', 'Knee extensor weakness', 'Flexor spasticity'),
        'Markedly increased energy cost and joint overload',
        ('Hip flexor stretching', 'Quadriceps strengthening', 'Knee extension orthosis'),
        'stance', 'kinematic',
    ),
    'stiff_knee': (
        ('Quadriceps spasticity', 'Quadriceps contracture', 'Knee flexor weakness'),
        'Impaired toe clearance with proximal compensations',
        ('Quadriceps stretching', 'Hamstring strengthening', 'Spasticity management'),
        'swing', 'kinematic',
    ),
    'steppage': (
        ('Dorsiflexor weakness', 'Peroneal nerve palsy', 'Foot drop'),
        'Increased risk of tripping and falls',
        ('Ankle-foot orthosis (AFO)', 'Dorsiflexor strengthening', 'Gait training'),
        'swing', 'kinematic',
    ),
    'trendelenburg': (
        ('Hip abductor weakness', 'Hip dislocation', 'Hip pain'),
        'Lateral instability and lumbar spine overload',
        ('Gluteus medius strengthening', 'Pelvic stabilization exercises', 'Radiological hip assessment'),
        'stance', 'kinematic',
    ),
    'circumduction': (
        ('Stiff knee', 'Functionally long limb', 'Hip flexor weakness'),
        'Compensation for toe clearance, increased energy cost',
        ('Improve knee flexion', 'Hip flexor strengthening', 'Limb length assessment'),
        'swing', 'spatial',
    ),
    'hip_hiking': (
        ('Functionally long limb', 'Hip flexor weakness', 'Joint stiffness'),
        'Energetically costly compensation, possible low back pain',
        ('Limb length assessment', 'Joint mobility work', 'Selective strengthening'),
        'swing', 'kinematic',
    ),
    'wide_base': (
        ('Balance instability', 'Muscle weakness', 'Proprioceptive deficit'),
        'Stability strategy that reduces efficiency',
        ('Balance training', 'Core strengthening', 'Proprioceptive exercises'),
        'both', 'spatial',
    ),
    'antalgic': (
        ('Pain on loading', 'Muscle weakness', 'Joint instability'),
        'Protection of the painful limb with contralateral overload',
        ('Pain management', 'Muscle function training', 'Temporary walking aids'),
        'stance', 'temporal',
    ),
    'lateral_trunk_bending': (
        ('Hip abductor weakness', 'Leg length discrepancy', 'Pain compensation'),
        'Asymmetric spinal loading',
        ('Stabilizer strengthening', 'Postural correction', 'Detailed biomechanical assessment'),
        'stance', 'spatial',
    ),
}


@dataclass(frozen=True)
class CompensationPattern:
    """One detected compensation; side is 'left', 'right' or 'bilateral'"""
    type: str
    side: str
    severity: str
    confidence: float
    description: str
    evidence: Tuple[str, ...] = ()
    biomechanical_cause: Tuple[str, ...] = ()
    clinical_implication: str = ''
    recommended_intervention: Tuple[str, ...] = ()
    phase: str = 'stance'
    detection_method: str = 'kinematic'

    @property
    def weight(self) -> float:
        return SEVERITY_WEIGHTS[self.severity] * self.confidence

    def to_dict(self) -> Dict:
        return {
            'type': self.type,
            'side': self.side,
            'severity': self.severity,
            'confidence': self.confidence,
            'description': self.description,
            'evidence': list(self.evidence),
            'biomechanical_cause': list(self.biomechanical_cause),
            'clinical_implication': self.clinical_implication,
            'recommended_intervention': list(self.recommended_intervention),
            'phase': self.phase,
            'detection_method': self.detection_method,
        }


@dataclass(frozen=True)
class FunctionalImpact:
    energy_expenditure_increase: float = 0.0
    mobility_reduction: float = 0.0
    fall_risk_increase: float = 0.0
    pain_prediction: str = 'low'
    functional_level: str = 'independent'

    def to_dict(self) -> Dict:
        return {
            'energy_expenditure_increase': self.energy_expenditure_increase,
            'mobility_reduction': self.mobility_reduction,
            'fall_risk_increase': self.fall_risk_increase,
            'pain_prediction': self.pain_prediction,
            'functional_level': self.functional_level,
        }


@dataclass(frozen=True)
class CompensationAnalysis:
    detected: Tuple[CompensationPattern, ...] = ()
    compensation_score: float = 100.0
    primary: Optional[CompensationPattern] = None
    secondary: Tuple[CompensationPattern, ...] = ()
    overall_severity: str = 'none'
    functional_impact: FunctionalImpact = field(default_factory=FunctionalImpact)
    recommendations: Tuple[str, ...] = ()

    @property
    def types(self) -> List[str]:
        return [c.type for c in self.detected]

    def has(self, pattern_type: str) -> bool:
        return any(c.type == pattern_type for c in self.detected)

    def to_dict(self) -> Dict:
        return {
            'detected': [c.to_dict() for c in self.detected],
            'compensation_score': self.compensation_score,
            'primary': self.primary.to_dict() if self.primary else None,
            'secondary': [c.to_dict() for c in self.secondary],
            'overall_severity': self.overall_severity,
            'functional_impact': self.functional_impact.to_dict(),
            'recommendations': list(self.recommendations),
        }


def build_pattern(pattern_type: str, side: str, severity: str,
                  description: str, evidence: Sequence[str] = ()) -> CompensationPattern:
    causes, implication, interventions, phase, method = PATTERN_DETAILS[pattern_type]
    return CompensationPattern(
        type=pattern_type,
        side=side,
        severity=severity,
        confidence=COMPENSATION_CONFIDENCE[pattern_type],
        description=description,
        evidence=tuple(evidence),
        biomechanical_cause=causes,
        clinical_implication=implication,
        recommended_intervention=interventions,
        phase=phase,
        detection_method=method,
    )


# ============================================================================
# Scoring
# ============================================================================

def compensation_score(patterns: Sequence[CompensationPattern]) -> float:
    """100 minus severity penalty x confidence per pattern, floored at 0"""
    score = 100.0
    for pattern in patterns:
        score -= SEVERITY_PENALTIES[pattern.severity] * pattern.confidence
    return max(0.0, score)


def rank_patterns(patterns: Sequence[CompensationPattern]) -> Tuple[Optional[CompensationPattern], Tuple[CompensationPattern, ...]]:
    """Primary and secondary patterns ordered by severity weight x confidence"""
    if not patterns:
        return None, ()
    ranked = sorted(patterns, key=lambda p: p.weight, reverse=True)
    return ranked[0], tuple(ranked[1:])


def overall_severity(patterns: Sequence[CompensationPattern]) -> str:
    if not patterns:
        return 'none'
    severe = sum(1 for p in patterns if p.severity == 'severe')
    moderate = sum(1 for p in patterns if p.severity == 'moderate')
    if severe > 0 or moderate > 1:
        return 'severe'
    if moderate > 0:
        return 'moderate'
    return 'mild'


def functional_impact(patterns: Sequence[CompensationPattern]) -> FunctionalImpact:
    energy = sum(ENERGY_IMPACT.get(p.type, 0) * p.confidence for p in patterns)
    mobility = sum(MOBILITY_IMPACT.get(p.type, 0) * p.confidence for p in patterns)
    fall_risk = sum(FALL_RISK_IMPACT.get(p.type, 0) * p.confidence for p in patterns)

    if any(p.type in PAINFUL_PATTERNS for p in patterns):
        pain = 'high'
    elif len(patterns) > 2:
        pain = 'moderate'
    else:
        pain = 'low'

    if mobility > 50 or fall_risk > 40:
        level = 'dependent'
    elif mobility > 25 or fall_risk > 25:
        level = 'assisted'
    else:
        level = 'independent'

    return FunctionalImpact(
        energy_expenditure_increase=min(100.0, energy),
        mobility_reduction=min(100.0, mobility),
        fall_risk_increase=min(100.0, fall_risk),
        pain_prediction=pain,
        functional_level=level,
    )


def collect_interventions(patterns: Sequence[CompensationPattern]) -> Tuple[str, ...]:
    """Interventions of all patterns in detection order, duplicates removed"""
    seen = []
    for pattern in patterns:
        for item in pattern.recommended_intervention:
            if item not in seen:
                seen.append(item)
    return tuple(seen)


# ============================================================================
# Detector
# ============================================================================

class CompensationDetector:
    """
    Detect compensation patterns from already-computed analysis results.

    Sagittal patterns need a lateral or dual view and frontal patterns a
    frontal or dual view. Temporal and spatial patterns are always checked
    but require enough frame history.
    """

    def __init__(self, view_mode: ViewMode = ViewMode.LATERAL,
                 config: Optional[ClassificationSettings] = None):
        self.view_mode = ViewMode.parse(view_mode)
        self.config = config or ClassificationSettings()

    def detect_sagittal(self, summary: Optional[KinematicSummary]) -> List[CompensationPattern]:
        patterns = []
        if summary is None:
            return patterns

        knee_peaks = summary.peak_values.get('max_knee_flex')
        hip_peaks = summary.peak_values.get('max_hip_flex')

        for side in Side:
            knee = knee_peaks.get(side) if knee_peaks else None
            hip = hip_peaks.get(side) if hip_peaks else None

            # knee is the whole-recording peak, not a stance-phase minimum, so a
            # normal swing peak (~60 deg) also crosses the crouch threshold
            if knee is not None and knee > CROUCH_KNEE_FLEXION:
                patterns.append(build_pattern(
                    'crouch_gait', side.value,
                    'severe' if knee > CROUCH_KNEE_FLEXION_SEVERE else 'moderate',
                    f"Crouch gait with excessive knee flexion ({knee:.1f} deg)",
                    [f"Peak {side.value} knee flexion {knee:.1f} deg > {CROUCH_KNEE_FLEXION:.0f} deg"],
                ))
            if knee is not None and knee < STIFF_KNEE_FLEXION:
                patterns.append(build_pattern(
                    'stiff_knee', side.value,
                    'severe' if knee < STIFF_KNEE_FLEXION_SEVERE else 'moderate',
                    f"Stiff knee with reduced flexion ({knee:.1f} deg)",
                    [f"Peak {side.value} knee flexion {knee:.1f} deg < {STIFF_KNEE_FLEXION:.0f} deg"],
                ))
            if hip is not None and hip > STEPPAGE_HIP_FLEXION:
                patterns.append(build_pattern(
                    'steppage', side.value,
                    'severe' if hip > STEPPAGE_HIP_FLEXION_SEVERE else 'moderate',
                    f"Steppage gait with excessive hip flexion ({hip:.1f} deg)",
                    [f"Peak {side.value} hip flexion {hip:.1f} deg > {STEPPAGE_HIP_FLEXION:.0f} deg"],
                ))
        return patterns

    def detect_frontal(self, frontal: Optional[FrontalMetrics]) -> List[CompensationPattern]:
        patterns = []
        if frontal is None or frontal.is_empty:
            return patterns

        drop = frontal.pelvic_drop
        if drop is not None and drop > PELVIC_DROP_MODERATE:
            patterns.append(build_pattern(
                'trendelenburg', 'bilateral',
                'severe' if drop > PELVIC_DROP_SEVERE else 'moderate',
                f"Trendelenburg gait with pelvic drop ({drop:.1f} deg)",
                [f"Pelvic drop {drop:.1f} deg > {PELVIC_DROP_MODERATE:.0f} deg"],
            ))
        if frontal.circumduction:
            patterns.append(build_pattern(
                'circumduction', 'bilateral', 'moderate',
                'Circumduction during swing',
                ['Lateral ankle excursion during swing'],
            ))
        if frontal.hip_hiking:
            patterns.append(build_pattern(
                'hip_hiking', 'bilateral', 'moderate',
                'Hip elevation for toe clearance',
                ['Reversing pelvic obliquity during swing'],
            ))
        width = frontal.step_width
        if width is not None and width > STEP_WIDTH_WIDE:
            patterns.append(build_pattern(
                'wide_base', 'bilateral',
                'severe' if width > STEP_WIDTH_VERY_WIDE else 'moderate',
                f"Wide base of support ({width:.2f} m)",
                [f"Step width {width:.2f} m > {STEP_WIDTH_WIDE:.2f} m"],
            ))
        return patterns

    def detect_temporal(self, window: Sequence[PoseFrame],
                        spatiotemporal: Optional[SpatiotemporalMetrics]) -> List[CompensationPattern]:
        if len(window) < MIN_FRAMES_ANTALGIC or spatiotemporal is None:
            return []

        asymmetry = spatiotemporal.stance_asymmetry_pct
        if asymmetry is None or asymmetry <= ANTALGIC_ASYMMETRY:
            return []

        # The shorter stance is on the protected limb
        left, right = spatiotemporal.stance_time_left, spatiotemporal.stance_time_right
        affected = Side.LEFT if left < right else Side.RIGHT
        return [build_pattern(
            'antalgic', affected.value,
            'severe' if asymmetry > ANTALGIC_ASYMMETRY_SEVERE else 'moderate',
            f"Antalgic gait with stance time asymmetry ({asymmetry:.1f}%)",
            [f"Stance left {left:.2f} s, right {right:.2f} s"],
        )]

    def trunk_lateral_deviation(self, window: Sequence[PoseFrame]) -> Optional[float]:
        """Mean horizontal shoulder-to-hip midpoint offset in meters"""
        threshold = self.config.frontal_visibility_threshold
        keys = [(side, lm) for side in Side for lm in (Landmark.HIP, Landmark.SHOULDER)]
        offsets = [
            abs(shoulder_midpoint(f).x - hip_midpoint(f).x)
            for f in window if f.visible(threshold, *keys)
        ]
        if not offsets:
            return None
        return float(np.mean(offsets)) * NORMALIZED_TO_METERS

    def detect_spatial(self, window: Sequence[PoseFrame]) -> List[CompensationPattern]:
        if len(window) < MIN_FRAMES_TRUNK_BENDING:
            return []

        deviation = self.trunk_lateral_deviation(window)
        if deviation is None or deviation <= TRUNK_BENDING_DEVIATION:
            return []
        return [build_pattern(
            'lateral_trunk_bending', 'bilateral',
            'severe' if deviation > TRUNK_BENDING_DEVIATION_SEVERE else 'moderate',
            f"Excessive lateral trunk bending ({deviation * 100:.1f} cm)",
            [f"Shoulder-hip offset {deviation:.3f} m > {TRUNK_BENDING_DEVIATION:.2f} m"],
        )]

    def detect(self,
               frames: Sequence[PoseFrame],
               summary: Optional[KinematicSummary] = None,
               frontal: Optional[FrontalMetrics] = None,
               spatiotemporal: Optional[SpatiotemporalMetrics] = None) -> CompensationAnalysis:
        """
        Run every applicable pattern check.

        Args:
            frames: Time-ordered frames; only the last `compensation_history` are used
            summary: Kinematic summary (sagittal patterns)
            frontal: Frontal metrics (frontal patterns)
            spatiotemporal: Spatiotemporal metrics (antalgic pattern)

        Returns:
            CompensationAnalysis
        """
        buffer = FrameBuffer(self.config.compensation_history)
        buffer.extend(frames)
        window = buffer.snapshot()

        patterns = []
        if self.view_mode.sagittal:
            patterns.extend(self.detect_sagittal(summary))
        if self.view_mode.frontal:
            patterns.extend(self.detect_frontal(frontal))
        patterns.extend(self.detect_temporal(window, spatiotemporal))
        patterns.extend(self.detect_spatial(window))

        primary, secondary = rank_patterns(patterns)
        analysis = CompensationAnalysis(
            detected=tuple(patterns),
            compensation_score=compensation_score(patterns),
            primary=primary,
            secondary=secondary,
            overall_severity=overall_severity(patterns),
            functional_impact=functional_impact(patterns),
            recommendations=collect_interventions(patterns),
        )
        logger.info(f"Compensations detected: {len(patterns)} "
                    f"(score {analysis.compensation_score:.1f}, severity {analysis.overall_severity})")
        return analysis


def detect_compensations(frames: Sequence[PoseFrame],
                         view_mode: ViewMode = ViewMode.LATERAL,
                         summary: Optional[KinematicSummary] = None,
                         frontal: Optional[FrontalMetrics] = None,
                         spatiotemporal: Optional[SpatiotemporalMetrics] = None,
                         config: Optional[ClassificationSettings] = None) -> CompensationAnalysis:
    return CompensationDetector(view_mode, config).detect(frames, summary, frontal, spatiotemporal)
