"""
Clinical validation against normative population data.

Each session parameter is expressed as a z-score and percentile against
age-matched norms, and each sagittal kinematic peak against its normal
range. Conditions suggested by the pathology matcher are then checked
against the value ranges typical for that condition.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from ..constants import (
    COMPATIBILITY_CONFIDENCE,
    COMPATIBILITY_DEFAULT_CONFIDENCE,
    COMPATIBILITY_OUT_OF_RANGE_CONFIDENCE,
    DEFAULT_AGE_GROUP,
    DEFAULT_PATIENT_AGE,
    ELDERLY_AGE,
    KINEMATIC_NORMATIVE_PEAKS,
    NORMAL_RANGES,
    NORMATIVE_DATA,
    PATHOLOGY_REFERENCE_RANGES,
    PERCENTILE_BANDS,
    Z_OUTSIDE,
    Z_WELL_OUTSIDE,
)
from ..core.landmarks import Side
from .cycle_segmenter import GaitCycle
from .kinematic_summary import KinematicSummary
from .pathology import PathologyAnalysis
from .spatiotemporal import SpatiotemporalMetrics

logger = logging.getLogger(__name__)

# classification -> (clinical significance, recommendation)
CLASSIFICATION_TEXT = {
    'well_below': ('Value significantly below the population norm',
                   'Detailed clinical assessment recommended'),
    'below': ('Value below the normal range',
              'Monitor progression and consider intervention'),
    'normal': ('Value within the normal range for the population',
               'Continue routine monitoring'),
    'above': ('Value above the normal range',
              'Within normal variability or compensation'),
    'well_above': ('Value significantly above the norm',
                   'Assess contributing factors'),
}
CRITICAL_CLASSIFICATIONS = ('well_below', 'well_above')

REPORT_REFERENCES = (
    'Perry J, Burnfield JM. Gait Analysis: Normal and Pathological Function. 2nd ed. 2010',
    'Bohannon RW, Andrews AW. Normal walking speed: a descriptive meta-analysis. Physiotherapy. 2011',
    'Plotnik M, Giladi N, Hausdorff JM. A new measure for quantifying the bilateral '
    'coordination of human gait. Exp Brain Res. 2007',
)


@dataclass(frozen=True)
class NormativeReference:
    parameter: str
    age_group: str
    mean: float
    sd: float
    unit: str
    reference: str


@dataclass(frozen=True)
class ClinicalInterpretation:
    parameter: str
    value: float
    z_score: float
    percentile: int
    percentile_band: str
    classification: str
    clinical_significance: str
    recommendation: str
    unit: str = ''
    reference: str = ''
    side: Optional[str] = None

    @property
    def within_normal(self) -> bool:
        return self.classification == 'normal'

    @property
    def is_critical(self) -> bool:
        return self.classification in CRITICAL_CLASSIFICATIONS

    @property
    def label(self) -> str:
        return f"{self.parameter} ({self.side})" if self.side else self.parameter

    def to_dict(self) -> Dict:
        return {
            'parameter': self.parameter,
            'side': self.side,
            'value': self.value,
            'unit': self.unit,
            'z_score': self.z_score,
            'percentile': self.percentile,
            'percentile_band': self.percentile_band,
            'classification': self.classification,
            'within_normal': self.within_normal,
            'clinical_significance': self.clinical_significance,
            'recommendation': self.recommendation,
            'reference': self.reference,
        }


@dataclass(frozen=True)
class PathologyCompatibility:
    condition: str
    parameter: str
    value: float
    compatible: bool
    severity: str
    confidence: float
    explanation: str

    def to_dict(self) -> Dict:
        return {
            'condition': self.condition,
            'parameter': self.parameter,
            'value': self.value,
            'compatible': self.compatible,
            'severity': self.severity,
            'confidence': self.confidence,
            'explanation': self.explanation,
        }


@dataclass(frozen=True)
class ClinicalValidation:
    age_group: str
    interpretations: Tuple[ClinicalInterpretation, ...] = ()
    compatibility: Tuple[PathologyCompatibility, ...] = ()
    report: str = ''

    @property
    def abnormal(self) -> List[ClinicalInterpretation]:
        return [i for i in self.interpretations if not i.within_normal]

    @property
    def critical_findings(self) -> List[ClinicalInterpretation]:
        return [i for i in self.interpretations if i.is_critical]

    def to_dict(self) -> Dict:
        return {
            'age_group': self.age_group,
            'parameters_evaluated': len(self.interpretations),
            'parameters_outside_normal': len(self.abnormal),
            'interpretations': [i.to_dict() for i in self.interpretations],
            'critical_findings': [i.label for i in self.critical_findings],
            'pathology_compatibility': [c.to_dict() for c in self.compatibility],
            'report': self.report,
        }


# ============================================================================
# Normative lookup
# ============================================================================

def age_group(age: Optional[int]) -> str:
    """Normative age group; under-20s use the young adult norms"""
    age = DEFAULT_PATIENT_AGE if age is None else age
    if age < 40:
        return '20-39'
    if age < 60:
        return '40-59'
    if age < 80:
        return '60-79'
    return '80+'


def normative_reference(parameter: str, age: Optional[int] = None) -> Optional[NormativeReference]:
    """
    Norms for one parameter.

    Falls back from the patient's age group to the all-ages entry and then
    to the young adult group. Returns None for a parameter without norms.
    """
    data = NORMATIVE_DATA.get(parameter)
    if data is None:
        return None

    group = age_group(age)
    groups = data['groups']
    for key in (group, 'all', DEFAULT_AGE_GROUP):
        if key in groups:
            mean, sd = groups[key]
            return NormativeReference(parameter, key, mean, sd, data['unit'], data['reference'])
    return None


def z_to_percentile(z_score: float) -> int:
    return int(round(float(stats.norm.cdf(z_score)) * 100))


def percentile_band(percentile: float) -> str:
    for upper, label in PERCENTILE_BANDS:
        if percentile < upper:
            return label
    return '>P95'


def classify_z_score(z_score: float) -> str:
    if z_score < -Z_WELL_OUTSIDE:
        return 'well_below'
    if z_score < -Z_OUTSIDE:
        return 'below'
    if z_score > Z_WELL_OUTSIDE:
        return 'well_above'
    if z_score > Z_OUTSIDE:
        return 'above'
    return 'normal'


def interpret_value(parameter: str, value: float, mean: float, sd: float,
                    unit: str = '', reference: str = '',
                    side: Optional[str] = None) -> ClinicalInterpretation:
    z_score = (value - mean) / sd
    percentile = z_to_percentile(z_score)
    classification = classify_z_score(z_score)
    significance, recommendation = CLASSIFICATION_TEXT[classification]
    return ClinicalInterpretation(
        parameter=parameter,
        value=float(value),
        z_score=float(z_score),
        percentile=percentile,
        percentile_band=percentile_band(percentile),
        classification=classification,
        clinical_significance=significance,
        recommendation=recommendation,
        unit=unit,
        reference=reference,
        side=side,
    )


def interpret_parameter(parameter: str, value: float,
                        age: Optional[int] = None) -> Optional[ClinicalInterpretation]:
    """
    Interpret one session parameter against age-matched norms.

    Args:
        parameter: Key of NORMATIVE_DATA (e.g. 'walking_speed')
        value: Observed value in the parameter's unit
        age: Patient age in years (young adult norms when None)

    Returns:
        ClinicalInterpretation, or None when no norms exist for the parameter
    """
    norm = normative_reference(parameter, age)
    if norm is None:
        logger.debug(f"No normative data for {parameter}")
        return None
    return interpret_value(parameter, value, norm.mean, norm.sd, norm.unit, norm.reference)


def interpret_kinematic_peak(parameter: str, value: float,
                             side: Optional[str] = None) -> ClinicalInterpretation:
    """Read a sagittal peak against its normal range taken as mean +/- 1 SD"""
    _, joint, motion = KINEMATIC_NORMATIVE_PEAKS[parameter]
    low, high = NORMAL_RANGES[joint][motion]
    return interpret_value(parameter, value, (low + high) / 2, (high - low) / 2,
                           'deg', 'Perry & Burnfield, 2010', side)


def is_clinically_significant(parameter: str, value: float, age: Optional[int] = None) -> bool:
    interpretation = interpret_parameter(parameter, value, age)
    return interpretation is not None and interpretation.is_critical


# ============================================================================
# Pathology compatibility
# ============================================================================

def assess_pathology_compatibility(parameter: str, value: float,
                                   condition: str) -> PathologyCompatibility:
    """
    Check whether a value fits the range typical for a suspected condition.

    Severity bands are tried severe first; a value inside the typical range
    that falls in no band is a mild match at the default confidence.
    """
    ref = PATHOLOGY_REFERENCE_RANGES.get(condition, {}).get(parameter)
    if ref is None:
        return PathologyCompatibility(
            condition, parameter, value, False, 'not_applicable', 0.0,
            f"No reference data for {parameter} in {condition}",
        )

    low, high = ref['typical']
    if not low <= value <= high:
        return PathologyCompatibility(
            condition, parameter, value, False, 'not_applicable',
            COMPATIBILITY_OUT_OF_RANGE_CONFIDENCE,
            f"Value outside the typical range for {condition}",
        )

    severity, confidence = 'mild', COMPATIBILITY_DEFAULT_CONFIDENCE
    for level in ('severe', 'moderate', 'mild'):
        band_low, band_high = ref[level]
        if band_low <= value <= band_high:
            severity, confidence = level, COMPATIBILITY_CONFIDENCE[level]
            break

    return PathologyCompatibility(
        condition, parameter, value, True, severity, confidence,
        f"{ref['significance']}. Severity: {severity}.",
    )


# ============================================================================
# Session parameters
# ============================================================================

def step_time_asymmetry(metrics: Optional[SpatiotemporalMetrics]) -> Optional[float]:
    """Left/right step time difference as % of their mean"""
    if metrics is None or metrics.left_step_time_s is None or metrics.right_step_time_s is None:
        return None
    mean = (metrics.left_step_time_s + metrics.right_step_time_s) / 2
    if mean <= 0:
        return None
    return abs(metrics.left_step_time_s - metrics.right_step_time_s) / mean * 100.0


def session_parameters(metrics: Optional[SpatiotemporalMetrics],
                       cycles: Sequence[GaitCycle] = ()) -> Dict[str, float]:
    """Observed values keyed like NORMATIVE_DATA; missing values are left out"""
    values = {}
    if metrics is not None:
        values['walking_speed'] = metrics.speed_mps
        values['cadence'] = metrics.cadence_spm
        values['step_length'] = metrics.step_length_m
        values['step_time_asymmetry'] = step_time_asymmetry(metrics)
    if cycles:
        values['stance_phase'] = float(np.mean([c.stance_percent for c in cycles]))
        values['swing_phase'] = float(np.mean([c.swing_percent for c in cycles]))
        values['double_support'] = float(np.mean([c.double_support_percent for c in cycles]))
    return {k: v for k, v in values.items() if v is not None}


def generate_clinical_report(interpretations: Sequence[ClinicalInterpretation],
                             compatibility: Sequence[PathologyCompatibility] = ()) -> str:
    """Markdown summary of the normative interpretation"""
    abnormal = [i for i in interpretations if not i.within_normal]
    lines = [
        '## Evidence-based clinical interpretation',
        '',
        f"**Parameters evaluated:** {len(interpretations)}",
        f"**Parameters outside normal range:** {len(abnormal)}",
        '',
    ]

    critical = [i for i in interpretations if i.is_critical]
    if critical:
        lines.append('### Critical findings')
        for finding in critical:
            lines.append(f"- **{finding.label}:** {finding.value:.2f} {finding.unit} "
                         f"(z-score {finding.z_score:.2f})")
            lines.append(f"  {finding.clinical_significance}")
            lines.append(f"  *Recommendation: {finding.recommendation}*")
        lines.append('')

    lines.append('### Detailed analysis')
    for item in interpretations:
        lines.extend([
            f"**{item.label}** [{item.classification}]",
            f"- Value: {item.value:.2f} {item.unit}",
            f"- Percentile: {item.percentile} ({item.percentile_band})",
            f"- Z-score: {item.z_score:.2f}",
            f"- Significance: {item.clinical_significance}",
            f"- Recommendation: {item.recommendation}",
            '',
        ])

    compatible = [c for c in compatibility if c.compatible]
    if compatible:
        lines.append('### Condition compatibility')
        for c in compatible:
            lines.append(f"- {c.condition} / {c.parameter}: {c.severity} "
                         f"(confidence {c.confidence:.1f}). {c.explanation}")
        lines.append('')

    lines.append('### References')
    lines.extend(f"- {ref}" for ref in REPORT_REFERENCES)
    return '\n'.join(lines)


class ClinicalValidator:
    """
    Interpret a session against normative data.

    Args:
        age: Patient age in years; selects the normative age group
    """

    def __init__(self, age: Optional[int] = None):
        self.age = age

    def interpret_session(self, metrics: Optional[SpatiotemporalMetrics],
                          cycles: Sequence[GaitCycle] = ()) -> List[ClinicalInterpretation]:
        interpretations = []
        for parameter, value in session_parameters(metrics, cycles).items():
            interpretation = interpret_parameter(parameter, value, self.age)
            if interpretation is not None:
                interpretations.append(interpretation)
        return interpretations

    @staticmethod
    def interpret_kinematics(summary: Optional[KinematicSummary]) -> List[ClinicalInterpretation]:
        interpretations = []
        if summary is None:
            return interpretations
        for parameter, (peak_key, _, _) in KINEMATIC_NORMATIVE_PEAKS.items():
            pair = summary.peak_values.get(peak_key)
            if pair is None:
                continue
            for side in Side:
                value = pair.get(side)
                if value is not None:
                    interpretations.append(interpret_kinematic_peak(parameter, value, side.value))
        return interpretations

    def suspected_conditions(self, pathology: Optional[PathologyAnalysis]) -> List[str]:
        conditions = []
        if pathology is not None:
            findings = pathology.primary_findings + pathology.differential_diagnosis
            conditions.extend(f.condition for f in findings)
        if self.age is not None and self.age >= ELDERLY_AGE:
            conditions.append('elderly')
        return [c for c in dict.fromkeys(conditions) if c in PATHOLOGY_REFERENCE_RANGES]

    def validate(self,
                 metrics: Optional[SpatiotemporalMetrics],
                 cycles: Sequence[GaitCycle] = (),
                 summary: Optional[KinematicSummary] = None,
                 pathology: Optional[PathologyAnalysis] = None) -> ClinicalValidation:
        """
        Interpret every available parameter and check suspected conditions.

        Args:
            metrics: Spatiotemporal metrics
            cycles: Accepted gait cycles (phase shares)
            summary: Kinematic summary (sagittal peaks)
            pathology: Pathology findings whose conditions are checked

        Returns:
            ClinicalValidation with interpretations, compatibility and report
        """
        interpretations = self.interpret_session(metrics, cycles) + self.interpret_kinematics(summary)

        values = session_parameters(metrics, cycles)
        compatibility = [
            assess_pathology_compatibility(parameter, values[parameter], condition)
            for condition in self.suspected_conditions(pathology)
            for parameter in PATHOLOGY_REFERENCE_RANGES[condition]
            if parameter in values
        ]

        validation = ClinicalValidation(
            age_group=age_group(self.age),
            interpretations=tuple(interpretations),
            compatibility=tuple(compatibility),
            report=generate_clinical_report(interpretations, compatibility),
        )
        logger.info(f"Clinical validation: {len(validation.abnormal)}/{len(interpretations)} "
                    f"parameters outside normal, {len(validation.critical_findings)} critical")
        return validation


def validate_clinical(metrics: Optional[SpatiotemporalMetrics],
                      cycles: Sequence[GaitCycle] = (),
                      summary: Optional[KinematicSummary] = None,
                      pathology: Optional[PathologyAnalysis] = None,
                      age: Optional[int] = None) -> ClinicalValidation:
    return ClinicalValidator(age).validate(metrics, cycles, summary, pathology)
