"""
Unit tests for pathology pattern matching.

Tests the weighted multi-criterion scorer, confidence tiers and the risk
assessment.
"""

import pytest
from gaitkin.analysis.compensation import CompensationAnalysis, build_pattern
from gaitkin.analysis.cycle_segmenter import GaitCycle, allocate_phases
from gaitkin.analysis.pathology import (
    PathologyAnalyzer,
    PathologyIndicator,
    analyze_pathology,
    condition_recommendations,
    determine_severity,
    mean_stance_fraction,
)
from gaitkin.analysis.spatiotemporal import SpatiotemporalMetrics
from gaitkin.config_schema import ClassificationSettings
from gaitkin.constants import PATHOLOGY_PATTERNS
from gaitkin.core.landmarks import Side


def cycle(toe_off=None):
    return GaitCycle(Side.LEFT, 0.0, 1.0, 1.0, allocate_phases(0.0, 1.0, toe_off))


def compensations(*types):
    return CompensationAnalysis(detected=tuple(
        build_pattern(t, 'bilateral', 'moderate', t) for t in types
    ))


HEMIPARETIC = SpatiotemporalMetrics(speed_mps=0.5, cadence_spm=75.0, gait_symmetry_index=30.0)
HEMIPARETIC_COMPENSATIONS = compensations('circumduction', 'hip_hiking', 'trendelenburg')
HEALTHY = SpatiotemporalMetrics(speed_mps=1.3, cadence_spm=110.0, gait_symmetry_index=2.0)


class TestPatternScore:
    """Test per-pattern scoring"""

    def test_full_stroke_match(self):
        score = PathologyAnalyzer().score_pattern(
            PATHOLOGY_PATTERNS['stroke'], HEMIPARETIC, 0.70, HEMIPARETIC_COMPENSATIONS)

        assert score.possible == 90
        assert score.earned == pytest.approx(90.0)
        assert score.confidence == pytest.approx(1.0)
        assert any('Compensations detected' in e for e in score.evidence)

    def test_missing_inputs_excluded(self):
        metrics = SpatiotemporalMetrics(cadence_spm=75.0)
        score = PathologyAnalyzer().score_pattern(PATHOLOGY_PATTERNS['stroke'], metrics, None, None)

        assert score.possible == 15
        assert score.confidence == pytest.approx(1.0)

    def test_partial_compensation_credit(self):
        score = PathologyAnalyzer().score_pattern(
            PATHOLOGY_PATTERNS['stroke'], None, None, compensations('circumduction'))
        assert score.possible == 25
        assert score.earned == pytest.approx(25 / 3)

    def test_pattern_without_stance_reference(self):
        score = PathologyAnalyzer().score_pattern(PATHOLOGY_PATTERNS['parkinsons'], None, 0.62, None)
        assert score.possible == 0
        assert score.confidence == 0.0

    def test_stance_outside_tolerance(self):
        score = PathologyAnalyzer().score_pattern(PATHOLOGY_PATTERNS['stroke'], None, 0.5, None)
        assert score.possible == 15
        assert score.earned == 0.0


class TestPathologyAnalysis:
    """Test tiering and assembled analysis"""

    def test_hemiparetic_gait(self):
        analysis = analyze_pathology(HEMIPARETIC, [cycle(0.70)], HEMIPARETIC_COMPENSATIONS)

        assert analysis.primary_findings[0].condition == 'stroke'
        assert analysis.primary_findings[0].confidence == pytest.approx(1.0)
        assert analysis.primary_findings[0].recommendations[0] == 'Urgent specialist referral'
        assert 'parkinsons' in {f.condition for f in analysis.differential_diagnosis}
        assert analysis.overall_assessment.startswith('Gait pattern consistent with')

    def test_findings_sorted_by_confidence(self):
        analysis = analyze_pathology(HEMIPARETIC, [cycle(0.70)], HEMIPARETIC_COMPENSATIONS)
        confidences = [f.confidence for f in analysis.primary_findings]
        assert confidences == sorted(confidences, reverse=True)
        assert all(c > 0.7 for c in confidences)

    def test_healthy_gait(self):
        analysis = analyze_pathology(HEALTHY, [cycle()], compensations())

        assert analysis.primary_findings == ()
        assert analysis.differential_diagnosis == ()
        assert analysis.risk_factors.fall_risk == 0.0
        assert analysis.risk_factors.mobility_level == 'independent'
        assert analysis.overall_assessment == (
            "No pathological gait pattern identified. Fall risk 0/100, mobility independent."
        )

    def test_no_inputs(self):
        analysis = analyze_pathology(None)
        assert analysis.primary_findings == ()
        assert analysis.intervention_priorities[0] == 'Functional gait training'

    def test_confidence_tiers_from_settings(self):
        config = ClassificationSettings(primary_confidence=0.95, differential_confidence=0.5)
        analysis = analyze_pathology(HEMIPARETIC, [cycle(0.70)], HEMIPARETIC_COMPENSATIONS, config)
        assert [f.condition for f in analysis.primary_findings] == ['stroke']

    def test_to_dict(self):
        result = analyze_pathology(HEALTHY).to_dict()
        assert set(result) == {
            'primary_findings', 'differential_diagnosis', 'risk_factors',
            'intervention_priorities', 'monitoring_parameters', 'overall_assessment',
        }


class TestRiskFactors:
    """Test fall risk and mobility"""

    def test_accumulated_fall_risk(self):
        metrics = SpatiotemporalMetrics(speed_mps=0.3, cadence_spm=70.0, stance_asymmetry_pct=25.0)
        risk = PathologyAnalyzer.assess_risk_factors(metrics, None, [])
        assert risk.fall_risk == 75.0
        assert risk.mobility_level == 'dependent'
        assert risk.progression_risk == 0.0

    def test_balance_compensations_capped(self):
        metrics = SpatiotemporalMetrics(speed_mps=0.3, cadence_spm=70.0, stance_asymmetry_pct=25.0)
        risk = PathologyAnalyzer.assess_risk_factors(
            metrics, compensations('wide_base', 'steppage'), [])
        assert risk.fall_risk == 100.0

    def test_assisted_mobility(self):
        metrics = SpatiotemporalMetrics(speed_mps=0.7)
        assert PathologyAnalyzer.assess_risk_factors(metrics, None, []).mobility_level == 'assisted'

    def test_progression_from_neurological_findings(self):
        findings = [
            PathologyIndicator('stroke', 'Stroke', 0.8, 'mild'),
            PathologyIndicator('spinal_cord_injury', 'SCI', 0.9, 'mild'),
        ]
        risk = PathologyAnalyzer.assess_risk_factors(None, None, findings)
        assert risk.progression_risk == pytest.approx(80.0)


class TestHelpers:
    """Test severity, recommendations, stance share and monitoring"""

    @pytest.mark.parametrize("confidence,magnitude,expected", [
        (0.9, 25.0, 'severe'),
        (0.7, 15.0, 'moderate'),
        (0.9, 5.0, 'mild'),
        (0.5, 30.0, 'mild'),
    ])
    def test_determine_severity(self, confidence, magnitude, expected):
        assert determine_severity(confidence, magnitude) == expected

    def test_condition_recommendations(self):
        assert condition_recommendations('stroke', 0.9)[0] == 'Urgent specialist referral'
        assert condition_recommendations('stroke', 0.7)[0] == 'Specialist assessment recommended'
        assert condition_recommendations('stroke', 0.5)[0] == 'Specialist neurological assessment'

    def test_mean_stance_fraction(self):
        assert mean_stance_fraction([]) is None
        assert mean_stance_fraction([cycle(), cycle(0.5)]) == pytest.approx(0.56)

    def test_monitoring(self):
        findings = [PathologyIndicator('stroke', 'Stroke', 0.9, 'severe')]
        parameters = PathologyAnalyzer.define_monitoring(findings, SpatiotemporalMetrics(speed_mps=0.5))
        assert parameters == (
            'Gait speed', 'Temporal symmetry', 'Compensation pattern',
            'Neurological recovery', 'Spasticity', 'Fall risk',
        )

    def test_interventions_limited(self):
        findings = [PathologyIndicator(c, c, 0.9, 'severe') for c in ('a', 'b', 'c')]
        priorities = PathologyAnalyzer.prioritize_interventions(
            findings, CompensationAnalysis(detected=(build_pattern('steppage', 'left', 'severe', 'x'),)))

        assert len(priorities) == 5
        assert priorities[0] == 'Urgent management of a'
        assert priorities[3] == 'Correction of critical compensations'
