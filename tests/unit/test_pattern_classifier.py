"""
Unit tests for the rule-based pattern classifier.

Tests pattern probabilities, anomaly scoring, fall risk and the
per-pattern status flags.
"""

import pytest
from gaitkin.analysis.compensation import CompensationAnalysis, build_pattern
from gaitkin.analysis.pattern_classifier import (
    PATTERN_LABELS,
    assess_fall_risk,
    classify_patterns,
    detect_anomalies,
    evaluate_pattern_flags,
)
from gaitkin.analysis.spatiotemporal import SpatiotemporalMetrics
from gaitkin.core.landmarks import ViewMode

WALKER = SpatiotemporalMetrics(
    duration_s=22 / 15, steps=4, cadence_spm=4 / (22 / 15) * 60,
    stance_asymmetry_pct=40 / 3, step_time_variability=6.4,
)


def flags_by_id(flags):
    return {f.id: f for f in flags}


def with_compensation(pattern_type, severity):
    return CompensationAnalysis(detected=(build_pattern(pattern_type, 'bilateral', severity, pattern_type),))


class TestClassifyPatterns:
    """Test rule-based probabilities"""

    def test_no_metrics_is_normal(self):
        result = classify_patterns(SpatiotemporalMetrics())
        assert result.primary_pattern == 'normal'
        assert result.probabilities['normal'] == pytest.approx(1.0)

    def test_probabilities_sum_to_one(self):
        result = classify_patterns(WALKER)
        assert set(result.probabilities) == set(PATTERN_LABELS)
        assert sum(result.probabilities.values()) == pytest.approx(1.0)

    def test_antalgic_from_stance_asymmetry(self):
        result = classify_patterns(WALKER)
        antalgic = (40 / 3) / 20
        assert result.primary_pattern == 'antalgic'
        assert result.probabilities['antalgic'] == pytest.approx(antalgic / (antalgic + 0.1))

    def test_parkinsonian(self):
        result = classify_patterns(SpatiotemporalMetrics(step_length_m=0.4, cadence_spm=125.0))
        assert result.primary_pattern == 'parkinsonian'
        assert result.probabilities['parkinsonian'] == pytest.approx(0.8 / 0.9)

    def test_ataxic_capped(self):
        result = classify_patterns(SpatiotemporalMetrics(step_time_variability=40.0))
        assert result.probabilities['ataxic'] == pytest.approx(0.9 / 1.0)


class TestAnomalies:
    """Test out-of-range parameter scoring"""

    def test_walker_anomalies(self):
        anomalies = detect_anomalies(WALKER)
        assert [a.parameter for a in anomalies] == ['stance_asymmetry_pct', 'cadence_spm']

        stance, cadence = anomalies
        assert stance.score == 1.0
        assert stance.severity == 'high'
        assert cadence.score == pytest.approx((WALKER.cadence_spm - 120) / 120)
        assert cadence.severity == 'medium'
        assert 'above normal range' in cadence.description

    def test_below_range(self):
        anomalies = detect_anomalies(SpatiotemporalMetrics(speed_mps=0.4))
        assert anomalies[0].score == pytest.approx(0.6)
        assert anomalies[0].severity == 'high'
        assert 'below normal range' in anomalies[0].description

    def test_small_excursion_ignored(self):
        assert detect_anomalies(SpatiotemporalMetrics(cadence_spm=125.0)) == []

    def test_low_severity(self):
        anomalies = detect_anomalies(SpatiotemporalMetrics(speed_mps=0.85))
        assert anomalies[0].severity == 'low'

    def test_in_range(self):
        metrics = SpatiotemporalMetrics(speed_mps=1.3, cadence_spm=110.0, step_length_m=0.65)
        assert detect_anomalies(metrics) == []


class TestFallRisk:
    """Test fall risk scoring"""

    def test_no_risk(self):
        risk = assess_fall_risk(SpatiotemporalMetrics())
        assert risk.fall_risk == 0.0
        assert risk.recommendation.startswith('Low fall risk')
        assert risk.confidence == 0.7

    def test_walker_risk(self):
        risk = assess_fall_risk(WALKER)
        assert risk.fall_risk == 20.0
        assert risk.recommendation.startswith('Low fall risk')

    def test_high_risk(self):
        metrics = SpatiotemporalMetrics(speed_mps=0.7, step_time_variability=20.0,
                                        step_width_m=0.3, stance_asymmetry_pct=12.0)
        risk = assess_fall_risk(metrics)
        assert risk.fall_risk == 90.0
        assert risk.mobility_impairment == 90.0
        assert risk.recommendation.startswith('High fall risk')

    @pytest.mark.parametrize("speed,variability,expected", [
        (0.9, 20.0, 'Low to moderate risk'),
        (0.7, 20.0, 'Moderate risk'),
    ])
    def test_risk_bands(self, speed, variability, expected):
        metrics = SpatiotemporalMetrics(speed_mps=speed, step_time_variability=variability)
        assert assess_fall_risk(metrics).recommendation.startswith(expected)


class TestPatternFlags:
    """Test per-pattern status flags"""

    def test_walker_flags(self):
        flags = flags_by_id(evaluate_pattern_flags(WALKER, ViewMode.LATERAL, CompensationAnalysis()))

        assert flags['antalgic'].status == 'possible'
        assert flags['trendelenburg'].status == 'not_assessed'
        assert flags['steppage'].status == 'unlikely'
        assert flags['parkinsonian'].status == 'unlikely'
        assert flags['ataxic'].status == 'unlikely'
        assert flags['rule_antalgic'].status == 'likely'
        assert flags['anomaly_0'].label == 'Anomaly: stance_asymmetry_pct'
        assert 'anomaly_1' not in flags

    @pytest.mark.parametrize("asymmetry,status", [
        (None, 'insufficient_data'), (5.0, 'unlikely'), (10.0, 'possible'), (15.0, 'likely'),
    ])
    def test_antalgic_status(self, asymmetry, status):
        flags = flags_by_id(evaluate_pattern_flags(SpatiotemporalMetrics(stance_asymmetry_pct=asymmetry)))
        assert flags['antalgic'].status == status

    def test_antalgic_step_length_note(self):
        metrics = SpatiotemporalMetrics(stance_asymmetry_pct=12.0,
                                        left_step_length_m=0.6, right_step_length_m=0.5)
        flag = flags_by_id(evaluate_pattern_flags(metrics))['antalgic']
        assert 'Step length difference' in flag.rationale

    def test_trendelenburg_needs_frontal_view(self):
        compensations = with_compensation('trendelenburg', 'severe')
        lateral = flags_by_id(evaluate_pattern_flags(WALKER, ViewMode.LATERAL, compensations))
        frontal = flags_by_id(evaluate_pattern_flags(WALKER, ViewMode.FRONTAL, compensations))
        dual = flags_by_id(evaluate_pattern_flags(WALKER, "dual", with_compensation('trendelenburg', 'moderate')))

        assert lateral['trendelenburg'].status == 'not_assessed'
        assert frontal['trendelenburg'].status == 'likely'
        assert dual['trendelenburg'].status == 'possible'

    def test_trendelenburg_without_compensations(self):
        flags = flags_by_id(evaluate_pattern_flags(WALKER, ViewMode.FRONTAL, None))
        assert flags['trendelenburg'].status == 'insufficient_data'
        assert flags['steppage'].status == 'insufficient_data'

    def test_steppage_likely(self):
        flags = flags_by_id(evaluate_pattern_flags(WALKER, compensations=with_compensation('steppage', 'severe')))
        assert flags['steppage'].status == 'likely'

    def test_parkinsonian_possible(self):
        metrics = SpatiotemporalMetrics(step_length_m=0.4, cadence_spm=125.0)
        assert flags_by_id(evaluate_pattern_flags(metrics))['parkinsonian'].status == 'possible'

    def test_ataxic(self):
        short = SpatiotemporalMetrics(duration_s=2.0, steps=3)
        irregular = SpatiotemporalMetrics(duration_s=4.0, steps=8, step_time_variability=20.0)

        assert flags_by_id(evaluate_pattern_flags(short))['ataxic'].status == 'insufficient_data'
        assert flags_by_id(evaluate_pattern_flags(irregular))['ataxic'].status == 'likely'

    def test_flags_serialize(self):
        flag = evaluate_pattern_flags(WALKER)[0]
        assert set(flag.to_dict()) == {'id', 'label', 'status', 'rationale'}
