"""
Unit tests for normative clinical validation.

Tests age-matched norm lookup, z-score and percentile interpretation,
condition compatibility and the session-level validator.
"""

import pytest
from gaitkin.analysis.clinical_validation import (
    ClinicalValidation,
    ClinicalValidator,
    age_group,
    assess_pathology_compatibility,
    classify_z_score,
    generate_clinical_report,
    interpret_kinematic_peak,
    interpret_parameter,
    is_clinically_significant,
    normative_reference,
    percentile_band,
    session_parameters,
    step_time_asymmetry,
    validate_clinical,
    z_to_percentile,
)
from gaitkin.analysis.cycle_segmenter import GaitCycle, allocate_phases
from gaitkin.analysis.kinematic_summary import KinematicSummary, SideValues
from gaitkin.analysis.pathology import PathologyAnalysis, PathologyIndicator
from gaitkin.analysis.spatiotemporal import SpatiotemporalMetrics
from gaitkin.core.landmarks import Side
from gaitkin.export.xlsx_exporter import XLSXExporter


def cycle():
    return GaitCycle(Side.LEFT, 0.0, 1.0, 1.0, allocate_phases(0.0, 1.0, None))


HEALTHY = SpatiotemporalMetrics(speed_mps=1.3, cadence_spm=110.0, step_length_m=0.65,
                                left_step_time_s=0.56, right_step_time_s=0.54)


class TestNormativeLookup:
    """Test age groups and reference selection"""

    @pytest.mark.parametrize("age,group", [
        (None, '20-39'), (15, '20-39'), (45, '40-59'), (70, '60-79'), (85, '80+'),
    ])
    def test_age_group(self, age, group):
        assert age_group(age) == group

    def test_age_specific_norms(self):
        norm = normative_reference('walking_speed', 85)
        assert (norm.age_group, norm.mean, norm.sd) == ('80+', 0.97, 0.21)

    def test_all_ages_entry(self):
        assert normative_reference('stance_phase', 70).age_group == 'all'

    def test_missing_group_falls_back_to_young_adults(self):
        norm = normative_reference('cadence', 45)
        assert norm.age_group == '20-39'
        assert norm.mean == 113.0

    def test_unknown_parameter(self):
        assert normative_reference('knee_valgus') is None
        assert interpret_parameter('knee_valgus', 1.0) is None


class TestInterpretation:
    """Test z-score, percentile and classification"""

    @pytest.mark.parametrize("z,expected", [
        (-2.5, 'well_below'), (-1.5, 'below'), (-1.0, 'normal'), (0.0, 'normal'),
        (1.0, 'normal'), (1.5, 'above'), (2.5, 'well_above'),
    ])
    def test_classify_z_score(self, z, expected):
        assert classify_z_score(z) == expected

    def test_percentiles(self):
        assert z_to_percentile(0.0) == 50
        assert z_to_percentile(1.0) == 84
        assert z_to_percentile(-2.0) == 2

    @pytest.mark.parametrize("percentile,band", [
        (2, '<P5'), (5, 'P5-P25'), (50, 'P25-P75'), (84, 'P75-P95'), (97, '>P95'),
    ])
    def test_percentile_band(self, percentile, band):
        assert percentile_band(percentile) == band

    def test_slow_walker(self):
        result = interpret_parameter('walking_speed', 0.9)

        assert result.z_score == pytest.approx(-3.0)
        assert result.classification == 'well_below'
        assert result.percentile_band == '<P5'
        assert not result.within_normal
        assert result.is_critical
        assert result.unit == 'm/s'

    def test_age_changes_interpretation(self):
        young = interpret_parameter('walking_speed', 1.35)
        old = interpret_parameter('walking_speed', 1.35, age=85)

        assert young.classification == 'normal'
        assert old.z_score == pytest.approx(0.38 / 0.21)
        assert old.classification == 'above'

    def test_clinical_significance(self):
        assert is_clinically_significant('cadence', 80.0)
        assert not is_clinically_significant('cadence', 110.0)
        assert not is_clinically_significant('knee_valgus', 80.0)

    def test_kinematic_peak(self):
        reduced = interpret_kinematic_peak('peak_knee_flexion', 40.0, 'left')
        typical = interpret_kinematic_peak('peak_knee_flexion', 65.0, 'right')

        assert reduced.z_score == pytest.approx(-5.0)
        assert reduced.label == 'peak_knee_flexion (left)'
        assert typical.percentile == 50
        assert typical.within_normal


class TestPathologyCompatibility:
    """Test condition range matching"""

    @pytest.mark.parametrize("speed,severity,confidence", [
        (0.3, 'severe', 0.9),
        (0.4, 'severe', 0.9),
        (0.5, 'moderate', 0.7),
        (0.7, 'mild', 0.6),
    ])
    def test_stroke_speed_bands(self, speed, severity, confidence):
        result = assess_pathology_compatibility('walking_speed', speed, 'stroke')

        assert result.compatible
        assert (result.severity, result.confidence) == (severity, confidence)
        assert result.explanation.startswith('Walking speed strongly correlates')

    def test_outside_typical_range(self):
        result = assess_pathology_compatibility('walking_speed', 1.2, 'stroke')
        assert not result.compatible
        assert (result.severity, result.confidence) == ('not_applicable', 0.1)

    def test_no_reference(self):
        result = assess_pathology_compatibility('cadence', 80.0, 'stroke')
        assert not result.compatible
        assert result.confidence == 0.0


class TestSessionParameters:
    """Test parameter extraction from metrics and cycles"""

    def test_step_time_asymmetry(self):
        metrics = SpatiotemporalMetrics(left_step_time_s=0.55, right_step_time_s=0.45)
        assert step_time_asymmetry(metrics) == pytest.approx(20.0)
        assert step_time_asymmetry(SpatiotemporalMetrics(left_step_time_s=0.5)) is None
        assert step_time_asymmetry(None) is None

    def test_missing_values_skipped(self):
        assert session_parameters(SpatiotemporalMetrics(speed_mps=1.2)) == {'walking_speed': 1.2}

    def test_cycle_phase_shares(self):
        values = session_parameters(None, [cycle(), cycle()])
        assert values == pytest.approx({'stance_phase': 62.0, 'swing_phase': 38.0,
                                        'double_support': 22.0})


class TestClinicalValidator:
    """Test session validation"""

    def test_healthy_session(self):
        validation = validate_clinical(HEALTHY, [cycle()])

        assert validation.age_group == '20-39'
        assert len(validation.interpretations) == 7
        assert validation.abnormal == []
        assert validation.compatibility == ()

    def test_kinematic_peaks_included(self):
        summary = KinematicSummary(peak_values={'max_knee_flex': SideValues(40.0, None)})
        validation = ClinicalValidator().validate(None, summary=summary)

        assert [i.label for i in validation.interpretations] == ['peak_knee_flexion (left)']
        assert validation.to_dict()['critical_findings'] == ['peak_knee_flexion (left)']

    def test_suspected_condition_checked(self):
        metrics = SpatiotemporalMetrics(speed_mps=0.5, left_step_time_s=0.6, right_step_time_s=0.5)
        pathology = PathologyAnalysis(primary_findings=(
            PathologyIndicator('stroke', 'Post-stroke hemiparetic gait', 0.8, 'moderate'),
        ))
        validation = validate_clinical(metrics, pathology=pathology)

        assert [(c.condition, c.parameter, c.compatible, c.severity)
                for c in validation.compatibility] == [
            ('stroke', 'walking_speed', True, 'moderate'),
            ('stroke', 'step_time_asymmetry', True, 'moderate'),
        ]

    def test_elderly_reference_by_age(self):
        metrics = SpatiotemporalMetrics(speed_mps=0.9)

        older = validate_clinical(metrics, age=70)
        younger = validate_clinical(metrics, age=50)

        assert [(c.condition, c.severity) for c in older.compatibility] == [('elderly', 'moderate')]
        assert older.age_group == '60-79'
        assert younger.compatibility == ()

    def test_to_dict(self):
        result = validate_clinical(SpatiotemporalMetrics(cadence_spm=80.0)).to_dict()

        assert result['parameters_evaluated'] == 1
        assert result['parameters_outside_normal'] == 1
        assert result['interpretations'][0]['within_normal'] is False
        assert result['critical_findings'] == ['cadence']


class TestClinicalReport:
    """Test the markdown interpretation report"""

    def test_report_sections(self):
        slow = interpret_parameter('walking_speed', 0.5)
        compatibility = [assess_pathology_compatibility('walking_speed', 0.5, 'stroke')]
        report = generate_clinical_report([slow], compatibility)

        assert '**Parameters evaluated:** 1' in report
        assert '### Critical findings' in report
        assert '### Condition compatibility' in report
        assert 'Bohannon RW' in report

    def test_no_critical_section_when_normal(self):
        report = generate_clinical_report([interpret_parameter('cadence', 113.0)])
        assert '### Critical findings' not in report
        assert '**Parameters outside normal range:** 0' in report


class TestFindingsSheet:
    """Test normative rows in the workbook findings table"""

    def test_only_abnormal_rows(self):
        validation = ClinicalValidation(age_group='20-39', interpretations=(
            interpret_parameter('walking_speed', 0.9),
            interpret_parameter('cadence', 113.0),
        ))
        df = XLSXExporter.create_findings_sheet(None, None, None, None, validation)

        assert list(df['source']) == ['normative']
        assert df.iloc[0]['finding'] == 'walking_speed'
        assert df.iloc[0]['severity'] == 'well_below'
