"""
Integration tests for the command-line interface.
"""

import json
import sys

import pytest
import yaml
from gaitkin import cli
from gaitkin.config_schema import GaitKinConfig
from gaitkin.exceptions import ConfigValidationError


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', ['gaitkin_analyzer', *[str(a) for a in args]])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    return exc_info.value.code


class TestOverrides:
    """Test command-line overrides of the configuration"""

    def test_values_applied(self):
        config = cli.apply_overrides(GaitKinConfig(), view_mode='frontal', distance=10.0, height=175.0,
                                     age=70)

        assert config.general.view_mode == 'frontal'
        assert config.session.distance_m == 10.0
        assert config.session.patient_height_cm == 175.0
        assert config.session.patient_age_years == 70
        assert config.session.duration_s is None

    def test_none_keeps_config(self):
        base = GaitKinConfig.from_dict({'session': {'duration_s': 12.0}})
        assert cli.apply_overrides(base).session.duration_s == 12.0

    def test_invalid_value(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            cli.apply_overrides(GaitKinConfig(), height=400.0)
        assert exc_info.value.details['field'] == 'session.patient_height_cm'


class TestMain:
    """Test the entry point and exit codes"""

    def test_success(self, monkeypatch, capsys, gait_frames, write_csv, tmp_path):
        config_path = tmp_path / 'fast.yaml'
        config_path.write_text(yaml.safe_dump({'export': {'generate_plots': False}}))
        output = tmp_path / 'out'

        code = run_main(monkeypatch, '--input', write_csv(gait_frames), '--output', output,
                        '--config', config_path)
        report = json.loads(capsys.readouterr().out)

        assert code == 0
        assert report['status'] == 'success'
        assert 'results' not in report
        assert set(report['output_files']) == {'json', 'xlsx'}

    def test_missing_input(self, monkeypatch, tmp_path):
        code = run_main(monkeypatch, '--input', tmp_path / 'missing.csv', '--output', tmp_path)
        assert code == 1

    def test_missing_config_file(self, monkeypatch, capsys, gait_frames, write_csv, tmp_path):
        code = run_main(monkeypatch, '--input', write_csv(gait_frames), '--output', tmp_path,
                        '--config', tmp_path / 'absent.yaml')
        assert code == 2
        assert 'Configuration file not found' in capsys.readouterr().err

    def test_invalid_override(self, monkeypatch, gait_frames, write_csv, tmp_path):
        code = run_main(monkeypatch, '--input', write_csv(gait_frames), '--output', tmp_path,
                        '--height', '10')
        assert code == 2

    def test_pipeline_failure(self, monkeypatch, capsys, tmp_path):
        broken = tmp_path / 'walk.txt'
        broken.write_text('timestamp\n0.0\n')

        code = run_main(monkeypatch, '--input', broken, '--output', tmp_path / 'out')
        report = json.loads(capsys.readouterr().out)

        assert code == 2
        assert report['status'] == 'error'
