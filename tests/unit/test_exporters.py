"""
Unit tests for JSON, Excel and plot export.
"""

import json
from enum import Enum

import numpy as np
import pandas as pd
import pytest
from gaitkin.analysis.cycle_segmenter import segment_cycles
from gaitkin.analysis.event_detector import detect_session_events
from gaitkin.analysis.joint_angles import compute_kinematics
from gaitkin.analysis.kinematic_summary import build_kinematic_summary
from gaitkin.analysis.spatiotemporal import compute_metrics
from gaitkin.export.json_exporter import JSONExporter, convert_numpy
from gaitkin.export.visualizer import generate_plots
from gaitkin.export.xlsx_exporter import XLSXExporter


class Colour(Enum):
    RED = "red"


@pytest.fixture
def session(long_gait_frames):
    kinematics = compute_kinematics(long_gait_frames)
    events = detect_session_events(long_gait_frames)
    return {
        'kinematics': kinematics,
        'summary': build_kinematic_summary(kinematics),
        'events': events,
        'cycles': segment_cycles(events),
        'spatiotemporal': compute_metrics(events),
    }


class TestConvertNumpy:
    """Test JSON value conversion"""

    def test_scalars(self):
        assert convert_numpy(np.float64(1.5)) == 1.5
        assert type(convert_numpy(np.int64(3))) is int
        assert convert_numpy(np.bool_(True)) is True

    def test_non_finite_to_none(self):
        assert convert_numpy(float('nan')) is None
        assert convert_numpy(np.inf) is None

    def test_nested(self):
        value = {1: (np.array([1.0, np.nan]), Colour.RED)}
        assert convert_numpy(value) == {'1': [[1.0, None], 'red']}


class TestJSONExporter:
    """Test JSON file output"""

    def test_export(self, tmp_path):
        path = JSONExporter(tmp_path / 'out').export({'cadence': np.float64(110.0)}, 'result.json')
        assert path == tmp_path / 'out' / 'result.json'
        assert json.loads(path.read_text()) == {'cadence': 110.0}

    def test_timestamped_name(self, tmp_path):
        path = JSONExporter(tmp_path).export({})
        assert path.name.startswith('gait_analysis_')
        assert path.suffix == '.json'


class TestXLSXExporter:
    """Test Excel workbook output"""

    def test_all_sheets(self, tmp_path, session):
        path = XLSXExporter(tmp_path / 'results.xlsx').export(
            kinematics=session['kinematics'],
            kinematic_summary=session['summary'],
            events=session['events'],
            cycles=session['cycles'],
            spatiotemporal=session['spatiotemporal'],
            metadata={'source': 'walk.csv'},
        )
        sheets = pd.read_excel(path, sheet_name=None)

        assert list(sheets) == ['Summary', 'Kinematics', 'Angle Series', 'Events',
                                'Cycles', 'Findings', 'Metadata']
        assert len(sheets['Events']) == len(session['events'])
        assert len(sheets['Cycles']) == len(session['cycles'])
        assert set(sheets['Angle Series']['family']) >= {'ankle', 'knee', 'hip'}
        assert sheets['Metadata']['value'].tolist() == ['walk.csv']

    def test_minimal_workbook(self, tmp_path):
        path = XLSXExporter(tmp_path / 'empty.xlsx').export()
        sheets = pd.read_excel(path, sheet_name=None)
        assert list(sheets) == ['Summary', 'Events', 'Cycles', 'Findings']

    def test_summary_rows(self, session):
        df = XLSXExporter.create_summary_sheet(session['spatiotemporal'], session['summary'],
                                               None, None, None)
        metrics = df.set_index('metric')['value']
        assert metrics['steps'] == session['spatiotemporal'].steps
        assert 'kinematic_quality_score' in metrics.index

    def test_cycles_sheet_phase_columns(self, session):
        df = XLSXExporter.create_cycles_sheet(session['cycles'])
        phase_columns = [c for c in df.columns if c.endswith('_percent')
                         and c not in ('stance_percent', 'swing_percent')]
        assert len(phase_columns) == 8


class TestPlots:
    """Test PNG generation"""

    def test_generate_plots(self, tmp_path, session):
        written = generate_plots(tmp_path / 'plots', session['kinematics'],
                                 session['events'], session['cycles'], dpi=50)

        assert set(written) == {'sagittal_angles', 'cycle_phases'}
        assert all(p.exists() for p in written.values())

    def test_frontal_view_plots(self, tmp_path, long_gait_frames):
        kinematics = compute_kinematics(long_gait_frames, view_mode='dual')
        written = generate_plots(tmp_path, kinematics, dpi=50)
        assert set(written) == {'sagittal_angles', 'frontal_angles'}
