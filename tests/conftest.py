"""
Pytest configuration and shared fixtures for gaitkin tests.

Provides synthetic landmark recordings, configuration files and writers
used across unit and integration tests.
"""

import json

import numpy as np
import pandas as pd
import pytest
import yaml

from gaitkin.core.landmarks import Landmark, LandmarkPoint, PoseFrame, Side


# ============================================================================
# Synthetic walking data
# ============================================================================

FPS = 15.0
KNEE_Y = 0.8
ANKLE_AMPLITUDE = 0.05

# Static skeleton in normalized image coordinates (x, y)
SKELETON = {
    Side.LEFT: {
        Landmark.SHOULDER: (0.52, 0.25),
        Landmark.HIP: (0.52, 0.55),
        Landmark.KNEE: (0.53, KNEE_Y),
    },
    Side.RIGHT: {
        Landmark.SHOULDER: (0.46, 0.25),
        Landmark.HIP: (0.46, 0.55),
        Landmark.KNEE: (0.47, KNEE_Y),
    },
}


def walking_frame(t, visibility=0.95, overrides=None):
    """
    One frame of the synthetic walker at time t.

    The left ankle oscillates at 1 Hz around the knee height; the right
    ankle runs in anti-phase. `overrides` maps (side, landmark) to a
    visibility that replaces the default.
    """
    overrides = overrides or {}
    phase = np.sin(2 * np.pi * t)
    ankle_y = {
        Side.LEFT: KNEE_Y + ANKLE_AMPLITUDE * phase,
        Side.RIGHT: KNEE_Y - ANKLE_AMPLITUDE * phase,
    }

    landmarks = {}
    for side in Side:
        positions = dict(SKELETON[side])
        knee_x = positions[Landmark.KNEE][0]
        positions[Landmark.ANKLE] = (knee_x + 0.02, ankle_y[side])
        positions[Landmark.HEEL] = (knee_x, ankle_y[side] + 0.02)
        positions[Landmark.FOOT_INDEX] = (knee_x + 0.08, ankle_y[side] + 0.02)
        for landmark, (x, y) in positions.items():
            vis = overrides.get((side, landmark), visibility)
            landmarks[(side, landmark)] = LandmarkPoint(float(x), float(y), vis)
    return PoseFrame(float(t), landmarks)


def walking_frames(n_frames=30, fps=FPS, visibility=0.95, overrides=None):
    return [walking_frame(n / fps, visibility, overrides) for n in range(n_frames)]


@pytest.fixture
def gait_frames():
    """30 frames at 15 fps of a symmetric 1 Hz walker, visibility 0.95"""
    return walking_frames()


@pytest.fixture
def long_gait_frames():
    """90 frames (6 seconds) of the same walker"""
    return walking_frames(n_frames=90)


@pytest.fixture
def occluded_knee_frames():
    """Walker with both knees at visibility 0.3 throughout"""
    overrides = {(side, Landmark.KNEE): 0.3 for side in Side}
    return walking_frames(overrides=overrides)


@pytest.fixture
def frame_factory():
    """Factory building a single PoseFrame from {name: (x, y, visibility)}"""
    def _make(timestamp=0.0, **points):
        return PoseFrame.from_flat(timestamp, points)
    return _make


@pytest.fixture
def random_noise():
    """Reproducible small noise vector"""
    np.random.seed(42)
    return np.random.normal(0, 0.001, 30)


# ============================================================================
# File writers
# ============================================================================

def frames_to_dataframe(frames):
    rows = []
    for frame in frames:
        row = {'timestamp': frame.timestamp}
        for name, point in frame.to_flat().items():
            row[f"{name}_x"] = point['x']
            row[f"{name}_y"] = point['y']
            row[f"{name}_visibility"] = point['visibility']
        rows.append(row)
    return pd.DataFrame(rows)


@pytest.fixture
def write_csv(tmp_path):
    """Write frames to a wide CSV file and return its path"""
    def _write(frames, name='walk.csv'):
        path = tmp_path / name
        frames_to_dataframe(frames).to_csv(path, index=False)
        return path
    return _write


@pytest.fixture
def write_json(tmp_path):
    """Write frames to a camelCase JSON recording and return its path"""
    def _camel(name):
        head, *rest = name.split('_')
        return head + ''.join(part.capitalize() for part in rest)

    def _write(frames, name='walk.json', wrapped=False):
        records = [
            {
                'timestamp': frame.timestamp,
                'landmarks': {_camel(k): v for k, v in frame.to_flat().items()},
            }
            for frame in frames
        ]
        payload = {'frames': records} if wrapped else records
        path = tmp_path / name
        path.write_text(json.dumps(payload))
        return path
    return _write


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def default_config_dict():
    """Default configuration as dictionary"""
    return {
        'general': {'view_mode': 'lateral', 'output_dir': 'results', 'log_level': 'INFO'},
        'kinematics': {'visibility_threshold': 0.6, 'min_frames': 10, 'history_size': 300},
        'events': {'visibility_threshold': 0.7, 'buffer_size': 20},
        'cycles': {'min_duration': 0.8, 'max_duration': 2.0, 'phase_anchoring': 'fixed'},
        'session': {'distance_m': None, 'duration_s': None, 'patient_height_cm': None},
    }


@pytest.fixture
def fast_export_config():
    """Configuration that skips plots to keep integration tests quick"""
    return {'export': {'generate_plots': False}}


@pytest.fixture
def temp_config_file(tmp_path, default_config_dict):
    """Temporary YAML config file"""
    path = tmp_path / 'config.yaml'
    with open(path, 'w') as f:
        yaml.safe_dump(default_config_dict, f)
    return path


@pytest.fixture
def temp_output_dir(tmp_path):
    """Temporary output directory for test results"""
    output_dir = tmp_path / 'output'
    output_dir.mkdir()
    return output_dir
