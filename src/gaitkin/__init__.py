"""gaitkin: 2D pose landmark gait kinematics and gait event analysis."""

__version__ = "1.0.0"

from .config_schema import GaitKinConfig, load_config
from .core.landmarks import Landmark, LandmarkPoint, PoseFrame, Side, ViewMode
from .exceptions import GaitKinError

__all__ = [
    'GaitKinConfig',
    'load_config',
    'Landmark',
    'LandmarkPoint',
    'PoseFrame',
    'Side',
    'ViewMode',
    'GaitKinError',
]
