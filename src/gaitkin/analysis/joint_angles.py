"""
Joint angle engine: signed planar joint angles from 2D landmark frames.

Every angle is a three-point angle folded into [0, 180] and then signed by a
heuristic: the walking direction for sagittal joints, the lateral offset
from the body midline for frontal joints. Frames whose required landmarks
are not visible enough are skipped, so each series carries its own
timestamps and series of different joints differ in length.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..config_schema import KinematicsSettings
from ..constants import (
    DEFAULT_WALKING_DIRECTION,
    VERTICAL_REFERENCE_OFFSET,
)
from ..core.landmarks import (
    Landmark,
    LandmarkPoint,
    PoseFrame,
    Side,
    ViewMode,
    hip_midpoint,
    lateral_sign,
    shoulder_midpoint,
)
from ..utils.geometry import angle_from_vertical, line_inclination, three_point_angle
from ..utils.signal_processing import apply_savgol_filter, velocity_and_acceleration

logger = logging.getLogger(__name__)

HIP, KNEE, ANKLE, HEEL, FOOT, SHOULDER = (
    Landmark.HIP, Landmark.KNEE, Landmark.ANKLE,
    Landmark.HEEL, Landmark.FOOT_INDEX, Landmark.SHOULDER,
)


# ============================================================================
# Value types
# ============================================================================

def _frozen_array(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class JointAngleSeries:
    """Index-aligned angle samples for one joint in one plane"""
    timestamps: np.ndarray
    angles: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray

    def __post_init__(self):
        lengths = {len(self.timestamps), len(self.angles), len(self.velocity), len(self.acceleration)}
        if len(lengths) != 1:
            raise ValueError(f"Series arrays must have equal length, got {sorted(lengths)}")

    @classmethod
    def empty(cls) -> 'JointAngleSeries':
        """Computed, but no frame passed the visibility gate"""
        return cls(_frozen_array([]), _frozen_array([]), _frozen_array([]), _frozen_array([]))

    @classmethod
    def from_samples(cls, timestamps: Sequence[float], angles: Sequence[float],
                     smoothing_window: int = 0, smoothing_poly: int = 2) -> 'JointAngleSeries':
        """Build a series, deriving velocity and acceleration by backward difference"""
        if len(angles) == 0:
            return cls.empty()

        ts = np.asarray(timestamps, dtype=float)
        values = np.asarray(angles, dtype=float)
        if smoothing_window:
            values = apply_savgol_filter(values, smoothing_window, smoothing_poly)

        velocity, acceleration = velocity_and_acceleration(values, ts)
        return cls(_frozen_array(ts), _frozen_array(values),
                   _frozen_array(velocity), _frozen_array(acceleration))

    @property
    def is_empty(self) -> bool:
        return len(self.angles) == 0

    def __len__(self) -> int:
        return len(self.angles)

    def to_dict(self) -> Dict[str, List[float]]:
        return {
            'timestamps': self.timestamps.tolist(),
            'angles': self.angles.tolist(),
            'velocity': self.velocity.tolist(),
            'acceleration': self.acceleration.tolist(),
        }


@dataclass(frozen=True, eq=False)
class BilateralSeries:
    """Left and right series of the same joint"""
    left: JointAngleSeries
    right: JointAngleSeries

    def side(self, side: Side) -> JointAngleSeries:
        return self.left if side is Side.LEFT else self.right

    def to_dict(self) -> Dict[str, Dict]:
        return {'left': self.left.to_dict(), 'right': self.right.to_dict()}


@dataclass(frozen=True)
class WalkingDirection:
    """Sign of the walking direction along image x (+1 or -1)"""
    sign: int = DEFAULT_WALKING_DIRECTION


@dataclass(frozen=True, eq=False)
class DetailedKinematics:
    """
    All angle series for one batch of frames.

    A family outside the configured view mode is None (not computed); a
    computed family with no valid frames holds empty series.
    """
    view_mode: ViewMode
    frame_count: int = 0
    direction: WalkingDirection = field(default_factory=WalkingDirection)
    # Sagittal
    ankle: Optional[BilateralSeries] = None
    knee: Optional[BilateralSeries] = None
    hip: Optional[BilateralSeries] = None
    trunk_flexion: Optional[JointAngleSeries] = None
    pelvic_tilt: Optional[JointAngleSeries] = None
    # Frontal
    ankle_inversion: Optional[BilateralSeries] = None
    knee_abduction: Optional[BilateralSeries] = None
    hip_abduction: Optional[BilateralSeries] = None
    pelvic_obliquity: Optional[JointAngleSeries] = None
    trunk_lateral_flexion: Optional[JointAngleSeries] = None

    BILATERAL_FAMILIES = ('ankle', 'knee', 'hip', 'ankle_inversion', 'knee_abduction', 'hip_abduction')
    SINGLE_FAMILIES = ('trunk_flexion', 'pelvic_tilt', 'pelvic_obliquity', 'trunk_lateral_flexion')

    @classmethod
    def empty(cls, view_mode: ViewMode, frame_count: int = 0,
              direction: Optional[WalkingDirection] = None) -> 'DetailedKinematics':
        """Insufficient frames: every family of the view mode holds empty series"""
        view_mode = ViewMode.parse(view_mode)
        empty_pair = BilateralSeries(JointAngleSeries.empty(), JointAngleSeries.empty())
        empty_single = JointAngleSeries.empty()
        values = {}
        if view_mode.sagittal:
            values.update(ankle=empty_pair, knee=empty_pair, hip=empty_pair,
                          trunk_flexion=empty_single, pelvic_tilt=empty_single)
        if view_mode.frontal:
            values.update(ankle_inversion=empty_pair, knee_abduction=empty_pair,
                          hip_abduction=empty_pair, pelvic_obliquity=empty_single,
                          trunk_lateral_flexion=empty_single)
        return cls(view_mode=view_mode, frame_count=frame_count,
                   direction=direction or WalkingDirection(), **values)

    @property
    def is_empty(self) -> bool:
        """True when no computed family holds any sample"""
        for name in self.BILATERAL_FAMILIES:
            pair = getattr(self, name)
            if pair is not None and not (pair.left.is_empty and pair.right.is_empty):
                return False
        for name in self.SINGLE_FAMILIES:
            series = getattr(self, name)
            if series is not None and not series.is_empty:
                return False
        return True

    def to_dict(self) -> Dict:
        result = {
            'view_mode': self.view_mode.value,
            'frame_count': self.frame_count,
            'walking_direction': self.direction.sign,
        }
        for name in self.BILATERAL_FAMILIES + self.SINGLE_FAMILIES:
            value = getattr(self, name)
            result[name] = value.to_dict() if value is not None else None
        return result


# ============================================================================
# Walking direction
# ============================================================================

def estimate_walking_direction(frames: Sequence[PoseFrame],
                               previous: Optional[WalkingDirection] = None,
                               visibility_threshold: float = 0.6,
                               noise_threshold: float = 0.005) -> WalkingDirection:
    """
    Estimate the walking direction from net hip-midpoint displacement.

    Uses the first and last frames whose hips are both visible. Keeps the
    previous direction when the displacement is within the noise threshold
    or fewer than two usable frames exist.

    Args:
        frames: Time-ordered frames
        previous: Direction from the previous batch (defaults to +1)
        visibility_threshold: Minimum hip visibility
        noise_threshold: Displacement (normalized units) treated as noise

    Returns:
        WalkingDirection
    """
    previous = previous or WalkingDirection()
    hips = ((Side.LEFT, HIP), (Side.RIGHT, HIP))
    usable = [f for f in frames if f.visible(visibility_threshold, *hips)]
    if len(usable) < 2:
        return previous

    dx = hip_midpoint(usable[-1]).x - hip_midpoint(usable[0]).x
    if abs(dx) < noise_threshold:
        return previous
    return WalkingDirection(1 if dx > 0 else -1)


# ============================================================================
# Per-frame angle definitions
# ============================================================================

def _below(point: LandmarkPoint) -> LandmarkPoint:
    return LandmarkPoint(point.x, point.y + VERTICAL_REFERENCE_OFFSET, point.visibility)


def ankle_dorsiflexion(frame: PoseFrame, side: Side, direction: int) -> float:
    """90 - angle(knee, ankle, foot index); positive is dorsiflexion"""
    knee, ankle, foot = frame.get(side, KNEE), frame.get(side, ANKLE), frame.get(side, FOOT)
    return 90.0 - three_point_angle(knee, ankle, foot)


def knee_flexion(frame: PoseFrame, side: Side, direction: int) -> float:
    """180 - angle(hip, knee, ankle); negative for hyperextension"""
    hip, knee, ankle = frame.get(side, HIP), frame.get(side, KNEE), frame.get(side, ANKLE)
    magnitude = 180.0 - three_point_angle(hip, knee, ankle)
    thigh = (knee.x - hip.x, knee.y - hip.y)
    shank = (ankle.x - knee.x, ankle.y - knee.y)
    cross = thigh[0] * shank[1] - thigh[1] * shank[0]
    return magnitude if cross * direction >= 0 else -magnitude


def hip_flexion(frame: PoseFrame, side: Side, direction: int) -> float:
    """Thigh angle from vertical; negative when the knee trails the hip"""
    hip, knee = frame.get(side, HIP), frame.get(side, KNEE)
    magnitude = three_point_angle(knee, hip, _below(hip))
    return magnitude if (knee.x - hip.x) * direction >= 0 else -magnitude


def hip_abduction(frame: PoseFrame, side: Side, direction: int) -> float:
    """Thigh angle from vertical; positive when the knee is lateral to the hip"""
    hip, knee = frame.get(side, HIP), frame.get(side, KNEE)
    magnitude = float(angle_from_vertical(knee.x - hip.x, knee.y - hip.y))
    lateral = lateral_sign(frame, side) or 1.0
    return magnitude if (knee.x - hip.x) * lateral >= 0 else -magnitude


def knee_abduction(frame: PoseFrame, side: Side, direction: int) -> float:
    """Thigh-shank angle; positive (valgus) when the knee falls medial to the hip-ankle line"""
    hip, knee, ankle = frame.get(side, HIP), frame.get(side, KNEE), frame.get(side, ANKLE)
    magnitude = 180.0 - three_point_angle(hip, knee, ankle)
    span = ankle.y - hip.y
    t = (knee.y - hip.y) / span if span else 0.5
    line_x = hip.x + t * (ankle.x - hip.x)
    lateral = lateral_sign(frame, side) or 1.0
    return magnitude if (knee.x - line_x) * lateral <= 0 else -magnitude


def ankle_inversion(frame: PoseFrame, side: Side, direction: int) -> float:
    """Shank-heel angle; positive when the heel shifts medially"""
    knee, ankle, heel = frame.get(side, KNEE), frame.get(side, ANKLE), frame.get(side, HEEL)
    magnitude = 180.0 - three_point_angle(knee, ankle, heel)
    lateral = lateral_sign(frame, side) or 1.0
    return magnitude if (heel.x - ankle.x) * lateral <= 0 else -magnitude


def trunk_flexion(frame: PoseFrame, direction: int) -> float:
    """Hip-to-shoulder midpoint line against vertical; positive leaning forward"""
    hips, shoulders = hip_midpoint(frame), shoulder_midpoint(frame)
    dx = shoulders.x - hips.x
    magnitude = float(angle_from_vertical(dx, shoulders.y - hips.y))
    return magnitude if dx * direction >= 0 else -magnitude


def pelvic_tilt(frame: PoseFrame, direction: int) -> float:
    """Hip-line inclination; positive when the leading hip is lower"""
    left, right = frame.get(Side.LEFT, HIP), frame.get(Side.RIGHT, HIP)
    front, back = (left, right) if (left.x - right.x) * direction >= 0 else (right, left)
    return float(np.degrees(np.arctan2(front.y - back.y, abs(front.x - back.x) + 1e-10)))


def pelvic_obliquity(frame: PoseFrame, direction: int) -> float:
    """Hip-line inclination; positive when the left hip is higher"""
    left, right = frame.get(Side.LEFT, HIP), frame.get(Side.RIGHT, HIP)
    return float(line_inclination(right.x, right.y, left.x, left.y))


def trunk_lateral_flexion(frame: PoseFrame, direction: int) -> float:
    """Shoulder midpoint lean from vertical; positive toward image +x"""
    hips, shoulders = hip_midpoint(frame), shoulder_midpoint(frame)
    dx = shoulders.x - hips.x
    magnitude = float(angle_from_vertical(dx, shoulders.y - hips.y))
    return magnitude if dx >= 0 else -magnitude


# Landmarks required per family; side-specific families list per-side landmarks
BILATERAL_DEFINITIONS = {
    'ankle': (ankle_dorsiflexion, (KNEE, ANKLE, FOOT)),
    'knee': (knee_flexion, (HIP, KNEE, ANKLE)),
    'hip': (hip_flexion, (HIP, KNEE)),
    'ankle_inversion': (ankle_inversion, (KNEE, ANKLE, HEEL)),
    'knee_abduction': (knee_abduction, (HIP, KNEE, ANKLE)),
    'hip_abduction': (hip_abduction, (HIP, KNEE)),
}

_BOTH_HIPS = ((Side.LEFT, HIP), (Side.RIGHT, HIP))
_TRUNK = _BOTH_HIPS + ((Side.LEFT, SHOULDER), (Side.RIGHT, SHOULDER))

SINGLE_DEFINITIONS = {
    'trunk_flexion': (trunk_flexion, _TRUNK),
    'pelvic_tilt': (pelvic_tilt, _BOTH_HIPS),
    'pelvic_obliquity': (pelvic_obliquity, _BOTH_HIPS),
    'trunk_lateral_flexion': (trunk_lateral_flexion, _TRUNK),
}

SAGITTAL_FAMILIES = ('ankle', 'knee', 'hip', 'trunk_flexion', 'pelvic_tilt')
FRONTAL_FAMILIES = ('ankle_inversion', 'knee_abduction', 'hip_abduction',
                    'pelvic_obliquity', 'trunk_lateral_flexion')


# ============================================================================
# Engine
# ============================================================================

class JointAngleEngine:
    """
    Build joint angle series for a batch of frames.

    The only state threaded between calls is the walking direction, passed
    in and returned explicitly through DetailedKinematics.direction.
    """

    def __init__(self, view_mode=ViewMode.LATERAL, config: Optional[KinematicsSettings] = None):
        """
        Initialize engine.

        Args:
            view_mode: ViewMode or its string value
            config: Kinematics settings (defaults when omitted)
        """
        self.view_mode = ViewMode.parse(view_mode)
        self.config = config or KinematicsSettings()

    def families(self) -> List[str]:
        """Angle families computed for the configured view mode"""
        names = []
        if self.view_mode.sagittal:
            names.extend(SAGITTAL_FAMILIES)
        if self.view_mode.frontal:
            names.extend(FRONTAL_FAMILIES)
        return names

    def compute(self, frames: Sequence[PoseFrame],
                previous_direction: Optional[WalkingDirection] = None) -> DetailedKinematics:
        """
        Compute every family of the view mode.

        Args:
            frames: Time-ordered frames (typically a buffer snapshot)
            previous_direction: Direction carried over from the previous batch

        Returns:
            DetailedKinematics; the empty variant below the minimum frame count
        """
        frames = tuple(frames)
        direction = estimate_walking_direction(
            frames, previous_direction,
            visibility_threshold=self.config.visibility_threshold,
            noise_threshold=self.config.direction_noise_threshold,
        )

        if len(frames) < self.config.min_frames:
            logger.warning(
                f"Insufficient frames for kinematic analysis: {len(frames)} < {self.config.min_frames}"
            )
            return DetailedKinematics.empty(self.view_mode, len(frames), direction)

        values = {}
        for name in self.families():
            if name in BILATERAL_DEFINITIONS:
                func, required = BILATERAL_DEFINITIONS[name]
                values[name] = BilateralSeries(
                    left=self._bilateral_series(frames, func, required, Side.LEFT, direction.sign),
                    right=self._bilateral_series(frames, func, required, Side.RIGHT, direction.sign),
                )
            else:
                func, required = SINGLE_DEFINITIONS[name]
                values[name] = self._series(
                    frames, lambda f: func(f, direction.sign), required
                )

        kinematics = DetailedKinematics(
            view_mode=self.view_mode,
            frame_count=len(frames),
            direction=direction,
            **values,
        )
        logger.debug(
            f"Kinematics over {len(frames)} frames, direction={direction.sign:+d}, "
            f"families={', '.join(values)}"
        )
        return kinematics

    def _bilateral_series(self, frames, func: Callable, required, side: Side, direction: int) -> JointAngleSeries:
        keys = tuple((side, landmark) for landmark in required)
        return self._series(frames, lambda f: func(f, side, direction), keys)

    def _series(self, frames, angle_of: Callable[[PoseFrame], float], keys) -> JointAngleSeries:
        threshold = self.config.visibility_threshold
        timestamps, angles = [], []
        for frame in frames:
            if not frame.visible(threshold, *keys):
                continue
            timestamps.append(frame.timestamp)
            angles.append(angle_of(frame))

        return JointAngleSeries.from_samples(
            timestamps, angles,
            smoothing_window=self.config.smoothing_window,
            smoothing_poly=self.config.smoothing_poly,
        )


def compute_kinematics(frames: Sequence[PoseFrame], view_mode=ViewMode.LATERAL,
                       config: Optional[KinematicsSettings] = None,
                       previous_direction: Optional[WalkingDirection] = None) -> DetailedKinematics:
    """Convenience wrapper around JointAngleEngine.compute"""
    return JointAngleEngine(view_mode, config).compute(frames, previous_direction)
