"""Typed landmark model: points, sides, pose frames and view modes"""
import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Any

from ..exceptions import InvalidFrameError

logger = logging.getLogger(__name__)


class Side(Enum):
    """Body side"""
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> 'Side':
        return Side.RIGHT if self is Side.LEFT else Side.LEFT

    @property
    def code(self) -> str:
        """Short code used in table headers ('L' / 'R')"""
        return "L" if self is Side.LEFT else "R"


class Landmark(Enum):
    """Body landmarks consumed by the engine"""
    ANKLE = "ankle"
    KNEE = "knee"
    HIP = "hip"
    HEEL = "heel"
    FOOT_INDEX = "foot_index"
    SHOULDER = "shoulder"


class ViewMode(Enum):
    """Camera view; selects which angle families are computed"""
    LATERAL = "lateral"
    FRONTAL = "frontal"
    DUAL = "dual"

    @property
    def sagittal(self) -> bool:
        return self in (ViewMode.LATERAL, ViewMode.DUAL)

    @property
    def frontal(self) -> bool:
        return self in (ViewMode.FRONTAL, ViewMode.DUAL)

    @classmethod
    def parse(cls, value: Any) -> 'ViewMode':
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


@dataclass(frozen=True)
class LandmarkPoint:
    """Normalized image-plane point with detector confidence"""
    x: float
    y: float
    visibility: float = 0.0

    def is_visible(self, threshold: float) -> bool:
        return self.visibility >= threshold


INVISIBLE_POINT = LandmarkPoint(0.0, 0.0, 0.0)

LandmarkKey = Tuple[Side, Landmark]


def _build_key_table() -> Dict[str, LandmarkKey]:
    table = {}
    for side in Side:
        for landmark in Landmark:
            table[f"{side.value}_{landmark.value}"] = (side, landmark)
    return table


_KEY_TABLE = _build_key_table()


def resolve_landmark_key(name: str) -> LandmarkKey:
    """
    Resolve a string landmark name to a typed key.

    Accepts snake_case (left_ankle), camelCase (leftAnkle) and
    UPPER_CASE (LEFT_FOOT_INDEX) spellings.

    Raises:
        InvalidFrameError: If the name does not denote a known landmark
    """
    snake = re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', name).lower()
    key = _KEY_TABLE.get(snake)
    if key is None:
        raise InvalidFrameError(f"Unknown landmark '{name}'")
    return key


@dataclass(frozen=True)
class PoseFrame:
    """
    One timestamped observation of all tracked landmarks.

    Landmarks are looked up through `get(side, landmark)`; a landmark the
    detector did not report resolves to an invisible point so visibility
    gating excludes it.
    """
    timestamp: float
    landmarks: Mapping[LandmarkKey, LandmarkPoint] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'landmarks', MappingProxyType(dict(self.landmarks)))

    def get(self, side: Side, landmark: Landmark) -> LandmarkPoint:
        return self.landmarks.get((side, landmark), INVISIBLE_POINT)

    def visible(self, threshold: float, *keys: LandmarkKey) -> bool:
        """True when every listed landmark reaches the visibility threshold"""
        return all(self.get(side, lm).is_visible(threshold) for side, lm in keys)

    def mean_visibility(self, *keys: LandmarkKey) -> float:
        if not keys:
            return 0.0
        return sum(self.get(side, lm).visibility for side, lm in keys) / len(keys)

    @classmethod
    def from_flat(cls, timestamp: float, mapping: Mapping[str, Any]) -> 'PoseFrame':
        """
        Build a frame from string-keyed landmark data.

        Args:
            timestamp: Frame time (seconds)
            mapping: {name: {x, y, visibility}} or {name: (x, y, visibility)}

        Returns:
            PoseFrame with typed keys

        Raises:
            InvalidFrameError: Unknown landmark names or malformed points
        """
        landmarks = {}
        for name, value in mapping.items():
            key = resolve_landmark_key(name)
            try:
                if isinstance(value, Mapping):
                    point = LandmarkPoint(float(value['x']), float(value['y']),
                                          float(value.get('visibility', 0.0)))
                else:
                    x, y, vis = value
                    point = LandmarkPoint(float(x), float(y), float(vis))
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidFrameError(f"Malformed point for '{name}': {e}", timestamp) from e
            landmarks[key] = point
        return cls(float(timestamp), landmarks)

    def to_flat(self) -> Dict[str, Dict[str, float]]:
        """Inverse of from_flat using snake_case names"""
        return {
            f"{side.value}_{lm.value}": {'x': p.x, 'y': p.y, 'visibility': p.visibility}
            for (side, lm), p in self.landmarks.items()
        }


def midpoint(frame: PoseFrame, landmark: Landmark) -> LandmarkPoint:
    """Midpoint of the left/right pair; visibility is the weaker of the two"""
    left = frame.get(Side.LEFT, landmark)
    right = frame.get(Side.RIGHT, landmark)
    return LandmarkPoint((left.x + right.x) / 2, (left.y + right.y) / 2,
                         min(left.visibility, right.visibility))


def hip_midpoint(frame: PoseFrame) -> LandmarkPoint:
    return midpoint(frame, Landmark.HIP)


def shoulder_midpoint(frame: PoseFrame) -> LandmarkPoint:
    return midpoint(frame, Landmark.SHOULDER)


def lateral_sign(frame: PoseFrame, side: Side) -> Optional[float]:
    """
    Image-x sign pointing away from the body midline on `side`.

    Derived from the hip pair; None when the hips coincide.
    """
    left = frame.get(Side.LEFT, Landmark.HIP)
    right = frame.get(Side.RIGHT, Landmark.HIP)
    dx = left.x - right.x
    if dx == 0:
        return None
    sign = 1.0 if dx > 0 else -1.0
    return sign if side is Side.LEFT else -sign
