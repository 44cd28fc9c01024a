"""
Gait event detection from a sliding window of pose frames.

Each rule is an independent heuristic evaluated on the newest frame of the
window. Rules may co-fire for the same frame and foot; they describe
different physiological moments.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..config_schema import EventDetectionSettings
from ..constants import (
    EVENT_CONFIDENCE_CAPS,
    EVENT_LAG_FRAMES,
    FOOT_FLAT_RATIO_MAX,
    FOOT_FLAT_RATIO_MIN,
    FOOT_FLAT_STABILITY_FRAMES,
    MIN_FRAMES_EVENTS,
    MIN_FRAMES_FOOT_FLAT,
    MIN_FRAMES_LOCAL_EXTREMUM,
    VERTICAL_REFERENCE_OFFSET,
)
from ..core.frame_buffer import FrameBuffer
from ..core.landmarks import Landmark, LandmarkPoint, PoseFrame, Side
from ..utils.geometry import three_point_angle
from ..utils.signal_processing import is_local_maximum

logger = logging.getLogger(__name__)


class GaitEventType(Enum):
    HEEL_STRIKE = "heel_strike"
    TOE_OFF = "toe_off"
    FOOT_FLAT = "foot_flat"
    HEEL_OFF = "heel_off"
    MAX_KNEE_FLEXION = "max_knee_flexion"
    MAX_HIP_EXTENSION = "max_hip_extension"


@dataclass(frozen=True)
class GaitEvent:
    """A discrete, timestamped gait event"""
    type: GaitEventType
    foot: Side
    timestamp: float
    confidence: float

    def to_dict(self) -> Dict:
        return {
            'type': self.type.value,
            'foot': self.foot.value,
            'timestamp': self.timestamp,
            'confidence': self.confidence,
        }


def _capped(event_type: GaitEventType, *points: LandmarkPoint) -> float:
    mean_visibility = sum(p.visibility for p in points) / len(points)
    return min(EVENT_CONFIDENCE_CAPS[event_type.value], mean_visibility)


def knee_angle(frame: PoseFrame, side: Side) -> float:
    """Three-point hip-knee-ankle angle (180 is a straight leg)"""
    return three_point_angle(frame.get(side, Landmark.HIP),
                             frame.get(side, Landmark.KNEE),
                             frame.get(side, Landmark.ANKLE))


def hip_extension_angle(frame: PoseFrame, side: Side) -> float:
    """Angle between the thigh and a reference point straight above the hip"""
    hip = frame.get(side, Landmark.HIP)
    above = LandmarkPoint(hip.x, hip.y - VERTICAL_REFERENCE_OFFSET, hip.visibility)
    return three_point_angle(frame.get(side, Landmark.KNEE), hip, above)


def position_stability(frames: Sequence[PoseFrame], side: Side, landmark: Landmark) -> float:
    """sqrt(var_x + var_y) of a landmark over the frames (1.0 below 3 frames)"""
    if len(frames) < 3:
        return 1.0
    xs = np.array([f.get(side, landmark).x for f in frames])
    ys = np.array([f.get(side, landmark).y for f in frames])
    return float(np.sqrt(np.var(xs) + np.var(ys)))


# ============================================================================
# Rules
# ============================================================================

class EventRules:
    """Threshold rules parameterized by EventDetectionSettings"""

    def __init__(self, config: Optional[EventDetectionSettings] = None):
        self.config = config or EventDetectionSettings()

    def _visible(self, *points: LandmarkPoint) -> bool:
        return all(p.visibility >= self.config.visibility_threshold for p in points)

    def heel_strike(self, window, side: Side) -> Optional[GaitEvent]:
        """Ankle stops moving vertically while below the knee"""
        cur, prev = window[-1], window[-1 - EVENT_LAG_FRAMES]
        ankle, knee = cur.get(side, Landmark.ANKLE), cur.get(side, Landmark.KNEE)
        dy = ankle.y - prev.get(side, Landmark.ANKLE).y

        if abs(dy) < self.config.heel_strike_max_velocity and ankle.y > knee.y and self._visible(ankle, knee):
            return GaitEvent(GaitEventType.HEEL_STRIKE, side, cur.timestamp,
                             _capped(GaitEventType.HEEL_STRIKE, ankle, knee))
        return None

    def toe_off(self, window, side: Side) -> Optional[GaitEvent]:
        """Ankle rises rapidly while the knee also rises"""
        cur, prev = window[-1], window[-1 - EVENT_LAG_FRAMES]
        ankle, knee = cur.get(side, Landmark.ANKLE), cur.get(side, Landmark.KNEE)
        dy = ankle.y - prev.get(side, Landmark.ANKLE).y
        knee_rising = knee.y < prev.get(side, Landmark.KNEE).y

        if dy < self.config.toe_off_velocity and knee_rising and self._visible(ankle, knee):
            return GaitEvent(GaitEventType.TOE_OFF, side, cur.timestamp,
                             _capped(GaitEventType.TOE_OFF, ankle, knee))
        return None

    def foot_flat(self, window, side: Side) -> Optional[GaitEvent]:
        """Ankle-knee vertical ratio in band and ankle position stable"""
        if len(window) < MIN_FRAMES_FOOT_FLAT:
            return None
        cur = window[-1]
        ankle, knee = cur.get(side, Landmark.ANKLE), cur.get(side, Landmark.KNEE)
        if knee.y == 0 or not self._visible(ankle, knee):
            return None

        ratio = abs(ankle.y - knee.y) / abs(knee.y)
        if not FOOT_FLAT_RATIO_MIN < ratio < FOOT_FLAT_RATIO_MAX:
            return None

        stability = position_stability(window[-FOOT_FLAT_STABILITY_FRAMES:], side, Landmark.ANKLE)
        if stability < self.config.foot_flat_stability:
            return GaitEvent(GaitEventType.FOOT_FLAT, side, cur.timestamp,
                             _capped(GaitEventType.FOOT_FLAT, ankle))
        return None

    def heel_off(self, window, side: Side) -> Optional[GaitEvent]:
        """Gentle upward ankle motion"""
        cur, prev = window[-1], window[-1 - EVENT_LAG_FRAMES]
        ankle = cur.get(side, Landmark.ANKLE)
        dy = ankle.y - prev.get(side, Landmark.ANKLE).y

        if dy < self.config.heel_off_velocity and self._visible(ankle):
            return GaitEvent(GaitEventType.HEEL_OFF, side, cur.timestamp,
                             _capped(GaitEventType.HEEL_OFF, ankle))
        return None

    def max_knee_flexion(self, window, side: Side) -> Optional[GaitEvent]:
        """Knee angle is the maximum of the last 7 frames and above threshold"""
        if len(window) < MIN_FRAMES_LOCAL_EXTREMUM:
            return None
        cur = window[-1]
        points = (cur.get(side, Landmark.HIP), cur.get(side, Landmark.KNEE), cur.get(side, Landmark.ANKLE))
        if not self._visible(*points):
            return None

        current = knee_angle(cur, side)
        recent = [knee_angle(f, side) for f in window[-MIN_FRAMES_LOCAL_EXTREMUM:]]
        if is_local_maximum(recent) and current > self.config.max_knee_flexion_angle:
            return GaitEvent(GaitEventType.MAX_KNEE_FLEXION, side, cur.timestamp,
                             _capped(GaitEventType.MAX_KNEE_FLEXION, *points))
        return None

    def max_hip_extension(self, window, side: Side) -> Optional[GaitEvent]:
        """Hip extension angle is the maximum of the last 7 frames and above threshold"""
        if len(window) < MIN_FRAMES_LOCAL_EXTREMUM:
            return None
        cur = window[-1]
        points = (cur.get(side, Landmark.HIP), cur.get(side, Landmark.KNEE))
        if not self._visible(*points):
            return None

        current = hip_extension_angle(cur, side)
        recent = [hip_extension_angle(f, side) for f in window[-MIN_FRAMES_LOCAL_EXTREMUM:]]
        if is_local_maximum(recent) and current > self.config.max_hip_extension_angle:
            return GaitEvent(GaitEventType.MAX_HIP_EXTENSION, side, cur.timestamp,
                             _capped(GaitEventType.MAX_HIP_EXTENSION, *points))
        return None

    def all_rules(self):
        return (self.heel_strike, self.toe_off, self.foot_flat,
                self.heel_off, self.max_knee_flexion, self.max_hip_extension)


def detect_events(window: Sequence[PoseFrame],
                  config: Optional[EventDetectionSettings] = None) -> List[GaitEvent]:
    """
    Evaluate every rule for both feet on the newest frame of the window.

    Args:
        window: Immutable snapshot of recent frames, oldest first
        config: Event detection settings

    Returns:
        Events fired for the newest frame (possibly empty)
    """
    window = tuple(window)
    if len(window) < MIN_FRAMES_EVENTS:
        return []

    rules = EventRules(config)
    events = []
    for side in Side:
        for rule in rules.all_rules():
            event = rule(window, side)
            if event is not None:
                events.append(event)
    return events


class StreamingEventDetector:
    """
    Incremental detector for the real-time path.

    Owns its frame buffer; every call runs the pure rules on a fresh
    snapshot of it.
    """

    def __init__(self, config: Optional[EventDetectionSettings] = None):
        self.config = config or EventDetectionSettings()
        self.buffer = FrameBuffer(self.config.buffer_size)

    def process_frame(self, frame: PoseFrame) -> List[GaitEvent]:
        """Push a frame and return the events detected for it"""
        self.buffer.push(frame)
        events = detect_events(self.buffer.snapshot(), self.config)
        for event in events:
            logger.debug(
                f"{event.type.value} ({event.foot.code}) at {event.timestamp:.3f}s, "
                f"confidence={event.confidence:.2f}"
            )
        return events

    def reset(self) -> None:
        self.buffer.clear()


def detect_session_events(frames: Iterable[PoseFrame],
                          config: Optional[EventDetectionSettings] = None) -> List[GaitEvent]:
    """
    Replay a complete session through a fresh streaming detector.

    Returns:
        All events in time order
    """
    detector = StreamingEventDetector(config)
    events = []
    for frame in frames:
        events.extend(detector.process_frame(frame))

    events.sort(key=lambda e: e.timestamp)
    logger.info(f"Detected {len(events)} gait events")
    return events


def events_of_type(events: Iterable[GaitEvent], event_type: GaitEventType,
                   foot: Optional[Side] = None) -> List[GaitEvent]:
    """Filter events by type and optionally by foot, keeping time order"""
    return sorted(
        (e for e in events if e.type is event_type and (foot is None or e.foot is foot)),
        key=lambda e: e.timestamp,
    )
