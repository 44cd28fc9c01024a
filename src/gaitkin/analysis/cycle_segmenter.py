"""
Gait cycle segmentation: heel-strike pairing and phase allocation.

A cycle spans two consecutive same-foot heel strikes. Pairs outside the
plausible duration window are dropped. The eight phases are allocated as
fixed fractions of the cycle unless event anchoring is enabled and a
toe-off is available to place the stance/swing boundary.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config_schema import CycleSettings
from ..constants import (
    GAIT_PHASES,
    STANCE_PHASE_COUNT,
    TOE_OFF_ANCHOR_WINDOW,
    TOE_OFF_FRACTION,
)
from ..core.landmarks import Side
from .event_detector import GaitEvent, GaitEventType, events_of_type

logger = logging.getLogger(__name__)

PHASE_KEYS = tuple(phase[0] for phase in GAIT_PHASES)
PERCENT_DECIMALS = 9


@dataclass(frozen=True)
class GaitCyclePhase:
    key: str
    name: str
    start_time: float
    end_time: float
    duration: float
    percent_of_cycle: float

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.duration,
            'percent_of_cycle': self.percent_of_cycle,
        }


@dataclass(frozen=True)
class GaitCycle:
    """Heel strike to heel strike of one foot"""
    foot: Side
    start_time: float
    end_time: float
    duration: float
    phases: Tuple[GaitCyclePhase, ...]
    events: Tuple[GaitEvent, ...] = ()
    anchored: bool = False

    def phase(self, key: str) -> GaitCyclePhase:
        return self.phases[PHASE_KEYS.index(key)]

    def phase_percent(self, key: str) -> float:
        return self.phase(key).percent_of_cycle

    @property
    def stance_percent(self) -> float:
        return round(sum(p.percent_of_cycle for p in self.phases[:STANCE_PHASE_COUNT]), PERCENT_DECIMALS)

    @property
    def swing_percent(self) -> float:
        return round(sum(p.percent_of_cycle for p in self.phases[STANCE_PHASE_COUNT:]), PERCENT_DECIMALS)

    @property
    def double_support_percent(self) -> float:
        return round(self.phase_percent('loading_response') + self.phase_percent('pre_swing'), PERCENT_DECIMALS)

    @property
    def single_support_percent(self) -> float:
        return round(self.stance_percent - self.double_support_percent, PERCENT_DECIMALS)

    def to_dict(self) -> Dict:
        return {
            'foot': self.foot.value,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.duration,
            'anchored': self.anchored,
            'stance_percent': self.stance_percent,
            'swing_percent': self.swing_percent,
            'phases': {p.key: p.to_dict() for p in self.phases},
            'events': [e.to_dict() for e in self.events],
        }


def phase_boundaries(toe_off_fraction: Optional[float] = None) -> List[float]:
    """
    Phase boundaries as fractions of the cycle.

    With a toe-off fraction, stance boundaries are scaled into
    [0, toe_off] and swing boundaries into [toe_off, 1], keeping the
    relative proportions of the fixed table.
    """
    fixed = [phase[2] for phase in GAIT_PHASES] + [GAIT_PHASES[-1][3]]
    if toe_off_fraction is None:
        return fixed

    stance_scale = toe_off_fraction / TOE_OFF_FRACTION
    swing_scale = (1.0 - toe_off_fraction) / (1.0 - TOE_OFF_FRACTION)
    boundaries = []
    for b in fixed:
        if b <= TOE_OFF_FRACTION:
            boundaries.append(b * stance_scale)
        else:
            boundaries.append(toe_off_fraction + (b - TOE_OFF_FRACTION) * swing_scale)
    boundaries[-1] = 1.0
    return boundaries


def allocate_phases(start_time: float, duration: float,
                    toe_off_fraction: Optional[float] = None) -> Tuple[GaitCyclePhase, ...]:
    """Build the eight phases of a cycle starting at `start_time`"""
    bounds = phase_boundaries(toe_off_fraction)
    phases = []
    for i, (key, name, _, _) in enumerate(GAIT_PHASES):
        start = start_time + duration * bounds[i]
        end = start_time + duration * bounds[i + 1]
        phases.append(GaitCyclePhase(
            key=key,
            name=name,
            start_time=start,
            end_time=end,
            duration=end - start,
            percent_of_cycle=(bounds[i + 1] - bounds[i]) * 100.0,
        ))
    return tuple(phases)


def _anchor_fraction(cycle_events: Sequence[GaitEvent], foot: Side,
                     start: float, duration: float) -> Optional[float]:
    """Position of the first same-foot toe-off inside the anchoring window"""
    low, high = TOE_OFF_ANCHOR_WINDOW
    for event in cycle_events:
        if event.type is GaitEventType.TOE_OFF and event.foot is foot:
            fraction = (event.timestamp - start) / duration
            if low <= fraction <= high:
                return fraction
    return None


def segment_cycles(events: Iterable[GaitEvent],
                   config: Optional[CycleSettings] = None) -> List[GaitCycle]:
    """
    Pair consecutive same-foot heel strikes into gait cycles.

    Args:
        events: Detected events of any type, any order
        config: Cycle settings (duration bounds, phase anchoring)

    Returns:
        Accepted cycles of both feet, sorted by start time
    """
    config = config or CycleSettings()
    events = sorted(events, key=lambda e: e.timestamp)
    cycles = []
    rejected = 0

    for foot in Side:
        strikes = events_of_type(events, GaitEventType.HEEL_STRIKE, foot)
        for first, second in zip(strikes, strikes[1:]):
            duration = second.timestamp - first.timestamp
            if not config.min_duration <= duration <= config.max_duration:
                rejected += 1
                continue

            cycle_events = tuple(
                e for e in events
                if e.foot is foot and first.timestamp <= e.timestamp < second.timestamp
            )
            fraction = None
            if config.phase_anchoring == "events":
                fraction = _anchor_fraction(cycle_events, foot, first.timestamp, duration)

            cycles.append(GaitCycle(
                foot=foot,
                start_time=first.timestamp,
                end_time=second.timestamp,
                duration=duration,
                phases=allocate_phases(first.timestamp, duration, fraction),
                events=cycle_events,
                anchored=fraction is not None,
            ))

    cycles.sort(key=lambda c: c.start_time)
    logger.info(f"Segmented {len(cycles)} gait cycles ({rejected} heel-strike pairs rejected)")
    return cycles


def cycles_for(cycles: Iterable[GaitCycle], foot: Side) -> List[GaitCycle]:
    return [c for c in cycles if c.foot is foot]
