"""
Frontal-plane gait metrics: base of support, trunk and pelvic motion,
limb alignment, lateral stability and frontal compensations.

All distances are converted from normalized image units with a fixed
frame-width assumption, so they are approximate.
"""
import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config_schema import ClassificationSettings
from ..constants import (
    CIRCUMDUCTION_EXCURSION,
    FRONTAL_SEVERITY_DEDUCTIONS,
    HIP_HIKING_AMPLITUDE,
    KNEE_VALGUS_MODERATE,
    KNEE_VALGUS_SEVERE,
    MIN_FRAMES_FRONTAL,
    MIN_SAMPLES_VARIABILITY,
    NORMALIZED_TO_METERS,
    PELVIC_DROP_MODERATE,
    PELVIC_DROP_SEVERE,
    SCISSORING_CROSSING_FRACTION,
    STABILITY_SCALE,
    STEP_WIDTH_NARROW,
    STEP_WIDTH_WIDE,
    TRUNK_LEAN_MODERATE,
    TRUNK_LEAN_SEVERE,
)
from ..core.frame_buffer import FrameBuffer
from ..core.landmarks import Landmark, PoseFrame, Side, hip_midpoint, lateral_sign, shoulder_midpoint
from ..utils.geometry import angle_from_vertical, line_inclination, relative_asymmetry
from ..utils.signal_processing import coefficient_of_variation, sign_reversals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrontalCompensation:
    type: str
    severity: str
    affected_side: str
    description: str
    biomechanical_cause: str
    clinical_implication: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class FrontalMetrics:
    """Frontal-plane summary; None fields mean no data"""
    step_width: Optional[float] = None
    step_width_variability: Optional[float] = None
    trunk_lateral_lean: Optional[float] = None
    trunk_lateral_lean_variability: Optional[float] = None
    pelvic_obliquity: Optional[float] = None
    pelvic_drop: Optional[float] = None
    knee_valgus: Optional[float] = None
    hip_adduction: Optional[float] = None
    circumduction: bool = False
    hip_hiking: bool = False
    excessive_trunk_sway: bool = False
    scissoring: bool = False
    lateral_stability_index: Optional[float] = None
    mediolateral_displacement: Optional[float] = None
    lateral_asymmetry_index: Optional[float] = None
    compensation_score: Optional[float] = None
    compensations: Tuple[FrontalCompensation, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> 'FrontalMetrics':
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.compensation_score is None

    def to_dict(self) -> Dict:
        result = {k: v for k, v in asdict(self).items() if k != 'compensations'}
        result['compensations'] = [c.to_dict() for c in self.compensations]
        return result


def _mean(values: Sequence[float]) -> Optional[float]:
    return float(np.mean(values)) if len(values) else None


def _obliquity(frame: PoseFrame) -> float:
    """Signed hip-line inclination; positive when the left hip is higher"""
    left, right = frame.get(Side.LEFT, Landmark.HIP), frame.get(Side.RIGHT, Landmark.HIP)
    return float(line_inclination(right.x, right.y, left.x, left.y))


class FrontalAnalyzer:
    """Compute FrontalMetrics over the most recent frames"""

    def __init__(self, config: Optional[ClassificationSettings] = None):
        self.config = config or ClassificationSettings()
        self.threshold = self.config.frontal_visibility_threshold

    def _frames_with(self, frames, *keys) -> List[PoseFrame]:
        return [f for f in frames if f.visible(self.threshold, *keys)]

    # ------------------------------------------------------------------
    # Individual metrics
    # ------------------------------------------------------------------

    def step_widths(self, frames) -> List[float]:
        ankles = ((Side.LEFT, Landmark.ANKLE), (Side.RIGHT, Landmark.ANKLE))
        return [
            abs(f.get(Side.LEFT, Landmark.ANKLE).x - f.get(Side.RIGHT, Landmark.ANKLE).x) * NORMALIZED_TO_METERS
            for f in self._frames_with(frames, *ankles)
        ]

    def trunk_leans(self, frames) -> List[float]:
        keys = ((Side.LEFT, Landmark.HIP), (Side.RIGHT, Landmark.HIP),
                (Side.LEFT, Landmark.SHOULDER), (Side.RIGHT, Landmark.SHOULDER))
        leans = []
        for f in self._frames_with(frames, *keys):
            hips, shoulders = hip_midpoint(f), shoulder_midpoint(f)
            leans.append(float(angle_from_vertical(shoulders.x - hips.x, shoulders.y - hips.y)))
        return leans

    def obliquities(self, frames) -> List[Optional[float]]:
        """Signed obliquity per frame, None where the hips are not visible"""
        hips = ((Side.LEFT, Landmark.HIP), (Side.RIGHT, Landmark.HIP))
        return [_obliquity(f) if f.visible(self.threshold, *hips) else None for f in frames]

    def pelvic_drop(self, obliquities: Sequence[Optional[float]]) -> Optional[float]:
        """Largest frame-to-frame obliquity change between consecutive visible frames"""
        changes = [
            abs(cur - prev)
            for prev, cur in zip(obliquities, obliquities[1:])
            if prev is not None and cur is not None
        ]
        return max(changes) if changes else None

    def knee_valgus_angles(self, frames) -> List[float]:
        angles = []
        for side in Side:
            keys = ((side, Landmark.HIP), (side, Landmark.KNEE), (side, Landmark.ANKLE))
            for f in self._frames_with(frames, *keys):
                hip, knee, ankle = (f.get(side, lm) for lm in (Landmark.HIP, Landmark.KNEE, Landmark.ANKLE))
                thigh = (knee.x - hip.x, knee.y - hip.y)
                shank = (ankle.x - knee.x, ankle.y - knee.y)
                cross = thigh[0] * shank[1] - thigh[1] * shank[0]
                dot = thigh[0] * shank[0] + thigh[1] * shank[1]
                angles.append(abs(float(np.degrees(np.arctan2(cross, dot)))))
        return angles

    def hip_adduction_angles(self, frames) -> List[float]:
        keys = tuple((side, lm) for side in Side for lm in (Landmark.HIP, Landmark.KNEE))
        angles = []
        for f in self._frames_with(frames, *keys):
            for side in Side:
                hip, knee = f.get(side, Landmark.HIP), f.get(side, Landmark.KNEE)
                angles.append(float(angle_from_vertical(knee.x - hip.x, knee.y - hip.y)))
        return angles

    def hip_center_positions(self, frames) -> List[float]:
        hips = ((Side.LEFT, Landmark.HIP), (Side.RIGHT, Landmark.HIP))
        return [hip_midpoint(f).x for f in self._frames_with(frames, *hips)]

    def lateral_stability_index(self, positions: Sequence[float]) -> Optional[float]:
        if len(positions) < MIN_SAMPLES_VARIABILITY:
            return None
        return float(np.clip(100.0 - np.std(positions) * STABILITY_SCALE, 0.0, 100.0))

    def mediolateral_displacement(self, positions: Sequence[float]) -> Optional[float]:
        if len(positions) < 2:
            return None
        return float((max(positions) - min(positions)) * NORMALIZED_TO_METERS)

    def lateral_asymmetry_index(self, frames) -> Optional[float]:
        hips = ((Side.LEFT, Landmark.HIP), (Side.RIGHT, Landmark.HIP))
        left, right = [], []
        for f in self._frames_with(frames, *hips):
            center = hip_midpoint(f).x
            left.append(abs(f.get(Side.LEFT, Landmark.HIP).x - center))
            right.append(abs(f.get(Side.RIGHT, Landmark.HIP).x - center))
        if not left:
            return None
        return relative_asymmetry(float(np.mean(left)), float(np.mean(right)))

    # ------------------------------------------------------------------
    # Pattern flags
    # ------------------------------------------------------------------

    def circumduction(self, frames) -> bool:
        """
        Swing-phase lateral ankle excursion beyond the stance baseline.

        Swing frames are those where the ankle is raised above its median
        height; excursion is measured away from the body midline.
        """
        for side in Side:
            keys = ((side, Landmark.HIP), (side, Landmark.ANKLE))
            usable = self._frames_with(frames, *keys)
            if len(usable) < MIN_SAMPLES_VARIABILITY:
                continue
            offsets, heights = [], []
            for f in usable:
                lateral = lateral_sign(f, side) or 1.0
                offsets.append((f.get(side, Landmark.ANKLE).x - f.get(side, Landmark.HIP).x) * lateral)
                heights.append(f.get(side, Landmark.ANKLE).y)
            offsets = np.array(offsets)
            heights = np.array(heights)
            swing = heights < np.median(heights)
            if not swing.any():
                continue
            excursion = offsets[swing].max() - np.median(offsets)
            if excursion > CIRCUMDUCTION_EXCURSION:
                return True
        return False

    def hip_hiking(self, obliquities: Sequence[Optional[float]]) -> bool:
        """Obliquity reverses sign with a half peak-to-peak amplitude above threshold"""
        signed = np.array([o for o in obliquities if o is not None])
        if len(signed) < MIN_SAMPLES_VARIABILITY or sign_reversals(signed) < 1:
            return False
        return (signed.max() - signed.min()) / 2 > HIP_HIKING_AMPLITUDE

    def scissoring(self, frames, step_width: Optional[float]) -> bool:
        """Narrow base or ankles crossing the midline"""
        if step_width is not None and step_width < STEP_WIDTH_NARROW:
            return True
        keys = tuple((side, lm) for side in Side for lm in (Landmark.HIP, Landmark.ANKLE))
        usable = self._frames_with(frames, *keys)
        if not usable:
            return False
        crossed = 0
        for f in usable:
            hip_dx = f.get(Side.LEFT, Landmark.HIP).x - f.get(Side.RIGHT, Landmark.HIP).x
            ankle_dx = f.get(Side.LEFT, Landmark.ANKLE).x - f.get(Side.RIGHT, Landmark.ANKLE).x
            if hip_dx * ankle_dx < 0:
                crossed += 1
        return crossed / len(usable) > SCISSORING_CROSSING_FRACTION

    @staticmethod
    def detect_compensations(step_width, trunk_lean, pelvic_drop, knee_valgus) -> List[FrontalCompensation]:
        compensations = []
        if pelvic_drop is not None and pelvic_drop > PELVIC_DROP_MODERATE:
            compensations.append(FrontalCompensation(
                'trendelenburg',
                'severe' if pelvic_drop > PELVIC_DROP_SEVERE else 'moderate',
                'bilateral',
                f"Pelvic drop of {pelvic_drop:.1f} deg",
                'Hip abductor weakness',
                'Risk of lumbar overload and lateral instability',
            ))
        if trunk_lean is not None and trunk_lean > TRUNK_LEAN_MODERATE:
            compensations.append(FrontalCompensation(
                'trunk_lean',
                'severe' if trunk_lean > TRUNK_LEAN_SEVERE else 'moderate',
                'bilateral',
                f"Lateral trunk lean of {trunk_lean:.1f} deg",
                'Compensation for weakness or shortening',
                'Higher energy cost and joint overload',
            ))
        if step_width is not None and step_width > STEP_WIDTH_WIDE:
            compensations.append(FrontalCompensation(
                'wide_base',
                'moderate',
                'bilateral',
                f"Wide base of support: {step_width:.2f} m",
                'Stabilization strategy',
                'Reduced energy efficiency',
            ))
        if knee_valgus is not None and knee_valgus > KNEE_VALGUS_MODERATE:
            compensations.append(FrontalCompensation(
                'knee_valgus',
                'severe' if knee_valgus > KNEE_VALGUS_SEVERE else 'moderate',
                'bilateral',
                f"Knee valgus of {knee_valgus:.1f} deg",
                'Muscular weakness or imbalance',
                'Risk of joint injury and pain',
            ))
        return compensations

    @staticmethod
    def compensation_score(compensations: Sequence[FrontalCompensation]) -> float:
        deduction = sum(FRONTAL_SEVERITY_DEDUCTIONS[c.severity] for c in compensations)
        return float(max(0, 100 - deduction))

    # ------------------------------------------------------------------

    def analyze(self, frames: Sequence[PoseFrame]) -> FrontalMetrics:
        """
        Compute frontal metrics over the most recent frames.

        Args:
            frames: Time-ordered frames; only the last `frontal_history` are used

        Returns:
            FrontalMetrics, or the empty variant below 20 frames
        """
        buffer = FrameBuffer(self.config.frontal_history)
        buffer.extend(frames)
        window = buffer.snapshot()

        if len(window) < MIN_FRAMES_FRONTAL:
            logger.warning(f"Insufficient frames for frontal analysis: {len(window)} < {MIN_FRAMES_FRONTAL}")
            return FrontalMetrics.empty()

        widths = self.step_widths(window)
        leans = self.trunk_leans(window)
        obliquities = self.obliquities(window)
        visible_obliquities = [abs(o) for o in obliquities if o is not None]
        positions = self.hip_center_positions(window)

        step_width = _mean(widths)
        trunk_lean = _mean(leans)
        pelvic_drop = self.pelvic_drop(obliquities)
        knee_valgus = _mean(self.knee_valgus_angles(window))

        compensations = self.detect_compensations(step_width, trunk_lean, pelvic_drop, knee_valgus)
        types = {c.type for c in compensations}

        return FrontalMetrics(
            step_width=step_width,
            step_width_variability=coefficient_of_variation(widths, MIN_SAMPLES_VARIABILITY),
            trunk_lateral_lean=trunk_lean,
            trunk_lateral_lean_variability=coefficient_of_variation(leans, MIN_SAMPLES_VARIABILITY),
            pelvic_obliquity=_mean(visible_obliquities),
            pelvic_drop=pelvic_drop,
            knee_valgus=knee_valgus,
            hip_adduction=_mean(self.hip_adduction_angles(window)),
            circumduction=self.circumduction(window),
            hip_hiking=self.hip_hiking(obliquities),
            excessive_trunk_sway='trunk_lean' in types,
            scissoring=self.scissoring(window, step_width),
            lateral_stability_index=self.lateral_stability_index(positions),
            mediolateral_displacement=self.mediolateral_displacement(positions),
            lateral_asymmetry_index=self.lateral_asymmetry_index(window),
            compensation_score=self.compensation_score(compensations),
            compensations=tuple(compensations),
        )


def compute_frontal_metrics(frames: Sequence[PoseFrame],
                            config: Optional[ClassificationSettings] = None) -> FrontalMetrics:
    return FrontalAnalyzer(config).analyze(frames)
