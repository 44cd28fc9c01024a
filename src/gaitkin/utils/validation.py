"""Validation utilities for input frame quality control"""
import numpy as np
import logging
from typing import Dict, List, Sequence

from ..core.landmarks import Landmark, PoseFrame, Side
from ..exceptions import DataQualityError, InsufficientDataError, InvalidFrameError

logger = logging.getLogger(__name__)


def validate_frame_order(frames: Sequence[PoseFrame]) -> bool:
    """
    Validate that timestamps are finite and non-decreasing.

    Args:
        frames: Loaded frames

    Returns:
        True if valid

    Raises:
        InvalidFrameError: On a NaN timestamp or one that goes backwards
    """
    previous = None
    for frame in frames:
        if not np.isfinite(frame.timestamp):
            raise InvalidFrameError("Timestamp is not finite", frame.timestamp)
        if previous is not None and frame.timestamp < previous:
            raise InvalidFrameError(
                f"Timestamp goes backwards (previous {previous})", frame.timestamp
            )
        previous = frame.timestamp
    return True


def validate_frames_present(frames: Sequence[PoseFrame], min_frames: int = 1) -> bool:
    """
    Validate that the input holds at least `min_frames` frames.

    Raises:
        InsufficientDataError: If fewer frames are present
    """
    if len(frames) < min_frames:
        raise InsufficientDataError(
            "Not enough frames in input", required=min_frames, actual=len(frames)
        )
    return True


def check_data_quality(frames: Sequence[PoseFrame], threshold: float) -> Dict[str, float]:
    """
    Fraction of frames in which each landmark is visible.

    Args:
        frames: Loaded frames
        threshold: Visibility threshold

    Returns:
        Dictionary mapping '<side>_<landmark>' to its visible ratio
    """
    total = len(frames)
    quality = {}
    for side in Side:
        for landmark in Landmark:
            visible = sum(1 for f in frames if f.get(side, landmark).is_visible(threshold))
            quality[f"{side.value}_{landmark.value}"] = visible / total if total > 0 else 0.0
    return quality


def quality_warnings(quality: Dict[str, float], min_valid_ratio: float = 0.5) -> List[str]:
    """Messages for landmarks visible in fewer than `min_valid_ratio` of frames"""
    return [
        f"{name} visible in {ratio * 100:.1f}% of frames"
        for name, ratio in quality.items() if ratio < min_valid_ratio
    ]


def validate_data_completeness(quality: Dict[str, float], min_valid_ratio: float = 0.1) -> bool:
    """
    Validate that at least one landmark is usable.

    Raises:
        DataQualityError: If every landmark is below `min_valid_ratio`
    """
    best = max(quality.values()) if quality else 0.0
    if best < min_valid_ratio:
        raise DataQualityError("best_landmark_visible_ratio", best, min_valid_ratio)
    return True


def log_validation_warnings(issues: List[str]) -> None:
    """
    Log validation warnings for non-critical issues.

    Args:
        issues: List of warning messages
    """
    if issues:
        logger.warning("Data quality warnings:")
        for issue in issues:
            logger.warning(f"  - {issue}")
