"""Planar geometry for landmark-based joint angles"""
import numpy as np
from typing import Optional

from ..constants import EPSILON


def fold_angle(angle: np.ndarray) -> np.ndarray:
    """
    Fold angles given in [0, 360) into [0, 180].

    Args:
        angle: Angle(s) in degrees

    Returns:
        Folded angle(s), 180 - |angle - 180|
    """
    return 180.0 - np.abs(np.mod(angle, 360.0) - 180.0)


def compute_angle_3points(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> np.ndarray:
    """
    Compute the angle at p2 formed by p1-p2-p3 in degrees.

    Uses the difference of the two atan2 headings, normalized to [0, 360)
    and folded into [0, 180].

    Args:
        p1: Array of shape (N, 2) or (2,), proximal point
        p2: Array of shape (N, 2) or (2,), vertex point
        p3: Array of shape (N, 2) or (2,), distal point

    Returns:
        Angle(s) in degrees (0-180)
    """
    p1 = np.atleast_2d(np.asarray(p1, dtype=float))
    p2 = np.atleast_2d(np.asarray(p2, dtype=float))
    p3 = np.atleast_2d(np.asarray(p3, dtype=float))

    heading_c = np.arctan2(p3[:, 1] - p2[:, 1], p3[:, 0] - p2[:, 0])
    heading_a = np.arctan2(p1[:, 1] - p2[:, 1], p1[:, 0] - p2[:, 0])
    angle = fold_angle(np.degrees(heading_c - heading_a))

    return angle if len(angle) > 1 else angle[0]


def three_point_angle(a, b, c) -> float:
    """Angle at landmark b for three LandmarkPoint-like objects (degrees, 0-180)"""
    return float(compute_angle_3points((a.x, a.y), (b.x, b.y), (c.x, c.y)))


def angle_from_vertical(dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    """
    Unsigned angle between vector (dx, dy) and the image vertical axis.

    Args:
        dx: Horizontal component(s)
        dy: Vertical component(s)

    Returns:
        Angle(s) in degrees (0-90 for either vertical direction)
    """
    return np.degrees(np.arctan2(np.abs(dx), np.abs(dy) + EPSILON))


def line_inclination(x1, y1, x2, y2) -> np.ndarray:
    """
    Signed inclination of the line p1->p2 from horizontal.

    Positive when p2 is higher in the image than p1 (smaller y).

    Returns:
        Angle(s) in degrees (-90, 90)
    """
    dx = np.abs(np.asarray(x2, dtype=float) - np.asarray(x1, dtype=float))
    dy = np.asarray(y1, dtype=float) - np.asarray(y2, dtype=float)
    return np.degrees(np.arctan2(dy, dx + EPSILON))


def relative_asymmetry(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """
    Bilateral asymmetry index |L - R| / mean(L, R) * 100.

    Symmetric in its arguments. Returns None when either side is missing and
    0.0 when both sides are zero.
    """
    if left is None or right is None:
        return None
    mean = (left + right) / 2.0
    if abs(mean) < EPSILON:
        return 0.0
    return abs(left - right) / abs(mean) * 100.0


def absolute_asymmetry(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """Percentage-point asymmetry |L - R|"""
    if left is None or right is None:
        return None
    return abs(left - right)
