"""Statistical aggregation for angle series and scalar metrics"""
import numpy as np
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesStats:
    """Descriptive statistics of one angle series"""
    max: float
    min: float
    max_index: int
    min_index: int
    mean: float
    std: float
    rom: float

    def peak_timing(self, length: int, use_max: bool = True) -> float:
        """Peak position as % of the series (index / (length - 1) * 100)"""
        index = self.max_index if use_max else self.min_index
        if length <= 1:
            return 0.0
        return index / (length - 1) * 100.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class StatisticsAggregator:
    """Aggregate series and metrics with statistical measures"""

    @staticmethod
    def compute_series_stats(values: Sequence[float]) -> Optional[SeriesStats]:
        """
        Compute max/min (with indices), mean, SD and ROM of a series.

        Args:
            values: Angle samples

        Returns:
            SeriesStats, or None for an empty series
        """
        arr = np.asarray(values, dtype=float)
        if len(arr) == 0:
            return None

        max_index = int(np.argmax(arr))
        min_index = int(np.argmin(arr))
        return SeriesStats(
            max=float(arr[max_index]),
            min=float(arr[min_index]),
            max_index=max_index,
            min_index=min_index,
            mean=float(np.mean(arr)),
            std=float(np.std(arr)),
            rom=float(arr[max_index] - arr[min_index]),
        )
