"""Fixed-capacity FIFO buffer of pose frames"""
import logging
from collections import deque
from typing import Iterable, Tuple

from .landmarks import PoseFrame
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Sliding window of the most recent frames.

    Owned by the ingestion loop. Consumers only see `snapshot()` tuples, so
    an analysis call never observes a later eviction.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ConfigurationError(
                f"Frame buffer capacity must be >= 1, got {capacity}",
                details={"capacity": capacity}
            )
        self.capacity = capacity
        self._frames = deque(maxlen=capacity)

    def push(self, frame: PoseFrame) -> None:
        """Append a frame, evicting the oldest on overflow"""
        self._frames.append(frame)

    def extend(self, frames: Iterable[PoseFrame]) -> None:
        for frame in frames:
            self.push(frame)

    def snapshot(self) -> Tuple[PoseFrame, ...]:
        return tuple(self._frames)

    def clear(self) -> None:
        self._frames.clear()

    def is_full(self) -> bool:
        return len(self._frames) == self.capacity

    def __len__(self) -> int:
        return len(self._frames)

    def __repr__(self) -> str:
        return f"FrameBuffer(capacity={self.capacity}, size={len(self)})"
