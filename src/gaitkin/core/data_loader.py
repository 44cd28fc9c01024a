"""Loading pose landmark recordings from CSV or JSON files"""
import json
import pandas as pd
import numpy as np
import logging
from pathlib import Path
from typing import Dict, List, Tuple, Union

from .landmarks import Landmark, LandmarkPoint, PoseFrame, Side
from ..exceptions import (
    InputFileNotFoundError,
    InvalidFrameError,
    InvalidFrameFormatError,
)
from ..utils.validation import validate_frame_order, validate_frames_present

logger = logging.getLogger(__name__)

COORDINATES = ('x', 'y', 'visibility')


class PoseDataLoader:
    """
    Load a landmark recording into an ordered list of PoseFrame.

    CSV files carry a `timestamp` column plus `<side>_<landmark>_x`,
    `_y` and `_visibility` columns per landmark. JSON files hold a list of
    `{timestamp, landmarks: {leftAnkle: {x, y, visibility}, ...}}` records,
    optionally wrapped in `{"frames": [...]}`.
    """

    def __init__(self):
        self.frames: List[PoseFrame] = []
        self.metadata: Dict = {}

    @staticmethod
    def _landmark_columns(columns) -> Dict[Tuple[Side, Landmark], Dict[str, str]]:
        """Group CSV columns by landmark; columns that match no landmark are skipped"""
        groups = {}
        for side in Side:
            for landmark in Landmark:
                prefix = f"{side.value}_{landmark.value}"
                names = {c: f"{prefix}_{c}" for c in COORDINATES}
                if names['x'] in columns and names['y'] in columns:
                    groups[(side, landmark)] = names
        return groups

    def load_csv(self, filepath: Path) -> List[PoseFrame]:
        """
        Load frames from a wide CSV file.

        Args:
            filepath: Path to CSV file

        Returns:
            List of PoseFrame in file order

        Raises:
            InvalidFrameFormatError: Missing timestamp column or no landmark columns
        """
        logger.info(f"Loading CSV landmarks from {filepath}")
        try:
            df = pd.read_csv(filepath)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise InvalidFrameFormatError(str(filepath), f"Unreadable CSV: {e}") from e

        if 'timestamp' not in df.columns:
            raise InvalidFrameFormatError(str(filepath), "Missing 'timestamp' column")

        groups = self._landmark_columns(set(df.columns))
        if not groups:
            raise InvalidFrameFormatError(str(filepath), "No landmark columns found")

        known = {'timestamp'} | {name for names in groups.values() for name in names.values()}
        ignored = [c for c in df.columns if c not in known]
        if ignored:
            logger.warning(f"Ignoring unrecognized columns: {', '.join(ignored)}")

        timestamps = df['timestamp'].to_numpy(dtype=float)
        arrays = {}
        for key, names in groups.items():
            x = df[names['x']].to_numpy(dtype=float)
            y = df[names['y']].to_numpy(dtype=float)
            if names['visibility'] in df.columns:
                vis = df[names['visibility']].to_numpy(dtype=float)
            else:
                vis = np.ones(len(df))
            arrays[key] = (x, y, vis)

        frames = []
        for i, timestamp in enumerate(timestamps):
            landmarks = {}
            for key, (x, y, vis) in arrays.items():
                # NaN coordinates mean the detector did not report the landmark
                if np.isnan(x[i]) or np.isnan(y[i]):
                    continue
                visibility = 0.0 if np.isnan(vis[i]) else float(vis[i])
                landmarks[key] = LandmarkPoint(float(x[i]), float(y[i]), visibility)
            frames.append(PoseFrame(float(timestamp), landmarks))

        logger.info(f"Loaded {len(frames)} frames, {len(groups)} landmarks")
        return frames

    def load_json(self, filepath: Path) -> List[PoseFrame]:
        """
        Load frames from a JSON recording.

        Args:
            filepath: Path to JSON file

        Returns:
            List of PoseFrame in file order

        Raises:
            InvalidFrameFormatError: Malformed JSON or records
        """
        logger.info(f"Loading JSON landmarks from {filepath}")
        try:
            with open(filepath, 'r') as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidFrameFormatError(str(filepath), f"Invalid JSON: {e}") from e

        records = payload.get('frames') if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise InvalidFrameFormatError(str(filepath), "Expected a list of frame records")

        frames = []
        for index, record in enumerate(records):
            if not isinstance(record, dict) or 'timestamp' not in record:
                raise InvalidFrameFormatError(str(filepath), f"Record {index} has no timestamp")
            try:
                frames.append(PoseFrame.from_flat(record['timestamp'], record.get('landmarks', {})))
            except InvalidFrameError as e:
                raise InvalidFrameFormatError(str(filepath), f"Record {index}: {e}") from e

        logger.info(f"Loaded {len(frames)} frames")
        return frames

    def load(self, filepath: Union[str, Path]) -> List[PoseFrame]:
        """
        Load a recording, dispatching on the file extension.

        Args:
            filepath: Path to a .csv or .json file

        Returns:
            List of PoseFrame with non-decreasing timestamps

        Raises:
            InputFileNotFoundError: If the file does not exist
            InvalidFrameFormatError: Unsupported extension or malformed content
            InvalidFrameError: Timestamps out of order
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise InputFileNotFoundError(str(filepath))

        suffix = filepath.suffix.lower()
        if suffix == '.csv':
            frames = self.load_csv(filepath)
        elif suffix == '.json':
            frames = self.load_json(filepath)
        else:
            raise InvalidFrameFormatError(str(filepath), f"Unsupported file type '{suffix}'")

        validate_frames_present(frames)
        validate_frame_order(frames)

        self.frames = frames
        duration = frames[-1].timestamp - frames[0].timestamp
        self.metadata = {
            'source': str(filepath),
            'n_frames': len(frames),
            'duration_sec': duration,
            'fps': (len(frames) - 1) / duration if duration > 0 else None,
        }
        logger.info(f"Recording: {len(frames)} frames, {duration:.2f} sec")
        return frames


def load_frames(filepath: Union[str, Path]) -> List[PoseFrame]:
    return PoseDataLoader().load(filepath)
