"""JSON export of the complete analysis result"""
import json
import math
import numpy as np
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from ..exceptions import JSONExportError

logger = logging.getLogger(__name__)


def convert_numpy(obj: Any) -> Any:
    """Recursively convert numpy and enum values to JSON-compatible Python types.

    Non-finite floats become None.
    """
    if isinstance(obj, dict):
        return {str(k): convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [convert_numpy(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return convert_numpy(obj.tolist())
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        value = float(obj)
        return value if math.isfinite(value) else None
    if isinstance(obj, Enum):
        return obj.value
    return obj


class JSONExporter:
    """Write analysis results as an indented JSON document"""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def export(self, results: Dict[str, Any], filename: Optional[str] = None) -> Path:
        """
        Serialize results to `<output_dir>/<filename>`.

        Args:
            results: Nested dictionary of analysis results
            filename: Target file name; timestamped when omitted

        Returns:
            Path of the written file

        Raises:
            JSONExportError: If the file cannot be written or serialized
        """
        if filename is None:
            filename = f"gait_analysis_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        output_path = self.output_dir / filename

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w') as f:
                json.dump(convert_numpy(results), f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            raise JSONExportError(str(output_path), str(e)) from e

        logger.info(f"JSON results written to {output_path}")
        return output_path
