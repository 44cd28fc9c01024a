"""Pipeline context for state flow between stages.

Each stage reads what earlier stages produced from the context and
returns a new context carrying its own results.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional
import logging

from ..config_schema import GaitKinConfig
from ..core.landmarks import PoseFrame


@dataclass
class PipelineContext:
    """State container for pipeline execution.

    Attributes:
        input_path: Landmark recording (CSV or JSON)
        output_dir: Directory for results
        config: Validated configuration
        logger: Logger instance

        # Stage outputs (populated during execution)
        frames: Loaded pose frames
        kinematics: DetailedKinematics
        frontal: FrontalMetrics (frontal/dual views)
        events: Detected gait events
        cycles: Accepted gait cycles
        cycle_comparison: GaitCycleComparison or None
        kinematic_summary: KinematicSummary
        spatiotemporal: SpatiotemporalMetrics
        compensations: CompensationAnalysis
        pathology: PathologyAnalysis
        clinical: ClinicalValidation against normative data
        patterns: Rule-based probabilities, anomalies, fall risk and flags
        metadata: Pipeline metadata
        output_files: Generated output file paths
    """

    # Input parameters
    input_path: Path
    output_dir: Path
    config: GaitKinConfig
    logger: logging.Logger

    # Stage outputs
    frames: List[PoseFrame] = field(default_factory=list)
    kinematics: Any = None
    frontal: Any = None
    events: List[Any] = field(default_factory=list)
    cycles: List[Any] = field(default_factory=list)
    cycle_comparison: Any = None
    kinematic_summary: Any = None
    spatiotemporal: Any = None
    compensations: Any = None
    pathology: Any = None
    clinical: Any = None
    patterns: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    output_files: Dict[str, Any] = field(default_factory=dict)

    def results(self) -> Dict[str, Any]:
        """Serializable view of every analysis result"""
        def dump(value: Optional[Any]):
            return value.to_dict() if value is not None else None

        return {
            'metadata': self.metadata,
            'kinematics': dump(self.kinematics),
            'kinematic_summary': dump(self.kinematic_summary),
            'frontal_metrics': dump(self.frontal),
            'events': [e.to_dict() for e in self.events],
            'cycles': [c.to_dict() for c in self.cycles],
            'cycle_comparison': dump(self.cycle_comparison),
            'spatiotemporal': dump(self.spatiotemporal),
            'compensations': dump(self.compensations),
            'pathology': dump(self.pathology),
            'clinical_validation': dump(self.clinical),
            'patterns': self.patterns,
        }

    def update(self, **kwargs) -> 'PipelineContext':
        """Create new context with updated fields.

        Args:
            **kwargs: Fields to update

        Returns:
            New PipelineContext with updated fields
        """
        new_ctx = copy.copy(self)
        for key, value in kwargs.items():
            if hasattr(new_ctx, key):
                setattr(new_ctx, key, value)
            else:
                raise AttributeError(f"PipelineContext has no attribute '{key}'")
        return new_ctx
