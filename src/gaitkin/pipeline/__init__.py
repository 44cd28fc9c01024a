"""Pipeline architecture for gaitkin session analysis.

Each stage has a single responsibility and reads its inputs from, and
writes its outputs to, a PipelineContext.
"""

from .context import PipelineContext
from .executor import PipelineExecutor
from .stages import (
    ConfigurationStage,
    DataLoadingStage,
    KinematicsStage,
    EventDetectionStage,
    CycleAnalysisStage,
    KinematicSummaryStage,
    ClassificationStage,
    ExportStage
)

__all__ = [
    'PipelineContext',
    'PipelineExecutor',
    'ConfigurationStage',
    'DataLoadingStage',
    'KinematicsStage',
    'EventDetectionStage',
    'CycleAnalysisStage',
    'KinematicSummaryStage',
    'ClassificationStage',
    'ExportStage'
]
