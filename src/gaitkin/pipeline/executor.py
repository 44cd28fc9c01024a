"""Pipeline executor orchestrates stage execution."""

from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging
from datetime import datetime

from ..config_schema import GaitKinConfig
from ..exceptions import GaitKinError, PipelineStageError, format_error_chain
from .context import PipelineContext
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

PACKAGE_LOGGER = "gaitkin"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PipelineExecutor:
    """Orchestrates pipeline stage execution.

    The executor keeps an ordered list of stages and runs them sequentially,
    passing the context from one stage to the next.

    Attributes:
        stages: Ordered list of pipeline stages to execute
    """

    def __init__(self):
        self.stages = [
            ConfigurationStage(),
            DataLoadingStage(),
            KinematicsStage(),
            EventDetectionStage(),
            CycleAnalysisStage(),
            KinematicSummaryStage(),
            ClassificationStage(),
            ExportStage()
        ]

    def execute(
        self,
        input_path: Path,
        output_dir: Path,
        verbose: bool = False,
        config: Optional[Union[GaitKinConfig, Dict]] = None
    ) -> Dict[str, Any]:
        """Execute the complete gait analysis pipeline.

        Args:
            input_path: Landmark recording (CSV or JSON)
            output_dir: Output directory for results
            verbose: Enable verbose logging
            config: GaitKinConfig or plain configuration dictionary

        Returns:
            Dictionary with analysis results and metadata:
            {
                'status': 'success' or 'error',
                'metadata': {...},
                'output_files': {...},
                'results': {...},
                'error': '...' (if status == 'error')
            }
        """
        output_dir = Path(output_dir)
        logger, run_handler = self._setup_logging(output_dir, verbose)
        try:
            return self._run(input_path, output_dir, config, logger)
        finally:
            logging.getLogger(PACKAGE_LOGGER).removeHandler(run_handler)
            run_handler.close()

    def _run(self, input_path, output_dir: Path, config, logger: logging.Logger) -> Dict[str, Any]:
        ctx = None
        try:
            if not isinstance(config, GaitKinConfig):
                config = GaitKinConfig.from_dict(config or {})

            ctx = PipelineContext(
                input_path=Path(input_path),
                output_dir=output_dir,
                config=config,
                logger=logger
            )

            for stage in self.stages:
                stage_name = stage.__class__.__name__
                logger.debug(f"Executing {stage_name}")
                try:
                    ctx = stage.execute(ctx)
                except GaitKinError:
                    raise
                except Exception as e:
                    raise PipelineStageError(stage_name, e) from e

            return {
                'status': 'success',
                'metadata': ctx.metadata,
                'output_files': ctx.output_files,
                'results': ctx.results()
            }

        except Exception as e:
            logger.error(f"Pipeline failed: {str(e)}")
            logger.debug(format_error_chain(e), exc_info=True)
            return {
                'status': 'error',
                'error': str(e)
            }

    def _setup_logging(self, output_dir: Path, verbose: bool = False):
        """Attach a log file for this run to the package logger.

        Args:
            output_dir: Directory for log files
            verbose: Enable debug level logging

        Returns:
            Tuple of (executor logger, file handler to detach after the run)
        """
        log_dir = output_dir / 'logs'
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f'analysis_log_{datetime.now().strftime("%Y%m%d_%H%M%S")}.txt'
        formatter = logging.Formatter(LOG_FORMAT)

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        if not any(type(h) is logging.StreamHandler for h in package_logger.handlers):
            console = logging.StreamHandler()
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

        return logging.getLogger(__name__), file_handler
