"""
Custom exception hierarchy for the gaitkin analysis engine.

Analysis stages report insufficient data through explicit empty results, so
these exceptions surface at the boundaries: configuration, input loading,
export, and the few preconditions callers can violate.

Version: 1.0.0
"""

from typing import Optional, Dict, Any


# ============================================================================
# Base Exception
# ============================================================================

class GaitKinError(Exception):
    """
    Base exception for all gaitkin errors.

    All custom exceptions inherit from this to allow catching every
    engine-specific error with a single except clause.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Args:
            message: Human-readable error description
            details: Optional dict with additional context (paths, values, etc.)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error with details if available"""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{details_str}]"
        return self.message


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(GaitKinError):
    """Base class for configuration-related errors"""
    pass


class ConfigFileNotFoundError(ConfigurationError):
    """Raised when config file doesn't exist"""

    def __init__(self, config_path: str):
        super().__init__(
            f"Configuration file not found: {config_path}",
            details={"config_path": config_path}
        )


class ConfigValidationError(ConfigurationError):
    """Raised when config contains invalid values"""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration value for '{field}': {reason}",
            details={"field": field, "value": value, "reason": reason}
        )


# ============================================================================
# Data Loading Errors
# ============================================================================

class DataLoadError(GaitKinError):
    """Base class for data loading errors"""
    pass


class InputFileNotFoundError(DataLoadError):
    """Raised when the landmark input file doesn't exist"""

    def __init__(self, file_path: str):
        super().__init__(
            f"Landmark input not found: {file_path}",
            details={"file_path": file_path}
        )


class InvalidFrameFormatError(DataLoadError):
    """Raised when an input file doesn't match a supported landmark layout"""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Invalid landmark format in {file_path}: {reason}",
            details={"file_path": file_path, "reason": reason}
        )


class InvalidFrameError(DataLoadError):
    """Raised when a single pose frame cannot be built"""

    def __init__(self, reason: str, timestamp: Optional[float] = None):
        details = {"reason": reason}
        if timestamp is not None:
            details["timestamp"] = timestamp
        super().__init__(f"Invalid pose frame: {reason}", details=details)


class InsufficientDataError(DataLoadError):
    """Raised when data doesn't meet minimum requirements"""

    def __init__(self, reason: str, required: Optional[int] = None, actual: Optional[int] = None):
        details = {"reason": reason}
        if required is not None:
            details["required"] = required
        if actual is not None:
            details["actual"] = actual

        super().__init__(
            f"Insufficient data: {reason}",
            details=details
        )


# ============================================================================
# Export Errors
# ============================================================================

class ExportError(GaitKinError):
    """Base class for export/output errors"""
    pass


class JSONExportError(ExportError):
    """Raised when JSON export fails"""

    def __init__(self, output_path: str, reason: str):
        super().__init__(
            f"JSON export failed: {reason}",
            details={"output_path": output_path, "reason": reason}
        )


class ExcelExportError(ExportError):
    """Raised when Excel export fails"""

    def __init__(self, output_path: str, reason: str):
        super().__init__(
            f"Excel export failed: {reason}",
            details={"output_path": output_path, "reason": reason}
        )


class PlotGenerationError(ExportError):
    """Raised when plot generation fails"""

    def __init__(self, plot_type: str, reason: str):
        super().__init__(
            f"Plot generation failed for '{plot_type}': {reason}",
            details={"plot_type": plot_type, "reason": reason}
        )


class OutputDirectoryError(ExportError):
    """Raised when output directory creation/access fails"""

    def __init__(self, directory: str, reason: str):
        super().__init__(
            f"Output directory error: {reason}",
            details={"directory": directory, "reason": reason}
        )


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(GaitKinError):
    """Base class for validation errors"""
    pass


class DataQualityError(ValidationError):
    """Raised when data doesn't meet quality thresholds"""

    def __init__(self, quality_metric: str, value: float, threshold: float):
        super().__init__(
            f"Data quality below threshold: {quality_metric}={value:.2%} (required: {threshold:.2%})",
            details={
                "quality_metric": quality_metric,
                "value": value,
                "threshold": threshold
            }
        )


# ============================================================================
# Pipeline Errors
# ============================================================================

class PipelineError(GaitKinError):
    """Base class for pipeline execution errors"""
    pass


class PipelineStageError(PipelineError):
    """Raised when a pipeline stage fails"""

    def __init__(self, stage_name: str, original_error: Exception):
        super().__init__(
            f"Pipeline stage '{stage_name}' failed: {str(original_error)}",
            details={
                "stage_name": stage_name,
                "original_error": type(original_error).__name__,
                "error_message": str(original_error)
            }
        )
        self.original_error = original_error


class PipelineStateError(PipelineError):
    """Raised when pipeline state is invalid"""

    def __init__(self, missing_data: list, stage: str):
        super().__init__(
            f"Invalid pipeline state at stage '{stage}': missing {', '.join(missing_data)}",
            details={"stage": stage, "missing_data": missing_data}
        )


# ============================================================================
# Utility Functions
# ============================================================================

def format_error_chain(error: Exception) -> str:
    """
    Format exception chain for logging.

    Args:
        error: Exception to format

    Returns:
        Multi-line string with full error chain
    """
    lines = [f"Error: {type(error).__name__}: {str(error)}"]

    if isinstance(error, GaitKinError) and error.details:
        lines.append("Details:")
        for key, value in error.details.items():
            lines.append(f"  {key}: {value}")

    if error.__cause__ is not None:
        lines.append("\nCaused by:")
        lines.append(format_error_chain(error.__cause__))

    return "\n".join(lines)
