"""
Pydantic schema validation for gaitkin configuration files.

Provides strong typing, validation, and documentation for every tunable
threshold. The view mode is the only setting that changes which angle
families are computed; the rest only move thresholds.

Version: 1.0.0
"""

from typing import Optional, Literal, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator
from pathlib import Path

from .exceptions import ConfigFileNotFoundError

from .constants import (
    KINEMATIC_VISIBILITY_THRESHOLD,
    EVENT_VISIBILITY_THRESHOLD,
    FRONTAL_VISIBILITY_THRESHOLD,
    EVENT_BUFFER_CAPACITY,
    FRONTAL_BUFFER_CAPACITY,
    COMPENSATION_BUFFER_CAPACITY,
    KINEMATIC_BUFFER_CAPACITY,
    MIN_FRAMES_KINEMATICS,
    DIRECTION_NOISE_THRESHOLD,
    HEEL_STRIKE_MAX_VELOCITY,
    TOE_OFF_VELOCITY,
    HEEL_OFF_VELOCITY,
    FOOT_FLAT_STABILITY,
    MAX_KNEE_FLEXION_ANGLE,
    MAX_HIP_EXTENSION_ANGLE,
    MIN_CYCLE_DURATION_SEC,
    MAX_CYCLE_DURATION_SEC,
    PRIMARY_CONFIDENCE,
    DIFFERENTIAL_CONFIDENCE,
    PLOT_DPI,
)


class GeneralSettings(BaseModel):
    """General engine settings"""

    view_mode: Literal["lateral", "frontal", "dual"] = Field(
        default="lateral",
        description="Camera view. lateral: sagittal angles, frontal: frontal angles, dual: both"
    )

    output_dir: str = Field(
        default="results",
        description="Directory for output files (JSON, Excel, plots, logs)"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level"
    )

    @field_validator('output_dir')
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        """Ensure output directory is valid"""
        path = Path(v)
        if path.exists() and not path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {v}")
        return v


class KinematicsSettings(BaseModel):
    """Joint angle extraction"""

    visibility_threshold: float = Field(
        default=KINEMATIC_VISIBILITY_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Minimum landmark visibility for an angle sample"
    )

    min_frames: int = Field(
        default=MIN_FRAMES_KINEMATICS,
        ge=2,
        le=1000,
        description="Below this many frames the kinematics are empty"
    )

    history_size: int = Field(
        default=KINEMATIC_BUFFER_CAPACITY,
        ge=10,
        le=10000,
        description="Frame buffer capacity for batch kinematics"
    )

    direction_noise_threshold: float = Field(
        default=DIRECTION_NOISE_THRESHOLD,
        ge=0.0,
        le=0.5,
        description="Net hip displacement below this keeps the previous walking direction"
    )

    smoothing_window: int = Field(
        default=0,
        ge=0,
        le=31,
        description="Savitzky-Golay window for angle smoothing (0 disables, otherwise odd)"
    )

    smoothing_poly: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Savitzky-Golay polynomial order (must be < window)"
    )

    @field_validator('smoothing_window')
    @classmethod
    def validate_window_odd(cls, v: int) -> int:
        """Ensure window size is odd when enabled"""
        if v and v % 2 == 0:
            raise ValueError(f"smoothing_window must be odd, got {v}")
        return v

    @model_validator(mode='after')
    def validate_poly_window_relationship(self):
        """Ensure polynomial order < window size"""
        if self.smoothing_window and self.smoothing_poly >= self.smoothing_window:
            raise ValueError(
                f"smoothing_poly ({self.smoothing_poly}) must be < "
                f"smoothing_window ({self.smoothing_window})"
            )
        return self


class EventDetectionSettings(BaseModel):
    """Gait event rules"""

    visibility_threshold: float = Field(
        default=EVENT_VISIBILITY_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Minimum landmark visibility for an event rule"
    )

    buffer_size: int = Field(
        default=EVENT_BUFFER_CAPACITY,
        ge=10,
        le=200,
        description="Sliding window of frames used by the event rules"
    )

    heel_strike_max_velocity: float = Field(
        default=HEEL_STRIKE_MAX_VELOCITY,
        gt=0,
        description="|dy| of the ankle below which the foot counts as stopped"
    )

    toe_off_velocity: float = Field(
        default=TOE_OFF_VELOCITY,
        lt=0,
        description="Upward ankle dy (negative) that marks toe-off"
    )

    heel_off_velocity: float = Field(
        default=HEEL_OFF_VELOCITY,
        lt=0,
        description="Upward ankle dy (negative) that marks heel-off"
    )

    foot_flat_stability: float = Field(
        default=FOOT_FLAT_STABILITY,
        gt=0,
        description="Ankle position spread below which the foot is flat"
    )

    max_knee_flexion_angle: float = Field(
        default=MAX_KNEE_FLEXION_ANGLE,
        ge=0,
        le=180,
        description="Three-point knee angle a local maximum must exceed"
    )

    max_hip_extension_angle: float = Field(
        default=MAX_HIP_EXTENSION_ANGLE,
        ge=0,
        le=180,
        description="Thigh-to-vertical angle a local maximum must exceed"
    )

    @model_validator(mode='after')
    def validate_velocity_ordering(self):
        """Toe-off must be a faster upward motion than heel-off"""
        if self.toe_off_velocity >= self.heel_off_velocity:
            raise ValueError(
                f"toe_off_velocity ({self.toe_off_velocity}) must be < "
                f"heel_off_velocity ({self.heel_off_velocity})"
            )
        return self


class CycleSettings(BaseModel):
    """Gait cycle segmentation"""

    min_duration: float = Field(
        default=MIN_CYCLE_DURATION_SEC,
        gt=0,
        le=5,
        description="Shortest accepted heel-strike to heel-strike interval (sec)"
    )

    max_duration: float = Field(
        default=MAX_CYCLE_DURATION_SEC,
        gt=0,
        le=10,
        description="Longest accepted heel-strike to heel-strike interval (sec)"
    )

    phase_anchoring: Literal["fixed", "events"] = Field(
        default="fixed",
        description="fixed: literature fractions, events: anchor stance/swing at detected toe-off"
    )

    @model_validator(mode='after')
    def validate_duration_ordering(self):
        """Ensure min < max cycle duration"""
        if self.min_duration >= self.max_duration:
            raise ValueError(
                f"min_duration ({self.min_duration}) must be < "
                f"max_duration ({self.max_duration})"
            )
        return self


class ClassificationSettings(BaseModel):
    """Compensation and pathology classifiers"""

    primary_confidence: float = Field(
        default=PRIMARY_CONFIDENCE,
        ge=0.0,
        le=1.0,
        description="Pathology confidence above which a finding is primary"
    )

    differential_confidence: float = Field(
        default=DIFFERENTIAL_CONFIDENCE,
        ge=0.0,
        le=1.0,
        description="Pathology confidence above which a finding is differential"
    )

    compensation_history: int = Field(
        default=COMPENSATION_BUFFER_CAPACITY,
        ge=10,
        le=10000,
        description="Frames of history used by the compensation detector"
    )

    frontal_history: int = Field(
        default=FRONTAL_BUFFER_CAPACITY,
        ge=20,
        le=10000,
        description="Frames of history used by the frontal-plane metrics"
    )

    frontal_visibility_threshold: float = Field(
        default=FRONTAL_VISIBILITY_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Minimum landmark visibility for frontal-plane metrics"
    )

    @model_validator(mode='after')
    def validate_confidence_ordering(self):
        """Ensure differential threshold < primary threshold"""
        if self.differential_confidence >= self.primary_confidence:
            raise ValueError(
                f"differential_confidence ({self.differential_confidence}) must be < "
                f"primary_confidence ({self.primary_confidence})"
            )
        return self


class SessionSettings(BaseModel):
    """Session-level scalars supplied by the capture collaborator"""

    distance_m: Optional[float] = Field(
        default=None,
        gt=0,
        le=1000,
        description="Walked distance (meters). Required for speed and step length"
    )

    duration_s: Optional[float] = Field(
        default=None,
        gt=0,
        le=3600,
        description="Trial duration (seconds). Falls back to the event span"
    )

    patient_height_cm: Optional[float] = Field(
        default=None,
        gt=50,
        le=250,
        description="Patient height (cm) for normalized metrics"
    )

    patient_age_years: Optional[int] = Field(
        default=None,
        ge=1,
        le=120,
        description="Patient age (years). Selects the normative reference group"
    )


class ExportSettings(BaseModel):
    """Output generation settings"""

    export_json: bool = Field(
        default=True,
        description="Write the full analysis as JSON"
    )

    export_xlsx: bool = Field(
        default=True,
        description="Write an Excel workbook with summary sheets"
    )

    generate_plots: bool = Field(
        default=True,
        description="Generate joint angle PNG plots"
    )

    plot_dpi: int = Field(
        default=PLOT_DPI,
        ge=72,
        le=600,
        description="Plot resolution (DPI)"
    )


class GaitKinConfig(BaseModel):
    """Complete gaitkin configuration"""

    general: GeneralSettings = Field(default_factory=GeneralSettings)
    kinematics: KinematicsSettings = Field(default_factory=KinematicsSettings)
    events: EventDetectionSettings = Field(default_factory=EventDetectionSettings)
    cycles: CycleSettings = Field(default_factory=CycleSettings)
    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'GaitKinConfig':
        """Load and validate config from YAML file"""
        import yaml

        yaml_file = Path(yaml_path)
        if not yaml_file.exists():
            raise ConfigFileNotFoundError(str(yaml_path))

        with open(yaml_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        return cls(**raw_config)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'GaitKinConfig':
        """Load and validate config from dictionary"""
        return cls(**(config_dict or {}))

    def to_dict(self) -> Dict[str, Any]:
        """Export config to dictionary"""
        return self.model_dump()

    def get_enabled_options(self) -> list:
        """List which non-default analysis options are enabled"""
        options = []
        if self.general.view_mode != "lateral":
            options.append(f"view_mode={self.general.view_mode}")
        if self.kinematics.smoothing_window:
            options.append("angle_smoothing")
        if self.cycles.phase_anchoring == "events":
            options.append("event_anchored_phases")
        if self.session.distance_m is not None:
            options.append("speed_metrics")
        if self.session.patient_height_cm is not None:
            options.append("normalized_metrics")
        if self.session.patient_age_years is not None:
            options.append("age_matched_norms")
        return options


def load_config(config_path: str) -> GaitKinConfig:
    """
    Load and validate gaitkin config.

    Args:
        config_path: Path to YAML config file

    Returns:
        Validated GaitKinConfig object

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist
        ValidationError: If config contains invalid values
    """
    return GaitKinConfig.from_yaml(config_path)
