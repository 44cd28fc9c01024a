"""Pipeline stages for gaitkin session analysis.

Each stage is a focused, cohesive unit with a single responsibility.
Stages follow the pattern: receive context -> process -> return updated context.
"""

from datetime import datetime

from ..core.data_loader import PoseDataLoader
from ..core.frame_buffer import FrameBuffer
from ..core.landmarks import ViewMode
from ..analysis.joint_angles import compute_kinematics
from ..analysis.frontal_metrics import compute_frontal_metrics
from ..analysis.event_detector import GaitEventType, detect_session_events, events_of_type
from ..analysis.cycle_segmenter import segment_cycles
from ..analysis.cycle_comparison import analyze_cycles
from ..analysis.spatiotemporal import compute_metrics
from ..analysis.kinematic_summary import build_kinematic_summary
from ..analysis.compensation import detect_compensations
from ..analysis.pathology import analyze_pathology
from ..analysis.clinical_validation import validate_clinical
from ..analysis.pattern_classifier import (
    assess_fall_risk,
    classify_patterns,
    detect_anomalies,
    evaluate_pattern_flags,
)
from ..export.json_exporter import JSONExporter
from ..export.xlsx_exporter import XLSXExporter
from ..export.visualizer import generate_plots
from ..exceptions import PipelineStateError
from ..utils.validation import (
    check_data_quality,
    log_validation_warnings,
    quality_warnings,
    validate_data_completeness,
)

from .context import PipelineContext

TOTAL_STEPS = 8


def _view_mode(ctx: PipelineContext) -> ViewMode:
    return ViewMode.parse(ctx.config.general.view_mode)


class ConfigurationStage:
    """Log the effective configuration.

    Responsibility: announce the run and the non-default options in effect.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Log pipeline configuration.

        Args:
            ctx: Pipeline context with config

        Returns:
            Unchanged context
        """
        cfg = ctx.config

        ctx.logger.info("=" * 80)
        ctx.logger.info("gaitkin Gait Analysis Pipeline - Starting")
        ctx.logger.info("=" * 80)
        ctx.logger.info(f"Step 1/{TOTAL_STEPS}: Configuration")
        ctx.logger.info(f"  - View mode: {cfg.general.view_mode}")
        ctx.logger.info(f"  - Kinematic visibility threshold: {cfg.kinematics.visibility_threshold}")
        ctx.logger.info(f"  - Event visibility threshold: {cfg.events.visibility_threshold}")
        ctx.logger.info(f"  - Cycle duration window: "
                        f"{cfg.cycles.min_duration}-{cfg.cycles.max_duration} sec")
        ctx.logger.info(f"  - Phase anchoring: {cfg.cycles.phase_anchoring}")

        options = cfg.get_enabled_options()
        if options:
            ctx.logger.info(f"  - Enabled options: {', '.join(options)}")
        if cfg.session.distance_m is None:
            ctx.logger.info("  - No walked distance given: speed and step length will be omitted")

        return ctx


class DataLoadingStage:
    """Load and validate the landmark recording.

    Responsibility: read frames, report per-landmark visibility and reject
    recordings in which no landmark is usable.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Load frames from the input file.

        Args:
            ctx: Pipeline context with input path

        Returns:
            Context with frames and loader metadata populated
        """
        ctx.logger.info(f"Step 2/{TOTAL_STEPS}: Loading landmark data")
        loader = PoseDataLoader()
        frames = loader.load(ctx.input_path)

        quality = check_data_quality(frames, ctx.config.kinematics.visibility_threshold)
        log_validation_warnings(quality_warnings(quality))
        validate_data_completeness(quality)

        metadata = dict(ctx.metadata)
        metadata.update(loader.metadata)
        metadata['landmark_visibility'] = quality

        return ctx.update(frames=frames, metadata=metadata)


class KinematicsStage:
    """Compute joint angle series and frontal-plane metrics.

    Responsibility: run the joint angle engine over the most recent
    `kinematics.history_size` frames, plus frontal metrics for frontal views.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Compute kinematics.

        Args:
            ctx: Pipeline context with frames

        Returns:
            Context with kinematics (and frontal metrics) populated
        """
        if not ctx.frames:
            raise PipelineStateError(['frames'], 'KinematicsStage')

        ctx.logger.info(f"Step 3/{TOTAL_STEPS}: Computing joint kinematics")
        view_mode = _view_mode(ctx)
        settings = ctx.config.kinematics

        buffer = FrameBuffer(settings.history_size)
        buffer.extend(ctx.frames)
        window = buffer.snapshot()
        if len(window) < len(ctx.frames):
            ctx.logger.info(f"Kinematics use the last {len(window)} of {len(ctx.frames)} frames")

        kinematics = compute_kinematics(window, view_mode, settings)
        if kinematics.is_empty:
            ctx.logger.warning("No joint angle could be computed from the recording")

        frontal = None
        if view_mode.frontal:
            frontal = compute_frontal_metrics(ctx.frames, ctx.config.classification)
            if frontal.is_empty:
                ctx.logger.warning("Not enough visible frames for frontal-plane metrics")

        return ctx.update(kinematics=kinematics, frontal=frontal)


class EventDetectionStage:
    """Detect discrete gait events.

    Responsibility: replay the session through the streaming event detector.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Detect events.

        Args:
            ctx: Pipeline context with frames

        Returns:
            Context with events populated
        """
        ctx.logger.info(f"Step 4/{TOTAL_STEPS}: Detecting gait events")
        events = detect_session_events(ctx.frames, ctx.config.events)

        heel_strikes = events_of_type(events, GaitEventType.HEEL_STRIKE)
        if len(heel_strikes) < 2:
            ctx.logger.warning(f"Only {len(heel_strikes)} heel strikes detected, no cycle can be formed")

        return ctx.update(events=events)


class CycleAnalysisStage:
    """Segment cycles and compute cycle-level and spatiotemporal metrics.

    Responsibility: heel-strike cycles, bilateral comparison, and
    session-level spatiotemporal parameters.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Analyze gait cycles.

        Args:
            ctx: Pipeline context with events

        Returns:
            Context with cycles, cycle_comparison and spatiotemporal populated
        """
        ctx.logger.info(f"Step 5/{TOTAL_STEPS}: Segmenting gait cycles")
        session = ctx.config.session

        cycles = segment_cycles(ctx.events, ctx.config.cycles)
        comparison = analyze_cycles(cycles)
        if comparison is None:
            ctx.logger.warning("Bilateral cycle comparison needs at least one cycle per foot")
        else:
            ctx.logger.info(f"Asymmetry: {comparison.asymmetry.classification} "
                            f"(index {comparison.asymmetry.overall_asymmetry_index:.1f})")

        spatiotemporal = compute_metrics(
            ctx.events,
            distance_m=session.distance_m,
            duration_s=session.duration_s,
            frontal=ctx.frontal,
            patient_height_cm=session.patient_height_cm,
        )

        return ctx.update(cycles=cycles, cycle_comparison=comparison, spatiotemporal=spatiotemporal)


class KinematicSummaryStage:
    """Summarize the angle series.

    Responsibility: ROM, peak values, peak timing and kinematic deviations.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        ctx.logger.info(f"Step 6/{TOTAL_STEPS}: Summarizing kinematics")
        summary = build_kinematic_summary(ctx.kinematics)
        ctx.logger.info(f"Kinematic quality score: {summary.kinematic_quality_score:.1f} "
                        f"({len(summary.deviations)} deviations)")
        return ctx.update(kinematic_summary=summary)


class ClassificationStage:
    """Run the compensation, pathology, normative and rule-based classifiers.

    Responsibility: turn measured metrics into clinical findings.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Classify the session.

        Args:
            ctx: Pipeline context with summary, frontal and spatiotemporal metrics

        Returns:
            Context with compensations, pathology, clinical and patterns populated
        """
        ctx.logger.info(f"Step 7/{TOTAL_STEPS}: Classifying gait patterns")
        view_mode = _view_mode(ctx)
        settings = ctx.config.classification

        compensations = detect_compensations(
            ctx.frames, view_mode, ctx.kinematic_summary, ctx.frontal,
            ctx.spatiotemporal, settings,
        )
        pathology = analyze_pathology(ctx.spatiotemporal, ctx.cycles, compensations, settings)
        clinical = validate_clinical(ctx.spatiotemporal, ctx.cycles, ctx.kinematic_summary,
                                     pathology, ctx.config.session.patient_age_years)

        probabilities = classify_patterns(ctx.spatiotemporal)
        anomalies = detect_anomalies(ctx.spatiotemporal)
        fall_risk = assess_fall_risk(ctx.spatiotemporal)
        flags = evaluate_pattern_flags(
            ctx.spatiotemporal, view_mode, compensations, probabilities, anomalies,
        )
        patterns = {
            'probabilities': probabilities.to_dict(),
            'anomalies': [a.to_dict() for a in anomalies],
            'fall_risk': fall_risk.to_dict(),
            'flags': [f.to_dict() for f in flags],
        }
        ctx.logger.info(f"Primary rule-based pattern: {probabilities.primary_pattern}, "
                        f"fall risk {fall_risk.fall_risk:.0f}")

        return ctx.update(compensations=compensations, pathology=pathology,
                          clinical=clinical, patterns=patterns)


class ExportStage:
    """Export results to JSON, Excel and plots.

    Responsibility: write every enabled output file and record the paths.
    """

    def execute(self, ctx: PipelineContext) -> PipelineContext:
        """Export all results.

        Args:
            ctx: Pipeline context with all computed results

        Returns:
            Context with output_files and metadata populated
        """
        ctx.logger.info(f"Step 8/{TOTAL_STEPS}: Exporting results")
        export = ctx.config.export

        metadata = dict(ctx.metadata)
        metadata.update({
            'analysis_date': datetime.now().isoformat(),
            'input_file': str(ctx.input_path),
            'view_mode': ctx.config.general.view_mode,
            'n_events': len(ctx.events),
            'n_cycles': len(ctx.cycles),
            'options': ctx.config.get_enabled_options(),
        })
        ctx = ctx.update(metadata=metadata)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_files = {}

        if export.export_json:
            json_path = JSONExporter(ctx.output_dir).export(
                ctx.results(), f"gait_analysis_{timestamp}.json")
            output_files['json'] = str(json_path)

        if export.export_xlsx:
            xlsx_path = XLSXExporter(ctx.output_dir / f"Gait_Analysis_{timestamp}.xlsx").export(
                kinematics=ctx.kinematics,
                kinematic_summary=ctx.kinematic_summary,
                events=ctx.events,
                cycles=ctx.cycles,
                spatiotemporal=ctx.spatiotemporal,
                comparison=ctx.cycle_comparison,
                compensations=ctx.compensations,
                pathology=ctx.pathology,
                clinical=ctx.clinical,
                metadata=metadata,
            )
            output_files['xlsx'] = str(xlsx_path)

        if export.generate_plots:
            plots = generate_plots(ctx.output_dir / 'plots', ctx.kinematics,
                                   ctx.events, ctx.cycles, dpi=export.plot_dpi)
            output_files['plots'] = [str(p) for p in plots.values()]

        ctx.logger.info("=" * 80)
        ctx.logger.info("Analysis complete!")
        ctx.logger.info(f"Results saved to: {ctx.output_dir}")
        for kind, path in output_files.items():
            if kind == 'plots':
                ctx.logger.info(f"  - Plots: {len(path)} PNG files")
            else:
                ctx.logger.info(f"  - {kind.upper()}: {path}")
        ctx.logger.info("=" * 80)

        return ctx.update(output_files=output_files)
