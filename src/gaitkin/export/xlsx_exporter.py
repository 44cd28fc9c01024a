"""Excel export functionality for analysis results"""
import pandas as pd
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..constants import EXCEL_FLOAT_PRECISION
from ..exceptions import ExcelExportError

logger = logging.getLogger(__name__)


class XLSXExporter:
    """Export analysis results to Excel workbook"""

    def __init__(self, output_path: Path):
        """
        Initialize XLSX exporter.

        Args:
            output_path: Path for output XLSX file
        """
        self.output_path = Path(output_path)

    @staticmethod
    def create_summary_sheet(spatiotemporal, kinematic_summary, comparison,
                             compensations, pathology) -> pd.DataFrame:
        """
        One row per headline metric.

        Args:
            spatiotemporal: SpatiotemporalMetrics or None
            kinematic_summary: KinematicSummary or None
            comparison: GaitCycleComparison or None
            compensations: CompensationAnalysis or None
            pathology: PathologyAnalysis or None

        Returns:
            Summary DataFrame with section/metric/value columns
        """
        rows = []
        if spatiotemporal is not None:
            for metric, value in spatiotemporal.to_dict().items():
                rows.append({'section': 'spatiotemporal', 'metric': metric, 'value': value})
        if kinematic_summary is not None:
            rows.append({'section': 'kinematics', 'metric': 'kinematic_quality_score',
                         'value': kinematic_summary.kinematic_quality_score})
            rows.append({'section': 'kinematics', 'metric': 'deviation_count',
                         'value': len(kinematic_summary.deviations)})
        if comparison is not None:
            rows.append({'section': 'cycles', 'metric': 'overall_asymmetry_index',
                         'value': comparison.asymmetry.overall_asymmetry_index})
            rows.append({'section': 'cycles', 'metric': 'asymmetry_classification',
                         'value': comparison.asymmetry.classification})
        if compensations is not None:
            rows.append({'section': 'compensations', 'metric': 'compensation_score',
                         'value': compensations.compensation_score})
            rows.append({'section': 'compensations', 'metric': 'overall_severity',
                         'value': compensations.overall_severity})
        if pathology is not None:
            rows.append({'section': 'pathology', 'metric': 'fall_risk',
                         'value': pathology.risk_factors.fall_risk})
            rows.append({'section': 'pathology', 'metric': 'mobility_level',
                         'value': pathology.risk_factors.mobility_level})
        return pd.DataFrame(rows, columns=['section', 'metric', 'value'])

    @staticmethod
    def create_kinematics_sheet(kinematic_summary) -> pd.DataFrame:
        """
        ROM, peak values and peak timing per joint and side.

        Args:
            kinematic_summary: KinematicSummary

        Returns:
            DataFrame with group/metric/left/right columns
        """
        rows = []
        groups = {
            'ankle_rom': kinematic_summary.ankle_rom,
            'knee_rom': kinematic_summary.knee_rom,
            'hip_rom': kinematic_summary.hip_rom,
            'peak_values': kinematic_summary.peak_values,
            'peak_timing': kinematic_summary.peak_timing,
        }
        for group, values in groups.items():
            for metric, pair in values.items():
                rows.append({'group': group, 'metric': metric,
                             'left': pair.left, 'right': pair.right})
        return pd.DataFrame(rows, columns=['group', 'metric', 'left', 'right'])

    @staticmethod
    def create_angle_series_sheet(kinematics) -> pd.DataFrame:
        """
        Long-format angle samples for every computed family.

        Args:
            kinematics: DetailedKinematics

        Returns:
            DataFrame with family/side/timestamp/angle/velocity/acceleration
        """
        frames = []
        for name in kinematics.BILATERAL_FAMILIES + kinematics.SINGLE_FAMILIES:
            value = getattr(kinematics, name)
            if value is None:
                continue
            series_by_side = ({'left': value.left, 'right': value.right}
                              if name in kinematics.BILATERAL_FAMILIES else {'-': value})
            for side, series in series_by_side.items():
                if series.is_empty:
                    continue
                frames.append(pd.DataFrame({
                    'family': name,
                    'side': side,
                    'timestamp': series.timestamps,
                    'angle': series.angles,
                    'velocity': series.velocity,
                    'acceleration': series.acceleration,
                }))
        columns = ['family', 'side', 'timestamp', 'angle', 'velocity', 'acceleration']
        if not frames:
            return pd.DataFrame(columns=columns)
        return pd.concat(frames, ignore_index=True)

    @staticmethod
    def create_events_sheet(events: Sequence) -> pd.DataFrame:
        rows = [e.to_dict() for e in events]
        return pd.DataFrame(rows, columns=['type', 'foot', 'timestamp', 'confidence'])

    @staticmethod
    def create_cycles_sheet(cycles: Sequence) -> pd.DataFrame:
        """
        One row per accepted cycle with its phase percentages.

        Args:
            cycles: GaitCycle list

        Returns:
            Cycles DataFrame
        """
        rows = []
        for i, cycle in enumerate(cycles):
            row = {
                'cycle_number': i + 1,
                'foot': cycle.foot.value,
                'start_time': cycle.start_time,
                'end_time': cycle.end_time,
                'duration': cycle.duration,
                'stance_percent': cycle.stance_percent,
                'swing_percent': cycle.swing_percent,
                'anchored': cycle.anchored,
                'event_count': len(cycle.events),
            }
            for phase in cycle.phases:
                row[f"{phase.key}_percent"] = phase.percent_of_cycle
            rows.append(row)
        return pd.DataFrame(rows)

    @staticmethod
    def create_findings_sheet(kinematic_summary, comparison, compensations, pathology,
                              clinical=None) -> pd.DataFrame:
        """
        Every clinical finding in one table.

        Returns:
            DataFrame with source/finding/side/severity/confidence/description
        """
        rows = []
        if kinematic_summary is not None:
            for d in kinematic_summary.deviations:
                rows.append({'source': 'kinematics', 'finding': d.deviation, 'side': d.side,
                             'severity': d.severity, 'confidence': None, 'description': d.description})
        if comparison is not None:
            for side, metrics in (('left', comparison.left), ('right', comparison.right)):
                for d in metrics.clinical_deviations:
                    rows.append({'source': 'cycles', 'finding': d.deviation, 'side': side,
                                 'severity': d.severity, 'confidence': None, 'description': d.description})
            for d in comparison.bilateral_deviations:
                rows.append({'source': 'cycles', 'finding': d.deviation, 'side': 'bilateral',
                             'severity': d.severity, 'confidence': None, 'description': d.description})
        if compensations is not None:
            for c in compensations.detected:
                rows.append({'source': 'compensation', 'finding': c.type, 'side': c.side,
                             'severity': c.severity, 'confidence': c.confidence,
                             'description': c.description})
        if pathology is not None:
            for tier, findings in (('primary', pathology.primary_findings),
                                   ('differential', pathology.differential_diagnosis)):
                for f in findings:
                    rows.append({'source': f"pathology_{tier}", 'finding': f.name, 'side': None,
                                 'severity': f.severity, 'confidence': f.confidence,
                                 'description': '; '.join(f.evidence)})
        if clinical is not None:
            for i in clinical.abnormal:
                rows.append({'source': 'normative', 'finding': i.parameter, 'side': i.side,
                             'severity': i.classification, 'confidence': None,
                             'description': f"{i.clinical_significance} (z={i.z_score:.2f}, "
                                            f"percentile {i.percentile})"})
        return pd.DataFrame(rows, columns=['source', 'finding', 'side', 'severity',
                                           'confidence', 'description'])

    def export(self,
               kinematics=None,
               kinematic_summary=None,
               events: Sequence = (),
               cycles: Sequence = (),
               spatiotemporal=None,
               comparison=None,
               compensations=None,
               pathology=None,
               clinical=None,
               metadata: Optional[Dict] = None) -> Path:
        """
        Export all results to an Excel workbook.

        Returns:
            Path of the written workbook

        Raises:
            ExcelExportError: If the workbook cannot be written
        """
        logger.info(f"Exporting results to {self.output_path}")

        sheets: List = [('Summary', self.create_summary_sheet(
            spatiotemporal, kinematic_summary, comparison, compensations, pathology))]
        if kinematic_summary is not None:
            sheets.append(('Kinematics', self.create_kinematics_sheet(kinematic_summary)))
        if kinematics is not None:
            sheets.append(('Angle Series', self.create_angle_series_sheet(kinematics)))
        sheets.append(('Events', self.create_events_sheet(events)))
        sheets.append(('Cycles', self.create_cycles_sheet(cycles)))
        sheets.append(('Findings', self.create_findings_sheet(
            kinematic_summary, comparison, compensations, pathology, clinical)))
        if metadata:
            meta_rows = [{'key': k, 'value': str(v)} for k, v in metadata.items()]
            sheets.append(('Metadata', pd.DataFrame(meta_rows)))

        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            with pd.ExcelWriter(self.output_path, engine='openpyxl') as writer:
                for name, df in sheets:
                    df.round(EXCEL_FLOAT_PRECISION).to_excel(writer, sheet_name=name, index=False)
        except (OSError, ValueError) as e:
            raise ExcelExportError(str(self.output_path), str(e)) from e

        logger.info(f"Export complete: {self.output_path}")
        return self.output_path
