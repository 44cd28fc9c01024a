"""Joint angle and gait cycle plot generation"""
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..constants import GAIT_PHASES, PLOT_DPI
from ..core.landmarks import Side
from ..exceptions import OutputDirectoryError, PlotGenerationError
from .style import GAITKIN_COLORS, LINE_SPECS, PHASE_COLORS, PlotStyle, create_figure

logger = logging.getLogger(__name__)

FAMILY_TITLES = {
    'ankle': 'Ankle Dorsiflexion (+) / Plantarflexion (-)',
    'knee': 'Knee Flexion',
    'hip': 'Hip Flexion (+) / Extension (-)',
    'trunk_flexion': 'Trunk Flexion',
    'pelvic_tilt': 'Pelvic Tilt',
    'ankle_inversion': 'Ankle Inversion',
    'knee_abduction': 'Knee Abduction',
    'hip_abduction': 'Hip Abduction',
    'pelvic_obliquity': 'Pelvic Obliquity',
    'trunk_lateral_flexion': 'Trunk Lateral Flexion',
}

SAGITTAL_PANELS = ('ankle', 'knee', 'hip', 'trunk_flexion', 'pelvic_tilt')
FRONTAL_PANELS = ('ankle_inversion', 'knee_abduction', 'hip_abduction',
                  'pelvic_obliquity', 'trunk_lateral_flexion')


class KinematicsVisualizer:
    """Generate PNG plots of joint angles, events and cycle phases"""

    def __init__(self, output_dir: Path, dpi: int = PLOT_DPI):
        """
        Initialize visualizer.

        Args:
            output_dir: Output directory for plots
            dpi: Resolution for PNG files
        """
        self.output_dir = Path(output_dir)
        self.dpi = dpi
        self.style = PlotStyle(dpi=dpi)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(str(self.output_dir), str(e)) from e

    def _save(self, fig, filename: str) -> Path:
        output_path = self.output_dir / filename
        fig.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Saved plot: {output_path}")
        return output_path

    def _plot_family(self, ax, kinematics, family: str, events: Sequence = ()):
        """Draw one angle family; bilateral families get a line per side"""
        value = getattr(kinematics, family)
        plotted = []
        if family in kinematics.BILATERAL_FAMILIES:
            for side in Side:
                series = value.side(side)
                if series.is_empty:
                    continue
                ax.plot(series.timestamps, series.angles,
                        color=self.style.side_color(side.value),
                        linewidth=LINE_SPECS['width_side'],
                        alpha=LINE_SPECS['alpha_line'],
                        label=side.value.capitalize())
                plotted.append(series.angles)
        elif not value.is_empty:
            ax.plot(value.timestamps, value.angles,
                    color=GAITKIN_COLORS['axial'],
                    linewidth=LINE_SPECS['width_axial'])
            plotted.append(value.angles)

        self.style.add_reference_band(ax, family)
        for event in events:
            color = GAITKIN_COLORS.get(event.type.value)
            if color is not None:
                ax.axvline(event.timestamp, color=color, linestyle=':',
                           linewidth=LINE_SPECS['width_ref'], alpha=0.6)

        if plotted:
            self.style.format_axis_range(ax, np.concatenate(plotted))
        else:
            ax.text(0.5, 0.5, 'No visible samples', transform=ax.transAxes,
                    ha='center', va='center', color=GAITKIN_COLORS['ref_line'])

        ax.set_title(FAMILY_TITLES.get(family, family))
        ax.set_ylabel('Angle (deg)')
        self.style.apply_to_axis(ax)
        if ax.get_legend_handles_labels()[0]:
            ax.legend(loc='upper right')

    def plot_joint_angles(self, kinematics, events: Sequence = (),
                          panels: Sequence[str] = SAGITTAL_PANELS,
                          filename: str = 'plot_sagittal_angles.png') -> Optional[Path]:
        """
        Plot angle traces for the computed families in `panels`.

        Args:
            kinematics: DetailedKinematics
            events: Gait events drawn as vertical markers
            panels: Angle family names, one panel each
            filename: Output file name

        Returns:
            Path to saved plot, or None when no family was computed
        """
        families = [f for f in panels if getattr(kinematics, f) is not None]
        if not families:
            return None

        fig, axes = create_figure(len(families), dpi=self.dpi)
        fig.suptitle('Joint Angles', fontweight='bold')
        for ax, family in zip(axes[:, 0], families):
            self._plot_family(ax, kinematics, family, events)
        axes[-1, 0].set_xlabel('Time (s)')
        return self._save(fig, filename)

    def plot_cycle_phases(self, cycles: Sequence, filename: str = 'plot_cycle_phases.png') -> Optional[Path]:
        """
        Stacked horizontal bars of the phase percentages of every cycle.

        Args:
            cycles: GaitCycle list
            filename: Output file name

        Returns:
            Path to saved plot, or None without cycles
        """
        if not cycles:
            return None

        fig, axes = create_figure(1, dpi=self.dpi)
        ax = axes[0, 0]
        labels: List[str] = []
        for row, cycle in enumerate(cycles):
            left = 0.0
            for phase in cycle.phases:
                ax.barh(row, phase.percent_of_cycle, left=left,
                        color=PHASE_COLORS.get(phase.key, '#999999'),
                        edgecolor='white', linewidth=0.5,
                        label=phase.name if row == 0 else None)
                left += phase.percent_of_cycle
            labels.append(f"{cycle.foot.value[0].upper()} {cycle.start_time:.2f}s")

        ax.axvline(cycles[0].stance_percent, color=GAITKIN_COLORS['ref_line'], linestyle='--',
                   linewidth=LINE_SPECS['width_ref'])
        ax.set_yticks(range(len(cycles)))
        ax.set_yticklabels(labels)
        ax.set_xlim(0, 100)
        ax.set_xlabel('% of gait cycle')
        ax.set_title('Gait Cycle Phases')
        ax.legend(loc='upper center', bbox_to_anchor=(0.5, -0.15), ncol=len(GAIT_PHASES) // 2)
        self.style.apply_to_axis(ax)
        return self._save(fig, filename)


def generate_plots(output_dir: Path, kinematics, events: Sequence = (),
                   cycles: Sequence = (), dpi: int = PLOT_DPI) -> Dict[str, Path]:
    """
    Generate every applicable plot for a session.

    Returns:
        Mapping of plot name to written path

    Raises:
        PlotGenerationError: If matplotlib fails while drawing or saving
    """
    visualizer = KinematicsVisualizer(output_dir, dpi=dpi)
    jobs = (
        ('sagittal_angles', lambda: visualizer.plot_joint_angles(
            kinematics, events, SAGITTAL_PANELS, 'plot_sagittal_angles.png')),
        ('frontal_angles', lambda: visualizer.plot_joint_angles(
            kinematics, events, FRONTAL_PANELS, 'plot_frontal_angles.png')),
        ('cycle_phases', lambda: visualizer.plot_cycle_phases(cycles)),
    )

    written = {}
    for name, job in jobs:
        try:
            path = job()
        except (ValueError, OSError, RuntimeError) as e:
            plt.close('all')
            raise PlotGenerationError(name, str(e)) from e
        if path is not None:
            written[name] = path
    return written
