"""
Plot style for gaitkin figures
Color-blind-safe side palette, typography and normative reference bands
"""
import matplotlib.pyplot as plt
import matplotlib as mpl
from typing import Optional, Tuple
import numpy as np

from ..constants import GAIT_PHASES, NORMAL_RANGES


# ═══════════════════════════════════════════════════════════════════════════
# COLOR PALETTE (Color-Blind Safe)
# ═══════════════════════════════════════════════════════════════════════════

GAITKIN_COLORS = {
    # Body sides (Set1 blue/red)
    'left': '#377eb8',
    'right': '#e41a1c',

    # Single-series families (trunk, pelvis)
    'axial': '#000000',

    # Event markers
    'heel_strike': '#4daf4a',
    'toe_off': '#984ea3',

    'grid': '#bbbbbb',
    'background': '#ffffff',
    'ref_band': '#e0e0e0',
    'ref_line': '#666666'
}

# Stance phases in warm tones, swing phases in cool tones
PHASE_COLORS = dict(zip(
    [key for key, _, _, _ in GAIT_PHASES],
    ['#8c2d04', '#cc4c02', '#ec7014', '#fe9929', '#fec44f',
     '#9ecae1', '#4292c6', '#08519c'],
))


# ═══════════════════════════════════════════════════════════════════════════
# TYPOGRAPHY
# ═══════════════════════════════════════════════════════════════════════════

FONT_SIZES = {
    'title': 16,
    'subtitle': 13,
    'axis_label': 11,
    'tick_label': 10,
    'legend': 10,
    'annotation': 9
}

LINE_SPECS = {
    'width_side': 1.6,
    'width_axial': 2.0,
    'width_ref': 1.0,
    'alpha_line': 0.85
}

GRID_SPECS = {
    'color': '#bbbbbb',
    'linestyle': '--',
    'linewidth': 0.6,
    'alpha': 0.3,
    'axis': 'y',
    'which': 'major'
}

LAYOUT_SPECS = {
    'fig_width': 12,
    'row_height': 3.2,
    'use_constrained_layout': True
}


# ═══════════════════════════════════════════════════════════════════════════
# REFERENCE BANDS (Normal Ranges)
# ═══════════════════════════════════════════════════════════════════════════

# Angle family -> (low, high) in the family's sign convention
REFERENCE_BANDS = {
    'ankle': (-NORMAL_RANGES['ankle']['plantarflexion'][1], NORMAL_RANGES['ankle']['dorsiflexion'][1]),
    'knee': (NORMAL_RANGES['knee']['extension'][0], NORMAL_RANGES['knee']['flexion'][1]),
    'hip': (-NORMAL_RANGES['hip']['extension'][1], NORMAL_RANGES['hip']['flexion'][1]),
    'pelvic_tilt': NORMAL_RANGES['pelvis']['tilt'],
    'pelvic_obliquity': NORMAL_RANGES['pelvis']['obliquity'],
}


class PlotStyle:
    """Applies the gaitkin look to matplotlib figures and axes"""

    def __init__(self, dpi: int = 150, font_scale: float = 1.0):
        """
        Args:
            dpi: Resolution for saved figures
            font_scale: Global font size multiplier
        """
        self.dpi = dpi
        self.font_scale = font_scale
        self._configure_matplotlib()

    def _configure_matplotlib(self):
        mpl.rcParams['font.family'] = 'DejaVu Sans'
        mpl.rcParams['font.size'] = FONT_SIZES['tick_label'] * self.font_scale
        mpl.rcParams['axes.labelsize'] = FONT_SIZES['axis_label'] * self.font_scale
        mpl.rcParams['axes.titlesize'] = FONT_SIZES['subtitle'] * self.font_scale
        mpl.rcParams['legend.fontsize'] = FONT_SIZES['legend'] * self.font_scale
        mpl.rcParams['figure.titlesize'] = FONT_SIZES['title'] * self.font_scale
        mpl.rcParams['axes.spines.top'] = False
        mpl.rcParams['axes.spines.right'] = False

    def apply_to_axis(self, ax):
        ax.grid(axis=GRID_SPECS['axis'],
                which=GRID_SPECS['which'],
                linestyle=GRID_SPECS['linestyle'],
                linewidth=GRID_SPECS['linewidth'],
                alpha=GRID_SPECS['alpha'],
                color=GRID_SPECS['color'])
        ax.set_facecolor(GAITKIN_COLORS['background'])
        ax.tick_params(width=1.0, length=4, color='#333333')

    @staticmethod
    def side_color(side: str) -> str:
        return GAITKIN_COLORS.get(side, GAITKIN_COLORS['axial'])

    @staticmethod
    def add_reference_band(ax, family: str) -> bool:
        """
        Shade the normative range of an angle family.

        Returns:
            True if the family has a reference band
        """
        band: Optional[Tuple[float, float]] = REFERENCE_BANDS.get(family)
        if band is None:
            return False
        ax.axhspan(band[0], band[1], color=GAITKIN_COLORS['ref_band'],
                   alpha=0.4, zorder=0, label='Normal range')
        return True

    @staticmethod
    def format_axis_range(ax, data, margin: float = 0.10):
        """Pad the y-range around finite data"""
        data = np.asarray(data, dtype=float)
        data = data[np.isfinite(data)]
        if len(data) == 0:
            return
        low, high = float(np.min(data)), float(np.max(data))
        pad = (high - low) * margin or 1.0
        ax.set_ylim([low - pad, high + pad])


def create_figure(n_rows: int, n_cols: int = 1, dpi: int = 150) -> tuple:
    """
    Create a figure sized for `n_rows` stacked panels.

    Returns:
        (fig, axes) tuple with axes always a 2D array
    """
    fig, axes = plt.subplots(n_rows, n_cols,
                             figsize=(LAYOUT_SPECS['fig_width'], LAYOUT_SPECS['row_height'] * n_rows),
                             dpi=dpi,
                             squeeze=False,
                             constrained_layout=LAYOUT_SPECS['use_constrained_layout'])
    fig.patch.set_facecolor(GAITKIN_COLORS['background'])
    return fig, axes
