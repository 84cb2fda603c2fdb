"""
Value vs covariate with two 1-sigma error-bar series.

Internal (analytical) bars are drawn on top of the wider empirical bars so
the excess scatter reads as the visible margin between the two.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np
import polars as pl
from matplotlib.figure import Figure

INTERNAL_COLOR = '#4C78A8'   # Blue
EMPIRICAL_COLOR = '#E45756'  # Red


def plot_empirical_sigma(
    df: pl.DataFrame,
    out_path: Optional[Union[str, Path]] = None,
    ax=None,
    title: Optional[str] = None,
    covariate_label: str = 'eU (ppm)',
    value_label: str = 'Date (Ma)',
) -> Figure:
    """
    Scatter of value vs covariate with internal and empirical error bars.

    Args:
        df: Stage output with covariate, value, internal_sigma, empirical_sigma
        out_path: Save the figure here if given (format from suffix)
        ax: Existing matplotlib Axes to draw into; a new Figure otherwise
        title: Optional axes title

    Returns:
        The matplotlib Figure drawn into
    """
    missing = {'covariate', 'value', 'internal_sigma', 'empirical_sigma'} - set(df.columns)
    if missing:
        raise ValueError(f"plot_empirical_sigma: missing columns {sorted(missing)}")

    x = df['covariate'].cast(pl.Float64).to_numpy()
    y = df['value'].cast(pl.Float64).to_numpy()
    s_int = df['internal_sigma'].cast(pl.Float64).to_numpy()
    s_emp = df['empirical_sigma'].cast(pl.Float64).to_numpy()

    if ax is None:
        fig = Figure(figsize=(7, 5))
        ax = fig.add_subplot(1, 1, 1)
    else:
        fig = ax.figure

    ax.errorbar(
        x, y, yerr=s_emp, fmt='none', ecolor=EMPIRICAL_COLOR,
        elinewidth=3, capsize=0, alpha=0.6, label='Empirical 1σ',
    )
    ax.errorbar(
        x, y, yerr=s_int, fmt='o', color=INTERNAL_COLOR, ecolor=INTERNAL_COLOR,
        markersize=4, elinewidth=1, capsize=2, label='Internal 1σ',
    )

    ax.set_xlabel(covariate_label)
    ax.set_ylabel(value_label)
    if title:
        ax.set_title(title)
    if np.isfinite(x).any():
        ax.set_xlim(left=min(0.0, float(x[np.isfinite(x)].min())))
    ax.legend(loc='best')

    if out_path:
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path.as_posix(), dpi=150, bbox_inches='tight')

    return fig
