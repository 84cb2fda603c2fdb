"""
Stage 02: Error-Bar Figure
==========================

Renders the stage 01 result: value vs covariate with internal and
empirical 1-sigma bars. Pure presentation, no computation.
"""

import polars as pl

from grainsigma.visualization import plot_empirical_sigma


def run(
    result: pl.DataFrame,
    plot_path: str,
    title: str = None,
    verbose: bool = True,
):
    """
    Save the error-bar figure for a stage 01 result.

    Returns:
        The matplotlib Figure
    """
    if verbose:
        print("=" * 70)
        print("STAGE 02: ERROR-BAR FIGURE")
        print("=" * 70)

    fig = plot_empirical_sigma(result, out_path=plot_path, title=title)

    if verbose:
        print(f"  -> {plot_path}")

    return fig
