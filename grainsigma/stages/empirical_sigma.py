"""
Stage 01: Empirical Uncertainty Entry Point
===========================================

Thin orchestrator:
1. Read samples (CSV / TSV / parquet)
2. Validate schema and data quality
3. Derive the eU covariate if the table does not carry one
4. Call the empirical uncertainty engine
5. Write the input columns plus external_sigma and empirical_sigma

Validation runs before any computation; nothing is written on failure.
"""

import polars as pl
from typing import Optional

from grainsigma.config import CANONICAL_COLUMNS, OUTPUT_COLUMNS, EstimatorConfig
from grainsigma.core.covariate import add_covariate
from grainsigma.core.empirical import compute
from grainsigma.io.reader import load_samples
from grainsigma.io.writer import write_output
from grainsigma.validation import validate_samples


def run(
    samples_path: str,
    output_path: Optional[str] = None,
    config: Optional[EstimatorConfig] = None,
    verbose: bool = True,
) -> pl.DataFrame:
    """
    Compute empirical sigmas for every sample in a table.

    Args:
        samples_path: Samples file
        output_path: Where to write the result table (None = don't write)
        config: Estimator settings (defaults if None)
        verbose: Print progress

    Returns:
        Result DataFrame: canonical input columns + external_sigma, empirical_sigma
    """
    config = config or EstimatorConfig()

    if verbose:
        print("=" * 70)
        print("STAGE 01: EMPIRICAL UNCERTAINTY")
        print(f"Gaussian kernel in covariate space, bandwidth = {config.bandwidth:g}")
        print("=" * 70)

    samples = load_samples(samples_path, columns=config.columns)
    if verbose:
        print(f"Samples: {samples.height}")

    validate_samples(samples, max_samples=config.max_samples, verbose=False)
    samples = add_covariate(samples, coefficients=config.coefficients, verbose=verbose)

    result = compute(
        samples,
        bandwidth=config.bandwidth,
        nan_policy=config.nan_policy,
        on_degenerate=config.on_degenerate,
        max_samples=config.max_samples,
        n_jobs=config.n_jobs,
    )

    keep = [c for c in CANONICAL_COLUMNS if c in result.columns] + list(OUTPUT_COLUMNS)
    result = result.select(keep)

    if verbose:
        widened = result.filter(pl.col('empirical_sigma') > pl.col('internal_sigma')).height
        n_nan = result['empirical_sigma'].is_nan().sum()
        print(f"  Widened: {widened}/{result.height}")
        if n_nan:
            print(f"  Degenerate (NaN): {n_nan}")

    if output_path:
        write_output(result, output_path, verbose=verbose)

    return result
