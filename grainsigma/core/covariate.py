"""
Effective uranium (eU) covariate.

    eU = U + 0.238 Th + 0.0012 Sm

Pre-processing only. The estimator takes the covariate as given; swap the
coefficients through the manifest's covariate.coefficients block.
"""

from typing import Dict, Optional

import numpy as np
import polars as pl

from grainsigma.config import EU_COEFFICIENTS


def effective_uranium(U, Th, Sm=None, coefficients: Optional[Dict[str, float]] = None):
    """
    Weighted sum of parent concentrations.

    Args:
        U, Th: Concentrations (scalar or array)
        Sm: Optional Sm concentration; None drops the term
        coefficients: Overrides for 'U', 'Th', 'Sm' (defaults EU_COEFFICIENTS)

    Returns:
        float for scalar input, otherwise an array
    """
    coef = {**EU_COEFFICIENTS, **(coefficients or {})}
    eu = coef['U'] * np.asarray(U, dtype=np.float64) + coef['Th'] * np.asarray(Th, dtype=np.float64)
    if Sm is not None:
        eu = eu + coef['Sm'] * np.asarray(Sm, dtype=np.float64)
    if np.ndim(eu) == 0:
        return float(eu)
    return eu


def add_covariate(
    samples: pl.DataFrame,
    coefficients: Optional[Dict[str, float]] = None,
    verbose: bool = False,
) -> pl.DataFrame:
    """
    Ensure a 'covariate' column exists, deriving eU from U/Th(/Sm) if needed.

    An existing 'covariate' column is kept as-is.

    Raises:
        ValidationError: no 'covariate' column and no U and Th to derive one
    """
    if 'covariate' in samples.columns:
        return samples

    if not {'U', 'Th'} <= set(samples.columns):
        from grainsigma.validation import ValidationError
        raise ValidationError([
            "no 'covariate' column and cannot derive eU: need both 'U' and 'Th' columns"
        ])

    sm = samples['Sm'].cast(pl.Float64).to_numpy() if 'Sm' in samples.columns else None
    eu = effective_uranium(
        samples['U'].cast(pl.Float64).to_numpy(),
        samples['Th'].cast(pl.Float64).to_numpy(),
        sm,
        coefficients=coefficients,
    )

    if verbose:
        terms = "U, Th, Sm" if sm is not None else "U, Th"
        print(f"  Derived eU covariate from {terms}")

    return samples.with_columns(pl.Series('covariate', eu, dtype=pl.Float64))
