"""
grainsigma Core
===============

Engines: arrays or DataFrames in, arrays or DataFrames out, no file I/O.

Structure:
    errors.py     - InvalidParameter, DegenerateWeights
    empirical.py  - Kernel-weighted external scatter + quadrature (the estimator)
    covariate.py  - Effective uranium (eU) derivation
"""

from grainsigma.core.errors import EstimationError, InvalidParameter, DegenerateWeights
from grainsigma.core.empirical import (
    quadrature,
    external_scatter,
    estimate_empirical_uncertainty,
    compute,
)
from grainsigma.core.covariate import effective_uranium, add_covariate

__all__ = [
    'EstimationError',
    'InvalidParameter',
    'DegenerateWeights',
    'quadrature',
    'external_scatter',
    'estimate_empirical_uncertainty',
    'compute',
    'effective_uranium',
    'add_covariate',
]
