"""
grainsigma — empirical uncertainty for single-grain dates.

Each datum's reported (internal) 1-sigma is widened by the Gaussian
kernel-weighted scatter of all dates around its covariate (eU), combined
in quadrature.

Public API:
    from grainsigma import estimate_empirical_uncertainty
    sigma = estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=100.0)

    from grainsigma import run
    run(samples_path, manifest_path, output_path)

Layers:
    grainsigma.primitives     Weighted statistics (numpy in, numbers out)
    grainsigma.core           Engines (arrays/DataFrames in and out, no file I/O)
    grainsigma.stages         Runners: read, call engines, write
    grainsigma.io             CSV / parquet I/O, manifest
    grainsigma.validation     Samples table checks
    grainsigma.visualization  Error-bar figures
"""

from grainsigma.core.errors import EstimationError, InvalidParameter, DegenerateWeights
from grainsigma.core.empirical import estimate_empirical_uncertainty
from grainsigma.run import run

__all__ = [
    'estimate_empirical_uncertainty',
    'run',
    'EstimationError',
    'InvalidParameter',
    'DegenerateWeights',
]
