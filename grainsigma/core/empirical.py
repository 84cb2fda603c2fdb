"""
Empirical Uncertainty Engine

For every datum i:
    W       = gaussian_weight(covariates, bandwidth, center=covariates[i])
    sigma_x = weighted_std(values, W)            # external scatter
    sigma_i = sqrt(sigma_x^2 + internal_sigma[i]^2)

The self-weight W[i] = 1 is always included. Every datum sees the full
dataset; the kernel provides the decay, there is no hard window.

Cost is O(N^2). Each iteration reads the shared arrays and writes one
output slot, so the loop is split into index chunks for joblib when
n_jobs != 1.
"""

import logging
import warnings
from typing import Optional, Tuple

import numpy as np
import polars as pl
from joblib import Parallel, delayed

from grainsigma.core.errors import DegenerateWeights, InvalidParameter
from grainsigma.primitives.weighted import (
    _check_bandwidth,
    _check_nan_policy,
    gaussian_weight,
    weighted_std,
)

logger = logging.getLogger(__name__)

DEGENERATE_POLICIES = ("raise", "nan")


def quadrature(a, b):
    """Quadrature sum sqrt(a^2 + b^2), elementwise, without under/overflow."""
    out = np.hypot(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64))
    if out.ndim == 0:
        return float(out)
    return out


def _as_vector(x, name: str) -> np.ndarray:
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim != 1:
        raise InvalidParameter(f"{name} must be one-dimensional, got shape {arr.shape}")
    return arr


def _check_inputs(
    values,
    internal_sigmas,
    covariates,
    max_samples: Optional[int],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    v = _as_vector(values, "values")
    s = _as_vector(internal_sigmas, "internal_sigmas")
    c = _as_vector(covariates, "covariates")

    lengths = {"values": v.size, "internal_sigmas": s.size, "covariates": c.size}
    if len(set(lengths.values())) != 1:
        detail = ", ".join(f"{k}={n}" for k, n in lengths.items())
        raise InvalidParameter(f"input arrays must have equal length ({detail})")

    n = v.size
    if n == 0:
        raise InvalidParameter("values is empty; at least one datum is required")
    if max_samples is not None and n > max_samples:
        raise InvalidParameter(
            f"values has {n} entries, above the max_samples ceiling of {max_samples}"
        )
    if np.any(s < 0):
        bad = np.flatnonzero(s < 0)
        raise InvalidParameter(
            f"internal_sigmas must be non-negative; negative at indices {bad[:10].tolist()}"
        )
    return v, s, c


def _check_degenerate_policy(on_degenerate: str) -> str:
    if on_degenerate not in DEGENERATE_POLICIES:
        raise InvalidParameter(
            f"on_degenerate must be one of {DEGENERATE_POLICIES}, got {on_degenerate!r}"
        )
    return on_degenerate


def _scatter_at(
    i: int,
    values: np.ndarray,
    covariates: np.ndarray,
    bandwidth: float,
    nan_policy: str,
    on_degenerate: str,
) -> float:
    """External scatter for target index i."""
    center = covariates[i]
    try:
        if not np.isfinite(center):
            raise DegenerateWeights(f"covariate is {center!r}")
        weights = gaussian_weight(covariates, bandwidth, center)
        return weighted_std(values, weights, nan_policy=nan_policy)
    except DegenerateWeights as e:
        if on_degenerate == "raise":
            raise DegenerateWeights(str(e), index=i) from e
        warnings.warn(
            f"empirical.external_scatter: degenerate weights at index {i}: {e}",
            RuntimeWarning,
            stacklevel=2,
        )
        return np.nan


def _check_n_jobs(n_jobs) -> int:
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)) or n_jobs == 0:
        raise InvalidParameter(
            f"n_jobs must be a non-zero integer (1 = serial, -1 = all cores), got {n_jobs!r}"
        )
    return int(n_jobs)


def _scatter_chunk(indices, values, covariates, bandwidth, nan_policy, on_degenerate):
    """Scatter for a chunk of indices, plus the warning messages it raised."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", RuntimeWarning)
        out = [
            _scatter_at(i, values, covariates, bandwidth, nan_policy, on_degenerate)
            for i in indices
        ]
    messages = [str(w.message) for w in caught if issubclass(w.category, RuntimeWarning)]
    return out, messages


def external_scatter(
    values,
    covariates,
    bandwidth: float = 100.0,
    nan_policy: str = "omit",
    on_degenerate: str = "raise",
    n_jobs: int = 1,
) -> np.ndarray:
    """
    Kernel-weighted standard deviation of values around each datum.

    Args:
        values: Observed values (length N)
        covariates: Covariate values (length N)
        bandwidth: Gaussian kernel spread in covariate units (> 0)
        nan_policy: 'omit' or 'propagate' (see primitives.weighted)
        on_degenerate: 'raise' or 'nan'
        n_jobs: joblib workers; 1 runs in-process

    Returns:
        float64 array of external sigmas, length N
    """
    b = _check_bandwidth(bandwidth)
    _check_nan_policy(nan_policy)
    _check_degenerate_policy(on_degenerate)
    n_jobs = _check_n_jobs(n_jobs)

    v = _as_vector(values, "values")
    c = _as_vector(covariates, "covariates")
    if v.size != c.size:
        raise InvalidParameter(
            f"input arrays must have equal length (values={v.size}, covariates={c.size})"
        )

    n = v.size
    logger.debug(
        "external_scatter: n=%d bandwidth=%g nan_policy=%s on_degenerate=%s n_jobs=%s",
        n, b, nan_policy, on_degenerate, n_jobs,
    )

    if n_jobs == 1 or n < 2:
        out = [_scatter_at(i, v, c, b, nan_policy, on_degenerate) for i in range(n)]
        return np.asarray(out, dtype=np.float64)

    n_chunks = min(n, 4 * (n_jobs if n_jobs > 0 else 8))
    chunks = [ch for ch in np.array_split(np.arange(n), n_chunks) if ch.size]
    logger.debug("external_scatter: %d chunks across n_jobs=%s", len(chunks), n_jobs)

    parts = Parallel(n_jobs=n_jobs)(
        delayed(_scatter_chunk)(ch, v, c, b, nan_policy, on_degenerate)
        for ch in chunks
    )

    # Worker warnings do not reach the caller; re-emit them here in index order
    out = np.empty(n, dtype=np.float64)
    for ch, (part, messages) in zip(chunks, parts):
        out[ch] = part
        for msg in messages:
            warnings.warn(msg, RuntimeWarning, stacklevel=2)
    return out


def estimate_empirical_uncertainty(
    values,
    internal_sigmas,
    covariates,
    bandwidth: float = 100.0,
    *,
    nan_policy: str = "omit",
    on_degenerate: str = "raise",
    max_samples: Optional[int] = None,
    n_jobs: int = 1,
) -> np.ndarray:
    """
    Empirical 1-sigma uncertainty for every datum.

    empirical[i] = sqrt(external[i]^2 + internal_sigmas[i]^2), where
    external[i] is the kernel-weighted standard deviation of all values
    around covariates[i]. The correction only ever widens:
    empirical[i] >= internal_sigmas[i].

    Args:
        values: Observed values, e.g. dates (length N)
        internal_sigmas: Reported analytical 1-sigma (length N, >= 0)
        covariates: Covariate per datum, e.g. eU (length N)
        bandwidth: Gaussian kernel spread in covariate units (> 0)
        nan_policy: 'omit' drops non-finite (value, weight) pairs,
                    'propagate' turns any of them into NaN
        on_degenerate: 'raise' aborts on an unusable weight vector,
                       'nan' emits NaN for that entry with a RuntimeWarning
        max_samples: Reject N above this ceiling (None = no ceiling)
        n_jobs: joblib workers for the per-datum loop

    Returns:
        float64 array of empirical sigmas, length N

    Raises:
        InvalidParameter: bad bandwidth, policy, lengths, N, or negative sigma
        DegenerateWeights: on_degenerate='raise' and a weight vector is unusable
    """
    _check_bandwidth(bandwidth)
    _check_nan_policy(nan_policy)
    _check_degenerate_policy(on_degenerate)
    v, s, c = _check_inputs(values, internal_sigmas, covariates, max_samples)

    external = external_scatter(
        v, c,
        bandwidth=bandwidth,
        nan_policy=nan_policy,
        on_degenerate=on_degenerate,
        n_jobs=n_jobs,
    )
    return quadrature(external, s)


def compute(
    samples: pl.DataFrame,
    bandwidth: float = 100.0,
    nan_policy: str = "omit",
    on_degenerate: str = "raise",
    max_samples: Optional[int] = None,
    n_jobs: int = 1,
) -> pl.DataFrame:
    """
    DataFrame engine: add external_sigma and empirical_sigma columns.

    Args:
        samples: DataFrame with 'value', 'internal_sigma', 'covariate'

    Returns:
        samples with two Float64 columns appended, row order preserved
    """
    missing = {'value', 'internal_sigma', 'covariate'} - set(samples.columns)
    if missing:
        raise InvalidParameter(f"samples missing required columns: {sorted(missing)}")

    _check_bandwidth(bandwidth)
    _check_nan_policy(nan_policy)
    _check_degenerate_policy(on_degenerate)
    v, s, c = _check_inputs(
        samples['value'].cast(pl.Float64).fill_null(np.nan).to_numpy(),
        samples['internal_sigma'].cast(pl.Float64).fill_null(np.nan).to_numpy(),
        samples['covariate'].cast(pl.Float64).fill_null(np.nan).to_numpy(),
        max_samples,
    )

    external = external_scatter(
        v, c,
        bandwidth=bandwidth,
        nan_policy=nan_policy,
        on_degenerate=on_degenerate,
        n_jobs=n_jobs,
    )
    empirical = quadrature(external, s)

    return samples.with_columns(
        pl.Series('external_sigma', external, dtype=pl.Float64),
        pl.Series('empirical_sigma', empirical, dtype=pl.Float64),
    )
