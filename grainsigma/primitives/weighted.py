"""
Weighted statistics primitives.

numpy in, numbers out. No DataFrames, no I/O.

Kernel convention: the unnormalized Gaussian exp(-(x - c)^2 / (2 b^2)).
The 1/(b sqrt(2 pi)) constant cancels in every weighted statistic, so it
is never applied. The self-weight (x == c) is exactly 1.
"""

import numpy as np

from grainsigma.core.errors import DegenerateWeights, InvalidParameter

NAN_POLICIES = ("omit", "propagate")


def _check_bandwidth(bandwidth) -> float:
    try:
        b = float(bandwidth)
    except (TypeError, ValueError):
        raise InvalidParameter(f"bandwidth must be a number, got {bandwidth!r}") from None
    if not np.isfinite(b) or b <= 0:
        raise InvalidParameter(f"bandwidth must be finite and > 0, got {bandwidth!r}")
    return b


def _check_nan_policy(nan_policy: str) -> str:
    if nan_policy not in NAN_POLICIES:
        raise InvalidParameter(
            f"nan_policy must be one of {NAN_POLICIES}, got {nan_policy!r}"
        )
    return nan_policy


def gaussian_weight(x, bandwidth: float, center: float):
    """
    Unnormalized Gaussian kernel weight of x around center.

    Args:
        x: Scalar or array of covariate values
        bandwidth: Kernel spread (> 0)
        center: Kernel center

    Returns:
        float for scalar x, otherwise an array the shape of x.
        Non-finite x or center give NaN.

    Raises:
        InvalidParameter: bandwidth <= 0 or non-finite
    """
    b = _check_bandwidth(bandwidth)
    x_arr = np.asarray(x, dtype=np.float64)

    # Self-weight is exactly 1 for any bandwidth; z*z overflow gives 0.
    with np.errstate(over='ignore', invalid='ignore'):
        z = (x_arr - center) / b
        w = np.exp(-0.5 * z * z)

    if w.ndim == 0:
        return float(w)
    return w


def _prepare(values, weights, nan_policy: str):
    """Coerce, check shapes, and apply the NaN policy.

    Returns (values, weights) filtered under 'omit', or None when
    'propagate' finds a non-finite entry.
    """
    _check_nan_policy(nan_policy)
    v = np.asarray(values, dtype=np.float64).ravel()
    w = np.asarray(weights, dtype=np.float64).ravel()

    if v.shape != w.shape:
        raise InvalidParameter(
            f"values and weights must have the same length, got {v.size} and {w.size}"
        )

    finite = np.isfinite(v) & np.isfinite(w)
    if nan_policy == "propagate":
        if not finite.all():
            return None
    else:
        v = v[finite]
        w = w[finite]

    if np.any(w < 0):
        raise InvalidParameter("weights must be non-negative")

    total = w.sum()
    if v.size == 0 or not np.isfinite(total) or total <= 0:
        raise DegenerateWeights(
            f"sum of weights is {total!r} over {v.size} usable entries"
        )
    return v, w


def weighted_mean(values, weights, nan_policy: str = "omit") -> float:
    """Weighted mean sum(w * v) / sum(w)."""
    prepared = _prepare(values, weights, nan_policy)
    if prepared is None:
        return np.nan
    v, w = prepared
    return float(np.sum(w * v) / np.sum(w))


def weighted_std(values, weights, nan_policy: str = "omit") -> float:
    """
    Weighted population standard deviation.

    sqrt(sum(w * (v - mu_w)^2) / sum(w)), mu_w the weighted mean.
    Divides by sum(w), not by an effective count minus one.

    A single entry with nonzero weight returns exactly 0.0.
    """
    prepared = _prepare(values, weights, nan_policy)
    if prepared is None:
        return np.nan
    v, w = prepared

    if np.count_nonzero(w) == 1:
        return 0.0

    total = np.sum(w)
    mu = np.sum(w * v) / total
    var = np.sum(w * (v - mu) ** 2) / total
    return float(np.sqrt(var))
