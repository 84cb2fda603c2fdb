"""
grainsigma Primitives

Atomic weighted statistics, numpy in, numbers out:
- gaussian_weight: unnormalized Gaussian kernel weight
- weighted_mean: sum(w v) / sum(w)
- weighted_std: weighted population standard deviation
"""

from .weighted import (
    gaussian_weight,
    weighted_mean,
    weighted_std,
    NAN_POLICIES,
)

__all__ = [
    'gaussian_weight',
    'weighted_mean',
    'weighted_std',
    'NAN_POLICIES',
]
