"""
Estimation errors.

InvalidParameter   caller bug (bad bandwidth, mismatched arrays, bad policy).
DegenerateWeights  a weight vector sums to zero or to a non-finite number.
"""

from typing import Optional


class EstimationError(Exception):
    """Base class for all estimator errors."""


class InvalidParameter(EstimationError, ValueError):
    """Raised when an argument violates a precondition."""


class DegenerateWeights(EstimationError, ArithmeticError):
    """Raised when weights cannot normalize a weighted statistic."""

    def __init__(self, message: str, index: Optional[int] = None):
        self.base_message = message
        self.index = index
        if index is not None:
            message = f"{message} (target index {index})"
        super().__init__(message)

    def __reduce__(self):
        # joblib ships worker errors back by pickling; keep the index
        return (self.__class__, (self.base_message, self.index))
