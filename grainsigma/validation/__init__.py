"""
grainsigma Validation Module

Validates the samples table before the estimator runs.

Exports:
    - validate_samples: Check schema and data quality of a samples DataFrame
    - ValidationError: Raised when input validation fails
    - InputValidationReport: Findings from validate_samples
"""

from .input_validation import (
    validate_samples,
    ValidationError,
    InputValidationReport,
)

__all__ = [
    'validate_samples',
    'ValidationError',
    'InputValidationReport',
]
