"""
Input Data Validation

Validates a samples table (canonical column names) before estimation.

Errors abort the run; warnings are data the estimator tolerates
(non-finite values are excluded from weighted sums, not rejected).

Usage:
    from grainsigma.validation import validate_samples

    report = validate_samples(df, max_samples=20000)
    print(report.summary())
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
import polars as pl

from grainsigma.config import REQUIRED_COLUMNS


class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, errors: List[str], warnings: List[str] = None):
        self.errors = errors
        self.warnings = warnings or []

        message = "Input validation failed:\n" + "\n".join(
            f"  ERROR: {e}" for e in errors
        )
        if warnings:
            message += "\n" + "\n".join(f"  WARNING: {w}" for w in warnings)

        super().__init__(message)


@dataclass
class InputValidationReport:
    """Report from input validation."""

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # Counts
    total_samples: int = 0
    nonfinite_values: int = 0
    nonfinite_covariates: int = 0
    negative_covariates: int = 0

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "=" * 60,
            "INPUT VALIDATION REPORT",
            "=" * 60,
            "",
            f"Total samples: {self.total_samples:,}",
            f"  Non-finite values: {self.nonfinite_values}",
            f"  Non-finite covariates: {self.nonfinite_covariates}",
            f"  Negative covariates: {self.negative_covariates}",
            "",
        ]

        if self.errors:
            lines.append("ERRORS:")
            for e in self.errors:
                lines.append(f"  - {e}")
            lines.append("")

        if self.warnings:
            lines.append("WARNINGS:")
            for w in self.warnings:
                lines.append(f"  - {w}")
            lines.append("")

        status = "PASSED" if self.valid else "FAILED"
        lines.append(f"Status: {status}")
        lines.append("=" * 60)

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable dict."""
        return {
            'valid': self.valid,
            'errors': self.errors,
            'warnings': self.warnings,
            'total_samples': self.total_samples,
            'nonfinite_values': self.nonfinite_values,
            'nonfinite_covariates': self.nonfinite_covariates,
            'negative_covariates': self.negative_covariates,
        }


def _count_nonfinite(df: pl.DataFrame, col: str) -> int:
    """Nulls plus NaN/inf in a numeric column."""
    s = df[col].cast(pl.Float64)
    return s.null_count() + int((~s.drop_nulls().is_finite()).sum())


def _check_numeric(df: pl.DataFrame, col: str, report: InputValidationReport) -> bool:
    if not df[col].dtype.is_numeric():
        report.errors.append(f"Column '{col}' must be numeric, got {df[col].dtype}")
        report.valid = False
        return False
    return True


def validate_samples(
    df: pl.DataFrame,
    max_samples: Optional[int] = None,
    raise_on_error: bool = True,
    verbose: bool = False,
) -> InputValidationReport:
    """
    Validate a samples DataFrame.

    Checks:
        1. 'value' and 'internal_sigma' present, plus 'covariate' or U and Th
        2. At least one row, and no more than max_samples
        3. internal_sigma non-negative (error)
        4. Non-finite values / covariates and negative covariates (warnings)

    Args:
        df: Samples with canonical column names
        max_samples: Row ceiling (None = no ceiling)
        raise_on_error: If True, raise ValidationError on failure
        verbose: If True, print the report

    Returns:
        InputValidationReport with validation results

    Raises:
        ValidationError: If validation fails and raise_on_error=True
    """
    report = InputValidationReport()
    report.total_samples = df.height

    cols = set(df.columns)
    missing = [c for c in REQUIRED_COLUMNS if c not in cols]
    if missing:
        report.errors.append(f"Missing required columns: {missing}")
        report.valid = False

    if 'covariate' not in cols and not {'U', 'Th'} <= cols:
        report.errors.append("Missing 'covariate' column (or both 'U' and 'Th' to derive eU)")
        report.valid = False

    if df.height == 0:
        report.errors.append("Samples table has no rows")
        report.valid = False
    elif max_samples is not None and df.height > max_samples:
        report.errors.append(
            f"{df.height:,} samples exceeds max_samples={max_samples:,} (cost is quadratic in N)"
        )
        report.valid = False

    if 'value' in cols and _check_numeric(df, 'value', report):
        report.nonfinite_values = _count_nonfinite(df, 'value')
        if report.nonfinite_values:
            report.warnings.append(
                f"{report.nonfinite_values} non-finite 'value' entries (excluded from weighted sums)"
            )

    if 'internal_sigma' in cols and _check_numeric(df, 'internal_sigma', report):
        n_neg = df.filter(pl.col('internal_sigma') < 0).height
        if n_neg:
            report.errors.append(f"{n_neg} negative 'internal_sigma' entries")
            report.valid = False

    if 'covariate' in cols and _check_numeric(df, 'covariate', report):
        report.nonfinite_covariates = _count_nonfinite(df, 'covariate')
        if report.nonfinite_covariates:
            report.warnings.append(
                f"{report.nonfinite_covariates} non-finite 'covariate' entries (degenerate targets)"
            )
        report.negative_covariates = df.filter(pl.col('covariate') < 0).height
        if report.negative_covariates:
            report.warnings.append(f"{report.negative_covariates} negative 'covariate' entries")

    if verbose:
        print(report.summary())

    if not report.valid and raise_on_error:
        raise ValidationError(report.errors, report.warnings)

    return report
