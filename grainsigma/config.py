"""
grainsigma configuration

Single source of truth for estimator defaults, canonical column names and
eU coefficients. A manifest.yaml overrides any of them:

    paths:
      samples: samples.csv
      output: output/empirical_sigma.csv
      plot: output/empirical_sigma.png
    columns:            # canonical name -> column in the samples file
      id: sample
      value: date
      internal_sigma: sigma
      covariate: eU
    estimator:
      bandwidth: 100
      nan_policy: omit
      on_degenerate: raise
      max_samples: 20000
      n_jobs: 1
    covariate:
      coefficients: {U: 1.0, Th: 0.238, Sm: 0.0012}
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from grainsigma.core.errors import InvalidParameter

# ============================================================
# ESTIMATOR DEFAULTS
# ============================================================

DEFAULT_BANDWIDTH: float = 100.0
DEFAULT_NAN_POLICY: str = 'omit'
DEFAULT_ON_DEGENERATE: str = 'raise'

# Cost is quadratic in N
DEFAULT_MAX_SAMPLES: int = 20000

DEFAULT_N_JOBS: int = 1

# ============================================================
# COVARIATE
# ============================================================

EU_COEFFICIENTS: Dict[str, float] = {
    'U': 1.0,
    'Th': 0.238,
    'Sm': 0.0012,
}

# ============================================================
# COLUMNS
# ============================================================

# Canonical names used by every engine and stage
CANONICAL_COLUMNS = ('id', 'value', 'internal_sigma', 'covariate', 'U', 'Th', 'Sm')

REQUIRED_COLUMNS = ('value', 'internal_sigma')

OUTPUT_COLUMNS = ('external_sigma', 'empirical_sigma')


@dataclass(frozen=True)
class EstimatorConfig:
    """Resolved settings for one run."""
    bandwidth: float = DEFAULT_BANDWIDTH
    nan_policy: str = DEFAULT_NAN_POLICY
    on_degenerate: str = DEFAULT_ON_DEGENERATE
    max_samples: Optional[int] = DEFAULT_MAX_SAMPLES
    n_jobs: int = DEFAULT_N_JOBS
    columns: Dict[str, str] = field(default_factory=dict)
    coefficients: Dict[str, float] = field(default_factory=lambda: dict(EU_COEFFICIENTS))

    def override(self, **kwargs) -> "EstimatorConfig":
        """Copy with non-None keyword values replaced (CLI flags)."""
        updates = {k: v for k, v in kwargs.items() if v is not None}
        return _checked(replace(self, **updates))


def _checked(cfg: EstimatorConfig) -> EstimatorConfig:
    """Validate policy strings and numeric ranges at load time."""
    from grainsigma.core.empirical import DEGENERATE_POLICIES
    from grainsigma.primitives.weighted import NAN_POLICIES, _check_bandwidth

    _check_bandwidth(cfg.bandwidth)
    if cfg.nan_policy not in NAN_POLICIES:
        raise InvalidParameter(
            f"estimator.nan_policy must be one of {NAN_POLICIES}, got {cfg.nan_policy!r}"
        )
    if cfg.on_degenerate not in DEGENERATE_POLICIES:
        raise InvalidParameter(
            f"estimator.on_degenerate must be one of {DEGENERATE_POLICIES}, "
            f"got {cfg.on_degenerate!r}"
        )
    if cfg.max_samples is not None and cfg.max_samples < 1:
        raise InvalidParameter(
            f"estimator.max_samples must be >= 1 or null, got {cfg.max_samples!r}"
        )
    if cfg.n_jobs == 0:
        raise InvalidParameter(
            "estimator.n_jobs must be non-zero (1 = serial, -1 = all cores), got 0"
        )
    unknown = set(cfg.columns) - set(CANONICAL_COLUMNS)
    if unknown:
        raise InvalidParameter(
            f"columns has unknown canonical names {sorted(unknown)}; "
            f"expected a subset of {list(CANONICAL_COLUMNS)}"
        )
    return cfg


def load_config(manifest: Optional[Dict[str, Any]] = None) -> EstimatorConfig:
    """
    Build an EstimatorConfig from a parsed manifest.

    Missing sections and keys fall back to the module defaults.

    Raises:
        InvalidParameter: bad bandwidth, policy string, max_samples, n_jobs or column key
    """
    manifest = manifest or {}
    est = manifest.get('estimator') or {}
    cov = manifest.get('covariate') or {}

    max_samples = est.get('max_samples', DEFAULT_MAX_SAMPLES)

    cfg = EstimatorConfig(
        bandwidth=float(est.get('bandwidth', DEFAULT_BANDWIDTH)),
        nan_policy=str(est.get('nan_policy', DEFAULT_NAN_POLICY)),
        on_degenerate=str(est.get('on_degenerate', DEFAULT_ON_DEGENERATE)),
        max_samples=int(max_samples) if max_samples is not None else None,
        n_jobs=int(est.get('n_jobs', DEFAULT_N_JOBS)),
        columns=dict(manifest.get('columns') or {}),
        coefficients={**EU_COEFFICIENTS, **(cov.get('coefficients') or {})},
    )
    return _checked(cfg)
