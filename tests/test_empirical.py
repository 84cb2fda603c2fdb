"""
Tests for the empirical uncertainty engine.

Validates:
    1. Quadrature combination
    2. Widening-only correction (empirical >= internal)
    3. Limits: single point, identical covariates, wide and narrow kernels
    4. The isolated-grain scenario
    5. Parameter rejection and both degenerate-weight policies
    6. The DataFrame engine
"""

import numpy as np
import polars as pl
import pytest

from grainsigma.core.empirical import (
    compute,
    estimate_empirical_uncertainty,
    external_scatter,
    quadrature,
)
from grainsigma.core.errors import DegenerateWeights, InvalidParameter


def _random_suite(n=40, seed=42):
    """Dates falling with eU plus noise, like a damage-controlled suite."""
    np.random.seed(seed)
    eu = np.random.uniform(10, 1500, n)
    dates = 450 - 0.2 * eu + np.random.randn(n) * 25
    sigmas = np.abs(dates) * 0.02
    return dates, sigmas, eu


class TestQuadrature:

    def test_three_four_five(self):
        """sqrt(3^2 + 4^2) is exactly 5."""
        assert quadrature(3.0, 4.0) == 5.0

    def test_zero_term(self):
        """A zero term returns the other unchanged."""
        assert quadrature(0.0, 2.5) == 2.5

    def test_elementwise(self):
        """Arrays combine pairwise."""
        out = quadrature(np.array([3.0, 5.0, 0.0]), np.array([4.0, 12.0, 1.0]))
        np.testing.assert_array_equal(out, [5.0, 13.0, 1.0])

    @pytest.mark.parametrize("tiny", [1e-170, 5e-324])
    def test_tiny_term_survives(self, tiny):
        """Squaring a tiny sigma would underflow; the sum keeps it exactly."""
        assert quadrature(0.0, tiny) == tiny

    def test_huge_term_stays_finite(self):
        """Squaring a huge sigma would overflow; the sum stays finite."""
        assert quadrature(0.0, 1e200) == 1e200
        assert quadrature(3e200, 4e200) == pytest.approx(5e200, rel=1e-15)


class TestEstimate:
    """Properties of estimate_empirical_uncertainty."""

    def test_widening_only(self):
        """Empirical sigma is never below internal sigma."""
        dates, sigmas, eu = _random_suite()
        out = estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=100.0)
        assert out.shape == dates.shape
        assert np.all(out >= sigmas)

    def test_single_point(self):
        """One datum: external scatter is zero, output equals internal."""
        out = estimate_empirical_uncertainty([123.0], [2.5], [50.0])
        assert out[0] == 2.5

    def test_identical_covariates(self):
        """Equal covariates give uniform weights at any bandwidth."""
        np.random.seed(3)
        dates = np.random.randn(15) * 8 + 200
        sigmas = np.full(15, 2.0)
        eu = np.full(15, 80.0)
        pop_std = np.std(dates)
        for bandwidth in (1e-3, 1.0, 100.0):
            ext = external_scatter(dates, eu, bandwidth=bandwidth)
            np.testing.assert_allclose(ext, pop_std, rtol=1e-10)
        out = estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=5.0)
        np.testing.assert_allclose(out, np.sqrt(pop_std ** 2 + 4.0), rtol=1e-10)

    def test_wide_kernel(self):
        """A very wide kernel reduces to the unweighted population std."""
        dates, sigmas, eu = _random_suite()
        ext = external_scatter(dates, eu, bandwidth=1e9)
        np.testing.assert_allclose(ext, np.std(dates), rtol=1e-8)

    def test_narrow_kernel(self):
        """A very narrow kernel with distinct covariates leaves only the self-match."""
        dates = np.array([100.0, 180.0, 95.0, 240.0])
        sigmas = np.array([1.0, 2.0, 1.5, 3.0])
        eu = np.array([10.0, 20.0, 30.0, 40.0])
        out = estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=1e-3)
        np.testing.assert_array_equal(out, sigmas)

    @pytest.mark.parametrize("internal", [0.0, 1e-170, 1e200])
    def test_widening_extreme_internal_sigma(self, internal):
        """Widening holds when internal sigmas sit at the edges of float range."""
        dates, _, eu = _random_suite(n=20, seed=9)
        sigmas = np.full(20, internal)
        out = estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=100.0)
        assert np.all(np.isfinite(out))
        assert np.all(out >= sigmas)
        assert np.all(out > 0)

    @pytest.mark.parametrize("bandwidth", [1e-200, 1e9])
    def test_widening_extreme_bandwidth(self, bandwidth):
        """Widening holds for bandwidths far below and far above the covariate spread."""
        dates, sigmas, eu = _random_suite(n=20, seed=9)
        out = estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=bandwidth)
        assert np.all(np.isfinite(out))
        assert np.all(out >= sigmas)

    def test_single_point_extreme_sigma(self):
        """A lone datum returns its internal sigma at both edges of float range."""
        assert estimate_empirical_uncertainty([5.0], [1e-170], [0.0])[0] == 1e-170
        assert estimate_empirical_uncertainty([5.0], [1e200], [0.0])[0] == 1e200

    def test_isolated_grain(self):
        """Two co-located grains scatter together; a distant grain stays at its internal sigma."""
        out = estimate_empirical_uncertainty(
            [100.0, 102.0, 200.0],
            [1.0, 1.0, 1.0],
            [0.0, 0.0, 1000.0],
            bandwidth=100.0,
        )
        assert out[0] == pytest.approx(np.sqrt(2.0), abs=1e-9)
        assert out[1] == pytest.approx(np.sqrt(2.0), abs=1e-9)
        assert out[2] == pytest.approx(1.0, abs=1e-9)

    def test_row_order_independent(self):
        """Permuting the dataset permutes the output the same way."""
        dates, sigmas, eu = _random_suite(n=20, seed=5)
        perm = np.random.permutation(20)
        out = estimate_empirical_uncertainty(dates, sigmas, eu)
        out_perm = estimate_empirical_uncertainty(dates[perm], sigmas[perm], eu[perm])
        np.testing.assert_allclose(out_perm, out[perm], rtol=1e-12)

    def test_default_bandwidth(self):
        """Bandwidth defaults to 100 covariate units."""
        dates, sigmas, eu = _random_suite(n=10)
        np.testing.assert_array_equal(
            estimate_empirical_uncertainty(dates, sigmas, eu),
            estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=100.0),
        )

    def test_parallel_matches_serial(self):
        """joblib chunks give the same answer as the in-process loop."""
        dates, sigmas, eu = _random_suite(n=60)
        serial = estimate_empirical_uncertainty(dates, sigmas, eu, n_jobs=1)
        parallel = estimate_empirical_uncertainty(dates, sigmas, eu, n_jobs=2)
        np.testing.assert_allclose(parallel, serial, rtol=1e-12)


class TestNanPolicy:
    """Non-finite dates under 'omit' and 'propagate'."""

    def test_omit_drops_missing_date(self):
        """A missing date is left out of everyone's scatter, but still gets an estimate."""
        out = estimate_empirical_uncertainty(
            [100.0, np.nan, 102.0], [1.0, 1.0, 1.0], [0.0, 0.0, 0.0],
        )
        np.testing.assert_allclose(out, np.sqrt(2.0), rtol=1e-12)

    def test_propagate_poisons_batch(self):
        """Under 'propagate' every weight vector sees the NaN date."""
        out = estimate_empirical_uncertainty(
            [100.0, np.nan, 102.0], [1.0, 1.0, 1.0], [0.0, 0.0, 0.0],
            nan_policy="propagate",
        )
        assert np.all(np.isnan(out))

    def test_propagate_clean_data(self):
        """Both policies agree when everything is finite."""
        dates, sigmas, eu = _random_suite(n=15)
        np.testing.assert_array_equal(
            estimate_empirical_uncertainty(dates, sigmas, eu, nan_policy="omit"),
            estimate_empirical_uncertainty(dates, sigmas, eu, nan_policy="propagate"),
        )

    def test_nan_internal_sigma(self):
        """A missing internal sigma only affects its own entry."""
        out = estimate_empirical_uncertainty(
            [100.0, 102.0, 101.0], [1.0, np.nan, 1.0], [0.0, 0.0, 0.0],
        )
        assert np.isnan(out[1])
        assert np.all(np.isfinite(out[[0, 2]]))


class TestDegenerate:
    """Weight vectors that cannot normalize."""

    def test_tiny_bandwidth_is_not_degenerate(self):
        """A bandwidth whose square underflows still keeps the self-weight, so nothing is degenerate."""
        sigmas = np.array([0.1, 0.1])
        out = estimate_empirical_uncertainty([1.0, 2.0], sigmas, [0.0, 5.0], bandwidth=1e-200)
        np.testing.assert_array_equal(out, sigmas)

    def test_nan_covariate_raises(self):
        """A target with no covariate has no kernel center."""
        with pytest.raises(DegenerateWeights) as exc:
            estimate_empirical_uncertainty([1.0, 2.0, 3.0], [0.1] * 3, [0.0, np.nan, 10.0])
        assert exc.value.index == 1

    def test_nan_covariate_sentinel(self):
        """Only the entry without a covariate becomes NaN."""
        with pytest.warns(RuntimeWarning, match="index 1"):
            out = estimate_empirical_uncertainty(
                [1.0, 2.0, 3.0], [0.1] * 3, [0.0, np.nan, 10.0], on_degenerate="nan",
            )
        assert np.isnan(out[1])
        assert np.all(np.isfinite(out[[0, 2]]))
        assert np.all(out[[0, 2]] >= 0.1)

    def test_parallel_raise_keeps_index(self):
        """The failing target index survives the trip back from a worker."""
        with pytest.raises(DegenerateWeights) as exc:
            estimate_empirical_uncertainty(
                [1.0, 2.0, 3.0], [0.1] * 3, [0.0, np.nan, 10.0], n_jobs=2,
            )
        assert exc.value.index == 1

    def test_parallel_sentinel_warns(self):
        """Workers report degenerate entries the same way the serial loop does."""
        with pytest.warns(RuntimeWarning, match="index 1"):
            out = estimate_empirical_uncertainty(
                [1.0, 2.0, 3.0], [0.1] * 3, [0.0, np.nan, 10.0],
                on_degenerate="nan", n_jobs=2,
            )
        assert np.isnan(out[1])
        assert np.all(np.isfinite(out[[0, 2]]))

    def test_unknown_policy(self):
        """Only 'raise' and 'nan' exist."""
        with pytest.raises(InvalidParameter):
            estimate_empirical_uncertainty([1.0], [0.1], [0.0], on_degenerate="skip")


class TestInvalidParameter:
    """Caller errors abort before any computation."""

    @pytest.mark.parametrize("bandwidth", [0.0, -100.0])
    def test_bad_bandwidth(self, bandwidth):
        """Bandwidth must be positive."""
        with pytest.raises(InvalidParameter, match="bandwidth"):
            estimate_empirical_uncertainty([1.0, 2.0], [0.1, 0.1], [0.0, 1.0], bandwidth=bandwidth)

    def test_length_mismatch(self):
        """Error names the arrays and their lengths."""
        with pytest.raises(InvalidParameter, match="covariates=2"):
            estimate_empirical_uncertainty([1.0, 2.0, 3.0], [0.1, 0.1, 0.1], [0.0, 1.0])

    def test_empty(self):
        """At least one datum is required."""
        with pytest.raises(InvalidParameter, match="empty"):
            estimate_empirical_uncertainty([], [], [])

    def test_max_samples(self):
        """Quadratic cost: N above the ceiling is rejected."""
        with pytest.raises(InvalidParameter, match="max_samples"):
            estimate_empirical_uncertainty(np.ones(11), np.ones(11), np.ones(11), max_samples=10)

    def test_negative_internal_sigma(self):
        """Internal sigmas are non-negative."""
        with pytest.raises(InvalidParameter, match="internal_sigmas"):
            estimate_empirical_uncertainty([1.0, 2.0], [0.1, -0.1], [0.0, 1.0])

    @pytest.mark.parametrize("n_jobs", [0, 1.5, "two"])
    def test_bad_n_jobs(self, n_jobs):
        """n_jobs is a non-zero integer."""
        with pytest.raises(InvalidParameter, match="n_jobs"):
            estimate_empirical_uncertainty([1.0, 2.0], [0.1, 0.1], [0.0, 1.0], n_jobs=n_jobs)

    def test_two_dimensional(self):
        """Inputs are flat sequences."""
        with pytest.raises(InvalidParameter, match="one-dimensional"):
            estimate_empirical_uncertainty([[1.0, 2.0]], [[0.1, 0.1]], [[0.0, 1.0]])


class TestCompute:
    """DataFrame engine."""

    def test_adds_columns(self):
        """external_sigma and empirical_sigma appended, rows kept in order."""
        df = pl.DataFrame({
            'id': ['a', 'b', 'c'],
            'value': [100.0, 102.0, 200.0],
            'internal_sigma': [1.0, 1.0, 1.0],
            'covariate': [0.0, 0.0, 1000.0],
        })
        out = compute(df, bandwidth=100.0)
        assert out.columns == ['id', 'value', 'internal_sigma', 'covariate',
                               'external_sigma', 'empirical_sigma']
        assert out['id'].to_list() == ['a', 'b', 'c']
        assert out['external_sigma'][0] == pytest.approx(1.0, abs=1e-9)
        assert out['empirical_sigma'][2] == pytest.approx(1.0, abs=1e-9)

    def test_matches_array_api(self):
        """Same numbers as estimate_empirical_uncertainty."""
        dates, sigmas, eu = _random_suite(n=25)
        df = pl.DataFrame({'value': dates, 'internal_sigma': sigmas, 'covariate': eu})
        out = compute(df, bandwidth=75.0)
        np.testing.assert_array_equal(
            out['empirical_sigma'].to_numpy(),
            estimate_empirical_uncertainty(dates, sigmas, eu, bandwidth=75.0),
        )

    def test_null_value_omitted(self):
        """Nulls are treated like NaN dates."""
        df = pl.DataFrame({
            'value': [100.0, None, 102.0],
            'internal_sigma': [1.0, 1.0, 1.0],
            'covariate': [5.0, 5.0, 5.0],
        })
        out = compute(df)
        np.testing.assert_allclose(out['external_sigma'].to_numpy(), 1.0, rtol=1e-12)

    def test_integer_columns(self):
        """Integer inputs are cast to float."""
        df = pl.DataFrame({'value': [10, 12], 'internal_sigma': [1, 1], 'covariate': [0, 0]})
        out = compute(df)
        assert out['external_sigma'].dtype == pl.Float64
        np.testing.assert_allclose(out['external_sigma'].to_numpy(), 1.0)

    def test_missing_column(self):
        """Engine needs value, internal_sigma, covariate."""
        df = pl.DataFrame({'value': [1.0], 'internal_sigma': [0.1]})
        with pytest.raises(InvalidParameter, match="covariate"):
            compute(df)
