"""Tests for samplers, the Poisson CP table and random sources."""

import math

import pytest

from queuesim.config import EngineSettings
from queuesim.distributions import (
    invert_cdf_table,
    make_sampler,
    mean_variance_from_spec,
    poisson_cdf_table,
    poisson_pmf,
    redraw_below,
    sample_exponential,
    sample_gamma,
    sample_normal,
    sample_uniform,
    scv,
    validate_spec,
)
from queuesim.models import DistributionSpec
from queuesim.rng import LinearCongruential, ReplaySource, SeededRandom
from queuesim.validators import InvalidParameter


class TestSamplers:
    """Inverse-transform and Box-Muller samplers."""

    def test_exponential_inverse_transform(self):
        value = sample_exponential(2.0, ReplaySource([0.5]))
        assert value == pytest.approx(-math.log(0.5) / 2.0)

    def test_uniform(self):
        assert sample_uniform(2.0, 6.0, ReplaySource([0.25])) == 3.0

    def test_normal_box_muller(self):
        """u1 = e^-0.5 and u2 = 0 give z = 1."""
        source = ReplaySource([1.0 - math.exp(-0.5), 0.0])
        assert sample_normal(10.0, 2.0, source, floor=0.1) == pytest.approx(12.0)

    def test_normal_floored(self):
        """A draw far below zero is clamped, never zero or negative."""
        source = ReplaySource([1.0 - math.exp(-0.5), 0.5])
        assert sample_normal(1.0, 10.0, source, floor=0.1) == 0.1

    def test_normal_zero_draw_is_mean(self):
        assert sample_normal(4.0, 1.0, ReplaySource([0.0, 0.3]), floor=0.1) == pytest.approx(4.0)

    @pytest.mark.parametrize("shape,rate", [(2.0, 4.0), (0.5, 2.0), (9.0, 3.0)])
    def test_gamma_mean(self, shape, rate):
        """Sample mean of Marsaglia-Tsang draws is close to shape/rate."""
        source = SeededRandom(7)
        draws = [sample_gamma(shape, rate, source) for _ in range(20000)]
        assert min(draws) >= 0
        assert sum(draws) / len(draws) == pytest.approx(shape / rate, rel=0.05)

    def test_sampler_is_deterministic_per_seed(self):
        spec = DistributionSpec(dist_type="normal", params={"mean": 5, "std": 1})
        draw = make_sampler(spec)
        a = [draw(SeededRandom(3)) for _ in range(3)]
        b = [draw(SeededRandom(3)) for _ in range(3)]
        assert a == b


class TestPoissonTable:
    """Cumulative Poisson table and its inversion."""

    def test_table_shape(self):
        table = poisson_cdf_table(2.0)
        assert table[0] == pytest.approx(math.exp(-2.0))
        assert table[-1] == 1.0
        assert all(a <= b for a, b in zip(table, table[1:]))

    def test_table_stops_near_one(self):
        table = poisson_cdf_table(2.0)
        assert table[-2] < 1.0 - 1e-6
        assert len(table) < 30

    def test_large_rate_uses_log_space(self):
        """Direct λ^k / k! would overflow here."""
        with pytest.raises(OverflowError):
            200.0 ** 200
        pmf = poisson_pmf(200, 200.0)
        assert 0 < pmf < 1
        assert math.isfinite(pmf)

    def test_large_rate_table(self):
        table = poisson_cdf_table(150.0)
        assert table[-1] == 1.0
        assert all(math.isfinite(p) for p in table)
        assert table[100] < 0.01

    def test_log_space_matches_direct(self):
        direct = poisson_pmf(7, 8.0, log_space_threshold=100.0)
        logged = poisson_pmf(7, 8.0, log_space_threshold=1.0)
        assert logged == pytest.approx(direct)

    def test_term_cap(self):
        table = poisson_cdf_table(50.0, EngineSettings(poisson_max_terms=10))
        assert len(table) == 10
        assert table[-1] == 1.0

    def test_inversion_brackets(self):
        table = [0.1, 0.5, 1.0]
        assert invert_cdf_table(table, 0.05) == 0
        assert invert_cdf_table(table, 0.1) == 1
        assert invert_cdf_table(table, 0.7) == 2
        assert invert_cdf_table(table, 0.9999) == 2

    def test_poisson_sampler_returns_counts(self):
        draw = make_sampler(DistributionSpec(dist_type="poisson", params={"rate": 2.0}))
        assert draw(ReplaySource([0.5])) == 2.0
        assert draw(ReplaySource([0.05])) == 0.0


class TestRedraw:
    """Resampling below a floor."""

    def test_redraws_until_floor(self):
        values = iter([0, 0, 3])
        assert redraw_below(lambda: next(values), 1) == 3

    def test_gives_up_and_clamps(self):
        assert redraw_below(lambda: 0, 1) == 1


class TestValidation:
    """Parameters are rejected before sampling."""

    def test_uniform_min_not_below_max(self):
        with pytest.raises(InvalidParameter):
            validate_spec(DistributionSpec(dist_type="uniform", params={"min": 5, "max": 5}))
        with pytest.raises(InvalidParameter):
            make_sampler(DistributionSpec(dist_type="uniform", params={"min": 6, "max": 5}))

    @pytest.mark.parametrize("spec", [
        {"dist_type": "exponential", "params": {"rate": 0}},
        {"dist_type": "exponential", "params": {}},
        {"dist_type": "normal", "params": {"mean": 1, "std": -1}},
        {"dist_type": "gamma", "params": {"shape": 2, "rate": -1}},
        {"dist_type": "poisson", "params": {"rate": -3}},
        {"dist_type": "weibull", "params": {"k": 1}},
    ])
    def test_bad_specs(self, spec):
        with pytest.raises(InvalidParameter):
            validate_spec(spec)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            validate_spec({"dist_type": "uniform", "params": {"min": 2, "max": 1}})

    def test_family_name_normalised(self):
        family, params = validate_spec({"dist_type": " Exponential ", "params": {"rate": "2"}})
        assert family == "exponential"
        assert params == {"rate": 2.0}


class TestMoments:
    """Analytic mean and variance."""

    def test_gamma_moments(self):
        spec = {"dist_type": "gamma", "params": {"shape": 2.0, "rate": 4.0}}
        assert mean_variance_from_spec(spec) == pytest.approx((0.5, 0.125))
        assert scv(spec) == pytest.approx(0.5)

    def test_uniform_moments(self):
        spec = {"dist_type": "uniform", "params": {"min": 1, "max": 3}}
        assert mean_variance_from_spec(spec) == pytest.approx((2.0, 1.0 / 3.0))

    def test_exponential_scv_is_one(self):
        assert scv({"dist_type": "exponential", "params": {"rate": 3}}) == pytest.approx(1.0)

    def test_zero_truncated_poisson_moments(self):
        lam = 2.0
        mean, var = mean_variance_from_spec({"dist_type": "poisson", "params": {"rate": lam}})
        assert mean == pytest.approx(lam / (1 - math.exp(-lam)))
        assert var > 0


class TestRandomSources:
    """Seedable uniform sources."""

    def test_lcg_sequence(self):
        lcg = LinearCongruential()
        assert lcg.next() == pytest.approx(665 / 1994)
        assert lcg.next() == pytest.approx(692 / 1994)

    def test_lcg_reproducible(self):
        a = LinearCongruential(seed=99)
        b = LinearCongruential(seed=99)
        seq = [a.next() for _ in range(50)]
        assert seq == [b.next() for _ in range(50)]
        assert all(0 <= u < 1 for u in seq)

    def test_seeded_random_reproducible(self, default_seed):
        a = SeededRandom(default_seed)
        b = SeededRandom(default_seed)
        assert [a.next() for _ in range(5)] == [b.next() for _ in range(5)]

    def test_replay_exhausts(self):
        source = ReplaySource([0.1])
        source.next()
        with pytest.raises(IndexError):
            source.next()
