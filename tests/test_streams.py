"""Tests for the arrival/service stream builder."""

import pytest

from queuesim.config import EngineSettings
from queuesim.models import DistributionSpec, FixedCount, PriorityRange, SimulationRequest, TimeHorizon
from queuesim.rng import LinearCongruential, ReplaySource, SeededRandom
from queuesim.streams import build_priorities, build_streams, round_half_up
from queuesim.validators import InvalidParameter


def uniform(a, b):
    return DistributionSpec(dist_type="uniform", params={"min": a, "max": b})


class TestFixedCount:
    """Exactly N customers, first at t=0."""

    def test_cumulative_arrivals(self):
        req = SimulationRequest(arrival=uniform(1, 3), service=uniform(2, 4), input_mode=FixedCount(3))
        # two gaps, then three services
        source = ReplaySource([0.5, 0.25, 0.0, 0.5, 0.75])
        streams = build_streams(req, source)

        assert streams.inter_arrivals == [0.0, 2.0, 1.5]
        assert streams.arrival_times == [0.0, 2.0, 3.5]
        assert streams.service_times == [2.0, 3.0, 3.5]
        assert streams.priorities == [1, 1, 1]
        assert len(streams) == 3

    def test_single_customer(self):
        req = SimulationRequest(arrival=uniform(1, 3), service=uniform(2, 4), input_mode=FixedCount(1))
        streams = build_streams(req, ReplaySource([0.5]))
        assert streams.arrival_times == [0.0]
        assert streams.service_times == [3.0]

    def test_customers_are_fresh(self):
        req = SimulationRequest(arrival=uniform(1, 3), service=uniform(2, 4), input_mode=FixedCount(4))
        streams = build_streams(req, SeededRandom(1))
        first = streams.customers()
        first[0].remaining = 0
        assert streams.customers()[0].remaining == streams.service_times[0]

    def test_continuous_rounding(self):
        req = SimulationRequest(
            arrival=DistributionSpec(dist_type="exponential", params={"rate": 0.7}),
            service=DistributionSpec(dist_type="exponential", params={"rate": 1.3}),
            input_mode=FixedCount(50),
        )
        streams = build_streams(req, SeededRandom(11))
        for value in streams.arrival_times + streams.service_times:
            assert round(value, 2) == value


class TestTimeHorizon:
    """Sampling until the horizon is passed."""

    def test_overshoot_discarded(self):
        req = SimulationRequest(arrival=uniform(4, 6), service=uniform(1, 2), input_mode=TimeHorizon(12))
        streams = build_streams(req, ReplaySource([0.5] * 6))
        assert streams.arrival_times == [0.0, 5.0, 10.0]
        assert streams.service_times == [1.5, 1.5, 1.5]
        assert not streams.horizon_capped

    def test_arrival_on_horizon_kept(self):
        req = SimulationRequest(arrival=uniform(4, 6), service=uniform(1, 2), input_mode=TimeHorizon(10))
        streams = build_streams(req, ReplaySource([0.5] * 6))
        assert streams.arrival_times == [0.0, 5.0, 10.0]

    def test_safety_cap(self):
        req = SimulationRequest(arrival=uniform(0, 0.001), service=uniform(1, 2), input_mode=TimeHorizon(5))
        streams = build_streams(req, SeededRandom(5), EngineSettings(max_horizon_customers=25))
        assert len(streams) == 25
        assert streams.horizon_capped

    def test_non_positive_horizon_rejected(self, exploding_source):
        req = SimulationRequest(arrival=uniform(1, 2), service=uniform(1, 2), input_mode=TimeHorizon(0))
        with pytest.raises(InvalidParameter):
            build_streams(req, exploding_source)


class TestDiscreteAndClamping:
    """Whole-unit runs and degenerate draws."""

    def test_discrete_gaps_redrawn_to_one(self):
        req = SimulationRequest(arrival=uniform(0.1, 0.2), service=uniform(2.6, 2.7),
                                input_mode=FixedCount(3), discrete=True)
        streams = build_streams(req, SeededRandom(2))
        assert streams.inter_arrivals == [0.0, 1.0, 1.0]
        assert streams.arrival_times == [0.0, 1.0, 2.0]
        assert streams.service_times == [3.0, 3.0, 3.0]

    def test_tiny_service_clamped(self):
        req = SimulationRequest(arrival=uniform(1, 2), service=uniform(0.0, 0.01), input_mode=FixedCount(20))
        streams = build_streams(req, SeededRandom(8))
        assert streams.service_times == [0.1] * 20

    def test_poisson_arrivals_are_whole_units(self):
        req = SimulationRequest(
            arrival=DistributionSpec(dist_type="poisson", params={"rate": 2.0}),
            service=uniform(1, 2),
            input_mode=FixedCount(3),
        )
        # 0.5 -> 2; 0.05 -> 0 is redrawn; 0.2 -> 1; then three services
        streams = build_streams(req, ReplaySource([0.5, 0.05, 0.2, 0.0, 0.0, 0.0]))
        assert streams.arrival_times == [0.0, 2.0, 3.0]
        assert streams.service_times == [1.0, 1.0, 1.0]

    def test_poisson_services_redraw_zero_counts(self):
        """A zero count is redrawn, not floored, even in a continuous run."""
        req = SimulationRequest(
            arrival=uniform(1, 2),
            service=DistributionSpec(dist_type="poisson", params={"rate": 2.0}),
            input_mode=FixedCount(2),
        )
        # one gap, then 0.05 -> 0 is redrawn, 0.5 -> 2, 0.2 -> 1
        streams = build_streams(req, ReplaySource([0.0, 0.05, 0.5, 0.2]))
        assert streams.arrival_times == [0.0, 1.0]
        assert streams.service_times == [2.0, 1.0]

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.49) == 0


class TestPriorities:
    """Priority labels."""

    def test_uniform_integer_priorities(self):
        source = ReplaySource([0.0, 0.25, 0.74, 0.75])
        assert build_priorities(4, PriorityRange(1, 3), source) == [1, 2, 2, 3]

    def test_disabled_means_all_one(self):
        assert build_priorities(3, None, ReplaySource([])) == [1, 1, 1]

    def test_lcg_generator(self):
        expected_source = LinearCongruential()
        expected = [round_half_up(1 + 4 * expected_source.next()) for _ in range(5)]
        assert build_priorities(5, PriorityRange(1, 5, generator="lcg"), ReplaySource([])) == expected

    def test_priorities_within_range(self):
        priorities = build_priorities(200, PriorityRange(2, 4), SeededRandom(9))
        assert set(priorities) <= {2, 3, 4}

    def test_min_above_max_rejected(self, exploding_source):
        req = SimulationRequest(arrival=uniform(1, 2), service=uniform(1, 2), priority=PriorityRange(3, 1))
        with pytest.raises(InvalidParameter):
            build_streams(req, exploding_source)
