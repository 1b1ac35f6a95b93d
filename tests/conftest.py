"""Pytest fixtures for queue simulator tests."""

import pytest

from queuesim.config import EngineSettings
from queuesim.models import DistributionSpec


class ExplodingSource:
    """Random source that fails the test if anything is sampled."""

    def next(self) -> float:
        raise AssertionError("sampled before validation finished")


@pytest.fixture
def default_seed() -> int:
    """Default random seed for reproducible tests."""
    return 42


@pytest.fixture
def settings() -> EngineSettings:
    """Engine defaults, isolated from QUEUESIM_* environment variables."""
    return EngineSettings()


@pytest.fixture
def exploding_source() -> ExplodingSource:
    return ExplodingSource()


@pytest.fixture
def exp_arrivals() -> DistributionSpec:
    """Exponential inter-arrivals, mean 2 minutes."""
    return DistributionSpec(dist_type="exponential", params={"rate": 0.5})


@pytest.fixture
def exp_service() -> DistributionSpec:
    """Exponential service, mean 1.5 minutes."""
    return DistributionSpec(dist_type="exponential", params={"rate": 1 / 1.5})
