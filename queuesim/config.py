"""Engine settings shared by the generators, stream builder and scheduler.

Defaults can be overridden per process through ``QUEUESIM_*`` environment
variables (e.g. ``QUEUESIM_MAX_ITERATIONS=5000``), or per call by passing an
``EngineSettings`` instance to ``simulate``.
"""

import os
from dataclasses import dataclass, fields, replace

from .validators import InvalidParameter

# Tolerance for every time/arrival comparison in the engine.
EPSILON = 1e-4

ENV_PREFIX = "QUEUESIM_"


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for one simulation run.

    Attributes:
        epsilon: Tolerance for time equality comparisons.
        max_iterations: Minimum scheduler loop passes before the run is truncated.
        iterations_per_customer: Pass budget per customer; the cap is the larger
            of this times the customer count and ``max_iterations``.
        max_horizon_customers: Safety cap on customers in time-horizon mode.
        decimals: Rounding applied to continuous times (gaps, arrivals, services).
        min_service_time: Floor for continuous service times.
        min_discrete_time: Smallest accepted sample in discrete-time runs.
        poisson_epsilon: CP table stops once mass reaches ``1 - poisson_epsilon``.
        poisson_max_terms: Hard cap on CP table length.
        log_space_threshold: Rates above this use log-space Poisson terms.
    """

    epsilon: float = EPSILON
    max_iterations: int = 10000
    iterations_per_customer: int = 4
    max_horizon_customers: int = 1000
    decimals: int = 2
    min_service_time: float = 0.1
    min_discrete_time: int = 1
    poisson_epsilon: float = 1e-6
    poisson_max_terms: int = 400
    log_space_threshold: float = 10.0


def settings_from_env(base: EngineSettings = None) -> EngineSettings:
    """Return ``base`` (or defaults) with ``QUEUESIM_*`` overrides applied."""
    base = base or EngineSettings()
    overrides = {}
    for f in fields(EngineSettings):
        raw = os.environ.get(ENV_PREFIX + f.name.upper())
        if raw is None:
            continue
        cast = int if f.type in (int, "int") else float
        try:
            overrides[f.name] = cast(raw)
        except ValueError:
            raise InvalidParameter(f"{ENV_PREFIX}{f.name.upper()} must be {cast.__name__}, got {raw!r}") from None
    return replace(base, **overrides)
