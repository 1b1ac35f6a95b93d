"""Arrival/service stream builder.

Turns sampler output into the ordered per-customer streams the scheduler
consumes. Rounding policy: continuous runs round gaps, arrival times and
service times to ``settings.decimals`` places and floor service times at
``settings.min_service_time``; discrete runs (and Poisson draws) work in
whole time units and redraw anything below ``settings.min_discrete_time``.
"""

import logging
import math
from dataclasses import dataclass
from typing import List

from .config import EngineSettings
from .distributions import Sampler, make_sampler, redraw_below, validate_spec
from .models import Customer, FixedCount, PriorityRange, SimulationRequest, TimeHorizon
from .rng import LinearCongruential, RandomSource
from .validators import InvalidParameter, require_int_at_least, require_ordered, require_positive

logger = logging.getLogger(__name__)


@dataclass
class CustomerStreams:
    inter_arrivals: List[float]
    arrival_times: List[float]
    service_times: List[float]
    priorities: List[int]
    horizon_capped: bool = False

    def __len__(self) -> int:
        return len(self.arrival_times)

    def customers(self) -> List[Customer]:
        """Fresh Customer objects for one scheduler run."""
        return [
            Customer(id=i, arrival_time=a, service_time=s, priority=p)
            for i, (a, s, p) in enumerate(zip(self.arrival_times, self.service_times, self.priorities))
        ]


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class _TimeQuantizer:
    def __init__(self, discrete: bool, settings: EngineSettings):
        self.discrete = discrete
        self.settings = settings

    def gap(self, sampler: Sampler, source: RandomSource) -> float:
        if self.discrete:
            return float(redraw_below(lambda: round_half_up(sampler(source)), self.settings.min_discrete_time))
        return round(sampler(source), self.settings.decimals)

    def service(self, sampler: Sampler, source: RandomSource) -> float:
        if self.discrete:
            return float(redraw_below(lambda: round_half_up(sampler(source)), self.settings.min_discrete_time))
        return max(self.settings.min_service_time, round(sampler(source), self.settings.decimals))

    def add(self, t: float, gap: float) -> float:
        if self.discrete:
            return t + gap
        return round(t + gap, self.settings.decimals)


def build_arrivals(mode, sampler: Sampler, source: RandomSource, quantizer: _TimeQuantizer,
                   settings: EngineSettings):
    """Return (inter_arrivals, arrival_times, capped). First arrival is always at 0."""
    inter_arrivals = [0.0]
    arrival_times = [0.0]
    capped = False

    if isinstance(mode, FixedCount):
        require_int_at_least("n_customers", mode.n, 1)
        for _ in range(1, mode.n):
            gap = quantizer.gap(sampler, source)
            inter_arrivals.append(gap)
            arrival_times.append(quantizer.add(arrival_times[-1], gap))

    elif isinstance(mode, TimeHorizon):
        require_positive("duration_minutes", mode.duration_minutes)
        horizon = mode.duration_minutes
        while True:
            if len(arrival_times) >= settings.max_horizon_customers:
                capped = True
                logger.warning(
                    f"Time horizon {horizon} stopped at the {settings.max_horizon_customers}-customer cap"
                )
                break
            gap = quantizer.gap(sampler, source)
            nxt = quantizer.add(arrival_times[-1], gap)
            # the overshooting arrival is discarded
            if nxt > horizon:
                break
            inter_arrivals.append(gap)
            arrival_times.append(nxt)

    else:
        raise InvalidParameter(f"Unknown input mode: {mode!r}")

    return inter_arrivals, arrival_times, capped


def build_priorities(n: int, priority: PriorityRange, source: RandomSource) -> List[int]:
    if priority is None:
        return [1] * n

    require_ordered("priority min", priority.min, "priority max", priority.max, strict=False)
    if priority.generator == "lcg":
        source = LinearCongruential(seed=priority.lcg_seed)
    elif priority.generator != "random":
        raise InvalidParameter(f"Unknown priority generator: {priority.generator!r}")

    span = priority.max - priority.min
    return [round_half_up(priority.min + span * source.next()) for _ in range(n)]


def build_streams(req: SimulationRequest, source: RandomSource, settings: EngineSettings = None) -> CustomerStreams:
    settings = settings or EngineSettings()

    # samplers validate their specs before anything is drawn
    arrival_sampler = make_sampler(req.arrival, settings)
    service_sampler = make_sampler(req.service, settings)
    if req.priority is not None:
        require_ordered("priority min", req.priority.min, "priority max", req.priority.max, strict=False)

    # Poisson draws are counts: whole units, zero redrawn, for gaps and services alike
    arrival_family, _ = validate_spec(req.arrival)
    service_family, _ = validate_spec(req.service)
    gaps = _TimeQuantizer(req.discrete or arrival_family == "poisson", settings)
    times = _TimeQuantizer(req.discrete or service_family == "poisson", settings)

    inter_arrivals, arrival_times, capped = build_arrivals(req.input_mode, arrival_sampler, source, gaps, settings)
    n = len(arrival_times)
    service_times = [times.service(service_sampler, source) for _ in range(n)]
    priorities = build_priorities(n, req.priority, source)

    logger.debug(f"Built streams for {n} customers (capped={capped})")
    return CustomerStreams(
        inter_arrivals=inter_arrivals,
        arrival_times=arrival_times,
        service_times=service_times,
        priorities=priorities,
        horizon_capped=capped,
    )
