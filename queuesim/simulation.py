import logging
from typing import Optional, Sequence

from .config import EngineSettings, settings_from_env
from .distributions import mean_variance_from_spec, validate_spec
from .metrics import extract_rows, summarize, utilization
from .models import FixedCount, SimulationRequest, SimulationResult, TimeHorizon
from .rng import RandomSource, SeededRandom
from .scheduler import schedule
from .streams import CustomerStreams, build_streams
from .validators import InvalidParameter, require_int_at_least, require_ordered, require_positive

logger = logging.getLogger(__name__)


def validate_request(req: SimulationRequest) -> None:
    """Reject bad configuration before any sample is drawn."""
    require_int_at_least("servers", req.servers, 1)
    validate_spec(req.arrival)
    validate_spec(req.service)

    if isinstance(req.input_mode, FixedCount):
        require_int_at_least("n_customers", req.input_mode.n, 1)
    elif isinstance(req.input_mode, TimeHorizon):
        require_positive("duration_minutes", req.input_mode.duration_minutes)
    else:
        raise InvalidParameter(f"Unknown input mode: {req.input_mode!r}")

    if req.priority is not None:
        require_ordered("priority min", req.priority.min, "priority max", req.priority.max, strict=False)

    if req.check_stability:
        mean_a, _ = mean_variance_from_spec(req.arrival)
        mean_s, _ = mean_variance_from_spec(req.service)
        rho = mean_s / (req.servers * mean_a)
        if rho >= 1.0:
            raise InvalidParameter(f"Unstable system: utilization {rho:.4f} >= 1 with {req.servers} server(s)")


def simulate_streams(streams: CustomerStreams, servers: int = 1,
                     settings: Optional[EngineSettings] = None) -> SimulationResult:
    """Schedule already-built streams and derive rows, utilization and summary."""
    settings = settings or EngineSettings()
    outcome = schedule(streams.customers(), servers, settings)

    rows = extract_rows(outcome.customers, outcome.timeline, streams.inter_arrivals)
    util = utilization(rows, outcome.timeline, servers)

    return SimulationResult(
        rows=rows,
        timeline=outcome.timeline,
        utilization=util,
        summary=summarize(rows, util),
        truncated=outcome.truncated,
        iterations=outcome.iterations,
        arrival_times=list(streams.arrival_times),
        service_times=list(streams.service_times),
        priorities=list(streams.priorities),
        horizon_capped=streams.horizon_capped,
    )


def simulate_customers(arrival_times: Sequence[float], service_times: Sequence[float],
                       priorities: Optional[Sequence[int]] = None, servers: int = 1,
                       settings: Optional[EngineSettings] = None) -> SimulationResult:
    """Run the engine on explicit streams (no sampling)."""
    if len(arrival_times) != len(service_times):
        raise InvalidParameter("arrival_times and service_times must have the same length")
    if priorities is None:
        priorities = [1] * len(arrival_times)
    elif len(priorities) != len(arrival_times):
        raise InvalidParameter("priorities must match arrival_times in length")

    if any(b < a for a, b in zip(arrival_times, arrival_times[1:])):
        raise InvalidParameter("arrival_times must be in non-decreasing order")

    gaps = [0.0] + [b - a for a, b in zip(arrival_times, arrival_times[1:])]
    streams = CustomerStreams(
        inter_arrivals=gaps,
        arrival_times=list(arrival_times),
        service_times=list(service_times),
        priorities=list(priorities),
    )
    return simulate_streams(streams, servers, settings)


def simulate(req: SimulationRequest, settings: Optional[EngineSettings] = None,
             source: Optional[RandomSource] = None) -> SimulationResult:
    settings = settings or settings_from_env()
    validate_request(req)

    source = source or SeededRandom(req.seed)
    streams = build_streams(req, source, settings)
    result = simulate_streams(streams, req.servers, settings)

    logger.info(
        f"{req.model} run: {len(streams)} customers, {req.servers} server(s), "
        f"utilization {result.utilization.overall:.1f}%, truncated={result.truncated}, "
        f"horizon_capped={result.horizon_capped}"
    )
    return result
