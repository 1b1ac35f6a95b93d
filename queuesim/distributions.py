import bisect
import logging
import math
from typing import Callable, Dict, List, Tuple

from .config import EngineSettings
from .models import DistributionSpec
from .rng import RandomSource
from .validators import InvalidParameter, require_non_negative, require_ordered, require_param, require_positive

logger = logging.getLogger(__name__)

FAMILIES = ("exponential", "uniform", "normal", "gamma", "poisson")

# Redraws allowed before a sample below the floor is clamped instead.
MAX_REDRAWS = 1000

Sampler = Callable[[RandomSource], float]


def sample_exponential(rate: float, source: RandomSource) -> float:
    # mean = 1/rate
    return -math.log(1.0 - source.next()) / rate

def sample_uniform(a: float, b: float, source: RandomSource) -> float:
    return a + (b - a) * source.next()

def standard_normal(source: RandomSource) -> float:
    # Box-Muller; 1-u keeps the log argument in (0, 1]
    u1 = 1.0 - source.next()
    u2 = source.next()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

def sample_normal(mean: float, std: float, source: RandomSource, floor: float) -> float:
    # never a zero or negative duration
    return max(floor, mean + std * standard_normal(source))

def sample_gamma(shape: float, rate: float, source: RandomSource) -> float:
    """Marsaglia-Tsang, driven by the injected source. Mean is shape/rate."""
    if shape < 1.0:
        boost = (1.0 - source.next()) ** (1.0 / shape)
        return sample_gamma(shape + 1.0, rate, source) * boost

    d = shape - 1.0 / 3.0
    c = 1.0 / math.sqrt(9.0 * d)
    while True:
        x = standard_normal(source)
        v = (1.0 + c * x) ** 3
        if v <= 0:
            continue
        u = 1.0 - source.next()
        if math.log(u) < 0.5 * x * x + d - d * v + d * math.log(v):
            return d * v / rate


# ---------- Poisson CP table ----------
def poisson_pmf(k: int, rate: float, log_space_threshold: float = 10.0) -> float:
    if rate > log_space_threshold:
        # e^-λ λ^k / k! overflows for large λ; stay in log space
        return math.exp(-rate + k * math.log(rate) - math.lgamma(k + 1))
    return math.exp(-rate) * rate ** k / math.factorial(k)

def poisson_cdf_table(rate: float, settings: EngineSettings = None) -> List[float]:
    """Cumulative P(N <= k) for k = 0, 1, ... until mass >= 1 - eps or the term cap.

    The last entry is closed to exactly 1 so every u in [0, 1) brackets.
    """
    settings = settings or EngineSettings()
    require_positive("poisson rate", rate)

    table: List[float] = []
    cumulative = 0.0
    for k in range(settings.poisson_max_terms):
        cumulative += poisson_pmf(k, rate, settings.log_space_threshold)
        table.append(min(cumulative, 1.0))
        if cumulative >= 1.0 - settings.poisson_epsilon:
            break
    else:
        logger.debug(f"Poisson table for rate={rate} hit the {settings.poisson_max_terms}-term cap")

    table[-1] = 1.0
    return table

def invert_cdf_table(table: List[float], u: float) -> int:
    """Smallest k with table[k-1] <= u < table[k] (table[-1] is taken as 0)."""
    return min(bisect.bisect_right(table, u), len(table) - 1)


def redraw_below(draw: Callable[[], float], minimum: float) -> float:
    value = draw()
    for _ in range(MAX_REDRAWS):
        if value >= minimum:
            return value
        value = draw()
    return max(value, minimum)


# ---------- Spec handling ----------
def validate_spec(spec) -> Tuple[str, Dict[str, float]]:
    """Normalise a DistributionSpec (or plain dict) and check its parameters.

    Raises InvalidParameter without drawing anything.
    """
    if isinstance(spec, DistributionSpec):
        dist_type, raw = spec.dist_type, spec.params
    else:
        dist_type, raw = spec.get("dist_type", ""), spec.get("params")
    family = (dist_type or "").strip().lower()
    raw = raw or {}

    if family == "exponential" or family == "poisson":
        params = {"rate": require_param(raw, "rate", family)}
        require_positive(f"{family} rate", params["rate"])
    elif family == "uniform":
        params = {"min": require_param(raw, "min", family), "max": require_param(raw, "max", family)}
        require_non_negative("uniform min", params["min"])
        require_ordered("uniform min", params["min"], "uniform max", params["max"])
    elif family == "normal":
        params = {"mean": require_param(raw, "mean", family), "std": require_param(raw, "std", family)}
        require_positive("normal mean", params["mean"])
        require_non_negative("normal std", params["std"])
    elif family == "gamma":
        params = {"shape": require_param(raw, "shape", family), "rate": require_param(raw, "rate", family)}
        require_positive("gamma shape", params["shape"])
        require_positive("gamma rate", params["rate"])
    else:
        raise InvalidParameter(f"Unknown dist_type: {dist_type!r} (expected one of {', '.join(FAMILIES)})")

    return family, params

def make_sampler(spec, settings: EngineSettings = None) -> Sampler:
    """Validate ``spec`` once and return ``draw(source) -> float``.

    The Poisson sampler returns whole arrival counts; its CP table is built here.
    """
    settings = settings or EngineSettings()
    family, p = validate_spec(spec)

    if family == "exponential":
        return lambda source: sample_exponential(p["rate"], source)
    if family == "uniform":
        return lambda source: sample_uniform(p["min"], p["max"], source)
    if family == "normal":
        return lambda source: sample_normal(p["mean"], p["std"], source, settings.min_service_time)
    if family == "gamma":
        return lambda source: sample_gamma(p["shape"], p["rate"], source)

    table = poisson_cdf_table(p["rate"], settings)
    logger.debug(f"Poisson CP table for rate={p['rate']} has {len(table)} entries")
    return lambda source: float(invert_cdf_table(table, source.next()))

def sample_from_spec(spec, source: RandomSource, settings: EngineSettings = None) -> float:
    return make_sampler(spec, settings)(source)

def mean_variance_from_spec(spec) -> Tuple[float, float]:
    family, p = validate_spec(spec)

    if family == "exponential":
        rate = p["rate"]
        mean = 1.0 / rate
        var = 1.0 / (rate * rate)
    elif family == "uniform":
        a, b = p["min"], p["max"]
        mean = (a + b) / 2.0
        var = ((b - a) ** 2) / 12.0
    elif family == "normal":
        mean = p["mean"]
        var = p["std"] ** 2
    elif family == "gamma":
        # mean α/β, SCV 1/α
        alpha, beta = p["shape"], p["rate"]
        mean = alpha / beta
        var = alpha / (beta * beta)
    else:
        # counts below one are redrawn, so gaps follow a zero-truncated Poisson
        lam = p["rate"]
        mean = lam / (1.0 - math.exp(-lam))
        var = mean * (1.0 + lam - mean)

    return mean, var

def scv(spec) -> float:
    """Squared coefficient of variation Var/E^2."""
    mean, var = mean_variance_from_spec(spec)
    return var / (mean * mean)
