"""Closed-form steady-state measures used as a baseline next to the simulation.

Exact: M/M/1, M/M/c (Erlang C), M/G/1 (Pollaczek-Khinchine).
Approximate: M/G/c and G/G/c (Allen-Cunneen scaling of the M/M/c wait),
G/G/1 (Kingman).

Unstable inputs (rho >= 1) are rejected with InvalidParameter; the Erlang C
sums are evaluated in log space so large server counts do not overflow.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .distributions import mean_variance_from_spec
from .validators import InvalidParameter, require_int_at_least, require_non_negative, require_positive


@dataclass
class AnalyticalResult:
    model: str
    interarrival_rate: float  # lambda
    service_rate: float       # mu
    servers: int
    utilization: float        # rho
    idle_probability: float   # 1 - rho
    var_services: float
    var_interarrivals: float
    ca2: float
    cs2: float
    Lq: float
    Wq: float
    W: float
    L: float
    note: Optional[str] = None


def _scv(var: float, mean: float) -> float:
    # squared coefficient of variation
    if mean <= 0:
        return 0.0
    return var / (mean * mean)

def _check_stable(rho: float, label: str) -> None:
    if rho >= 1.0:
        raise InvalidParameter(f"Unstable system ({label}): utilization {rho:.4f} >= 1")

def _finish(model: str, lambda_: float, mu: float, c: int, Wq: float,
            varA: float, varS: float, note: Optional[str] = None) -> AnalyticalResult:
    """Little's law tail shared by every model: Lq, W, L from Wq."""
    rho = lambda_ / (c * mu)
    Lq = lambda_ * Wq
    W = Wq + 1.0 / mu
    return AnalyticalResult(
        model=model,
        interarrival_rate=lambda_,
        service_rate=mu,
        servers=c,
        utilization=rho,
        idle_probability=1.0 - rho,
        var_services=varS,
        var_interarrivals=varA,
        ca2=_scv(varA, 1.0 / lambda_),
        cs2=_scv(varS, 1.0 / mu),
        Lq=Lq,
        Wq=Wq,
        W=W,
        L=lambda_ * W,
        note=note,
    )


# ---------- Erlang C ----------
def _erlang_c(lambda_: float, mu: float, c: int) -> Tuple[float, float]:
    """
    Returns (Pw, rho) where:
    rho = lambda / (c*mu)
    Pw = probability that an arrival must wait

    a^n/n! is summed as exp(n ln a - ln n!) relative to the largest term.
    """
    require_int_at_least("servers c", c, 1)
    rho = lambda_ / (c * mu)
    _check_stable(rho, "λ ≥ cμ")

    a = lambda_ / mu  # offered load
    log_a = math.log(a)
    log_terms = [n * log_a - math.lgamma(n + 1) for n in range(c)]
    log_last = c * log_a - math.lgamma(c + 1) + math.log(c / (c - a))

    top = max(max(log_terms), log_last)
    head = sum(math.exp(t - top) for t in log_terms)
    last = math.exp(log_last - top)
    return last / (head + last), rho


# ---------- M/M/1 ----------
def mm1(lambda_: float, mu: float) -> AnalyticalResult:
    require_positive("lambda", lambda_)
    require_positive("mu", mu)
    rho = lambda_ / mu
    _check_stable(rho, "λ ≥ μ")

    Wq = rho / (mu - lambda_)
    return _finish("M/M/1", lambda_, mu, 1, Wq, 1.0 / lambda_ ** 2, 1.0 / mu ** 2)


# ---------- M/M/c ----------
def mmc(lambda_: float, mu: float, c: int) -> AnalyticalResult:
    require_positive("lambda", lambda_)
    require_positive("mu", mu)
    Pw, _ = _erlang_c(lambda_, mu, c)

    Wq = Pw / (c * mu - lambda_)
    return _finish("M/M/c", lambda_, mu, c, Wq, 1.0 / lambda_ ** 2, 1.0 / mu ** 2)


# ---------- M/G/1 (Pollaczek–Khinchine) ----------
def mg1(lambda_: float, service_spec: Dict) -> AnalyticalResult:
    """
    Arrivals are Poisson with rate λ => Var(A)=1/λ².
    Service moments come from the chosen distribution.
    """
    require_positive("lambda", lambda_)
    ES, varS = mean_variance_from_spec(service_spec)
    rho = lambda_ * ES
    _check_stable(rho, "ρ ≥ 1")

    ES2 = varS + ES * ES
    Wq = (lambda_ * ES2) / (2.0 * (1.0 - rho))
    return _finish("M/G/1", lambda_, 1.0 / ES, 1, Wq, 1.0 / lambda_ ** 2, varS,
                   note=_normal_warning(service_spec))


# ---------- M/G/c (Allen–Cunneen) ----------
def mgc(lambda_: float, mu: float, c: int, varS: float) -> AnalyticalResult:
    """
    Wq(M/G/c) ≈ ((1 + Cs²) / 2) * Wq(M/M/c)
    """
    require_positive("lambda", lambda_)
    require_positive("mu", mu)
    require_non_negative("varS", varS)
    Pw, _ = _erlang_c(lambda_, mu, c)

    Cs2 = _scv(varS, 1.0 / mu)
    Wq = ((1.0 + Cs2) / 2.0) * Pw / (c * mu - lambda_)
    return _finish("M/G/c", lambda_, mu, c, Wq, 1.0 / lambda_ ** 2, varS)


# ---------- G/G/1 (Kingman) ----------
def gg1(lambda_: float, mu: float, varA: float, varS: float) -> AnalyticalResult:
    """
    Wq ≈ ((Ca² + Cs²) / 2) * (ρ / (1-ρ)) * E[S]
    """
    require_positive("lambda", lambda_)
    require_positive("mu", mu)
    rho = lambda_ / mu
    _check_stable(rho, "ρ ≥ 1")

    Ca2 = _scv(varA, 1.0 / lambda_)
    Cs2 = _scv(varS, 1.0 / mu)
    Wq = ((Ca2 + Cs2) / 2.0) * (rho / (1.0 - rho)) / mu
    return _finish("G/G/1", lambda_, mu, 1, Wq, varA, varS)


# ---------- G/G/c (Allen–Cunneen) ----------
def ggc(lambda_: float, mu: float, c: int, varA: float, varS: float) -> AnalyticalResult:
    """
    Wq ≈ ((Ca² + Cs²) / 2) * Pw / (c*mu - lambda), Pw from Erlang C.
    """
    require_positive("lambda", lambda_)
    require_positive("mu", mu)
    Pw, _ = _erlang_c(lambda_, mu, c)

    Ca2 = _scv(varA, 1.0 / lambda_)
    Cs2 = _scv(varS, 1.0 / mu)
    Wq = ((Ca2 + Cs2) / 2.0) * Pw / (c * mu - lambda_)
    return _finish("G/G/c", lambda_, mu, c, Wq, varA, varS)


def _normal_warning(spec) -> Optional[str]:
    if spec is None:
        return None
    dist_type = spec.get("dist_type") if isinstance(spec, dict) else spec.dist_type
    params = spec.get("params") if isinstance(spec, dict) else spec.params
    if (dist_type or "").lower() != "normal":
        return None
    if params["std"] > params["mean"] / 2:
        return "Normal service may produce negative service times; consider a gamma distribution."
    return None


# ---------- General solver (based on chosen model) ----------
MM1_NAMES = ("M/M/1", "MM1")
MMC_NAMES = ("M/M/C", "MMC", "MM/C")
MG1_NAMES = ("M/G/1", "MG1")
MGC_NAMES = ("M/G/C", "MGC", "MG/C")
GG1_NAMES = ("G/G/1", "GG1")
GGC_NAMES = ("G/G/C", "GGC", "GG/C")
MODEL_NAMES = MM1_NAMES + MMC_NAMES + MG1_NAMES + MGC_NAMES + GG1_NAMES + GGC_NAMES


def normalize_model(model: str) -> str:
    return (model or "").strip().upper().replace(" ", "")


def solve_analytical(model: str,
                     lambda_: Optional[float],
                     mu: Optional[float],
                     c: int,
                     arrival_spec: Optional[Dict] = None,
                     service_spec: Optional[Dict] = None) -> AnalyticalResult:
    m = normalize_model(model)
    if m not in MODEL_NAMES:
        raise InvalidParameter(f"Unknown model: {model}")

    if m in MM1_NAMES:
        if lambda_ is None or mu is None:
            raise InvalidParameter("lambda and mu are required for M/M/1")
        return mm1(lambda_, mu)

    if m in MMC_NAMES:
        if lambda_ is None or mu is None:
            raise InvalidParameter("lambda and mu are required for M/M/c")
        return mmc(lambda_, mu, c)

    if m in MG1_NAMES + MGC_NAMES:
        if lambda_ is None:
            raise InvalidParameter("lambda is required for M/G models")
        if service_spec is None:
            raise InvalidParameter("service_spec is required for M/G models")
        if m in MG1_NAMES:
            return mg1(lambda_, service_spec)
        meanS, varS = mean_variance_from_spec(service_spec)
        result = mgc(lambda_, 1.0 / meanS, c, varS)
        result.note = _normal_warning(service_spec)
        return result

    # G/G: moments come from both distributions, no lambda/mu input
    if arrival_spec is None or service_spec is None:
        raise InvalidParameter("For G/G models, arrival_spec and service_spec are required")
    meanA, varA = mean_variance_from_spec(arrival_spec)
    meanS, varS = mean_variance_from_spec(service_spec)
    if m in GG1_NAMES:
        return gg1(1.0 / meanA, 1.0 / meanS, varA, varS)
    return ggc(1.0 / meanA, 1.0 / meanS, c, varA, varS)
