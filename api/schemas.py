from typing import Dict, Optional, List, Literal
from pydantic import BaseModel, Field, model_validator

from queuesim.analytical import (
    MG1_NAMES, MGC_NAMES, MM1_NAMES, MMC_NAMES, MODEL_NAMES, normalize_model
)


DistType = Literal["exponential", "uniform", "normal", "gamma", "poisson"]

class DistributionSpec(BaseModel):
    dist_type: DistType
    params: Dict[str, float]

# ---------- Analytical ----------
class AnalyticalRequest(BaseModel):
    model: str = Field(
        ...,
        examples=["M/M/1", "M/M/c", "M/G/1", "M/G/c", "G/G/1", "G/G/c"]
    )

    lambda_: Optional[float] = Field(None, gt=0)
    mu: Optional[float] = Field(None, gt=0)
    servers: int = Field(1, ge=1)

    arrival: Optional[DistributionSpec] = None
    service: Optional[DistributionSpec] = None

    @model_validator(mode="after")
    def check_model_requirements(self):
        # mirror solve_analytical so bad requests fail at the schema layer
        model = normalize_model(self.model)
        if model not in MODEL_NAMES:
            raise ValueError(f"Unknown model: {self.model}")

        if model in MM1_NAMES + MMC_NAMES:
            missing = [name for name in ("lambda_", "mu") if getattr(self, name) is None]
        elif model in MG1_NAMES + MGC_NAMES:
            missing = [name for name in ("lambda_", "service") if getattr(self, name) is None]
        else:
            missing = [name for name in ("arrival", "service") if getattr(self, name) is None]

        if missing:
            raise ValueError(f"{self.model} requires {', '.join(missing)}")
        return self


class AnalyticalResponse(BaseModel):
    model: str
    interarrival_rate: float
    service_rate: float
    servers: int
    utilization: float
    idle_probability: float
    var_services: float
    var_interarrivals: float
    ca2: float
    cs2: float
    Lq: float
    Wq: float
    W: float
    L: float
    note: Optional[str] = None

# ---------- Simulation ----------
class PriorityRange(BaseModel):
    min: int
    max: int
    generator: Literal["random", "lcg"] = "random"
    lcg_seed: int = 10112166

class SimulationRequest(BaseModel):
    model: str = Field("G/G/c", examples=["M/M/1", "M/M/c", "M/G/c", "G/G/c"])
    servers: int = Field(1, ge=1)
    n_customers: Optional[int] = Field(None, ge=1, le=200000)
    duration_minutes: Optional[float] = Field(None, gt=0)
    arrival: DistributionSpec
    service: DistributionSpec
    priority: Optional[PriorityRange] = None
    discrete: bool = False
    seed: Optional[int] = 123
    check_stability: bool = True

    @model_validator(mode="after")
    def check_input_mode(self):
        if (self.n_customers is None) == (self.duration_minutes is None):
            raise ValueError("Provide exactly one of n_customers or duration_minutes")
        return self

class SimulationRow(BaseModel):
    serial_no: int
    customer_id: int
    inter_arrival_time: float
    arrival_time: float
    service_time: float
    service_start_time: float
    service_end_time: float
    turnaround_time: float
    waiting_time: float
    response_time: float
    server_id: int
    priority: int

class Segment(BaseModel):
    customer_id: int
    priority: int
    server_id: int
    start: float
    end: float
    duration: float
    preempted: bool
    idle: bool

class Utilization(BaseModel):
    overall: float
    per_server: List[float]
    makespan: float

class GroupStats(BaseModel):
    count: int
    avg_wait: float
    avg_turnaround: float
    avg_service: float
    avg_response: float
    percentage: float
    utilization: Optional[float] = None
    server_distribution: Optional[Dict[int, float]] = None

class SimulationSummary(BaseModel):
    total_customers: int
    avg_wait: float
    avg_turnaround: float
    avg_service: float
    avg_response: float
    utilization: float
    by_priority: Dict[int, GroupStats]
    by_server: Dict[int, GroupStats]
    priority_distribution: Dict[int, float]

class SimulationResponse(BaseModel):
    rows: List[SimulationRow]
    timeline: List[Segment]
    utilization: Utilization
    summary: Optional[SimulationSummary] = None
    truncated: bool
    horizon_capped: bool = False
    iterations: int
    wait_times: List[float]
    turnaround_times: List[float]
    response_times: List[float]
    arrival_times: List[float]
