from dataclasses import dataclass, field
from typing import Dict, List, Optional, Literal, Union

DistType = Literal["exponential", "uniform", "normal", "gamma", "poisson"]

# Sentinel customer ids on timeline segments
IDLE = -1
PREEMPTION = -2

@dataclass
class DistributionSpec:
    dist_type: DistType
    params: Dict[str, float]  # e.g. {"rate": 2.0} or {"min":1,"max":3}

@dataclass(frozen=True)
class FixedCount:
    n: int

@dataclass(frozen=True)
class TimeHorizon:
    duration_minutes: float

InputMode = Union[FixedCount, TimeHorizon]

@dataclass(frozen=True)
class PriorityRange:
    min: int
    max: int
    generator: Literal["random", "lcg"] = "random"
    lcg_seed: int = 10112166

@dataclass
class SimulationRequest:
    arrival: DistributionSpec             # inter-arrival distribution
    service: DistributionSpec             # service-time distribution
    servers: int = 1                      # c
    input_mode: InputMode = field(default_factory=lambda: FixedCount(10))
    priority: Optional[PriorityRange] = None   # None => every customer priority 1
    discrete: bool = False                # whole time units instead of decimals
    seed: Optional[int] = 123             # reproducible by default
    model: str = "G/G/c"                  # label only, e.g. "M/M/1"
    check_stability: bool = True

@dataclass
class Customer:
    id: int
    arrival_time: float
    service_time: float
    priority: int = 1
    remaining: float = field(init=False, default=0.0)
    completed: bool = False

    def __post_init__(self):
        self.remaining = self.service_time

    def order_key(self):
        return (self.priority, self.arrival_time, self.id)

@dataclass
class Server:
    id: int
    available_at: float = 0.0
    current: Optional[Customer] = None
    segment: Optional["Segment"] = None
    last_end: float = 0.0

    @property
    def busy(self) -> bool:
        return self.current is not None

@dataclass
class Segment:
    customer_id: int
    priority: int
    server_id: int
    start: float
    end: float
    preempted: bool = False
    idle: bool = False

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def is_marker(self) -> bool:
        return self.customer_id == PREEMPTION

    @property
    def is_service(self) -> bool:
        return not self.idle and self.customer_id >= 0

@dataclass(frozen=True)
class SimulationRow:
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

@dataclass(frozen=True)
class Utilization:
    overall: float
    per_server: List[float]
    makespan: float

@dataclass
class GroupStats:
    count: int
    avg_wait: float
    avg_turnaround: float
    avg_service: float
    avg_response: float
    percentage: float
    utilization: Optional[float] = None
    server_distribution: Optional[Dict[int, float]] = None

@dataclass
class SimulationSummary:
    total_customers: int
    avg_wait: float
    avg_turnaround: float
    avg_service: float
    avg_response: float
    utilization: float
    by_priority: Dict[int, GroupStats]
    by_server: Dict[int, GroupStats]
    priority_distribution: Dict[int, float]

@dataclass
class SimulationResult:
    rows: List[SimulationRow]
    timeline: List[Segment]
    utilization: Utilization
    summary: Optional[SimulationSummary]
    truncated: bool
    iterations: int
    arrival_times: List[float]
    service_times: List[float]
    priorities: List[int]
    horizon_capped: bool = False
