import logging
import os
from dataclasses import asdict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import (
    AnalyticalRequest, AnalyticalResponse,
    SimulationRequest, SimulationResponse
)

from queuesim.analytical import solve_analytical
from queuesim.metrics import r4
from queuesim.models import (
    DistributionSpec as CoreDistributionSpec,
    FixedCount,
    PriorityRange as CorePriorityRange,
    SimulationRequest as CoreSimReq,
    TimeHorizon,
)
from queuesim.simulation import simulate
from queuesim.validators import InvalidParameter

logging.basicConfig(
    level=os.environ.get("QUEUESIM_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Queue Simulator API", version="2.0")

# allow the frontend to call the backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("QUEUESIM_CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidParameter)
async def invalid_parameter_handler(request: Request, exc: InvalidParameter):
    logger.info(f"Rejected {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _to_core_dist(d):
    # pydantic schema -> core dataclass
    return CoreDistributionSpec(dist_type=d.dist_type, params=d.params)

def _rounded(value):
    # rounding happens here, at the output boundary only
    if isinstance(value, float):
        return r4(value)
    if isinstance(value, dict):
        return {k: _rounded(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_rounded(v) for v in value]
    return value

@app.get("/health")
def health():
    return {"status": "ok"}

@app.post("/analytical", response_model=AnalyticalResponse)
def analytical(req: AnalyticalRequest):
    arrival_spec = req.arrival.model_dump() if req.arrival else None
    service_spec = req.service.model_dump() if req.service else None

    res = solve_analytical(
        model=req.model,
        lambda_=req.lambda_,
        mu=req.mu,
        c=req.servers,
        arrival_spec=arrival_spec,
        service_spec=service_spec
    )
    return AnalyticalResponse(**_rounded(asdict(res)))

@app.post("/simulate", response_model=SimulationResponse)
def simulate_endpoint(req: SimulationRequest):
    if req.n_customers is not None:
        input_mode = FixedCount(req.n_customers)
    else:
        input_mode = TimeHorizon(req.duration_minutes)

    priority = None
    if req.priority is not None:
        priority = CorePriorityRange(
            min=req.priority.min,
            max=req.priority.max,
            generator=req.priority.generator,
            lcg_seed=req.priority.lcg_seed,
        )

    core_req = CoreSimReq(
        model=req.model,
        servers=req.servers,
        input_mode=input_mode,
        arrival=_to_core_dist(req.arrival),
        service=_to_core_dist(req.service),
        priority=priority,
        discrete=req.discrete,
        seed=req.seed,
        check_stability=req.check_stability,
    )
    res = simulate(core_req)

    timeline = [{**asdict(seg), "duration": seg.duration} for seg in res.timeline]
    return SimulationResponse(
        rows=_rounded([asdict(r) for r in res.rows]),
        timeline=_rounded(timeline),
        utilization=_rounded(asdict(res.utilization)),
        summary=_rounded(asdict(res.summary)) if res.summary else None,
        truncated=res.truncated,
        horizon_capped=res.horizon_capped,
        iterations=res.iterations,
        wait_times=[r4(r.waiting_time) for r in res.rows],
        turnaround_times=[r4(r.turnaround_time) for r in res.rows],
        response_times=[r4(r.response_time) for r in res.rows],
        arrival_times=[r4(a) for a in res.arrival_times],
    )
