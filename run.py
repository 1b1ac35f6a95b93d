# run.py

import logging

from queuesim.models import SimulationRequest, DistributionSpec, FixedCount, TimeHorizon, PriorityRange
from queuesim.simulation import simulate, simulate_customers
from queuesim.analytical import solve_analytical

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# =====================================================
# 1️⃣ Simulation: M/M/c with preemptive priority
# =====================================================
req = SimulationRequest(
    model="M/M/c",
    servers=2,
    input_mode=FixedCount(10),
    arrival=DistributionSpec(
        dist_type="exponential",
        params={"rate": 0.6}
    ),
    service=DistributionSpec(
        dist_type="exponential",
        params={"rate": 0.5}
    ),
    priority=PriorityRange(min=1, max=3),
    seed=42
)

res = simulate(req)

print("=== Simulation (first 5 customers) ===")
for r in res.rows[:5]:
    print(r)

print("Timeline:", res.timeline[:5])
print("Utilization:", res.utilization)

# =====================================================
# 2️⃣ Simulation: G/G/1 over a 2-hour window
# =====================================================
horizon_req = SimulationRequest(
    model="G/G/1",
    servers=1,
    input_mode=TimeHorizon(120),
    arrival=DistributionSpec(dist_type="uniform", params={"min": 4, "max": 10}),
    service=DistributionSpec(dist_type="normal", params={"mean": 5, "std": 1.5}),
    priority=PriorityRange(min=1, max=3, generator="lcg"),
)
horizon_res = simulate(horizon_req)
print("\n=== Time horizon run ===")
print(len(horizon_res.rows), "customers, truncated:", horizon_res.truncated)
print(horizon_res.summary)

# =====================================================
# 3️⃣ Explicit streams: a preemption
# =====================================================
preempt = simulate_customers([0, 2], [5, 1], priorities=[2, 1])
print("\n=== Preemption ===")
for seg in preempt.timeline:
    print(seg)

# =====================================================
# 4️⃣ Analytical baselines
# =====================================================
print("\n=== Analytical M/M/c ===")
print(solve_analytical(model="M/M/c", lambda_=0.8, mu=1.0, c=2))

print("\n=== Analytical M/G/c (gamma service) ===")
print(solve_analytical(
    model="M/G/c",
    lambda_=1.6,
    mu=None,
    c=2,
    service_spec={"dist_type": "gamma", "params": {"shape": 2.0, "rate": 2.0}}
))

print("\n=== Analytical G/G/c (uniform arrivals, normal service) ===")
print(solve_analytical(
    model="G/G/c",
    lambda_=None,
    mu=None,
    c=2,
    arrival_spec={"dist_type": "uniform", "params": {"min": 0.5, "max": 2.5}},
    service_spec={"dist_type": "normal", "params": {"mean": 1.5, "std": 0.2}}
))
