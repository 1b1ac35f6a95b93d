"""Per-customer metrics, utilization and grouped summaries.

Everything here is a pure function of the customers and the finished timeline;
nothing is written back and no scheduling state is recomputed.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Customer, GroupStats, Segment, SimulationRow, SimulationSummary, Utilization


def r4(x: float) -> float:
    if x == float("inf"):
        return x
    return round(float(x), 4)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def service_spans(timeline: Iterable[Segment]) -> Dict[int, tuple]:
    """customer id -> (first start, last end, server of the first piece)."""
    spans: Dict[int, list] = {}
    for seg in timeline:
        if not seg.is_service:
            continue
        span = spans.get(seg.customer_id)
        if span is None:
            spans[seg.customer_id] = [seg.start, seg.end, seg.server_id]
            continue
        if seg.start < span[0]:
            span[0] = seg.start
            span[2] = seg.server_id
        span[1] = max(span[1], seg.end)
    return {cid: tuple(span) for cid, span in spans.items()}


def extract_rows(customers: Iterable[Customer], timeline: Iterable[Segment],
                 inter_arrivals: Optional[Sequence[float]] = None) -> List[SimulationRow]:
    """Build one row per completed customer, ordered by customer id."""
    spans = service_spans(timeline)
    rows: List[SimulationRow] = []

    for c in sorted(customers, key=lambda c: c.id):
        if not c.completed or c.id not in spans:
            continue
        start, end, server_id = spans[c.id]
        turnaround = end - c.arrival_time
        gap = inter_arrivals[c.id] if inter_arrivals is not None and c.id < len(inter_arrivals) else 0.0

        rows.append(SimulationRow(
            serial_no=c.id + 1,
            customer_id=c.id,
            inter_arrival_time=gap,
            arrival_time=c.arrival_time,
            service_time=c.service_time,
            service_start_time=start,
            service_end_time=end,
            turnaround_time=turnaround,
            waiting_time=max(0.0, turnaround - c.service_time),
            response_time=max(0.0, start - c.arrival_time),
            server_id=server_id,
            priority=c.priority,
        ))

    return rows


def makespan(timeline: Iterable[Segment]) -> float:
    return max((seg.end for seg in timeline), default=0.0)


def utilization(rows: Sequence[SimulationRow], timeline: Sequence[Segment], servers: int) -> Utilization:
    """Percent utilization.

    ``overall`` is the total service of the rows over ``servers * makespan``,
    so it stays within [0, 100]; for one server it is exactly
    ``100 * sum(service) / makespan``. ``per_server`` uses each server's busy
    segments over the common makespan.
    """
    span = makespan(timeline)
    if span <= 0:
        return Utilization(overall=0.0, per_server=[0.0] * servers, makespan=span)

    total_service = sum(r.service_time for r in rows)
    busy = defaultdict(float)
    for seg in timeline:
        if seg.is_service:
            busy[seg.server_id] += seg.duration

    return Utilization(
        overall=100.0 * total_service / (servers * span),
        per_server=[100.0 * busy[s] / span for s in range(1, servers + 1)],
        makespan=span,
    )


def _group(rows: Sequence[SimulationRow], total: int) -> GroupStats:
    return GroupStats(
        count=len(rows),
        avg_wait=_mean([r.waiting_time for r in rows]),
        avg_turnaround=_mean([r.turnaround_time for r in rows]),
        avg_service=_mean([r.service_time for r in rows]),
        avg_response=_mean([r.response_time for r in rows]),
        percentage=100.0 * len(rows) / total,
    )


def summarize(rows: Sequence[SimulationRow], util: Utilization) -> Optional[SimulationSummary]:
    if not rows:
        return None

    total = len(rows)
    by_priority_rows: Dict[int, List[SimulationRow]] = defaultdict(list)
    by_server_rows: Dict[int, List[SimulationRow]] = defaultdict(list)
    for r in rows:
        by_priority_rows[r.priority].append(r)
        by_server_rows[r.server_id].append(r)

    by_priority = {}
    for priority in sorted(by_priority_rows):
        group = by_priority_rows[priority]
        stats = _group(group, total)
        counts = defaultdict(int)
        for r in group:
            counts[r.server_id] += 1
        stats.server_distribution = {s: 100.0 * n / len(group) for s, n in sorted(counts.items())}
        by_priority[priority] = stats

    by_server = {}
    for server_id in sorted(by_server_rows):
        stats = _group(by_server_rows[server_id], total)
        if 1 <= server_id <= len(util.per_server):
            stats.utilization = util.per_server[server_id - 1]
        by_server[server_id] = stats

    overall = _group(rows, total)
    return SimulationSummary(
        total_customers=total,
        avg_wait=overall.avg_wait,
        avg_turnaround=overall.avg_turnaround,
        avg_service=overall.avg_service,
        avg_response=overall.avg_response,
        utilization=util.overall,
        by_priority=by_priority,
        by_server=by_server,
        priority_distribution={p: s.percentage for p, s in by_priority.items()},
    )
