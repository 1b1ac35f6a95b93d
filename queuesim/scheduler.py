"""Event-driven, priority-preemptive, multi-server scheduler.

Each loop pass handles one event time ``t``:

1. release servers whose occupant finished by ``t``;
2. admit every customer that has arrived by ``t``;
3. hand the ready-queue head to each idle server (ascending server id);
4. while the head outranks someone in service, preempt the worst occupant
   and hand its server to the head;
5. advance ``t`` to the next completion or arrival.

The ready queue is kept sorted by ``(priority, arrival, id)``. Lower priority
numbers win; ties go to the earlier arrival. A server only ever preempts its
own occupant; a customer in service is never moved to another server.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from .config import EngineSettings
from .models import IDLE, PREEMPTION, Customer, Segment, Server
from .validators import InvalidParameter, require_int_at_least

logger = logging.getLogger(__name__)


@dataclass
class ScheduleOutcome:
    timeline: List[Segment]
    customers: List[Customer]
    servers: int
    truncated: bool
    iterations: int
    preemptions: int

    @property
    def completed(self) -> List[Customer]:
        return [c for c in self.customers if c.completed]


class Scheduler:
    """Owns all mutable state for a single run. Not reusable across runs."""

    def __init__(self, customers: List[Customer], servers: int = 1, settings: Optional[EngineSettings] = None):
        require_int_at_least("servers", servers, 1)
        self.settings = settings or EngineSettings()
        self.eps = self.settings.epsilon

        for c in customers:
            if c.arrival_time is None or c.arrival_time < 0:
                raise InvalidParameter(f"customer {c.id}: arrival time must be >= 0")
            if c.service_time is None or c.service_time <= 0:
                raise InvalidParameter(f"customer {c.id}: service time must be > 0")
        if len({c.id for c in customers}) != len(customers):
            raise InvalidParameter("customer ids must be unique")

        self.customers = sorted(customers, key=lambda c: (c.arrival_time, c.id))
        self.servers = [Server(id=i + 1) for i in range(servers)]
        self.now = 0.0
        self.queue: List[Customer] = []
        self.timeline: List[Segment] = []
        self.iterations = 0
        self.preemptions = 0
        self.truncated = False
        # every customer costs at most an arrival pass and a completion pass
        self.max_iterations = max(self.settings.max_iterations,
                                  self.settings.iterations_per_customer * len(self.customers))
        self._admitted = 0
        self._completed = 0
        self._ran = False

    # ---------- main loop ----------
    def run(self) -> ScheduleOutcome:
        if self._ran:
            raise RuntimeError("Scheduler instances are single-use")
        self._ran = True

        while not self._done():
            if self.iterations >= self.max_iterations:
                self.truncated = True
                logger.warning(
                    f"Scheduler stopped after {self.iterations} passes at t={self.now:.4f}; "
                    f"{len(self.customers) - self._completed} customers unfinished"
                )
                break
            self.iterations += 1
            self._step(self.now)

        self._finalize()
        logger.debug(
            f"Scheduled {len(self.customers)} customers on {len(self.servers)} servers: "
            f"{self.iterations} passes, {self.preemptions} preemptions"
        )
        return ScheduleOutcome(
            timeline=self.timeline,
            customers=self.customers,
            servers=len(self.servers),
            truncated=self.truncated,
            iterations=self.iterations,
            preemptions=self.preemptions,
        )

    def _done(self) -> bool:
        return not self.queue and self._completed == len(self.customers)

    def _step(self, t: float) -> None:
        self._release(t)
        self._admit(t)
        self._dispatch(t)
        self._preempt(t)
        self._advance(t)

    # ---------- steps ----------
    def _release(self, t: float) -> None:
        for server in self.servers:
            if server.busy and server.available_at <= t + self.eps:
                customer = server.current
                customer.remaining = 0.0
                customer.completed = True
                self._completed += 1
                server.last_end = server.available_at
                server.current = None
                server.segment = None

    def _admit(self, t: float) -> None:
        arrived = False
        while self._admitted < len(self.customers) and self.customers[self._admitted].arrival_time <= t + self.eps:
            self.queue.append(self.customers[self._admitted])
            self._admitted += 1
            arrived = True
        if arrived:
            self._sort_queue()

    def _dispatch(self, t: float) -> None:
        for server in self.servers:
            if not self.queue:
                return
            if not server.busy:
                self._bind(server, self.queue.pop(0), t)

    def _preempt(self, t: float) -> None:
        while self.queue:
            head = self.queue[0]
            victims = [s for s in self.servers if s.busy and head.priority < s.current.priority]
            if not victims:
                return
            victim = max(victims, key=lambda s: s.current.order_key())
            self._evict(victim, t)
            self._dispatch(t)

    def _advance(self, t: float) -> None:
        completions = [s.available_at for s in self.servers if s.busy]
        next_arrival = math.inf
        if self._admitted < len(self.customers):
            next_arrival = self.customers[self._admitted].arrival_time

        if completions:
            self.now = min(min(completions), next_arrival)
        elif next_arrival < math.inf:
            # everyone idle; the gap is recorded when a server picks up work
            self.now = next_arrival

    # ---------- helpers ----------
    def _sort_queue(self) -> None:
        self.queue.sort(key=Customer.order_key)

    def _bind(self, server: Server, customer: Customer, t: float) -> None:
        # a completion released up to eps early still ends the previous piece
        start = max(t, server.last_end)
        if start - server.last_end > self.eps:
            self.timeline.append(Segment(IDLE, 0, server.id, server.last_end, start, idle=True))

        segment = Segment(customer.id, customer.priority, server.id, start, start + customer.remaining)
        self.timeline.append(segment)
        server.current = customer
        server.segment = segment
        server.available_at = segment.end

    def _evict(self, server: Server, t: float) -> None:
        customer = server.current
        segment = server.segment

        if t - segment.start > self.eps:
            customer.remaining = min(max(server.available_at - t, 0.0), customer.service_time)
            segment.end = t
            segment.preempted = True
        else:
            # cut before any service was given
            self.timeline.remove(segment)

        customer.completed = False
        self.timeline.append(Segment(PREEMPTION, customer.priority, server.id, t, t, preempted=True))
        self.preemptions += 1
        logger.debug(f"t={t:.4f}: customer {customer.id} preempted on server {server.id}")

        server.current = None
        server.segment = None
        server.available_at = t
        server.last_end = t

        self.queue.append(customer)
        self._sort_queue()

    def _finalize(self) -> None:
        makespan = max((seg.end for seg in self.timeline), default=0.0)
        if not self.truncated:
            for server in self.servers:
                if makespan - server.last_end > self.eps:
                    self.timeline.append(Segment(IDLE, 0, server.id, server.last_end, makespan, idle=True))

        self.timeline.sort(key=lambda seg: (seg.server_id, seg.start))
        self.timeline = merge_segments(self.timeline, self.eps)


def merge_segments(timeline: List[Segment], eps: float) -> List[Segment]:
    """Join back-to-back pieces of one customer on one server.

    A preemption marker (or a preempted piece) between them keeps them apart.
    ``timeline`` must already be ordered by (server, start).
    """
    merged: List[Segment] = []
    for seg in timeline:
        prev = merged[-1] if merged else None
        if (
            prev is not None
            and prev.server_id == seg.server_id
            and prev.is_service
            and seg.is_service
            and prev.customer_id == seg.customer_id
            and not prev.preempted
            and abs(seg.start - prev.end) <= eps
        ):
            prev.end = seg.end
            prev.preempted = seg.preempted
        else:
            merged.append(seg)
    return merged


def schedule(customers: List[Customer], servers: int = 1, settings: Optional[EngineSettings] = None) -> ScheduleOutcome:
    return Scheduler(customers, servers, settings).run()
