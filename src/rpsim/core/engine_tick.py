from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterable, List

from rpsim.core.convergence import ConvergenceTracker, hash_routes
from rpsim.core.network_model import NetworkModel
from rpsim.core.runtime import SimulationRuntime
from rpsim.core.trace import RunTrace
from rpsim.core.types import ExternalEvent, RunResult

log = logging.getLogger(__name__)


class TickEngine:
    """Discrete-time driver: events, then deliveries, then sends, every tick.

    Tick 0 is the bootstrap. Events are applied at the first tick ``>= 1``
    that is not earlier than their scheduled tick. With ``stop_when_idle``
    the run ends as soon as no message is in flight and no event is left;
    that state is a fixed point for reactive engines.
    """

    def __init__(
        self,
        runtime: SimulationRuntime,
        network_model: NetworkModel,
        max_ticks: int,
        events: Iterable[ExternalEvent] | None = None,
        trace: RunTrace | None = None,
        stop_when_idle: bool = True,
    ) -> None:
        self.runtime = runtime
        self.network_model = network_model
        self.max_ticks = int(max_ticks)
        self.trace = trace or RunTrace()
        self.stop_when_idle = stop_when_idle
        self.tracker = ConvergenceTracker()
        self._events: Deque[ExternalEvent] = deque(sorted(events or [], key=lambda e: e.tick))
        self._events_applied = 0
        self._route_hashes: List[str] = []

    def run(self) -> RunResult:
        self.runtime.bootstrap()
        self._flush_outbound(0)
        self._record_routes(0)

        idle = False
        tick = 0
        while tick < self.max_ticks:
            tick += 1
            self._step(tick)
            idle = self._idle()
            if idle and self.stop_when_idle:
                break

        if not idle:
            log.warning("run stopped at tick %s with %s messages in flight", tick, self.network_model.pending)
        return RunResult(
            converged_tick=self.tracker.last_change_tick if idle else None,
            idle=idle,
            ticks_run=tick,
            route_hashes=list(self._route_hashes),
            route_tables=self.runtime.route_tables,
            delivered_messages=self.network_model.delivered_messages,
            dropped_messages=self.network_model.dropped_messages,
            messages_sent=self.runtime.messages_sent,
            events_applied=self._events_applied,
            route_updates=self.runtime.route_updates,
        )

    def _step(self, tick: int) -> None:
        while self._events and self._events[0].tick <= tick:
            event = self._events.popleft()
            self.runtime.handle_event(tick, event)
            self._events_applied += 1
            self.trace.record("event_applied", tick, action=event.action, params=event.params)

        self.runtime.process_tick(tick, self.network_model.deliver(tick))
        self._flush_outbound(tick)
        route_hash = self._record_routes(tick)
        self.trace.record(
            "tick",
            tick,
            route_hash=route_hash,
            delivered=self.network_model.delivered_messages,
            dropped=self.network_model.dropped_messages,
            pending=self.network_model.pending,
            route_updates=self.runtime.route_updates,
        )

    def _idle(self) -> bool:
        return not self._events and self.network_model.pending == 0

    def _record_routes(self, tick: int) -> str:
        route_hash = hash_routes(self.runtime.route_tables)
        self._route_hashes.append(route_hash)
        self.tracker.observe_hash(tick, route_hash)
        return route_hash

    def _flush_outbound(self, tick: int) -> None:
        for msg in self.runtime.consume_outbound():
            self.network_model.send(msg, now_tick=tick)
