from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

NodeId = int
Cost = Union[int, float]

# Unreachable. Costs at or above this value collapse onto it.
INFINITY: Cost = 255


def cost_add(a: Cost, b: Cost) -> Cost:
    if a >= INFINITY or b >= INFINITY:
        return INFINITY
    total = a + b
    if total >= INFINITY:
        return INFINITY
    return total


def is_finite(cost: Cost) -> bool:
    return cost < INFINITY


@dataclass(frozen=True)
class Message:
    tick_created: int
    src: NodeId
    dst: NodeId
    seq: int
    payload: Any


@dataclass(frozen=True)
class ExternalEvent:
    tick: int
    action: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RunResult:
    converged_tick: Optional[int]
    idle: bool
    ticks_run: int
    route_hashes: List[str]
    route_tables: Dict[NodeId, Dict[NodeId, Tuple[NodeId, Cost]]]
    delivered_messages: int
    dropped_messages: int
    messages_sent: int
    events_applied: int
    route_updates: int
