from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from rpsim.core.types import INFINITY, Cost, NodeId, cost_add, is_finite
from rpsim.model.messages import LinkStateDatabase, LinkStateRecord
from rpsim.protocols.base import ProtocolEngine

log = logging.getLogger(__name__)


@dataclass
class LinkStateState:
    cost: Dict[NodeId, Dict[NodeId, Cost]] = field(default_factory=dict)
    version: Dict[NodeId, int] = field(default_factory=dict)
    via: Dict[NodeId, Optional[NodeId]] = field(default_factory=dict)
    # Cost of the route last handed to the route table.
    distance: Dict[NodeId, Cost] = field(default_factory=dict)


def shortest_path_tree(
    cost: Mapping[NodeId, Mapping[NodeId, Cost]],
    nodes: Iterable[NodeId],
    root: NodeId,
) -> Tuple[Dict[NodeId, Cost], Dict[NodeId, NodeId]]:
    """Dijkstra from ``root`` over per-origin cost rows.

    Nodes leave the heap in (cost, node id) order, so equal tentative costs
    are settled lowest id first, and a predecessor is only replaced on a
    strictly better cost. Returns (distance, predecessor); every node starts
    with ``root`` as predecessor.
    """
    nodes = list(nodes)
    distance: Dict[NodeId, Cost] = {n: INFINITY for n in nodes}
    predecessor: Dict[NodeId, NodeId] = {n: root for n in nodes}
    distance[root] = 0
    settled = {root}

    pq: List[Tuple[Cost, NodeId]] = []
    for n in nodes:
        if n == root:
            continue
        distance[n] = cost[root].get(n, INFINITY)
        if is_finite(distance[n]):
            heapq.heappush(pq, (distance[n], n))

    while pq:
        dist_w, w = heapq.heappop(pq)
        if w in settled or dist_w > distance[w]:
            continue
        settled.add(w)
        row = cost.get(w, {})
        for x in nodes:
            if x in settled:
                continue
            candidate = cost_add(dist_w, row.get(x, INFINITY))
            if candidate < distance[x]:
                distance[x] = candidate
                predecessor[x] = w
                heapq.heappush(pq, (candidate, x))

    return distance, predecessor


def first_hop(
    root: NodeId,
    destination: NodeId,
    distance: Mapping[NodeId, Cost],
    predecessor: Mapping[NodeId, NodeId],
) -> Optional[NodeId]:
    if destination == root or not is_finite(distance[destination]):
        return None
    hop = destination
    while predecessor[hop] != root:
        hop = predecessor[hop]
    return hop


class LinkStateEngine(ProtocolEngine):
    """Versioned link-state flooding with a full SPF run per accepted update."""

    @property
    def name(self) -> str:
        return "ls"

    def init_state(self, ctx) -> LinkStateState:
        nodes = list(ctx.nodes())
        me = ctx.node_id
        state = LinkStateState()
        for origin in nodes:
            state.version[origin] = 1 if origin == me else 0
            if origin == me:
                state.cost[origin] = {y: ctx.link_cost(y) for y in nodes}
            else:
                state.cost[origin] = {y: INFINITY for y in nodes}
        state.via = {y: None for y in nodes}
        state.distance = {y: INFINITY for y in nodes}
        state.distance[me] = 0
        return state

    def on_link_change(self, ctx, neighbor: NodeId, new_cost: Cost) -> None:
        state: LinkStateState = ctx.state
        me = ctx.node_id
        state.cost[me][neighbor] = new_cost if is_finite(new_cost) else INFINITY
        state.version[me] += 1
        log.debug(
            "t=%s node %s: link to %s is now %s, originating version %s",
            ctx.now,
            me,
            neighbor,
            new_cost,
            state.version[me],
        )
        self._run_spf(ctx)
        self._flood(ctx)

    def on_receive_message(self, ctx, sender: NodeId, payload: LinkStateDatabase) -> None:
        assert sender != ctx.node_id, "node received its own link-state database"
        state: LinkStateState = ctx.state
        accepted = []
        for origin, record in sorted(payload.records.items()):
            if record.version <= state.version[origin]:
                continue
            state.version[origin] = record.version
            state.cost[origin] = dict(record.costs)
            accepted.append(origin)

        if not accepted:
            return
        log.debug("t=%s node %s: accepted newer records for %s from %s", ctx.now, ctx.node_id, accepted, sender)
        self._run_spf(ctx)
        self._flood(ctx)

    def _run_spf(self, ctx) -> None:
        state: LinkStateState = ctx.state
        me = ctx.node_id
        nodes = list(ctx.nodes())
        distance, predecessor = shortest_path_tree(state.cost, nodes, me)

        for y in nodes:
            if y == me:
                continue
            via = first_hop(me, y, distance, predecessor)
            if distance[y] == state.distance[y] and via == state.via[y]:
                continue
            state.distance[y] = distance[y]
            state.via[y] = via
            ctx.set_route(y, via, distance[y])

    def _flood(self, ctx) -> None:
        state: LinkStateState = ctx.state
        records = {
            origin: LinkStateRecord(version=state.version[origin], costs=dict(state.cost[origin]))
            for origin in ctx.nodes()
        }
        self.broadcast(ctx, LinkStateDatabase(records=records))
