from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from rpsim.core.types import INFINITY, Cost, NodeId, cost_add, is_finite
from rpsim.model.messages import DistanceVector
from rpsim.protocols.base import ProtocolEngine

log = logging.getLogger(__name__)


@dataclass
class DistanceVectorState:
    # cost[self] is this node's vector; other rows are the last vectors
    # received from those nodes.
    cost: Dict[NodeId, Dict[NodeId, Cost]] = field(default_factory=dict)
    via: Dict[NodeId, Optional[NodeId]] = field(default_factory=dict)
    # Last known cost of each direct link.
    link: Dict[NodeId, Cost] = field(default_factory=dict)


class DistanceVectorEngine(ProtocolEngine):
    """Bellman-Ford distance vector without split horizon or poisoned reverse.

    Nothing stops a node from re-learning a failed route through a neighbor
    whose vector still goes through the node itself, so a link failure can
    count up to ``INFINITY`` before the network settles.
    """

    @property
    def name(self) -> str:
        return "dv"

    def init_state(self, ctx) -> DistanceVectorState:
        nodes = list(ctx.nodes())
        state = DistanceVectorState()
        for origin in nodes:
            if origin == ctx.node_id:
                state.cost[origin] = {y: ctx.link_cost(y) for y in nodes}
            else:
                state.cost[origin] = {y: INFINITY for y in nodes}
        state.via = {y: None for y in nodes}
        state.link = {y: ctx.link_cost(y) for y in nodes if y != ctx.node_id}
        return state

    def on_link_change(self, ctx, neighbor: NodeId, new_cost: Cost) -> None:
        log.debug("t=%s node %s: link to %s is now %s", ctx.now, ctx.node_id, neighbor, new_cost)
        state: DistanceVectorState = ctx.state
        came_up = is_finite(new_cost) and not is_finite(state.link.get(neighbor, INFINITY))
        state.link[neighbor] = new_cost
        if not is_finite(new_cost):
            # A vector heard over a dead link no longer describes the neighbor.
            state.cost[neighbor] = {y: INFINITY for y in ctx.nodes()}
        if self._recompute(ctx):
            self._send_vector(ctx)
        elif came_up:
            ctx.send_message(neighbor, DistanceVector(costs=dict(state.cost[ctx.node_id])))

    def on_receive_message(self, ctx, sender: NodeId, payload: DistanceVector) -> None:
        assert sender != ctx.node_id, "node received its own distance vector"
        state: DistanceVectorState = ctx.state
        state.cost[sender] = dict(payload.costs)
        if self._recompute(ctx):
            self._send_vector(ctx)

    def _recompute(self, ctx) -> bool:
        """Relax every destination; True when this node's vector changed.

        A next-hop change at unchanged cost updates the route but is not a
        vector change, so it does not trigger a broadcast.
        """
        state: DistanceVectorState = ctx.state
        me = ctx.node_id
        own = state.cost[me]
        changed = False

        for y in ctx.nodes():
            if y == me:
                continue
            best_cost = ctx.link_cost(y)
            best_via: Optional[NodeId] = y
            for z in self.neighbors(ctx):
                if z == y:
                    continue
                candidate = cost_add(ctx.link_cost(z), state.cost[z][y])
                if candidate < best_cost:
                    best_cost = candidate
                    best_via = z
            if not is_finite(best_cost):
                best_cost = INFINITY
                best_via = None

            if best_cost != own[y]:
                own[y] = best_cost
                state.via[y] = best_via
                ctx.set_route(y, best_via, best_cost)
                changed = True
            elif is_finite(best_cost) and best_via != state.via[y]:
                state.via[y] = best_via
                ctx.set_route(y, best_via, best_cost)

        return changed

    def _send_vector(self, ctx) -> None:
        state: DistanceVectorState = ctx.state
        self.broadcast(ctx, DistanceVector(costs=dict(state.cost[ctx.node_id])))
