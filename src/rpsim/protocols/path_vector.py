from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from rpsim.core.types import INFINITY, Cost, NodeId, cost_add, is_finite
from rpsim.model.messages import PathEntry, PathVector
from rpsim.protocols.base import ProtocolEngine

log = logging.getLogger(__name__)

UNREACHABLE = PathEntry(cost=INFINITY, path=())


@dataclass
class PathVectorState:
    # entries[self] is this node's table; other rows are the last tables
    # received from those nodes.
    entries: Dict[NodeId, Dict[NodeId, PathEntry]] = field(default_factory=dict)
    link: Dict[NodeId, Cost] = field(default_factory=dict)


class PathVectorEngine(ProtocolEngine):
    """Bellman-Ford over explicit paths.

    A neighbor whose advertised path to a destination already runs through
    this node is never used for that destination, so stored paths stay free
    of loops instead of counting to infinity.
    """

    @property
    def name(self) -> str:
        return "pv"

    def init_state(self, ctx) -> PathVectorState:
        nodes = list(ctx.nodes())
        me = ctx.node_id
        state = PathVectorState()
        for origin in nodes:
            if origin != me:
                state.entries[origin] = {y: UNREACHABLE for y in nodes}
                continue
            own: Dict[NodeId, PathEntry] = {}
            for y in nodes:
                link = ctx.link_cost(y)
                if y == me:
                    own[y] = PathEntry(cost=0, path=())
                elif is_finite(link):
                    own[y] = PathEntry(cost=link, path=(y,))
                else:
                    own[y] = UNREACHABLE
            state.entries[me] = own
        state.link = {y: ctx.link_cost(y) for y in nodes if y != me}
        return state

    def on_link_change(self, ctx, neighbor: NodeId, new_cost: Cost) -> None:
        log.debug("t=%s node %s: link to %s is now %s", ctx.now, ctx.node_id, neighbor, new_cost)
        state: PathVectorState = ctx.state
        came_up = is_finite(new_cost) and not is_finite(state.link.get(neighbor, INFINITY))
        state.link[neighbor] = new_cost
        if not is_finite(new_cost):
            state.entries[neighbor] = {y: UNREACHABLE for y in ctx.nodes()}
        if self._relax(ctx):
            self._send_table(ctx)
        elif came_up:
            ctx.send_message(neighbor, PathVector(entries=dict(state.entries[ctx.node_id])))

    def on_receive_message(self, ctx, sender: NodeId, payload: PathVector) -> None:
        assert sender != ctx.node_id, "node received its own path vector"
        state: PathVectorState = ctx.state
        state.entries[sender] = dict(payload.entries)
        if self._relax(ctx):
            self._send_table(ctx)

    def _relax(self, ctx) -> bool:
        state: PathVectorState = ctx.state
        me = ctx.node_id
        own = state.entries[me]
        limit = len(own)
        changed = False

        for y in ctx.nodes():
            if y == me:
                continue
            best_cost = ctx.link_cost(y)
            best_via = y
            for z in self.neighbors(ctx):
                if z == y:
                    continue
                advertised = state.entries[z].get(y, UNREACHABLE)
                candidate = cost_add(ctx.link_cost(z), advertised.cost)
                if candidate < best_cost and not advertised.contains(me):
                    best_cost = candidate
                    best_via = z

            if not is_finite(best_cost):
                entry = UNREACHABLE
            elif best_via == y:
                entry = PathEntry(cost=best_cost, path=(y,))
            else:
                entry = state.entries[best_via][y].extend(best_via, best_cost, limit)

            previous = own[y]
            if entry == previous:
                continue
            own[y] = entry
            if (entry.cost, entry.first_hop()) != (previous.cost, previous.first_hop()):
                ctx.set_route(y, entry.first_hop(), entry.cost)
            log.debug("t=%s node %s: path to %s is now %s (cost %s)", ctx.now, me, y, entry.path, entry.cost)
            changed = True

        return changed

    def _send_table(self, ctx) -> None:
        state: PathVectorState = ctx.state
        self.broadcast(ctx, PathVector(entries=dict(state.entries[ctx.node_id])))
