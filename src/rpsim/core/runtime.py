from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from rpsim.core.trace import RunTrace
from rpsim.core.topology import Topology
from rpsim.core.types import INFINITY, Cost, ExternalEvent, Message, NodeId, is_finite
from rpsim.model.messages import payload_to_dict
from rpsim.model.routing import RouteTable
from rpsim.protocols.base import ProtocolEngine
from rpsim.protocols.registry import load_protocol

log = logging.getLogger(__name__)


class NodeContext:
    """Everything one engine instance may see or do for its node.

    The engine's private state lives in :attr:`state`; links, routes and the
    transport are reached through the owning runtime.
    """

    def __init__(self, runtime: "SimulationRuntime", node_id: NodeId) -> None:
        self._runtime = runtime
        self.node_id = node_id
        self.state: Any = None

    @property
    def now(self) -> int:
        return self._runtime.tick

    def first_node(self) -> NodeId:
        return self._runtime.node_ids[0]

    def last_node(self) -> NodeId:
        return self._runtime.node_ids[-1]

    def next_node(self, node: NodeId) -> NodeId:
        return node + 1

    def nodes(self) -> Iterator[NodeId]:
        node = self.first_node()
        last = self.last_node()
        while node <= last:
            yield node
            node = self.next_node(node)

    def link_cost(self, node: NodeId) -> Cost:
        if node == self.node_id:
            return 0
        metric = self._runtime.topology.metric(self.node_id, node)
        if metric is None or not is_finite(metric):
            return INFINITY
        return metric

    def set_route(self, destination: NodeId, next_hop: Optional[NodeId], cost: Cost) -> None:
        self._runtime._set_route(self.node_id, destination, next_hop, cost)

    def send_message(self, destination: NodeId, payload: Any) -> None:
        self._runtime._enqueue(self.node_id, destination, payload)


@dataclass
class Router:
    node_id: NodeId
    context: NodeContext
    routes: RouteTable


class SimulationRuntime:
    """Hosts one engine instance per node and applies events and deliveries.

    Nodes start with no links: :meth:`bootstrap` initializes every node's
    state and then brings each link of ``topology`` up as a link-change event
    at both endpoints.
    """

    def __init__(
        self,
        topology: Topology,
        protocol_name: str,
        trace: RunTrace | None = None,
    ) -> None:
        if not topology.nodes():
            raise ValueError("Topology has no nodes")
        if not topology.is_contiguous():
            raise ValueError(f"Node ids must form a contiguous range, got {topology.nodes()}")

        self.initial_topology = topology.copy()
        self.topology = topology.empty_copy()
        self.node_ids: List[NodeId] = topology.nodes()
        self.protocol_name = protocol_name
        self.trace = trace or RunTrace()
        self.tick = 0
        self.route_updates = 0
        self.messages_sent = 0
        self._outbound: List[Message] = []
        self._seq = 0

        engine_cls = load_protocol(protocol_name)
        self.routers: Dict[NodeId, Router] = {}
        self.engines: Dict[NodeId, ProtocolEngine] = {}
        for node in self.node_ids:
            self.engines[node] = engine_cls()
            self.routers[node] = Router(
                node_id=node,
                context=NodeContext(self, node),
                routes=RouteTable(node),
            )

    @property
    def route_tables(self) -> Dict[NodeId, Dict[NodeId, tuple]]:
        return {n: r.routes.as_dict() for n, r in self.routers.items()}

    def context(self, node: NodeId) -> NodeContext:
        return self.routers[node].context

    def state(self, node: NodeId) -> Any:
        return self.routers[node].context.state

    def bootstrap(self) -> None:
        self.tick = 0
        for node in self.node_ids:
            ctx = self.context(node)
            ctx.state = self.engines[node].init_state(ctx)
        for edge in self.initial_topology.edge_list():
            self.topology.add_link(edge.u, edge.v, edge.metric)
            self._notify_link_change(edge.u, edge.v, edge.metric)

    def process_tick(self, tick: int, incoming: List[Message]) -> None:
        self.tick = tick
        for msg in incoming:
            self.deliver(msg)

    def deliver(self, msg: Message) -> None:
        if msg.dst not in self.routers:
            raise ValueError(f"Message for unknown node {msg.dst}")
        ctx = self.context(msg.dst)
        self.engines[msg.dst].on_receive_message(ctx, msg.src, msg.payload)

    def handle_event(self, tick: int, event: ExternalEvent) -> None:
        self.tick = tick
        action = event.action
        p = event.params
        u, v = int(p["u"]), int(p["v"])
        for node in (u, v):
            if node not in self.routers:
                raise ValueError(f"Event {action} references unknown node {node}")
        log.info("t=%s %s %s-%s %s", tick, action, u, v, p.get("metric", ""))
        if action == "remove_link":
            self.topology.remove_link(u, v)
            self._notify_link_change(u, v, INFINITY)
            return
        if action in {"add_link", "update_metric"}:
            metric = p.get("metric", 1)
            if is_finite(metric):
                self.topology.update_metric(u, v, metric)
            else:
                self.topology.remove_link(u, v)
                metric = INFINITY
            self._notify_link_change(u, v, metric)
            return
        raise ValueError(f"Unsupported event action: {action}")

    def consume_outbound(self) -> List[Message]:
        out = self._outbound
        self._outbound = []
        return out

    def _notify_link_change(self, u: NodeId, v: NodeId, metric: Cost) -> None:
        self.engines[u].on_link_change(self.context(u), v, metric)
        self.engines[v].on_link_change(self.context(v), u, metric)

    def _enqueue(self, src: NodeId, dst: NodeId, payload: Any) -> None:
        assert self.topology.has_link(src, dst), f"node {src} sent to non-neighbor {dst}"
        self._seq += 1
        self.messages_sent += 1
        self._outbound.append(
            Message(tick_created=self.tick, src=src, dst=dst, seq=self._seq, payload=payload)
        )
        if self.trace.enabled:
            self.trace.record("message", self.tick, src=src, dst=dst, payload=payload_to_dict(payload))

    def _set_route(self, node: NodeId, destination: NodeId, next_hop: Optional[NodeId], cost: Cost) -> None:
        self.route_updates += 1
        changed = self.routers[node].routes.set_route(destination, next_hop, cost)
        log.debug("t=%s node %s: route %s via %s cost %s", self.tick, node, destination, next_hop, cost)
        self.trace.record(
            "route",
            self.tick,
            node=node,
            dst=destination,
            next_hop=next_hop,
            cost=cost,
            changed=changed,
        )
