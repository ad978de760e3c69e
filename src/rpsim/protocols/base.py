from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterator

from rpsim.core.types import INFINITY, Cost, NodeId

if TYPE_CHECKING:
    from rpsim.core.runtime import NodeContext


class ProtocolEngine(ABC):
    """Reactive per-node routing logic.

    An engine keeps no node state of its own: everything it needs lives in the
    object returned by :meth:`init_state`, which the harness stores on the
    node context and hands back on every event. The two handlers run to
    completion and are never re-entered for the same node.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def init_state(self, ctx: "NodeContext") -> Any:
        raise NotImplementedError

    @abstractmethod
    def on_link_change(self, ctx: "NodeContext", neighbor: NodeId, new_cost: Cost) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_receive_message(self, ctx: "NodeContext", sender: NodeId, payload: Any) -> None:
        raise NotImplementedError

    @staticmethod
    def neighbors(ctx: "NodeContext") -> Iterator[NodeId]:
        """Nodes with a finite link cost, in node order, excluding self."""
        for node in ctx.nodes():
            if node != ctx.node_id and ctx.link_cost(node) < INFINITY:
                yield node

    def broadcast(self, ctx: "NodeContext", payload: Any) -> None:
        for neighbor in self.neighbors(ctx):
            ctx.send_message(neighbor, payload)
