from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from rpsim.core.types import Cost, NodeId, is_finite


@dataclass(frozen=True)
class Route:
    destination: NodeId
    next_hop: NodeId
    cost: Cost


class RouteTable:
    """Per-node route sink. Unreachable destinations have no entry."""

    def __init__(self, node_id: NodeId) -> None:
        self.node_id = node_id
        self._routes: Dict[NodeId, Route] = {}

    def set_route(self, destination: NodeId, next_hop: Optional[NodeId], cost: Cost) -> bool:
        if next_hop is None or not is_finite(cost):
            return self._routes.pop(destination, None) is not None
        route = Route(destination=destination, next_hop=next_hop, cost=cost)
        if self._routes.get(destination) == route:
            return False
        self._routes[destination] = route
        return True

    def snapshot(self) -> List[Route]:
        return sorted(self._routes.values(), key=lambda r: r.destination)

    def as_dict(self) -> Dict[NodeId, Tuple[NodeId, Cost]]:
        return {r.destination: (r.next_hop, r.cost) for r in self.snapshot()}
