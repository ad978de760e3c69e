from __future__ import annotations

import hashlib
import json
from typing import Dict, Mapping, Optional, Sequence


def hash_routes(route_tables: Mapping[int, Mapping[int, Sequence]]) -> str:
    """Order-independent digest of every node's (destination -> next hop, cost) table."""
    normalized: dict[str, dict[str, list]] = {}
    for node, routes in sorted(route_tables.items()):
        normalized[str(node)] = {}
        for dst, (next_hop, cost) in sorted(routes.items()):
            normalized[str(node)][str(dst)] = [int(next_hop), cost]
    payload = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ConvergenceTracker:
    """Remembers the last tick at which any route table changed."""

    def __init__(self) -> None:
        self._last_hash: Optional[str] = None
        self.last_change_tick: Optional[int] = None
        self.changes = 0

    def observe(self, tick: int, route_tables: Dict[int, Dict[int, Sequence]]) -> bool:
        current = hash_routes(route_tables)
        return self.observe_hash(tick, current)

    def observe_hash(self, tick: int, current: str) -> bool:
        if current == self._last_hash:
            return False
        if self._last_hash is not None:
            self.changes += 1
        self._last_hash = current
        self.last_change_tick = tick
        return True
