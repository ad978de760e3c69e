from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from rpsim.core.types import Cost, NodeId

LinkKey = Tuple[NodeId, NodeId]


def link_key(u: NodeId, v: NodeId) -> LinkKey:
    return (u, v) if u < v else (v, u)


@dataclass
class Edge:
    u: NodeId
    v: NodeId
    metric: Cost


class Topology:
    """Undirected weighted graph; each link is stored once under ``(low, high)``.

    Simulated nodes are numbered ``0..n-1``; :meth:`is_contiguous` reports
    whether the id set has gaps.
    """

    def __init__(self) -> None:
        self._nodes: Set[NodeId] = set()
        self._links: Dict[LinkKey, Cost] = {}

    def add_node(self, node: NodeId) -> None:
        self._nodes.add(node)

    def nodes(self) -> List[NodeId]:
        return sorted(self._nodes)

    def neighbors(self, node: NodeId) -> Dict[NodeId, Cost]:
        found: Dict[NodeId, Cost] = {}
        for (a, b), cost in self._links.items():
            if a == node:
                found[b] = cost
            elif b == node:
                found[a] = cost
        return dict(sorted(found.items()))

    def has_link(self, u: NodeId, v: NodeId) -> bool:
        return link_key(u, v) in self._links

    def metric(self, u: NodeId, v: NodeId) -> Optional[Cost]:
        return self._links.get(link_key(u, v))

    def add_link(self, u: NodeId, v: NodeId, metric: Cost = 1) -> None:
        if u == v:
            raise ValueError(f"Self loop on node {u}")
        if metric < 0:
            raise ValueError(f"Negative metric on link {u}-{v}: {metric}")
        self._nodes.update((u, v))
        self._links[link_key(u, v)] = metric

    # Events may set the metric of a link that is currently down.
    update_metric = add_link

    def remove_link(self, u: NodeId, v: NodeId) -> None:
        self._links.pop(link_key(u, v), None)

    def is_contiguous(self) -> bool:
        ids = self.nodes()
        return not ids or len(ids) == ids[-1] - ids[0] + 1

    def edge_list(self) -> List[Edge]:
        return [Edge(u=a, v=b, metric=m) for (a, b), m in sorted(self._links.items())]

    def snapshot(self) -> Dict[NodeId, Dict[NodeId, Cost]]:
        return {n: self.neighbors(n) for n in self.nodes()}

    def empty_copy(self) -> "Topology":
        """Same nodes, no links."""
        other = Topology()
        other._nodes = set(self._nodes)
        return other

    def copy(self) -> "Topology":
        other = self.empty_copy()
        other._links = dict(self._links)
        return other

    @classmethod
    def from_edges(cls, edges: Iterable[Sequence], n_nodes: int = 0) -> "Topology":
        """Edges are ``(u, v)`` or ``(u, v, metric)``; ``n_nodes`` adds isolated ids."""
        topo = cls()
        topo._nodes.update(range(n_nodes))
        for edge in edges:
            topo.add_link(int(edge[0]), int(edge[1]), edge[2] if len(edge) > 2 else 1)
        return topo

    @classmethod
    def line(cls, n_nodes: int, metric: Cost = 1) -> "Topology":
        return cls.from_edges(((i, i + 1, metric) for i in range(n_nodes - 1)), n_nodes)

    @classmethod
    def ring(cls, n_nodes: int, metric: Cost = 1) -> "Topology":
        topo = cls.line(n_nodes, metric)
        if n_nodes > 2:
            topo.add_link(0, n_nodes - 1, metric)
        return topo

    @classmethod
    def grid(cls, rows: int, cols: int, metric: Cost = 1) -> "Topology":
        edges = []
        for node in range(rows * cols):
            if (node + 1) % cols:
                edges.append((node, node + 1, metric))
            if node + cols < rows * cols:
                edges.append((node, node + cols, metric))
        return cls.from_edges(edges, rows * cols)

    @classmethod
    def er(
        cls,
        n_nodes: int,
        p: float,
        metric: Cost = 1,
        seed: int = 0,
        max_metric: Optional[int] = None,
    ) -> "Topology":
        """Seeded Erdos-Renyi graph in which no node is left without a link.

        Link metrics are ``metric`` or, with ``max_metric`` set, a uniform
        integer draw from ``metric..max_metric``.
        """
        rng = random.Random(seed)

        def draw() -> Cost:
            return metric if max_metric is None else rng.randint(int(metric), int(max_metric))

        topo = cls.from_edges((), n_nodes)
        for u in range(n_nodes):
            for v in range(u + 1, n_nodes):
                if rng.random() <= p:
                    topo.add_link(u, v, draw())
        # Attach each isolated node to a random lower id.
        for u in range(1, n_nodes):
            if not topo.neighbors(u):
                topo.add_link(u, rng.randrange(u), draw())
        return topo

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], seed: int = 0) -> "Topology":
        kind = cfg.get("type", "ring")
        build = _BUILDERS.get(kind)
        if build is None:
            raise ValueError(f"Unsupported topology type: {kind}. Known: {sorted(_BUILDERS)}")
        return build(cfg, cfg.get("default_metric", 1), seed)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


_BUILDERS: Dict[str, Callable[[Dict[str, Any], Cost, int], Topology]] = {
    "edges": lambda cfg, metric, seed: Topology.from_edges(cfg.get("edges", []), int(cfg.get("n_nodes", 0))),
    "line": lambda cfg, metric, seed: Topology.line(int(cfg.get("n_nodes", 8)), metric),
    "ring": lambda cfg, metric, seed: Topology.ring(int(cfg.get("n_nodes", 8)), metric),
    "grid": lambda cfg, metric, seed: Topology.grid(int(cfg.get("rows", 4)), int(cfg.get("cols", 4)), metric),
    "er": lambda cfg, metric, seed: Topology.er(
        int(cfg.get("n_nodes", 20)),
        float(cfg.get("p", 0.2)),
        metric,
        seed=seed,
        max_metric=_optional_int(cfg.get("max_metric")),
    ),
}

TOPOLOGY_TYPES = tuple(sorted(_BUILDERS))
