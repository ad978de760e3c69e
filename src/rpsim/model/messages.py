from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Tuple

from rpsim.core.types import Cost, NodeId


class MessageKind(str, Enum):
    DISTANCE_VECTOR = "distance_vector"
    LINK_STATE = "link_state"
    PATH_VECTOR = "path_vector"


@dataclass(frozen=True)
class DistanceVector:
    """A node's full cost vector, destination -> cost."""

    kind: ClassVar[MessageKind] = MessageKind.DISTANCE_VECTOR

    costs: Mapping[NodeId, Cost] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "costs": {str(dst): cost for dst, cost in sorted(self.costs.items())},
        }


@dataclass(frozen=True)
class LinkStateRecord:
    version: int
    costs: Mapping[NodeId, Cost] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": int(self.version),
            "costs": {str(dst): cost for dst, cost in sorted(self.costs.items())},
        }


@dataclass(frozen=True)
class LinkStateDatabase:
    """Every known origin's versioned link-cost row."""

    kind: ClassVar[MessageKind] = MessageKind.LINK_STATE

    records: Mapping[NodeId, LinkStateRecord] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "records": {str(origin): rec.to_dict() for origin, rec in sorted(self.records.items())},
        }


@dataclass(frozen=True)
class PathEntry:
    """Cost plus the hops from the advertising node to the destination.

    ``path[0]`` is the first hop and the last element is the destination; the
    advertising node itself is never part of its own path.
    """

    cost: Cost
    path: Tuple[NodeId, ...] = ()

    @property
    def length(self) -> int:
        return len(self.path)

    def contains(self, node: NodeId) -> bool:
        return node in self.path

    def first_hop(self) -> NodeId | None:
        return self.path[0] if self.path else None

    def extend(self, hop: NodeId, cost: Cost, limit: int) -> "PathEntry":
        path = (hop,) + self.path
        if len(path) > limit:
            raise ValueError(f"Path {path} longer than the {limit} known nodes")
        return PathEntry(cost=cost, path=path)

    def to_dict(self) -> Dict[str, Any]:
        return {"cost": self.cost, "path": list(self.path)}


@dataclass(frozen=True)
class PathVector:
    """A node's full path-vector row, destination -> entry."""

    kind: ClassVar[MessageKind] = MessageKind.PATH_VECTOR

    entries: Mapping[NodeId, PathEntry] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "entries": {str(dst): e.to_dict() for dst, e in sorted(self.entries.items())},
        }


def payload_to_dict(payload: Any) -> Dict[str, Any]:
    to_dict = getattr(payload, "to_dict", None)
    if to_dict is None:
        return {"repr": repr(payload)}
    return to_dict()

