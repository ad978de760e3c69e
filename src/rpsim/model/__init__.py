"""Route-table and protocol message models."""

from rpsim.model.messages import (
    DistanceVector,
    LinkStateDatabase,
    LinkStateRecord,
    MessageKind,
    PathEntry,
    PathVector,
    payload_to_dict,
)
from rpsim.model.routing import Route, RouteTable

__all__ = [
    "DistanceVector",
    "LinkStateDatabase",
    "LinkStateRecord",
    "MessageKind",
    "PathEntry",
    "PathVector",
    "Route",
    "RouteTable",
    "payload_to_dict",
]
