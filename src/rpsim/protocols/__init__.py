"""Routing protocol engines."""

from rpsim.protocols.base import ProtocolEngine
from rpsim.protocols.distance_vector import DistanceVectorEngine, DistanceVectorState
from rpsim.protocols.link_state import LinkStateEngine, LinkStateState
from rpsim.protocols.path_vector import PathVectorEngine, PathVectorState
from rpsim.protocols.registry import available_protocols, load_protocol

__all__ = [
    "DistanceVectorEngine",
    "DistanceVectorState",
    "LinkStateEngine",
    "LinkStateState",
    "PathVectorEngine",
    "PathVectorState",
    "ProtocolEngine",
    "available_protocols",
    "load_protocol",
]
