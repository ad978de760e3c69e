from __future__ import annotations

from typing import Dict, Type

from rpsim.protocols.base import ProtocolEngine
from rpsim.protocols.distance_vector import DistanceVectorEngine
from rpsim.protocols.link_state import LinkStateEngine
from rpsim.protocols.path_vector import PathVectorEngine

_REGISTRY: Dict[str, Type[ProtocolEngine]] = {
    "dv": DistanceVectorEngine,
    "ls": LinkStateEngine,
    "pv": PathVectorEngine,
}

_ALIASES: Dict[str, str] = {
    "distance_vector": "dv",
    "link_state": "ls",
    "path_vector": "pv",
}


def canonical_name(name: str) -> str:
    key = str(name).lower()
    return _ALIASES.get(key, key)


def load_protocol(name: str) -> Type[ProtocolEngine]:
    key = canonical_name(name)
    if key not in _REGISTRY:
        raise KeyError(f"Unknown protocol: {name}. Available: {available_protocols()}")
    return _REGISTRY[key]


def available_protocols() -> list[str]:
    return sorted(_REGISTRY.keys())
