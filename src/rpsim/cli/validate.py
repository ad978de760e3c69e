from __future__ import annotations

from typing import Any, Dict

from rpsim.core.topology import TOPOLOGY_TYPES
from rpsim.core.types import INFINITY
from rpsim.protocols.registry import available_protocols, canonical_name

_EVENT_ACTIONS = {"add_link", "remove_link", "update_metric"}


def validate_config(cfg: Dict[str, Any]) -> list[str]:
    errors: list[str] = []

    if "topology" not in cfg:
        errors.append("Missing 'topology' config")
    if "protocol" not in cfg:
        errors.append("Missing 'protocol' config")
    elif canonical_name(cfg["protocol"]) not in available_protocols():
        errors.append(f"Unknown protocol '{cfg['protocol']}', expected one of {available_protocols()}")

    topo = cfg.get("topology", {})
    if not isinstance(topo, dict):
        errors.append("'topology' must be a dict")
    elif "type" not in topo:
        errors.append("topology.type is required")
    elif topo["type"] not in TOPOLOGY_TYPES:
        errors.append(f"Unsupported topology.type '{topo['type']}', expected one of {list(TOPOLOGY_TYPES)}")
    elif topo["type"] == "edges":
        for i, edge in enumerate(topo.get("edges", [])):
            if not isinstance(edge, (list, tuple)) or len(edge) not in {2, 3}:
                errors.append(f"topology.edges[{i}] must be [u, v] or [u, v, metric]")
            elif len(edge) == 3 and not 0 <= edge[2] < INFINITY:
                errors.append(f"topology.edges[{i}] metric must be in [0, {INFINITY})")

    engine = cfg.get("engine", {})
    if isinstance(engine, dict) and int(engine.get("max_ticks", 1)) <= 0:
        errors.append("engine.max_ticks must be > 0")

    network = cfg.get("network", {})
    if isinstance(network, dict) and int(network.get("base_delay", 1)) < 1:
        errors.append("network.base_delay must be >= 1")

    for i, event in enumerate(cfg.get("events", []) or []):
        if not isinstance(event, dict):
            errors.append(f"events[{i}] must be a dict")
            continue
        missing = [k for k in ("tick", "action", "u", "v") if k not in event]
        if missing:
            errors.append(f"events[{i}] is missing {missing}")
        elif event["action"] not in _EVENT_ACTIONS:
            errors.append(f"events[{i}].action '{event['action']}' is not one of {sorted(_EVENT_ACTIONS)}")

    return errors
