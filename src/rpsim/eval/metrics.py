from __future__ import annotations

from typing import Dict


def compute_metrics(run: Dict) -> Dict:
    hashes = run.get("route_hashes", [])
    return {
        "run_id": run.get("run_id"),
        "name": run.get("name"),
        "protocol": run.get("protocol"),
        "seed": run.get("seed"),
        "idle": run.get("idle"),
        "converged_tick": run.get("converged_tick"),
        "messages_sent": run.get("messages_sent", 0),
        "dropped_messages": run.get("dropped_messages", 0),
        "route_updates": run.get("route_updates", 0),
        "hash_changes": count_hash_changes(hashes),
    }


def count_hash_changes(hashes: list[str]) -> int:
    return sum(1 for prev, cur in zip(hashes, hashes[1:]) if cur != prev)
