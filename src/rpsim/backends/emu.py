from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from rpsim.core.engine_tick import TickEngine
from rpsim.core.network_model import NetworkModel
from rpsim.core.runtime import SimulationRuntime
from rpsim.core.topology import Topology
from rpsim.core.trace import RunTrace
from rpsim.core.types import ExternalEvent, RunResult
from rpsim.protocols.registry import canonical_name

log = logging.getLogger(__name__)


def parse_events(rows: List[Dict[str, Any]]) -> List[ExternalEvent]:
    """Event rows ``{tick, action, u, v[, metric]}`` in tick order."""
    events = [
        ExternalEvent(
            tick=int(row["tick"]),
            action=str(row["action"]),
            params={k: v for k, v in row.items() if k not in ("tick", "action")},
        )
        for row in rows or []
    ]
    events.sort(key=lambda e: e.tick)
    return events


def write_json(path: Path, obj: Any) -> None:
    path.write_text(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8")


class EmuBackend:
    """Runs one protocol over one topology inside the tick emulator.

    Nothing is written to disk unless the config names an ``output_dir``; then
    ``result.json``, ``config.effective.json`` and the ``events.jsonl`` trace
    land in ``<output_dir>/<run_id>/``.
    """

    def run(self, config: Dict[str, Any]) -> Dict[str, Any]:
        seed = int(config.get("seed", 42))
        name = config.get("name", "run")
        protocol = canonical_name(config.get("protocol", "dv"))
        engine_cfg = config.get("engine", {})
        topology = Topology.from_config(config.get("topology", {}), seed=seed)
        events = parse_events(config.get("events", []))

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        run_id = f"{name}_{protocol}_{stamp}"
        run_dir: Optional[Path] = None
        if config.get("output_dir"):
            run_dir = Path(config["output_dir"]) / run_id
            run_dir.mkdir(parents=True, exist_ok=True)

        log.info(
            "run %s: protocol=%s nodes=%s links=%s events=%s",
            run_id,
            protocol,
            len(topology.nodes()),
            len(topology.edge_list()),
            len(events),
        )
        with RunTrace(run_dir / "events.jsonl" if run_dir else None) as trace:
            engine = TickEngine(
                runtime=SimulationRuntime(topology, protocol, trace=trace),
                network_model=self._network(config, seed),
                max_ticks=int(engine_cfg.get("max_ticks", config.get("max_ticks", 1000))),
                events=events,
                trace=trace,
                stop_when_idle=bool(engine_cfg.get("stop_when_idle", True)),
            )
            result = engine.run()
        log.info(
            "run %s: idle=%s converged_tick=%s messages=%s route_updates=%s",
            run_id,
            result.idle,
            result.converged_tick,
            result.messages_sent,
            result.route_updates,
        )

        payload = self._payload(result, run_id=run_id, name=name, seed=seed, protocol=protocol)
        payload["topology_edges"] = [vars(e) for e in topology.edge_list()]
        if run_dir is not None:
            write_json(run_dir / "result.json", payload)
            write_json(run_dir / "config.effective.json", config)
        return payload

    @staticmethod
    def _network(config: Dict[str, Any], seed: int) -> NetworkModel:
        cfg = config.get("network", config.get("engine", {}).get("network", {}))
        return NetworkModel(
            base_delay=int(cfg.get("base_delay", 1)),
            jitter=int(cfg.get("jitter", 0)),
            loss_prob=float(cfg.get("loss_prob", 0.0)),
            seed=seed,
        )

    @staticmethod
    def _payload(result: RunResult, **meta: Any) -> Dict[str, Any]:
        payload = dict(meta)
        payload.update(
            idle=result.idle,
            ticks_run=result.ticks_run,
            converged_tick=result.converged_tick,
            route_hashes=result.route_hashes,
            route_tables=result.route_tables,
            messages_sent=result.messages_sent,
            delivered_messages=result.delivered_messages,
            dropped_messages=result.dropped_messages,
            events_applied=result.events_applied,
            route_updates=result.route_updates,
        )
        return payload
