from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from rpsim.backends.emu import EmuBackend
from rpsim.cli.validate import validate_config
from rpsim.protocols.registry import available_protocols


def read_config(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return loaded


def merge_config(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Nested dicts merge key by key; any other value in ``override`` wins."""
    merged = dict(defaults)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = merge_config(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def load_effective_config(config_path: str) -> Dict[str, Any]:
    """Experiment YAML deep-merged over ``configs/defaults.yaml``.

    The defaults file is looked up under the directory that contains the
    ``configs`` folder of ``config_path``, or in a ``configs`` folder beside it.
    """
    cfg_path = Path(config_path).resolve()
    parts = cfg_path.parts
    if "configs" in parts:
        cfg_idx = parts.index("configs")
        root = Path(*parts[:cfg_idx]) if cfg_idx > 0 else Path("/")
    else:
        root = cfg_path.parent
    defaults_path = root / "configs" / "defaults.yaml"

    cfg: Dict[str, Any] = {}
    if defaults_path.exists() and defaults_path != cfg_path:
        cfg = read_config(defaults_path)
    return merge_config(cfg, read_config(cfg_path))


def _checked(cfg: Dict[str, Any]) -> Dict[str, Any]:
    errors = validate_config(cfg)
    if errors:
        raise ValueError("Invalid config: " + "; ".join(errors))
    return cfg


def run_emu(config_path: str) -> Dict[str, Any]:
    cfg = _checked(load_effective_config(config_path))
    return EmuBackend().run(cfg)


def compare_protocols(config_path: str) -> Dict[str, Any]:
    """Runs every registered engine on the same config and diffs the final tables."""
    base = _checked(load_effective_config(config_path))
    backend = EmuBackend()
    runs = {}
    for protocol in available_protocols():
        cfg = dict(base)
        cfg["protocol"] = protocol
        runs[protocol] = backend.run(cfg)

    reference_name = available_protocols()[0]
    reference = runs[reference_name]["route_tables"]
    mismatches = [
        name
        for name, run in runs.items()
        if run["route_tables"] != reference
    ]
    return {
        "agree": not mismatches,
        "reference": reference_name,
        "mismatches": mismatches,
        "runs": {
            name: {
                "idle": run["idle"],
                "converged_tick": run["converged_tick"],
                "messages_sent": run["messages_sent"],
                "route_updates": run["route_updates"],
            }
            for name, run in runs.items()
        },
    }
