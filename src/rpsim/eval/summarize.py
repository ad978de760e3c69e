from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import Dict, Iterator, List

from rpsim.eval.metrics import compute_metrics

FIELDS = [
    "run_id",
    "name",
    "protocol",
    "seed",
    "idle",
    "converged_tick",
    "messages_sent",
    "dropped_messages",
    "route_updates",
    "hash_changes",
]


def _results(runs_dir: Path) -> Iterator[Dict]:
    for path in sorted(runs_dir.glob("*/result.json")):
        yield json.loads(path.read_text(encoding="utf-8"))


def collect_runs(runs_dir: str | Path) -> List[Dict]:
    """One metrics row per ``<runs_dir>/<run_id>/result.json``, by run id."""
    return [compute_metrics(result) for result in _results(Path(runs_dir))]


def summarize_runs(runs_dir: str | Path, out_csv: str | Path) -> int:
    rows = collect_runs(runs_dir)
    target = Path(out_csv)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)


def main() -> None:
    parser = argparse.ArgumentParser(description="Collect result.json files of emulator runs into one CSV")
    parser.add_argument("--runs", required=True, help="output_dir the runs were written to")
    parser.add_argument("--out", required=True, help="CSV file to write")
    args = parser.parse_args()
    print(f"{summarize_runs(args.runs, args.out)} runs -> {args.out}")


if __name__ == "__main__":
    main()
