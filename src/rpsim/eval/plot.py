from __future__ import annotations

import argparse
import csv
from pathlib import Path


def plot_summary(input_csv: str, out_png: str) -> None:
    """Bar charts of convergence tick and message count per run."""
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for plotting") from exc

    with Path(input_csv).open("r", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    names = [f"{r['name']}/{r['protocol']}" for r in rows]
    conv = [int(r["converged_tick"]) if r["converged_tick"] not in {"", "None"} else -1 for r in rows]
    msgs = [int(r["messages_sent"] or 0) for r in rows]

    fig, (ax_conv, ax_msgs) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)
    ax_conv.bar(range(len(names)), conv)
    ax_conv.set_ylabel("Converged tick")
    ax_msgs.bar(range(len(names)), msgs, color="tab:orange")
    ax_msgs.set_ylabel("Messages sent")
    ax_msgs.set_xticks(range(len(names)))
    ax_msgs.set_xticklabels(names, rotation=75, fontsize=8)
    fig.tight_layout()
    Path(out_png).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=150)
    plt.close(fig)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Plot summary CSV")
    parser.add_argument("--in", dest="input_csv", required=True)
    parser.add_argument("--out", dest="out_png", required=True)
    args = parser.parse_args()
    plot_summary(args.input_csv, args.out_png)
