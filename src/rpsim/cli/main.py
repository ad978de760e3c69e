from __future__ import annotations

import argparse
import json
import logging
import sys

from rpsim.cli.run_emu import compare_protocols, load_effective_config, run_emu
from rpsim.cli.validate import validate_config
from rpsim.protocols.registry import available_protocols


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rpsim", description="Routing protocol engine simulator")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run one protocol over a topology")
    p_run.add_argument("--config", required=True)
    p_run.add_argument("--tables-only", action="store_true", help="Print only the final route tables")

    p_compare = sub.add_parser("compare", help="Run every protocol and compare final route tables")
    p_compare.add_argument("--config", required=True)

    p_validate = sub.add_parser("validate", help="Validate a config file")
    p_validate.add_argument("--config", required=True)

    sub.add_parser("protocols", help="List available protocols")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "run":
        result = run_emu(args.config)
        if args.tables_only:
            result = {"route_tables": result["route_tables"]}
        print(json.dumps(result, indent=2, ensure_ascii=False, sort_keys=True))
        return 0

    if args.cmd == "compare":
        result = compare_protocols(args.config)
        print(json.dumps(result, indent=2, ensure_ascii=False, sort_keys=True))
        return 0 if result["agree"] else 1

    if args.cmd == "validate":
        errors = validate_config(load_effective_config(args.config))
        if errors:
            print(json.dumps({"ok": False, "errors": errors}, ensure_ascii=False, indent=2))
            return 1
        print(json.dumps({"ok": True}, ensure_ascii=False, indent=2))
        return 0

    if args.cmd == "protocols":
        for name in available_protocols():
            print(name)
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
