from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from conditional_forms.contracts import SessionConfig
from conditional_forms.demo_runner import run_packs


def write_scenario_report(*, output_path: str | Path, report: dict) -> Path:
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
    return out


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay form edit scenarios and report errors per step.")
    parser.add_argument(
        "--packs-dir",
        default=str(Path(__file__).resolve().parent / "scenario_packs"),
        help="Directory of *.json scenario packs.",
    )
    parser.add_argument("--output", required=True, help="Path to write the scenario report JSON.")
    parser.add_argument(
        "--memoize-branches",
        action="store_true",
        help="Cache branch selection per trigger value while replaying.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level for the replay.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    config = SessionConfig.from_env()
    if args.memoize_branches:
        config.memoize_branches = True
    report = run_packs(Path(args.packs_dir), config=config)
    write_scenario_report(output_path=args.output, report=report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
