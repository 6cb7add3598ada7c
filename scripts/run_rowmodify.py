"""Command-line interface to run the row-modification kernel on a synthetic problem."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from ldlmod import config as app_config
from ldlmod.driver import print_report, run_problem
from ldlmod.utils.logging import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", type=Path, default=PROJECT_ROOT / "configs" / "defaults.yaml")
    parser.add_argument("--n", type=int, default=None, help="matrix dimension")
    parser.add_argument("--k", type=int, default=None, help="row/column to modify (0-based)")
    parser.add_argument("--bandwidth", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", type=str, default=None)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    cfg = app_config.load_app_config(args.config)
    if args.n is not None:
        cfg.problem.n = args.n
    if args.k is not None:
        cfg.problem.k = args.k
    if args.bandwidth is not None:
        cfg.problem.bandwidth = args.bandwidth
    if args.seed is not None:
        cfg.run.seed = args.seed
    if args.log_level is not None:
        cfg.logging.level = args.log_level

    setup_logging(level=cfg.logging.level, rich_tracebacks=cfg.logging.rich_tracebacks)
    report = run_problem(cfg)
    print_report(report)


if __name__ == "__main__":
    main()
