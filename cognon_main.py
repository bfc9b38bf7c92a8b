#!/usr/bin/env python3
"""
Run Cognon neuron simulations described by CSV files.

Usage:
    # One result row per configuration in each sweep file:
    python cognon_main.py sweep.csv

    # Search for the best configuration per (H, S, C, D1, D2) line:
    python cognon_main.py -c optimal.csv

    # Fewer repetitions, four worker processes, progress on stderr:
    python cognon_main.py --repetitions 3 --workers 4 --executor process -v sweep.csv

Sweep lines:    "W","num active","C","D1","D2","H","Q","R","G_m","H_m"[,"S"]
Optimal lines:  "H","S","C","D1","D2"[,"G_max","G_step"]

-1 means "unspecified"; "10,20,30" runs one configuration per value.
"""

import argparse
import logging
import sys

from cognon.core.config import CognonError
from cognon.core.experiment import EXECUTORS
from cognon.core.random_source import RandomSource
from cognon.core.table import (
    DEFAULT_REPETITIONS,
    TABLE_HEADER,
    format_table_row,
    optimize_row,
    parse_optimal,
    parse_table,
    run_table_row,
)


def run_sweep(lines, args, random):
    """Print the header and one row per configuration in a sweep file."""
    print(TABLE_HEADER, flush=True)
    for row in parse_table(lines):
        stats = run_table_row(
            row, args.repetitions, random=random,
            max_workers=args.workers, executor=args.executor,
        )
        print(format_table_row(stats), flush=True)


def run_optimal(lines, args, random):
    """Print every evaluated row as a comment, then the best one."""

    def run(row):
        return run_table_row(
            row, args.repetitions, random=random,
            max_workers=args.workers, executor=args.executor,
        )

    def report(stats, is_optimal):
        prefix = "# optimal " if is_optimal else "# "
        print(prefix + format_table_row(stats), flush=True)

    for opt in parse_optimal(lines):
        best = optimize_row(
            opt.H, opt.S, opt.C, opt.D1, opt.D2, opt.G_max, opt.G_step,
            run=run, report=report,
        )
        if best is not None:
            print(format_table_row(best), flush=True)


def main():
    parser = argparse.ArgumentParser(description="Simulate Cognon neurons from CSV configurations")
    parser.add_argument("files", nargs="+", metavar="FILE", help="CSV configuration files")
    parser.add_argument("-c", "--optimize", action="store_true",
                        help="Files hold H,S,C,D1,D2[,G_max,G_step] lines to optimize")
    parser.add_argument("--repetitions", type=int, default=DEFAULT_REPETITIONS,
                        help=f"Minimum trials per configuration (default: {DEFAULT_REPETITIONS})")
    parser.add_argument("--workers", type=int, default=None, help="Worker count (default: CPU count)")
    parser.add_argument("--executor", choices=EXECUTORS, default="thread",
                        help="How trials run in parallel (default: thread)")
    parser.add_argument("--seed", type=int, default=None, help="Root random seed")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Log errors only")
    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    random = RandomSource(args.seed)
    for path in args.files:
        try:
            with open(path) as f:
                lines = f.readlines()
        except OSError as e:
            logging.getLogger("cognon_main").error("Cannot read %s: %s", path, e)
            continue

        try:
            if args.optimize:
                run_optimal(lines, args, random)
            else:
                run_sweep(lines, args, random)
        except CognonError as e:
            print(f"Error in {path}: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
