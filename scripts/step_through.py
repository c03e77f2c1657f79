#!/usr/bin/env python3
"""
Step through a puzzle one deduction at a time.

Repeatedly asks the registry for the first applicable schema, prints its
proof and applies its deductions until nothing more is found.

Board files hold one row per line of "<region><mark>" tokens
('.' unknown, '*' star, 'x' excluded), e.g. "0. 0. 1x 1. 2.".

Usage:
    python scripts/step_through.py
    python scripts/step_through.py --board=boards/10x10.txt --stars=2 --receipts=runs/demo
"""

import sys
import argparse
import logging
from dataclasses import replace
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from star_engine import (
    BoardSnapshot, DEFAULT_LIMITS, default_registry,
    explanation_text, board_violations, application_record, log_receipt, configure_logging
)

EXAMPLE_BOARD = [
    "0 0 1 1 2",
    "0 1 1 2 2",
    "0 3 3 2 2",
    "3 3 4 4 2",
    "3 4 4 4 4",
]


def render(snapshot) -> str:
    marks = {0: '.', 1: '*', 2: 'x'}
    return "\n".join(
        " ".join(marks[int(v)] for v in snapshot.state_grid[r])
        for r in range(snapshot.size))


def step_through(snapshot, limits, receipts_dir=None, max_steps=None, verbose=True):
    """
    Apply first-found deductions until the registry runs dry.

    Returns:
        (final snapshot, number of steps taken)
    """
    registry = default_registry(limits)
    steps = 0
    while max_steps is None or steps < max_steps:
        app = registry.find_first(snapshot)
        if app is None:
            break
        steps += 1
        if verbose:
            print(f"\n--- step {steps} ---")
            print(explanation_text(app))
        if receipts_dir is not None:
            log_receipt(application_record(app, snapshot), receipts_dir)
        snapshot = snapshot.apply(app.deductions)
        if verbose:
            print(render(snapshot))
    return snapshot, steps


def main():
    parser = argparse.ArgumentParser(description="Step through schema deductions on a board")
    parser.add_argument('--board', type=str, default=None,
                        help='Board text file (default: built-in 5x5 example)')
    parser.add_argument('--stars', type=int, default=1, help='Stars per row/column/region')
    parser.add_argument('--time-ms', type=float, default=None,
                        help='Per-schema time budget in ms (default: unlimited)')
    parser.add_argument('--max-steps', type=int, default=None)
    parser.add_argument('--receipts', type=str, default=None,
                        help='Directory for receipts.jsonl')
    parser.add_argument('--quiet', action='store_true')
    parser.add_argument('--debug', action='store_true')
    args = parser.parse_args()

    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    if args.board:
        with open(args.board) as f:
            rows = f.read().splitlines()
    else:
        rows = EXAMPLE_BOARD
    snapshot = BoardSnapshot.from_text(rows, stars_per_line=args.stars)
    limits = replace(DEFAULT_LIMITS, schema_time_ms=args.time_ms)

    print("=" * 70)
    print(f"Star Engine - {snapshot.size}x{snapshot.size}, {args.stars} star(s) per line")
    print("=" * 70)
    print(render(snapshot))

    final, steps = step_through(snapshot, limits, args.receipts, args.max_steps,
                                verbose=not args.quiet)

    print("\n" + "=" * 70)
    status = "solved" if final.is_complete() else "stuck"
    print(f"{status} after {steps} step(s)")
    for problem in board_violations(final):
        print(f"  violation: {problem}")
    print("=" * 70)
    return 0 if final.is_complete() else 1


if __name__ == "__main__":
    sys.exit(main())
