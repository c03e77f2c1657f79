"""
Utility functions for the star engine.
"""

import numpy as np
import json
import hashlib
from typing import List, Tuple, Dict, Iterable
from pathlib import Path
from datetime import datetime
from .types import CellId, Deduction


def G(lst) -> np.ndarray:
    """Convert nested list to an int array."""
    return np.array(lst, dtype=int)


def cell_id(r: int, c: int, size: int) -> CellId:
    return r * size + c


def coords(cell: CellId, size: int) -> Tuple[int, int]:
    return divmod(cell, size)


def inb(r: int, c: int, size: int) -> bool:
    """Check if (r, c) is within bounds."""
    return 0 <= r < size and 0 <= c < size


def neighbors8(r: int, c: int, size: int) -> List[Tuple[int, int]]:
    """8-connected neighbours of (r, c) inside the board."""
    out = []
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            nr, nc = r + dr, c + dc
            if inb(nr, nc, size):
                out.append((nr, nc))
    return out


def parse_board_rows(rows: Iterable[str]) -> Tuple[List[List[int]], List[List[int]]]:
    """
    Parse compact text rows into (regions, states).

    Each row is whitespace-separated tokens "<region><mark>" where mark is
    '.' (unknown), '*' (star) or 'x' (excluded), e.g. "0. 0* 1x".
    A bare region id means unknown.
    """
    regions, states = [], []
    marks = {'.': 0, '*': 1, 'x': 2}
    for line in rows:
        tokens = line.split()
        if not tokens:
            continue
        reg_row, st_row = [], []
        for tok in tokens:
            if tok[-1] in marks:
                reg_row.append(int(tok[:-1]))
                st_row.append(marks[tok[-1]])
            else:
                reg_row.append(int(tok))
                st_row.append(0)
        regions.append(reg_row)
        states.append(st_row)
    return regions, states


# ==============================================================================
# Hash functions for cache keys and receipts
# ==============================================================================

def board_sha(size: int, stars_per_line: int, region_quotas: Tuple[int, ...],
              regions: np.ndarray, states: np.ndarray) -> str:
    """
    Compute SHA-256 content hash of a board state.

    Two snapshots share a hash only when every rule-relevant field matches.
    """
    payload = {
        "size": int(size),
        "stars_per_line": int(stars_per_line),
        "region_quotas": [int(q) for q in region_quotas],
        "regions": regions.tolist(),
        "states": states.tolist(),
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()


def _params_serializable(params: Dict) -> Dict:
    out = {}
    for k, v in params.items():
        if isinstance(v, (int, float, str, bool, type(None))):
            out[k] = v
        elif isinstance(v, dict):
            out[k] = {str(kk): vv for kk, vv in v.items()}
        elif isinstance(v, (list, tuple)):
            out[k] = list(v)
        else:
            out[k] = str(v)
    return out


def deductions_payload(deductions: Iterable[Deduction]) -> List[Dict]:
    return [{"cell": int(d.cell), "value": d.kind} for d in deductions]


def application_sha(app) -> str:
    """
    Compute SHA-256 hash of a schema application.

    Args:
        app: SchemaApplication

    Returns:
        Hex string of SHA-256 hash
    """
    payload = {
        "schema": app.schema_id,
        "params": _params_serializable(app.params),
        "deductions": deductions_payload(app.deductions),
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()


# ==============================================================================
# Receipt logging
# ==============================================================================

def log_receipt(record: Dict, out_dir: str = None) -> Path:
    """
    Write receipt record to JSONL file.

    Args:
        record: Dictionary with receipt data
        out_dir: Output directory (default: runs/YYYY-MM-DD)

    Returns:
        Path of the receipts file
    """
    if out_dir is None:
        date_str = datetime.now().strftime("%Y-%m-%d")
        out_dir = f"runs/{date_str}"

    Path(out_dir).mkdir(parents=True, exist_ok=True)
    receipt_path = Path(out_dir) / "receipts.jsonl"

    with open(receipt_path, "a") as f:
        f.write(json.dumps(record, sort_keys=True, default=str) + "\n")
    return receipt_path
