"""
Receipts: proof text, quick verification and JSONL records for applications.
"""

from typing import Dict, List

from .types import CellState, SchemaApplication
from .errors import SnapshotMutationError
from .utils import application_sha, deductions_payload, coords


def _fmt_value(v) -> str:
    if isinstance(v, (list, tuple)):
        return "[" + ", ".join(_fmt_value(x) for x in v) + "]"
    if isinstance(v, dict):
        return "{" + ", ".join(f"{k}={_fmt_value(x)}" for k, x in v.items()) + "}"
    return str(v)


def explanation_text(app: SchemaApplication) -> str:
    """Proof text, one line per explanation step."""
    lines = [f"{app.schema_id}:"]
    for i, step in enumerate(app.explanation.steps, 1):
        ents = ", ".join(f"{k}={_fmt_value(v)}" for k, v in step.entities.items())
        lines.append(f"  {i}. {step.kind}({ents})")
    return "\n".join(lines)


def board_violations(snapshot) -> List[str]:
    """
    Violated constraints of a (partial) board.

    Over-quota groups, adjacent stars, 2×2 blocks with two stars, and groups
    that can no longer reach their quota.
    """
    n = snapshot.size
    st = snapshot.cell_states
    out = []
    for g in snapshot.all_groups():
        stars = sum(1 for c in g.cells if st[c] == CellState.STAR)
        unknown = sum(1 for c in g.cells if st[c] == CellState.UNKNOWN)
        if stars > g.quota:
            out.append(f"{g.group_id} has {stars} stars (quota {g.quota})")
        elif stars + unknown < g.quota:
            out.append(f"{g.group_id} cannot reach quota {g.quota}")
    for cell in snapshot.star_cells():
        for nb in snapshot.neighbors[cell]:
            if nb > cell and st[nb] == CellState.STAR:
                out.append(f"stars at {coords(cell, n)} and {coords(nb, n)} touch")
    for block in snapshot.blocks:
        if sum(1 for c in block.cells if st[c] == CellState.STAR) > 1:
            out.append(f"block ({block.row},{block.col}) holds more than one star")
    return out


def verify_application(snapshot, app: SchemaApplication) -> bool:
    """Apply the deductions to a copy and check no rule is violated."""
    try:
        after = snapshot.apply(app.deductions)
    except SnapshotMutationError:
        return False
    return not board_violations(after)


def application_record(app: SchemaApplication, snapshot) -> Dict:
    """Receipt record for log_receipt."""
    return {
        "snapshot_key": snapshot.key,
        "snapshot_version": snapshot.version,
        "schema": app.schema_id,
        "application_sha": application_sha(app),
        "deductions": deductions_payload(app.deductions),
        "explanation": explanation_text(app),
    }
