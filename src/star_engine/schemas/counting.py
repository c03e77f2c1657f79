"""
Core counting schemas (E family).
"""

from collections import OrderedDict
from typing import Dict, List

from ..types import Group, SchemaApplication
from ..bands import compute_max_stars_in_cells
from ..logger import get_logger
from .base import Schema, SchemaContext, make_application, step, group_ref, cell_refs

log = get_logger("schemas.counting")


# ==============================================================================
# E1: CANDIDATE_DEFICIT
# ==============================================================================

class CANDIDATE_DEFICIT_Schema(Schema):
    """
    Remaining quota equals candidate count → every candidate is a star.
    Remaining quota is 0 → every undetermined cell is excluded.
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for group in snap.all_groups():
            if ctx.out_of_time():
                break
            rem = ctx.remaining(group)
            unknown = ctx.unknown(group.cells)
            if not unknown:
                continue
            if rem == 0:
                apps.append(make_application(
                    self.schema_id,
                    {"group": group.group_id, "remaining": 0},
                    [step("quota_met", group=group_ref(group), quota=group.quota)],
                    excluded=unknown))
                continue
            cands = ctx.candidates(group.cells)
            if rem > 0 and rem == len(cands):
                apps.append(make_application(
                    self.schema_id,
                    {"group": group.group_id, "remaining": rem, "candidates": len(cands)},
                    [step("candidate_deficit", group=group_ref(group), remaining=rem,
                          candidates=cell_refs(cands, snap.size))],
                    stars=cands))
        return apps


# ==============================================================================
# E2: PARTITIONED_CANDIDATES
# ==============================================================================

def _partition(ctx: SchemaContext, group: Group) -> "OrderedDict[int, List[int]]":
    """Rows/columns split by region, regions split by row."""
    snap = ctx.snapshot
    parts: "OrderedDict[int, List[int]]" = OrderedDict()
    for cell in ctx.candidates(group.cells):
        key = cell // snap.size if group.kind == 'region' else snap.region_of[cell]
        parts.setdefault(key, []).append(cell)
    return parts


class PARTITIONED_CANDIDATES_Schema(Schema):
    """
    Split a group's candidates into parts. A part must hold at least
    remaining − Σ max(other parts); when that equals its size, all its
    candidates are stars.

    max(part) is the least of the part's exact placeable maximum, the
    remaining quota of the crossing group, and the part size.
    """

    def _part_max(self, ctx: SchemaContext, group: Group, key: int, cells: List[int]) -> int:
        snap = ctx.snapshot
        crossing = snap.rows[key] if group.kind == 'region' else snap.regions[key]
        best, aborted = compute_max_stars_in_cells(snap, cells, ctx.budget)
        cap = len(cells) if aborted else best
        return max(0, min(cap, ctx.remaining(crossing)))

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for group in snap.all_groups():
            if ctx.out_of_time():
                break
            rem = ctx.remaining(group)
            if rem <= 0:
                continue
            parts = _partition(ctx, group)
            if len(parts) < 2:
                continue
            maxes: Dict[int, int] = {k: self._part_max(ctx, group, k, cells)
                                     for k, cells in parts.items()}
            total_max = sum(maxes.values())
            for key, cells in parts.items():
                need = rem - (total_max - maxes[key])
                if need > 0 and need == len(cells):
                    part_kind = 'row' if group.kind == 'region' else 'region'
                    apps.append(make_application(
                        self.schema_id,
                        {"group": group.group_id, "part": f"{part_kind}_{key}", "need": need},
                        [step("partition", group=group_ref(group), parts=len(parts), remaining=rem),
                         step("other_parts_max", total=total_max - maxes[key]),
                         step("part_forced", part=f"{part_kind}_{key}",
                              cells=cell_refs(cells, snap.size))],
                        stars=cells))
        return apps
