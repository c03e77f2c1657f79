"""
Chain schemas (F family).

F1: two regions whose candidates sit inside one band and whose remaining
quotas fill the band's remaining need.

F2: assume a star, propagate the stars that assumption forces, and exclude
the cell when the chain runs into a group that can't be filled.
"""

from itertools import combinations
from typing import List, Optional, Tuple

from ..types import Band, SchemaApplication
from ..bands import compute_remaining_stars_in_band
from ..placement import PlacementValidator
from ..logger import get_logger
from .base import Schema, SchemaContext, make_application, step, band_ref, region_ref, cell_refs

log = get_logger("schemas.chains")


# ==============================================================================
# F1: REGION_PAIR_EXCLUSION
# ==============================================================================

class REGION_PAIR_EXCLUSION_Schema(Schema):
    """Σ remaining(pair) == band remaining, pair confined to band → rest excluded."""

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        n = snap.size
        live = []
        for region in snap.regions:
            cands = ctx.candidates(region.cells)
            rem = ctx.remaining(region)
            if rem > 0 and cands:
                live.append((region, rem, cands))

        apps = []
        for (r1, rem1, c1), (r2, rem2, c2) in combinations(live, 2):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded")
                break
            cells = c1 + c2
            for kind in ('row', 'col'):
                lines = [c // n if kind == 'row' else c % n for c in cells]
                lo, hi = min(lines), max(lines)
                for start in range(0, lo + 1):
                    for end in range(hi, n):
                        band = Band(kind, start, end)
                        band_rem = compute_remaining_stars_in_band(snap, band)
                        if band_rem != rem1 + rem2:
                            continue
                        pair = {r1.id, r2.id}
                        excluded = [c for c in ctx.unknown(band.cells(n))
                                    if snap.region_of[c] not in pair]
                        if not excluded:
                            continue
                        apps.append(make_application(
                            self.schema_id,
                            {"band": band.key, "regions": [r1.id, r2.id], "remaining": band_rem},
                            [step("regions_confined", band=band_ref(band),
                                  regions=[region_ref(r1), region_ref(r2)]),
                             step("count_remaining_stars", band_remaining=band_rem,
                                  regions_remaining=rem1 + rem2),
                             step("exclude_rest_of_band", cells=cell_refs(excluded, n))],
                            excluded=excluded))
        return apps


# ==============================================================================
# F2: EXCLUSIVITY_CHAINS
# ==============================================================================

def _propagate(ctx: SchemaContext, validator: PlacementValidator,
               max_steps: int) -> Tuple[bool, Optional[str], int]:
    """
    Place forced stars until nothing changes.

    A group whose remaining need equals its placeable cells gets all of them;
    one with fewer placeable cells than its need is a contradiction.

    Returns:
        (contradiction, group_id of the failing group, forced steps taken)
    """
    steps = 0
    groups = ctx.snapshot.all_groups()
    progress = True
    while progress and steps < max_steps:
        progress = False
        for group in groups:
            count = sum(1 for c in group.cells if validator.has_star(c))
            need = group.quota - count
            if need <= 0:
                continue
            avail = [c for c in group.cells if validator.can_place(c)]
            if len(avail) < need:
                return True, group.group_id, steps
            if len(avail) == need:
                for cell in avail:
                    if not validator.can_place(cell):
                        return True, group.group_id, steps
                    validator.place(cell)
                    steps += 1
                progress = True
                if steps >= max_steps:
                    break
    return False, None, steps


class EXCLUSIVITY_CHAINS_Schema(Schema):
    """Trial star → forced-star chain → contradiction excludes the trial cell."""

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        n = snap.size
        apps = []

        illegal = [c for c in snap.unknown_in(range(snap.num_cells)) if not ctx.mask[c]]
        if illegal:
            apps.append(make_application(
                self.schema_id,
                {"kind": "illegal_now", "count": len(illegal)},
                [step("placement_rejected", cells=cell_refs(illegal, n))],
                excluded=illegal))

        for cell in snap.unknown_in(range(snap.num_cells)):
            if not ctx.mask[cell]:
                continue
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at cell {cell}")
                break
            validator = PlacementValidator(snap)
            validator.place(cell)
            failed, group_id, steps = _propagate(ctx, validator, ctx.limits.max_chain_steps)
            if not failed:
                continue
            apps.append(make_application(
                self.schema_id,
                {"kind": "chain", "cell": cell, "group": group_id, "chain_length": steps},
                [step("assume_star", cell=list(divmod(cell, n))),
                 step("forced_chain", stars=cell_refs(validator.placed[1:], n)),
                 step("contradiction", group=group_id)],
                excluded=[cell]))
        return apps
