"""
Intersection schemas (D family): a line or band meeting a region.
"""

from typing import List

from ..types import SchemaApplication
from ..bands import enumerate_bands, get_regions_intersecting_band, compute_max_stars_in_cells
from ..logger import get_logger
from .base import (Schema, SchemaContext, make_application, step, band_ref, region_ref,
                   group_ref, cell_refs)

log = get_logger("schemas.intersections")


# ==============================================================================
# D1: LINE_REGION_INTERSECTION
# ==============================================================================

class LINE_REGION_INTERSECTION_Schema(Schema):
    """
    Line candidates ⊆ region and equal remaining → region is spent on the line.
    Region candidates ⊆ line and equal remaining → line is spent on the region.
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        n = snap.size
        apps = []
        for line in snap.rows + snap.cols:
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at {line.group_id}")
                break
            line_rem = ctx.remaining(line)
            line_cands = ctx.candidates(line.cells)
            if line_rem <= 0 or not line_cands:
                continue
            line_cells = set(line.cells)
            for rid in sorted({snap.region_of[c] for c in line_cands}):
                region = snap.regions[rid]
                if ctx.remaining(region) != line_rem:
                    continue
                region_cands = ctx.candidates(region.cells)
                if all(snap.region_of[c] == rid for c in line_cands):
                    excluded = [c for c in ctx.unknown(region.cells) if c not in line_cells]
                    direction = "line_in_region"
                elif all(c in line_cells for c in region_cands):
                    excluded = [c for c in ctx.unknown(line.cells) if snap.region_of[c] != rid]
                    direction = "region_in_line"
                else:
                    continue
                if not excluded:
                    continue
                apps.append(make_application(
                    self.schema_id,
                    {"line": line.group_id, "region": rid, "remaining": line_rem,
                     "direction": direction},
                    [step("candidates_confined", line=group_ref(line), region=region_ref(region),
                          direction=direction),
                     step("equal_remaining", remaining=line_rem),
                     step("exclude_rest", cells=cell_refs(excluded, n))],
                    excluded=excluded))
        return apps


# ==============================================================================
# D2: REGION_BAND_INTERSECTION
# ==============================================================================

class REGION_BAND_INTERSECTION_Schema(Schema):
    """
    lo_new(region, band) == region remaining → nothing outside the band.
    hi(region, band) == committed → nothing new inside the band.
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        n = snap.size
        apps = []
        for band in enumerate_bands(snap):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                break
            for region in get_regions_intersecting_band(snap, band):
                rem = ctx.remaining(region)
                if rem <= 0:
                    continue
                in_band = ctx.region_cells_in_band(region, band)
                if not ctx.unknown(in_band):
                    continue
                nb = ctx.new_bounds(region, band)
                if nb.lo == rem:
                    excluded = [c for c in ctx.unknown(region.cells)
                                if not band.contains(c // n, c % n)]
                    kind = "all_inside"
                elif nb.hi <= 0:
                    excluded = ctx.unknown(in_band)
                    kind = "none_inside"
                else:
                    continue
                if not excluded:
                    continue
                apps.append(make_application(
                    self.schema_id,
                    {"band": band.key, "region": region.id, "new_lo": nb.lo, "new_hi": nb.hi,
                     "kind": kind},
                    [step("region_band_quota", region=region_ref(region), band=band_ref(band),
                          new_lo=nb.lo, new_hi=nb.hi, remaining=rem),
                     step("exclude", cells=cell_refs(excluded, n))],
                    excluded=excluded))
        return apps


# ==============================================================================
# D3: REGION_BAND_SQUEEZE
# ==============================================================================

class REGION_BAND_SQUEEZE_Schema(Schema):
    """
    The region must put k = lo_new ≥ 1 stars in region ∩ band. A trial star at
    a cell that leaves fewer than k placeable there excludes the cell.
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        n = snap.size
        apps = []
        for band in enumerate_bands(snap):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                break
            for region in get_regions_intersecting_band(snap, band):
                cands = ctx.candidates(ctx.region_cells_in_band(region, band))
                if not cands or len(cands) > ctx.limits.max_unknown_for_exact:
                    continue
                k = ctx.new_bounds(region, band).lo
                if k <= 0:
                    continue
                probes = set(cands)
                for c in cands:
                    probes.update(snap.neighbors[c])
                cand_set = set(cands)
                excluded = []
                for cell in sorted(ctx.candidates(probes)):
                    rest = [c for c in cands if c != cell]
                    best, aborted = compute_max_stars_in_cells(snap, rest, ctx.budget,
                                                               limit=k, forced=(cell,))
                    if aborted:
                        continue
                    if best + (1 if cell in cand_set else 0) < k:
                        excluded.append(cell)
                if not excluded:
                    continue
                apps.append(make_application(
                    self.schema_id,
                    {"band": band.key, "region": region.id, "k": k},
                    [step("region_band_quota", region=region_ref(region), band=band_ref(band),
                          new_lo=k),
                     step("squeeze", cells=cell_refs(excluded, n))],
                    excluded=excluded))
        return apps
