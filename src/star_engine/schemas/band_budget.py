"""
Band budget schemas (A family).

A1/A2: a band's capacity is shared by the regions crossing it. Regions fully
inside contribute their whole quota, partial regions contribute within their
[lo, hi] band bounds, so the one region left over is pinned by subtraction.

A3/A4: the same subtraction inside one region, across the bands its cells
span: a target band receives what the other pieces of the region cannot.
"""

from dataclasses import dataclass
from typing import List

from ..types import Band, SchemaApplication
from ..bands import (enumerate_row_bands, enumerate_column_bands, get_regions_intersecting_band,
                     region_fully_inside_band, region_line_span, complement_bands)
from ..logger import get_logger
from .base import Schema, SchemaContext, make_application, step, band_ref, region_ref, cell_refs

log = get_logger("schemas.band_budget")


def _bands(ctx: SchemaContext, kind: str) -> List[Band]:
    if kind == 'row':
        return enumerate_row_bands(ctx.snapshot)
    return enumerate_column_bands(ctx.snapshot)


# ==============================================================================
# A1 / A2: BAND_REGION_BUDGET
# ==============================================================================

@dataclass
class BAND_REGION_BUDGET_Schema(Schema):
    """
    Pin one partial region's band quota from the band capacity.

    target_hi = cap − Σ full − Σ lo(others)  → equals committed: exclude
    target_lo = cap − Σ full − Σ hi(others)  → equals committed + #cands: star
    """
    band_kind: str = 'row'

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        apps = []
        for band in _bands(ctx, self.band_kind):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                break
            apps.extend(self._apply_band(ctx, band))
        return apps

    def _apply_band(self, ctx: SchemaContext, band: Band) -> List[SchemaApplication]:
        snap = ctx.snapshot
        cap = band.capacity(snap.stars_per_line)
        regions = get_regions_intersecting_band(snap, band)
        full = [r for r in regions if region_fully_inside_band(snap, r, band)]
        partial = [r for r in regions if not region_fully_inside_band(snap, r, band)]
        if not partial:
            return []
        sum_full = sum(r.quota for r in full)

        infos = {}
        unknown_partials = []
        for region in partial:
            in_band = ctx.region_cells_in_band(region, band)
            cands_in = ctx.candidates(in_band)
            cands_all = ctx.candidates(region.cells)
            committed = snap.stars_in(in_band)
            rem = ctx.remaining(region)
            bounds = ctx.bounds(region, band)
            known = (rem <= 0 or len(cands_in) == len(cands_all)
                     or bounds.lo > committed or bounds.known)
            infos[region.id] = (in_band, cands_in, committed, bounds)
            if not known:
                unknown_partials.append(region)
                if len(unknown_partials) > 1:
                    return []

        targets = unknown_partials or partial
        apps = []
        for target in targets:
            in_band, cands_in, committed, _ = infos[target.id]
            if not cands_in:
                continue
            others = [r for r in partial if r.id != target.id]
            sum_lo = sum(infos[r.id][3].lo for r in others)
            sum_hi = sum(infos[r.id][3].hi for r in others)
            target_hi = cap - sum_full - sum_lo
            target_lo = cap - sum_full - sum_hi

            stars, excluded = [], []
            if target_hi == committed:
                excluded = ctx.unknown(in_band)
            elif target_lo - committed == len(cands_in):
                stars = cands_in
            else:
                continue

            apps.append(make_application(
                self.schema_id,
                {"band": band.key, "region": target.id,
                 "target_lo": target_lo, "target_hi": target_hi,
                 "full_inside": [r.id for r in full], "others": [r.id for r in others]},
                [step("count_stars_in_band", band=band_ref(band), stars_needed=cap),
                 step("count_region_quota", regions=[region_ref(r) for r in full],
                      total_stars=sum_full),
                 step("known_band_quotas", regions=[region_ref(r) for r in others],
                      lo=sum_lo, hi=sum_hi),
                 step("count_remaining_stars", target_region=region_ref(target),
                      remaining_lo=target_lo - committed, remaining_hi=target_hi - committed,
                      cells=cell_refs(stars or excluded, snap.size))],
                stars=stars, excluded=excluded))
        return apps


# ==============================================================================
# A3 / A4: REGION_BAND_PARTITION
# ==============================================================================

@dataclass
class REGION_BAND_PARTITION_Schema(Schema):
    """
    Within region R and a target band T inside R's line span:

        new_lo(T) = remaining − Σ hi_new(pieces)
        new_hi(T) = remaining − Σ lo_new(pieces)

    new_lo == #candidates(T) > 0 → stars; new_hi == 0 → exclude.
    """
    band_kind: str = 'row'

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for region in snap.regions:
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at region {region.id}")
                break
            rem = ctx.remaining(region)
            if rem <= 0 or not ctx.candidates(region.cells):
                continue
            first, last = region_line_span(snap, region, self.band_kind)
            if first == last:
                continue
            for start in range(first, last + 1):
                for end in range(start, last + 1):
                    target = Band(self.band_kind, start, end)
                    app = self._apply_target(ctx, region, rem, target, first, last)
                    if app is not None:
                        apps.append(app)
        return apps

    def _apply_target(self, ctx: SchemaContext, region, rem: int, target: Band,
                      first: int, last: int):
        snap = ctx.snapshot
        in_target = ctx.region_cells_in_band(region, target)
        cands = ctx.candidates(in_target)
        if not cands:
            return None
        pieces = complement_bands(target, first, last)
        if not pieces:
            return None
        piece_bounds = [ctx.new_bounds(region, p) for p in pieces]
        new_lo = rem - sum(b.hi for b in piece_bounds)
        new_hi = rem - sum(b.lo for b in piece_bounds)

        stars, excluded = [], []
        if new_lo == len(cands):
            stars = cands
        elif new_hi <= 0:
            excluded = ctx.unknown(in_target)
        else:
            return None

        return make_application(
            self.schema_id,
            {"region": region.id, "band": target.key, "new_lo": new_lo, "new_hi": new_hi,
             "pieces": [p.key for p in pieces]},
            [step("count_region_quota", region=region_ref(region), remaining=rem),
             step("known_band_quotas", bands=[band_ref(p) for p in pieces],
                  lo=[b.lo for b in piece_bounds], hi=[b.hi for b in piece_bounds]),
             step("count_remaining_stars", band=band_ref(target), remaining_lo=new_lo,
                  remaining_hi=new_hi, cells=cell_refs(stars or excluded, snap.size))],
            stars=stars, excluded=excluded)
