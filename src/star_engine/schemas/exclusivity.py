"""
Exclusivity schemas (B family).

B1/B2: regions fully inside a band whose quotas add up to the band capacity
own every star of the band.

B3/B4: when a band's candidates all belong to a set of regions whose
remaining quotas add up to exactly the band's remaining need, those regions
spend everything inside the band.
"""

from dataclasses import dataclass
from typing import List

from ..types import SchemaApplication
from ..bands import (enumerate_row_bands, enumerate_column_bands, get_regions_intersecting_band,
                     region_fully_inside_band, compute_remaining_stars_in_band)
from ..logger import get_logger
from .base import Schema, SchemaContext, make_application, step, band_ref, region_ref, cell_refs

log = get_logger("schemas.exclusivity")


def _bands(ctx: SchemaContext, kind: str):
    if kind == 'row':
        return enumerate_row_bands(ctx.snapshot)
    return enumerate_column_bands(ctx.snapshot)


@dataclass
class EXCLUSIVE_REGIONS_IN_BAND_Schema(Schema):
    """Σ quota(regions fully inside band) == band capacity → rest of band excluded."""
    band_kind: str = 'row'

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for band in _bands(ctx, self.band_kind):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                break
            regions = get_regions_intersecting_band(snap, band)
            full = [r for r in regions if region_fully_inside_band(snap, r, band)]
            if not full:
                continue
            cap = band.capacity(snap.stars_per_line)
            total = sum(r.quota for r in full)
            if total != cap:
                continue
            owned = {r.id for r in full}
            excluded = [c for c in ctx.unknown(ctx.band_cells(band))
                        if snap.region_of[c] not in owned]
            if not excluded:
                continue
            apps.append(make_application(
                self.schema_id,
                {"band": band.key, "regions": sorted(owned)},
                [step("count_stars_in_band", band=band_ref(band), stars_needed=cap),
                 step("count_region_quota", regions=[region_ref(r) for r in full],
                      total_stars=total),
                 step("exclude_rest_of_band", cells=cell_refs(excluded, snap.size))],
                excluded=excluded))
        return apps


@dataclass
class EXCLUSIVE_LINES_IN_REGIONS_Schema(Schema):
    """
    Band candidates ⊆ regions U and Σ remaining(U) == band remaining
    → U's undetermined cells outside the band excluded.
    """
    band_kind: str = 'row'

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        n = snap.size
        apps = []
        for band in _bands(ctx, self.band_kind):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                break
            band_rem = compute_remaining_stars_in_band(snap, band)
            if band_rem <= 0:
                continue
            cands = ctx.candidates(ctx.band_cells(band))
            if not cands:
                continue
            owners = sorted({snap.region_of[c] for c in cands})
            regions = [snap.regions[rid] for rid in owners]
            total_rem = sum(ctx.remaining(r) for r in regions)
            if total_rem != band_rem:
                continue
            excluded = [c for r in regions for c in ctx.unknown(r.cells)
                        if not band.contains(c // n, c % n)]
            if not excluded:
                continue
            apps.append(make_application(
                self.schema_id,
                {"band": band.key, "regions": owners, "remaining": band_rem},
                [step("count_remaining_stars", band=band_ref(band), remaining=band_rem),
                 step("candidates_confined", regions=[region_ref(r) for r in regions],
                      total_remaining=total_rem),
                 step("exclude_outside_band", cells=cell_refs(excluded, n))],
                excluded=excluded))
        return apps
