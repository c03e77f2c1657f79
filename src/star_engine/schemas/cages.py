"""
2×2 cage schemas (C family).

C1: a band whose valid blocks are exactly as many as its remaining stars,
and pairwise disjoint, holds exactly one star per block (pigeonhole).
C2/C4 read cell-level consequences out of such bands; C3 uses the packer to
propose cells a region can't use and confirms each one by search.
"""

from typing import List, Tuple

from ..types import Band, Block, CagePackingResult, SchemaApplication
from ..bands import (enumerate_bands, compute_remaining_stars_in_band, get_regions_intersecting_band,
                     region_placement_band_range)
from ..blocks import (get_valid_blocks_in_band, get_block_candidates, blocks_inside_cells,
                      describe_block)
from ..packing import find_cage_packings
from ..cache import cache_for
from ..logger import get_logger
from .base import Schema, SchemaContext, make_application, step, band_ref, region_ref, cell_refs

log = get_logger("schemas.cages")

ExactBand = Tuple[Band, int, Tuple[Block, ...], CagePackingResult]


def exact_cage_bands(ctx: SchemaContext) -> Tuple[ExactBand, ...]:
    """
    Bands where #valid blocks == remaining stars and a packing of that size
    exists (so the blocks are pairwise disjoint).

    Returns (band, remaining, blocks, packing) tuples, cached per snapshot.
    """
    snap = ctx.snapshot
    misc = cache_for(snap).misc
    key = ('exact_cage_bands', ctx.limits)
    cached = misc.get(key)
    if cached is not None:
        return cached

    found = []
    for band in enumerate_bands(snap):
        if ctx.out_of_time():
            return tuple(found)
        remaining = compute_remaining_stars_in_band(snap, band)
        if remaining <= 0:
            continue
        blocks = get_valid_blocks_in_band(snap, band)
        if len(blocks) != remaining:
            continue
        packing = find_cage_packings(blocks, remaining,
                                     max_solutions=ctx.limits.max_packing_solutions,
                                     budget=ctx.budget)
        if not packing.solutions or packing.truncated:
            continue
        found.append((band, remaining, tuple(blocks), packing))

    if not ctx.budget.expired:
        misc[key] = tuple(found)
    return tuple(found)


def _band_params(band: Band) -> dict:
    name = 'rows' if band.kind == 'row' else 'cols'
    return {"band_kind": f"{band.kind}Band", name: list(band.lines)}


# ==============================================================================
# C1: BAND_EXACT_CAGES
# ==============================================================================

class BAND_EXACT_CAGES_Schema(Schema):
    """Pigeonhole finding: one star per block. No cell-level deductions."""

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        apps = []
        for band, remaining, blocks, packing in exact_cage_bands(ctx):
            params = _band_params(band)
            params.update({
                "band": band.key,
                "remaining_stars": remaining,
                "blocks": [b.id for b in blocks],
                "solution_count": len(packing.solutions),
            })
            apps.append(make_application(
                self.schema_id, params,
                [step("count_stars_in_band", band=band_ref(band), remaining_stars=remaining),
                 step("identify_candidate_blocks", blocks=[describe_block(b) for b in blocks],
                      block_count=len(blocks), solution_count=len(packing.solutions)),
                 step("apply_pigeonhole", note="each block holds exactly one star")]))
        return apps


# ==============================================================================
# C2: CAGES_REGION_QUOTA
# ==============================================================================

class CAGES_REGION_QUOTA_Schema(Schema):
    """
    In an exact-cage band, a region that fully contains c blocks already has
    committed + c stars in the band. When that meets its band upper bound,
    its other band candidates are excluded.
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for band, remaining, blocks, _ in exact_cage_bands(ctx):
            for region in get_regions_intersecting_band(snap, band):
                if ctx.out_of_time():
                    log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                    return apps
                in_band = ctx.region_cells_in_band(region, band)
                inside = blocks_inside_cells(blocks, in_band)
                if not inside:
                    continue
                covered = {c for b in inside for c in b.cells}
                excluded = [c for c in ctx.unknown(in_band) if c not in covered]
                if not excluded:
                    continue
                committed = snap.stars_in(in_band)
                bounds = ctx.bounds(region, band)
                if committed + len(inside) != bounds.hi:
                    continue
                apps.append(make_application(
                    self.schema_id,
                    {"band": band.key, "region": region.id,
                     "blocks": [b.id for b in inside], "band_quota_hi": bounds.hi},
                    [step("exact_cages", band=band_ref(band), remaining_stars=remaining),
                     step("blocks_inside_region", region=region_ref(region),
                          blocks=[describe_block(b) for b in inside]),
                     step("region_band_quota", region=region_ref(region), hi=bounds.hi,
                          committed=committed),
                     step("exclude_rest", cells=cell_refs(excluded, snap.size))],
                    excluded=excluded))
        return apps


# ==============================================================================
# C3: REGION_LOCAL_CAGES
# ==============================================================================

class REGION_LOCAL_CAGES_Schema(Schema):
    """
    Pack K = new-star lower bound blocks inside region ∩ band. Candidates
    absent from every packing are proposals; each is excluded only after a
    search shows no region placement through it reaches K band stars.
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for band in enumerate_bands(snap):
            if ctx.out_of_time():
                log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                break
            blocks = get_valid_blocks_in_band(snap, band)
            if not blocks:
                continue
            for region in get_regions_intersecting_band(snap, band):
                app = self._apply_region(ctx, band, blocks, region)
                if app is not None:
                    apps.append(app)
        return apps

    def _apply_region(self, ctx: SchemaContext, band: Band, blocks: List[Block], region):
        snap = ctx.snapshot
        in_band = ctx.region_cells_in_band(region, band)
        cands = ctx.candidates(in_band)
        if not cands:
            return None
        local = blocks_inside_cells(blocks, in_band)
        if not local:
            return None
        k = ctx.new_bounds(region, band).lo
        if k <= 0:
            return None
        packing = find_cage_packings(local, k, max_solutions=ctx.limits.max_packing_solutions,
                                     budget=ctx.budget)
        if not packing.solutions or packing.truncated:
            return None

        excluded = []
        for cell in cands:
            if cell in packing.possible_cells:
                continue
            _, hi, aborted = region_placement_band_range(snap, region, band, ctx.budget,
                                                         forced=(cell,))
            if aborted:
                continue
            if hi is None or hi < k:
                excluded.append(cell)
        if not excluded:
            return None

        return make_application(
            self.schema_id,
            {"band": band.key, "region": region.id, "k": k,
             "blocks": [b.id for b in local], "solution_count": len(packing.solutions)},
            [step("region_band_quota", region=region_ref(region), band=band_ref(band), new_lo=k),
             step("pack_local_cages", blocks=[describe_block(b) for b in local],
                  solution_count=len(packing.solutions)),
             step("confirm_unused_cells", cells=cell_refs(excluded, snap.size))],
            excluded=excluded)


# ==============================================================================
# C4: CAGE_EXCLUSION
# ==============================================================================

class CAGE_EXCLUSION_Schema(Schema):
    """
    In an exact-cage band every block holds one star:
    - a block with a single candidate → that candidate is a star
    - a cell outside a block touching all of the block's candidates → excluded
    """

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        snap = ctx.snapshot
        apps = []
        for band, remaining, blocks, _ in exact_cage_bands(ctx):
            for block in blocks:
                if ctx.out_of_time():
                    log.warning(f"{self.schema_id}: time budget exceeded at band {band.key}")
                    return apps
                cands = get_block_candidates(snap, block)
                if not cands:
                    continue
                stars = cands if len(cands) == 1 else []
                block_cells = set(block.cells)
                seen = [set(snap.neighbors[c]) for c in cands]
                shared = set.intersection(*seen) - block_cells
                excluded = sorted(ctx.unknown(shared))
                if not stars and not excluded:
                    continue
                apps.append(make_application(
                    self.schema_id,
                    {"band": band.key, "block": block.id, "candidates": len(cands)},
                    [step("exact_cages", band=band_ref(band), remaining_stars=remaining),
                     step("block_candidates", block=describe_block(block),
                          cells=cell_refs(cands, snap.size)),
                     step("cage_star", stars=cell_refs(stars, snap.size),
                          excluded=cell_refs(excluded, snap.size))],
                    stars=stars, excluded=excluded))
        return apps
