"""
Band helpers and the region–band quota algorithm.

A band is a contiguous run of rows or columns. get_region_band_quota returns a
sound lower bound on how many stars a region holds inside a band in every
valid completion; get_region_band_bounds adds the matching upper bound.

Cost ladder:
1. Shortcuts (no search)
2. Bound the stars the band's other cells can take (exact relaxed search for
   small sets, capacity bound otherwise)
3. Exact enumeration of the region's remaining placements (small regions only)
4. Any abort falls back to the bound established in step 2
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .types import Band, CellId, CellState, QuotaBounds, Region
from .cache import cache_for
from .budget import SearchBudget
from .placement import PlacementValidator, candidate_mask
from .logger import get_logger

log = get_logger("bands")

_UNKNOWN = int(CellState.UNKNOWN)
_STAR = int(CellState.STAR)


# ==============================================================================
# Band enumeration
# ==============================================================================

def _enumerate(snapshot, kind: str) -> List[Band]:
    bands = cache_for(snapshot).bands
    cached = bands.get(kind)
    if cached is None:
        n = snapshot.size
        cached = [Band(kind, start, end) for start in range(n) for end in range(start, n)]
        bands[kind] = cached
    return cached


def enumerate_row_bands(snapshot) -> List[Band]:
    """All n(n+1)/2 row bands, ordered by (start, end)."""
    return _enumerate(snapshot, 'row')


def enumerate_column_bands(snapshot) -> List[Band]:
    """All n(n+1)/2 column bands, ordered by (start, end)."""
    return _enumerate(snapshot, 'col')


def enumerate_bands(snapshot) -> List[Band]:
    return enumerate_row_bands(snapshot) + enumerate_column_bands(snapshot)


def region_line_span(snapshot, region: Region, kind: str) -> Tuple[int, int]:
    """(first, last) row or column index touched by the region."""
    n = snapshot.size
    lines = [cell // n if kind == 'row' else cell % n for cell in region.cells]
    return min(lines), max(lines)


def complement_bands(band: Band, first: int, last: int) -> List[Band]:
    """
    Pieces of the line range [first, last] not covered by `band`.

    At most two bands: one before band.start and one after band.end.
    """
    pieces = []
    if first < band.start:
        pieces.append(Band(band.kind, first, min(band.start - 1, last)))
    if last > band.end:
        pieces.append(Band(band.kind, max(band.end + 1, first), last))
    return pieces


def region_complement_bands(snapshot, region: Region, band: Band) -> List[Band]:
    """Complement pieces of band within the region's own line span."""
    first, last = region_line_span(snapshot, region, band.kind)
    return complement_bands(band, first, last)


# ==============================================================================
# Band / region intersections
# ==============================================================================

def get_all_cells_of_region_in_band(snapshot, region: Region, band: Band) -> List[CellId]:
    n = snapshot.size
    return [c for c in region.cells if band.contains(c // n, c % n)]


def get_cells_of_region_in_band(snapshot, region: Region, band: Band) -> List[CellId]:
    """UNKNOWN cells of the region inside the band."""
    st = snapshot.cell_states
    return [c for c in get_all_cells_of_region_in_band(snapshot, region, band) if st[c] == _UNKNOWN]


def get_regions_intersecting_band(snapshot, band: Band) -> List[Region]:
    n = snapshot.size
    seen = set()
    for cell in band.cells(n):
        seen.add(snapshot.region_of[cell])
    return [snapshot.regions[rid] for rid in sorted(seen)]


def region_fully_inside_band(snapshot, region: Region, band: Band) -> bool:
    n = snapshot.size
    return all(band.contains(c // n, c % n) for c in region.cells)


def compute_remaining_stars_in_band(snapshot, band: Band) -> int:
    """Band capacity minus the stars already committed inside it."""
    return band.capacity(snapshot.stars_per_line) - snapshot.stars_in(band.cells(snapshot.size))


def region_remaining(snapshot, region: Region) -> int:
    return region.quota - snapshot.stars_in(region.cells)


# ==============================================================================
# Max stars in a cell set
# ==============================================================================

def compute_max_stars_in_cells(snapshot,
                               cells: Sequence[CellId],
                               budget: Optional[SearchBudget] = None,
                               limit: Optional[int] = None,
                               forced: Sequence[CellId] = ()) -> Tuple[int, bool]:
    """
    Largest number of new stars simultaneously placeable among `cells`.

    Only the cells themselves are searched, so the result is a relaxed upper
    bound on what any completion puts there.

    Args:
        snapshot: BoardSnapshot
        cells: cells to search (non-UNKNOWN ones are skipped)
        budget: SearchBudget (default: unlimited)
        limit: stop as soon as this many stars are found
        forced: trial stars placed before the search (not counted)

    Returns:
        (best, aborted). When aborted, best is only a lower bound.
    """
    if budget is None:
        budget = SearchBudget.unlimited()
    validator = PlacementValidator(snapshot)
    for cell in forced:
        validator.place(cell)
    cands = [c for c in cells if validator.can_place(c)]
    if not cands:
        return 0, False

    counter = budget.nodes()
    best = 0

    def backtrack(index: int, placed: int):
        nonlocal best
        if not counter.tick():
            return
        if placed > best:
            best = placed
        if limit is not None and best >= limit:
            return
        if index >= len(cands) or placed + (len(cands) - index) <= best:
            return
        cell = cands[index]
        if validator.can_place(cell):
            validator.place(cell)
            backtrack(index + 1, placed + 1)
            validator.remove(cell)
            if counter.aborted or (limit is not None and best >= limit):
                return
        backtrack(index + 1, placed)

    backtrack(0, 0)
    reached_limit = limit is not None and best >= limit
    return best, counter.aborted and not reached_limit


def upper_bound_max_stars_in_cells(snapshot,
                                   cells: Sequence[CellId],
                                   region_caps: Optional[Dict[int, int]] = None) -> int:
    """
    Capacity bound on new stars among `cells`.

    Minimum of the row, column and region sums of
    min(remaining quota, candidates in the set). region_caps optionally
    replaces a region's remaining quota with a tighter per-region cap.
    """
    mask = candidate_mask(snapshot)
    n = snapshot.size
    cands = [c for c in cells if mask[c]]
    if not cands:
        return 0

    rows: Dict[int, int] = {}
    cols: Dict[int, int] = {}
    regs: Dict[int, int] = {}
    for cell in cands:
        r, c = divmod(cell, n)
        rows[r] = rows.get(r, 0) + 1
        cols[c] = cols.get(c, 0) + 1
        rid = snapshot.region_of[cell]
        regs[rid] = regs.get(rid, 0) + 1

    spl = snapshot.stars_per_line
    ub = len(cands)
    ub = min(ub, sum(min(max(0, spl - snapshot.stars_in(snapshot.rows[r].cells)), k)
                     for r, k in rows.items()))
    ub = min(ub, sum(min(max(0, spl - snapshot.stars_in(snapshot.cols[c].cells)), k)
                     for c, k in cols.items()))

    total = 0
    for rid, k in regs.items():
        cap = max(0, region_remaining(snapshot, snapshot.regions[rid]))
        if region_caps is not None and rid in region_caps:
            cap = min(cap, max(0, region_caps[rid]))
        total += min(cap, k)
    return min(ub, total)


# ==============================================================================
# Region–band quota
# ==============================================================================

@dataclass(frozen=True)
class _QuotaInfo:
    lo: int
    max_band: Optional[int]   # search-proven maximum (None when unknown)


def _region_band_range(snapshot, cands: List[CellId], in_band: set, need: int,
                       budget: SearchBudget,
                       forced: Sequence[CellId] = ()) -> Tuple[Optional[int], Optional[int], bool]:
    """
    Enumerate placements of exactly `need` stars among the region candidates.

    Forced cells are placed first and count toward both `need` and the
    in-band tally. Returns (min_in_band, max_in_band, aborted);
    (None, None, False) when no placement exists.
    """
    validator = PlacementValidator(snapshot)
    for cell in forced:
        if not validator.can_place(cell):
            return None, None, False
        validator.place(cell)
    base = sum(1 for c in forced if c in in_band)
    need -= len(forced)
    if need < 0:
        return None, None, False
    forced_set = set(forced)
    cands = [c for c in cands if c not in forced_set]

    counter = budget.nodes()
    best_max = min(need, sum(1 for c in cands if c in in_band))
    lo_b: Optional[int] = None
    hi_b: Optional[int] = None

    def settled() -> bool:
        return lo_b == 0 and hi_b == best_max

    def backtrack(start: int, placed: int, inside: int):
        nonlocal lo_b, hi_b
        if not counter.tick():
            return
        if placed == need:
            lo_b = inside if lo_b is None else min(lo_b, inside)
            hi_b = inside if hi_b is None else max(hi_b, inside)
            return
        for i in range(start, len(cands)):
            if len(cands) - i < need - placed:
                break
            cell = cands[i]
            if not validator.can_place(cell):
                continue
            validator.place(cell)
            backtrack(i + 1, placed + 1, inside + (1 if cell in in_band else 0))
            validator.remove(cell)
            if counter.aborted or settled():
                return

    backtrack(0, 0, 0)
    if lo_b is None:
        return None, None, counter.aborted
    return base + lo_b, base + hi_b, counter.aborted


def region_placement_band_range(snapshot, region: Region, band: Band,
                                budget: Optional[SearchBudget] = None,
                                forced: Sequence[CellId] = ()
                                ) -> Tuple[Optional[int], Optional[int], bool]:
    """
    Min/max new in-band stars over placements of the region's remaining quota.

    Only placements containing every `forced` cell are considered. Returns
    (None, None, aborted) when no such placement exists or the region has
    more candidates than max_candidates_for_quota (reported as aborted).
    """
    if budget is None:
        budget = SearchBudget.unlimited()
    mask = candidate_mask(snapshot)
    cands = [c for c in region.cells if mask[c]]
    if len(cands) > budget.limits.max_candidates_for_quota:
        return None, None, True
    in_band = set(get_cells_of_region_in_band(snapshot, region, band))
    rem = region_remaining(snapshot, region)
    return _region_band_range(snapshot, cands, in_band, rem, budget, forced)


def _region_caps_for_band(snapshot, band: Band, skip_region: int, depth: int,
                          budget: SearchBudget) -> Dict[int, int]:
    """
    Per-region cap on new in-band stars for the other regions.

    A region's new stars inside the band are at most its remaining quota minus
    the new stars it must place in its complement pieces (depth+1 quotas).
    """
    caps: Dict[int, int] = {}
    for region in get_regions_intersecting_band(snapshot, band):
        if region.id == skip_region:
            continue
        rem = region_remaining(snapshot, region)
        if rem <= 0:
            continue
        forced_outside = 0
        for piece in region_complement_bands(snapshot, region, band):
            piece_lo = get_region_band_quota(snapshot, region, piece, depth + 1, budget)
            committed = snapshot.stars_in(get_all_cells_of_region_in_band(snapshot, region, piece))
            forced_outside += max(0, piece_lo - committed)
        caps[region.id] = rem - forced_outside
    return caps


def _analyse(snapshot, region: Region, band: Band, depth: int,
             budget: SearchBudget) -> _QuotaInfo:
    limits = budget.limits
    st = snapshot.cell_states
    n = snapshot.size

    all_in = get_all_cells_of_region_in_band(snapshot, region, band)
    committed = sum(1 for c in all_in if st[c] == _STAR)
    if depth > limits.max_quota_depth:
        return _QuotaInfo(committed, None)

    rem = region_remaining(snapshot, region)
    unknown_in = [c for c in all_in if st[c] == _UNKNOWN]
    if not unknown_in or rem <= 0:
        return _QuotaInfo(committed, committed)

    region_unknown = [c for c in region.cells if st[c] == _UNKNOWN]
    if len(unknown_in) == len(region_unknown):
        return _QuotaInfo(committed + rem, committed + rem)

    memo = cache_for(snapshot).quota
    key = ('lo', region.id, band.key, depth, limits)
    cached = memo.get(key)
    if cached is not None:
        return cached
    refused = budget.refused_calls

    if not budget.take_quota_call():
        log.debug(f"quota call cap reached for region {region.id} / {band.key}")
        return _QuotaInfo(committed, None)

    # Step 2: what can the rest of the band absorb?
    band_cells = band.cells(n)
    other = [c for c in band_cells if snapshot.region_of[c] != region.id and st[c] == _UNKNOWN]
    rem_in_band = compute_remaining_stars_in_band(snapshot, band)

    caps = None
    if depth + 1 <= limits.max_quota_depth:
        caps = _region_caps_for_band(snapshot, band, region.id, depth, budget)
    cap_bound = upper_bound_max_stars_in_cells(snapshot, other, caps)

    max_without_region = cap_bound
    if len(other) <= limits.max_unknown_for_exact:
        exact, aborted = compute_max_stars_in_cells(snapshot, other, budget, limit=rem_in_band)
        if not aborted:
            max_without_region = min(exact, cap_bound)
    band_need = max(0, rem_in_band - max_without_region)
    fallback = _QuotaInfo(committed + min(rem, band_need), None)

    # Step 3: exact enumeration of the region's own placements
    mask = candidate_mask(snapshot)
    cands = [c for c in region_unknown if mask[c]]
    if len(cands) > limits.max_candidates_for_quota:
        info = fallback
    else:
        lo_b, hi_b, aborted = _region_band_range(snapshot, cands, set(unknown_in), rem, budget)
        if aborted or lo_b is None:
            if aborted:
                log.debug(f"quota search aborted for region {region.id} / {band.key}")
            info = fallback
        else:
            info = _QuotaInfo(committed + max(lo_b, min(rem, band_need)), committed + hi_b)

    if not budget.expired and budget.refused_calls == refused:
        memo[key] = info
    return info


def get_region_band_quota(snapshot, region: Region, band: Band, depth: int = 0,
                          budget: Optional[SearchBudget] = None) -> int:
    """
    Sound lower bound on the region's stars inside the band (committed included).

    Args:
        snapshot: BoardSnapshot
        region: Region
        band: row or column Band
        depth: recursion depth (callers start at 0)
        budget: SearchBudget (default: unlimited)

    Returns:
        Lower bound; never larger than the true count in any completion
    """
    if budget is None:
        budget = SearchBudget.unlimited()
    budget.check()
    return _analyse(snapshot, region, band, depth, budget).lo


def get_region_band_bounds(snapshot, region: Region, band: Band, depth: int = 0,
                           budget: Optional[SearchBudget] = None) -> QuotaBounds:
    """[lo, hi] on the region's stars inside the band (committed included)."""
    if budget is None:
        budget = SearchBudget.unlimited()
    budget.check()

    memo = cache_for(snapshot).quota
    key = ('bounds', region.id, band.key, depth, budget.limits)
    cached = memo.get(key)
    if cached is not None:
        return cached
    refused = budget.refused_calls

    info = _analyse(snapshot, region, band, depth, budget)
    mask = candidate_mask(snapshot)
    all_in = get_all_cells_of_region_in_band(snapshot, region, band)
    committed = snapshot.stars_in(all_in)
    rem = max(0, region_remaining(snapshot, region))
    cands_in = sum(1 for c in all_in if mask[c])

    hi = committed + min(rem, cands_in)
    if info.max_band is not None:
        hi = min(hi, info.max_band)
    if depth + 1 <= budget.limits.max_quota_depth and hi > info.lo:
        outside_lo = sum(get_region_band_quota(snapshot, region, piece, depth + 1, budget)
                         for piece in region_complement_bands(snapshot, region, band))
        hi = min(hi, region.quota - outside_lo)
    bounds = QuotaBounds(info.lo, max(info.lo, hi))

    if not budget.expired and budget.refused_calls == refused:
        memo[key] = bounds
    return bounds


def all_have_known_band_quota(snapshot, regions: Sequence[Region], band: Band,
                              budget: Optional[SearchBudget] = None) -> bool:
    """True when every region's band quota is pinned (lo == hi)."""
    return all(get_region_band_bounds(snapshot, r, band, 0, budget).known for r in regions)
