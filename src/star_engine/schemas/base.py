"""
Schema base class and shared context.

Each schema:
1. Inherits from Schema (schema_id, family, priority)
2. Implements apply(ctx) -> List[SchemaApplication]
3. Reads the snapshot only; every deduction is backed by the placement
   oracle, the quota algorithm or the cage packer
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..types import (Band, CellId, CellState, Deduction, Explanation, ExplanationStep,
                     Group, QuotaBounds, Region, SchemaApplication)
from ..config import SearchLimits, DEFAULT_LIMITS
from ..budget import SearchBudget
from ..placement import candidate_mask
from ..bands import get_region_band_bounds, get_region_band_quota, get_all_cells_of_region_in_band


# ==============================================================================
# Context
# ==============================================================================

class SchemaContext:
    """
    Read-only view handed to every schema.

    Args:
        snapshot: BoardSnapshot
        limits: SearchLimits
        budget: SearchBudget shared by the whole registry run
    """

    def __init__(self, snapshot, limits: SearchLimits = DEFAULT_LIMITS,
                 budget: Optional[SearchBudget] = None):
        self.snapshot = snapshot
        self.limits = limits
        self.budget = budget if budget is not None else SearchBudget(limits)

    @property
    def size(self) -> int:
        return self.snapshot.size

    @property
    def mask(self):
        return candidate_mask(self.snapshot)

    def out_of_time(self) -> bool:
        """Cancellation raises; an expired deadline just returns True."""
        self.budget.check()
        return self.budget.expired

    def candidates(self, cells: Iterable[CellId]) -> List[CellId]:
        mask = self.mask
        return [c for c in cells if mask[c]]

    def unknown(self, cells: Iterable[CellId]) -> List[CellId]:
        return self.snapshot.unknown_in(cells)

    def remaining(self, group) -> int:
        """Quota minus committed stars for a Group or Region."""
        return group.quota - self.snapshot.stars_in(group.cells)

    def band_cells(self, band: Band):
        return band.cells(self.snapshot.size)

    def region_cells_in_band(self, region: Region, band: Band) -> List[CellId]:
        return get_all_cells_of_region_in_band(self.snapshot, region, band)

    def quota(self, region: Region, band: Band) -> int:
        return get_region_band_quota(self.snapshot, region, band, 0, self.budget)

    def bounds(self, region: Region, band: Band) -> QuotaBounds:
        return get_region_band_bounds(self.snapshot, region, band, 0, self.budget)

    def new_bounds(self, region: Region, band: Band) -> QuotaBounds:
        """Bounds on new (not yet committed) stars of the region inside the band."""
        b = self.bounds(region, band)
        committed = self.snapshot.stars_in(self.region_cells_in_band(region, band))
        return QuotaBounds(b.lo - committed, b.hi - committed)


# ==============================================================================
# Schema base
# ==============================================================================

@dataclass
class Schema:
    """Base class for schemas (stateless, read-only, idempotent rules)."""
    schema_id: str
    family: str
    priority: int

    def apply(self, ctx: SchemaContext) -> List[SchemaApplication]:
        """
        Find every application of this schema on ctx.snapshot.

        Args:
            ctx: SchemaContext

        Returns:
            Applications found so far (partial when the budget expires)
        """
        raise NotImplementedError("Subclass must implement apply()")


# ==============================================================================
# Application helpers
# ==============================================================================

def step(kind: str, **entities) -> ExplanationStep:
    return ExplanationStep(kind, entities)


def make_application(schema_id: str,
                     params: Dict,
                     steps: Sequence[ExplanationStep],
                     stars: Iterable[CellId] = (),
                     excluded: Iterable[CellId] = ()) -> SchemaApplication:
    """Build a SchemaApplication with sorted, de-duplicated deductions."""
    deductions = tuple(
        [Deduction(c, CellState.STAR) for c in sorted(set(stars))]
        + [Deduction(c, CellState.EXCLUDED) for c in sorted(set(excluded))]
    )
    return SchemaApplication(schema_id, dict(params), deductions,
                             Explanation(schema_id, tuple(steps)))


def group_ref(group: Group) -> Dict:
    return {"kind": group.kind, "index": group.index}


def region_ref(region: Region) -> Dict:
    return {"kind": "region", "index": region.id}


def band_ref(band: Band) -> Dict:
    return band.describe()


def cell_refs(cells: Iterable[CellId], size: int) -> List[List[int]]:
    return [list(divmod(c, size)) for c in cells]
