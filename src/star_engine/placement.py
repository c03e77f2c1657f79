"""
Placement feasibility oracle.

PlacementValidator layers a mutable trial state over a read-only snapshot and
answers "can a star go here?" against line/region quotas, 8-adjacency and the
one-star-per-2×2 rule. Trial stars follow stack discipline: remove() must undo
the most recent place().
"""

from typing import Iterable, List, Tuple

from .types import CellId, CellState
from .errors import PlacementError
from .cache import cache_for

_UNKNOWN = int(CellState.UNKNOWN)
_STAR = int(CellState.STAR)


class PlacementValidator:
    """Incremental star-placement checker over one snapshot."""

    def __init__(self, snapshot):
        self.snapshot = snapshot
        n = snapshot.size
        self._n = n
        self._states = snapshot.cell_states
        self._region_of = snapshot.region_of
        self._line_quota = snapshot.stars_per_line
        self._region_quota = snapshot.region_quotas
        self._neighbors = snapshot.neighbors
        self._blocks_of_cell = snapshot.blocks_of_cell

        self._row_counts = [0] * n
        self._col_counts = [0] * n
        self._region_counts = [0] * len(snapshot.regions)
        self._star = [False] * (n * n)
        self._block_stars = [0] * len(snapshot.blocks)
        self._stack: List[CellId] = []

        for cell, st in enumerate(self._states):
            if st == _STAR:
                self._mark(cell, 1)

    def _mark(self, cell: CellId, delta: int):
        r, c = divmod(cell, self._n)
        self._row_counts[r] += delta
        self._col_counts[c] += delta
        self._region_counts[self._region_of[cell]] += delta
        self._star[cell] = delta > 0
        for b in self._blocks_of_cell[cell]:
            self._block_stars[b] += delta

    def can_place(self, cell: CellId) -> bool:
        if self._states[cell] != _UNKNOWN or self._star[cell]:
            return False
        r, c = divmod(cell, self._n)
        if self._row_counts[r] >= self._line_quota or self._col_counts[c] >= self._line_quota:
            return False
        rid = self._region_of[cell]
        if self._region_counts[rid] >= self._region_quota[rid]:
            return False
        star = self._star
        for nb in self._neighbors[cell]:
            if star[nb]:
                return False
        block_stars = self._block_stars
        for b in self._blocks_of_cell[cell]:
            if block_stars[b] > 0:
                return False
        return True

    def place(self, cell: CellId):
        if not self.can_place(cell):
            raise PlacementError(f"Cannot place a star at cell {cell}")
        self._mark(cell, 1)
        self._stack.append(cell)

    def remove(self, cell: CellId):
        if not self._stack or self._stack[-1] != cell:
            raise PlacementError(
                f"remove({cell}) out of order; last trial star is "
                f"{self._stack[-1] if self._stack else None}")
        self._stack.pop()
        self._mark(cell, -1)

    def reset(self):
        """Undo every trial star."""
        while self._stack:
            self.remove(self._stack[-1])

    @property
    def placed(self) -> Tuple[CellId, ...]:
        return tuple(self._stack)

    def has_star(self, cell: CellId) -> bool:
        """Committed or trial star at cell."""
        return self._star[cell]

    def row_count(self, r: int) -> int:
        return self._row_counts[r]

    def col_count(self, c: int) -> int:
        return self._col_counts[c]

    def region_count(self, rid: int) -> int:
        return self._region_counts[rid]


def candidate_mask(snapshot) -> Tuple[bool, ...]:
    """Per-cell star-candidate flags (cached per snapshot)."""
    misc = cache_for(snapshot).misc
    mask = misc.get('candidate_mask')
    if mask is None:
        validator = PlacementValidator(snapshot)
        mask = tuple(validator.can_place(cell) for cell in range(snapshot.num_cells))
        misc['candidate_mask'] = mask
    return mask


def is_star_candidate(snapshot, cell: CellId) -> bool:
    return candidate_mask(snapshot)[cell]


def candidates_in(snapshot, cells: Iterable[CellId]) -> List[CellId]:
    """Star candidates among cells, in input order."""
    mask = candidate_mask(snapshot)
    return [c for c in cells if mask[c]]


def assignments_are_valid(snapshot, assignments: Iterable[CellId]) -> bool:
    """Check that a set of star assignments is simultaneously placeable."""
    validator = PlacementValidator(snapshot)
    for cell in assignments:
        if not validator.can_place(cell):
            return False
        validator.place(cell)
    return True
