"""
Immutable board snapshot.

A snapshot owns the cell markings plus precomputed group membership
(rows, columns, regions, 2×2 blocks, neighbours). It is never mutated after
construction: the numpy arrays are read-only and attribute assignment raises.
Every derived cache is keyed by `key`, a content hash, so two logically
different boards can never share cached results.
"""

import itertools
import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .types import Block, CellId, CellState, Deduction, Group, Region
from .errors import InvalidBoardError, SnapshotMutationError
from .utils import G, board_sha, neighbors8, parse_board_rows

_VERSION_COUNTER = itertools.count(1)


class BoardSnapshot:
    """
    N×N star-placement board state.

    Args:
        regions: N×N nested list / array of region ids 0..R-1
        states: N×N CellState values (default: all UNKNOWN)
        stars_per_line: star quota of every row and column
        stars_per_region: default quota of every region (default: stars_per_line)
        region_quotas: optional per-region override {region_id: quota} or sequence
    """

    def __init__(self,
                 regions,
                 states=None,
                 *,
                 stars_per_line: int = 1,
                 stars_per_region: Optional[int] = None,
                 region_quotas: Union[None, Dict[int, int], Sequence[int]] = None):
        region_arr = G(regions)
        if region_arr.ndim != 2 or region_arr.shape[0] != region_arr.shape[1]:
            raise InvalidBoardError(f"Region map must be square, got shape {region_arr.shape}")
        size = region_arr.shape[0]
        if size < 2:
            raise InvalidBoardError("Board must be at least 2×2")

        if states is None:
            state_arr = np.zeros((size, size), dtype=np.int8)
        else:
            state_arr = np.array(states, dtype=np.int8)
        if state_arr.shape != region_arr.shape:
            raise InvalidBoardError(
                f"State grid shape {state_arr.shape} doesn't match region map {region_arr.shape}")
        if not np.isin(state_arr, [int(s) for s in CellState]).all():
            raise InvalidBoardError("Cell states must be UNKNOWN (0), STAR (1) or EXCLUDED (2)")

        region_ids = sorted(set(int(v) for v in region_arr.flatten()))
        if region_ids != list(range(len(region_ids))):
            raise InvalidBoardError(f"Region ids must be 0..R-1, got {region_ids}")
        if stars_per_line < 1:
            raise InvalidBoardError("stars_per_line must be positive")

        default_quota = stars_per_line if stars_per_region is None else stars_per_region
        quotas = [default_quota] * len(region_ids)
        if region_quotas is not None:
            items = region_quotas.items() if isinstance(region_quotas, dict) else enumerate(region_quotas)
            for rid, q in items:
                if not 0 <= rid < len(region_ids):
                    raise InvalidBoardError(f"Quota given for unknown region {rid}")
                quotas[rid] = int(q)

        region_arr.setflags(write=False)
        state_arr.setflags(write=False)

        set_ = object.__setattr__
        set_(self, "size", size)
        set_(self, "stars_per_line", int(stars_per_line))
        set_(self, "region_quotas", tuple(quotas))
        set_(self, "region_grid", region_arr)
        set_(self, "state_grid", state_arr)
        set_(self, "cell_states", tuple(int(v) for v in state_arr.flatten()))
        set_(self, "region_of", tuple(int(v) for v in region_arr.flatten()))
        set_(self, "key", board_sha(size, stars_per_line, tuple(quotas), region_arr, state_arr))
        set_(self, "version", next(_VERSION_COUNTER))
        self._build_structure()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _build_structure(self):
        n = self.size
        set_ = object.__setattr__

        rows = tuple(Group('row', r, tuple(r * n + c for c in range(n)), self.stars_per_line)
                     for r in range(n))
        cols = tuple(Group('column', c, tuple(r * n + c for r in range(n)), self.stars_per_line)
                     for c in range(n))

        members: Dict[int, List[CellId]] = {rid: [] for rid in range(len(self.region_quotas))}
        for cell, rid in enumerate(self.region_of):
            members[rid].append(cell)
        regions = tuple(Region(rid, tuple(members[rid]), self.region_quotas[rid])
                        for rid in range(len(self.region_quotas)))
        region_groups = tuple(Group('region', r.id, r.cells, r.quota) for r in regions)

        blocks = []
        blocks_of_cell: List[List[int]] = [[] for _ in range(n * n)]
        for r in range(n - 1):
            for c in range(n - 1):
                bid = r * (n - 1) + c
                cells = (r * n + c, r * n + c + 1, (r + 1) * n + c, (r + 1) * n + c + 1)
                blocks.append(Block(bid, r, c, cells))
                for cell in cells:
                    blocks_of_cell[cell].append(bid)

        neighbors = tuple(
            tuple(nr * n + nc for nr, nc in neighbors8(cell // n, cell % n, n))
            for cell in range(n * n)
        )

        set_(self, "rows", rows)
        set_(self, "cols", cols)
        set_(self, "regions", regions)
        set_(self, "region_groups", region_groups)
        set_(self, "blocks", tuple(blocks))
        set_(self, "blocks_of_cell", tuple(tuple(b) for b in blocks_of_cell))
        set_(self, "neighbors", neighbors)

    @classmethod
    def from_text(cls, rows: Iterable[str], **kwargs) -> 'BoardSnapshot':
        """Build from compact text rows, see utils.parse_board_rows."""
        regions, states = parse_board_rows(rows)
        return cls(regions, states, **kwargs)

    # ------------------------------------------------------------------
    # Immutability
    # ------------------------------------------------------------------

    def __setattr__(self, name, value):
        raise SnapshotMutationError(
            f"BoardSnapshot is immutable (attempted to set {name!r}); build a new snapshot instead")

    def __delattr__(self, name):
        raise SnapshotMutationError("BoardSnapshot is immutable")

    def __eq__(self, other) -> bool:
        return isinstance(other, BoardSnapshot) and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return (f"BoardSnapshot(size={self.size}, stars_per_line={self.stars_per_line}, "
                f"v{self.version}, key={self.key[:12]})")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def num_cells(self) -> int:
        return self.size * self.size

    def state(self, cell: CellId) -> CellState:
        return CellState(self.cell_states[cell])

    def state_at(self, r: int, c: int) -> CellState:
        return CellState(self.cell_states[r * self.size + c])

    def region_for(self, cell: CellId) -> Region:
        return self.regions[self.region_of[cell]]

    def all_groups(self) -> Tuple[Group, ...]:
        return self.rows + self.cols + self.region_groups

    def stars_in(self, cells: Iterable[CellId]) -> int:
        st = self.cell_states
        return sum(1 for c in cells if st[c] == CellState.STAR)

    def unknown_in(self, cells: Iterable[CellId]) -> List[CellId]:
        st = self.cell_states
        return [c for c in cells if st[c] == CellState.UNKNOWN]

    def star_cells(self) -> List[CellId]:
        return [c for c, s in enumerate(self.cell_states) if s == CellState.STAR]

    def is_complete(self) -> bool:
        """True when no cell is UNKNOWN."""
        return not np.any(self.state_grid == CellState.UNKNOWN)

    # ------------------------------------------------------------------
    # Derivation (new snapshots only)
    # ------------------------------------------------------------------

    def with_states(self, states) -> 'BoardSnapshot':
        """New snapshot with the same structure and different markings."""
        return BoardSnapshot(self.region_grid, states,
                             stars_per_line=self.stars_per_line,
                             region_quotas=self.region_quotas)

    def apply(self, deductions: Iterable[Deduction]) -> 'BoardSnapshot':
        """
        New snapshot with deductions applied.

        Raises SnapshotMutationError if a deduction contradicts a determined cell.
        """
        new_states = self.state_grid.copy()
        new_states.setflags(write=True)
        n = self.size
        for d in deductions:
            r, c = divmod(d.cell, n)
            current = int(new_states[r, c])
            if current != CellState.UNKNOWN and current != int(d.value):
                raise SnapshotMutationError(
                    f"Cell ({r},{c}) is {CellState(current).name}, cannot force {d.value.name}")
            new_states[r, c] = int(d.value)
        return self.with_states(new_states)

    def to_text(self) -> List[str]:
        """Inverse of from_text."""
        marks = {0: '.', 1: '*', 2: 'x'}
        lines = []
        for r in range(self.size):
            toks = [f"{self.region_grid[r, c]}{marks[int(self.state_grid[r, c])]}"
                    for c in range(self.size)]
            lines.append(" ".join(toks))
        return lines
