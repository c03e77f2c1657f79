"""
Type definitions and dataclasses for the star engine.
"""

import numpy as np
from enum import IntEnum
from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Any

# Board arrays
StateGrid = np.ndarray    # dtype=int8, shape (N, N), CellState values
RegionGrid = np.ndarray   # dtype=int, shape (N, N), region ids 0..R-1

CellId = int


class CellState(IntEnum):
    """Marking of one cell."""
    UNKNOWN = 0
    STAR = 1
    EXCLUDED = 2


@dataclass(frozen=True)
class Group:
    """Row, column or region with a star quota."""
    kind: str                  # 'row' | 'column' | 'region'
    index: int
    cells: Tuple[CellId, ...]
    quota: int

    @property
    def group_id(self) -> str:
        return f"{self.kind}_{self.index}"


@dataclass(frozen=True)
class Region:
    """A region of the board partition."""
    id: int
    cells: Tuple[CellId, ...]
    quota: int


@dataclass(frozen=True)
class Band:
    """
    Contiguous run of rows (kind='row') or columns (kind='col').

    start/end are inclusive line indices.
    """
    kind: str
    start: int
    end: int

    @property
    def lines(self) -> Tuple[int, ...]:
        return tuple(range(self.start, self.end + 1))

    @property
    def key(self) -> str:
        return f"{self.kind[0]}:{self.start}-{self.end}"

    def __len__(self) -> int:
        return self.end - self.start + 1

    def contains(self, r: int, c: int) -> bool:
        """Check if cell (r, c) lies inside the band."""
        line = r if self.kind == 'row' else c
        return self.start <= line <= self.end

    def cells(self, size: int) -> Tuple[CellId, ...]:
        """All cell ids inside the band on a size×size board."""
        if self.kind == 'row':
            return tuple(r * size + c for r in self.lines for c in range(size))
        return tuple(r * size + c for c in self.lines for r in range(size))

    def capacity(self, stars_per_line: int) -> int:
        return len(self) * stars_per_line

    def describe(self) -> Dict[str, Any]:
        name = 'rows' if self.kind == 'row' else 'cols'
        return {"kind": f"{self.kind}Band", name: list(self.lines)}


@dataclass(frozen=True)
class Block:
    """2×2 sub-square ("cage") anchored at its top-left cell."""
    id: int
    row: int
    col: int
    cells: Tuple[CellId, CellId, CellId, CellId]


@dataclass(frozen=True)
class Deduction:
    """A proven forced cell value (STAR or EXCLUDED)."""
    cell: CellId
    value: CellState

    @property
    def kind(self) -> str:
        return 'force_star' if self.value == CellState.STAR else 'force_excluded'


@dataclass(frozen=True)
class ExplanationStep:
    """One reasoning step; entities reference groups, bands, blocks and counts."""
    kind: str
    entities: Dict[str, Any]


@dataclass(frozen=True)
class Explanation:
    schema_id: str
    steps: Tuple[ExplanationStep, ...]


@dataclass(frozen=True)
class SchemaApplication:
    """
    One proven finding of a schema.

    - schema_id: schema that produced it
    - params: schema-specific parameters (bands, regions, counts)
    - deductions: forced cell values (may be empty for pigeonhole findings)
    - explanation: structured proof steps
    """
    schema_id: str
    params: Dict[str, Any]
    deductions: Tuple[Deduction, ...]
    explanation: Explanation

    @property
    def forced_stars(self) -> List[CellId]:
        return [d.cell for d in self.deductions if d.value == CellState.STAR]

    @property
    def forced_excluded(self) -> List[CellId]:
        return [d.cell for d in self.deductions if d.value == CellState.EXCLUDED]


@dataclass(frozen=True)
class QuotaBounds:
    """Provable [lo, hi] range for a region's total stars inside a band."""
    lo: int
    hi: int

    @property
    def known(self) -> bool:
        return self.lo == self.hi


@dataclass(frozen=True)
class CagePackingResult:
    """All packings of exactly K non-overlapping blocks."""
    solutions: Tuple[Tuple[Block, ...], ...]
    possible_cells: frozenset = field(default_factory=frozenset)
    mandatory_cells: frozenset = field(default_factory=frozenset)
    truncated: bool = False
