"""
Cage exact-cover packer.

Enumerates every set of exactly K pairwise non-overlapping blocks and reports
the cells covered by some packing (possible) and by all packings (mandatory).
"""

from typing import Callable, List, Optional, Sequence, Tuple

from .types import Block, CagePackingResult
from .budget import SearchBudget
from .blocks import blocks_overlap
from .config import MAX_PACKING_SOLUTIONS
from .logger import get_logger

log = get_logger("packing")


def find_cage_packings(blocks: Sequence[Block],
                       target_count: int,
                       allow_block: Optional[Callable[[Block], bool]] = None,
                       max_solutions: int = MAX_PACKING_SOLUTIONS,
                       budget: Optional[SearchBudget] = None) -> CagePackingResult:
    """
    All packings of exactly `target_count` non-overlapping blocks.

    Args:
        blocks: candidate blocks
        target_count: K
        allow_block: optional filter applied before the search
        max_solutions: enumeration stops (truncated=True) past this many
        budget: SearchBudget for node cap and cancellation

    Returns:
        CagePackingResult. With truncated=True the cell sets only describe the
        solutions found, not all packings.
    """
    pool = [b for b in blocks if allow_block is None or allow_block(b)]

    if target_count <= 0:
        return CagePackingResult(solutions=((),), possible_cells=frozenset(),
                                 mandatory_cells=frozenset())
    if len(pool) < target_count:
        return CagePackingResult(solutions=())

    if budget is None:
        budget = SearchBudget.unlimited()
    counter = budget.nodes()
    solutions: List[Tuple[Block, ...]] = []
    current: List[Block] = []
    truncated = False

    def backtrack(start: int):
        nonlocal truncated
        if truncated:
            return
        if not counter.tick():
            truncated = True
            return
        if len(current) == target_count:
            if len(solutions) >= max_solutions:
                truncated = True
                return
            solutions.append(tuple(current))
            return
        for i in range(start, len(pool)):
            if len(current) + (len(pool) - i) < target_count:
                break
            candidate = pool[i]
            if any(blocks_overlap(candidate, b) for b in current):
                continue
            current.append(candidate)
            backtrack(i + 1)
            current.pop()
            if truncated:
                return

    backtrack(0)
    if truncated:
        log.warning(f"cage packing truncated after {len(solutions)} solutions (K={target_count})")

    possible = set()
    mandatory = None
    for sol in solutions:
        cells = {c for b in sol for c in b.cells}
        possible |= cells
        mandatory = cells if mandatory is None else mandatory & cells

    return CagePackingResult(solutions=tuple(solutions),
                             possible_cells=frozenset(possible),
                             mandatory_cells=frozenset(mandatory or ()),
                             truncated=truncated)
