"""
2×2 block (cage) helpers.

A block is valid in a context when it holds no committed star and at least
one star candidate.
"""

from typing import Dict, List, Sequence

from .types import Band, Block, CellId, CellState, Group, Region
from .cache import cache_for
from .config import MAX_BLOCKS_FOR_EXACT_PACKING
from .placement import PlacementValidator, candidate_mask

_STAR = int(CellState.STAR)


def get_block_candidates(snapshot, block: Block) -> List[CellId]:
    mask = candidate_mask(snapshot)
    return [c for c in block.cells if mask[c]]


def is_block_valid(snapshot, block: Block) -> bool:
    """No committed star and at least one star candidate."""
    st = snapshot.cell_states
    if any(st[c] == _STAR for c in block.cells):
        return False
    return bool(get_block_candidates(snapshot, block))


def blocks_overlap(a: Block, b: Block) -> bool:
    """Check if two blocks share a cell."""
    return not set(a.cells).isdisjoint(b.cells)


def get_valid_blocks_in_band(snapshot, band: Band) -> List[Block]:
    """Valid blocks lying completely inside the band (cached per snapshot)."""
    misc = cache_for(snapshot).misc
    key = ('valid_blocks', band.key)
    cached = misc.get(key)
    if cached is None:
        cached = []
        for block in snapshot.blocks:
            line_lo = block.row if band.kind == 'row' else block.col
            if band.start <= line_lo and line_lo + 1 <= band.end and is_block_valid(snapshot, block):
                cached.append(block)
        misc[key] = cached
    return cached


def get_valid_blocks_in_region(snapshot, region: Region) -> List[Block]:
    """Valid blocks whose four cells all belong to the region."""
    rid = region.id
    region_of = snapshot.region_of
    return [b for b in snapshot.blocks
            if all(region_of[c] == rid for c in b.cells) and is_block_valid(snapshot, b)]


def blocks_inside_cells(blocks: Sequence[Block], cells) -> List[Block]:
    """Blocks whose four cells all lie in `cells`."""
    cell_set = set(cells)
    return [b for b in blocks if all(c in cell_set for c in b.cells)]


def get_groups_intersecting_cells(snapshot, cells: Sequence[CellId]) -> List[Group]:
    """Rows, then columns, then regions touching any of the cells."""
    cell_set = set(cells)
    return [g for g in snapshot.all_groups() if any(c in cell_set for c in g.cells)]


def get_quota_in_block(snapshot, group: Group, block: Block) -> int:
    """
    Stars the group is forced to put into the block.

    1 when the group still needs a star and every one of its candidates lies
    in the block (a block holds at most one star), 0 otherwise.
    """
    remaining = group.quota - snapshot.stars_in(group.cells)
    if remaining <= 0:
        return 0
    mask = candidate_mask(snapshot)
    group_cands = [c for c in group.cells if mask[c]]
    if not group_cands:
        return 0
    block_cells = set(block.cells)
    return 1 if all(c in block_cells for c in group_cands) else 0


def _has_valid_assignment(snapshot, chosen: Sequence[int],
                          cand_map: Dict[int, List[CellId]]) -> bool:
    """One star per chosen block, simultaneously placeable."""
    if not chosen:
        return True
    validator = PlacementValidator(snapshot)
    ordered = sorted(chosen, key=lambda i: len(cand_map[i]))

    def backtrack(idx: int) -> bool:
        if idx >= len(ordered):
            return True
        for cell in cand_map[ordered[idx]]:
            if not validator.can_place(cell):
                continue
            validator.place(cell)
            if backtrack(idx + 1):
                return True
            validator.remove(cell)
        return False

    return backtrack(0)


def find_max_non_overlapping_blocks(snapshot, blocks: Sequence[Block],
                                    exact_limit: int = MAX_BLOCKS_FOR_EXACT_PACKING) -> List[Block]:
    """
    Largest set of pairwise disjoint blocks that can each hold a star at once.

    Exhaustive for up to `exact_limit` blocks, greedy (fewest candidates
    first) beyond that.
    """
    blocks = list(blocks)
    if not blocks:
        return []
    cand_map = {i: get_block_candidates(snapshot, b) for i, b in enumerate(blocks)}

    if len(blocks) <= exact_limit:
        best: List[int] = []

        def explore(index: int, chosen: List[int]):
            nonlocal best
            if len(chosen) + (len(blocks) - index) <= len(best):
                return
            if index >= len(blocks):
                if _has_valid_assignment(snapshot, chosen, cand_map):
                    best = list(chosen)
                return
            block = blocks[index]
            if not any(blocks_overlap(block, blocks[j]) for j in chosen):
                chosen.append(index)
                explore(index + 1, chosen)
                chosen.pop()
            explore(index + 1, chosen)

        explore(0, [])
        return [blocks[i] for i in best]

    selected: List[int] = []
    for idx in sorted(range(len(blocks)), key=lambda i: len(cand_map[i])):
        if any(blocks_overlap(blocks[idx], blocks[j]) for j in selected):
            continue
        if _has_valid_assignment(snapshot, selected + [idx], cand_map):
            selected.append(idx)
    return [blocks[i] for i in selected]


def describe_block(block: Block) -> Dict[str, int]:
    return {"id": block.id, "row": block.row, "col": block.col}
