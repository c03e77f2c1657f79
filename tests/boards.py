"""
Hand-built puzzles and a brute-force completion enumerator for tests.

Boards are 1-star puzzles of size 5 or 6 with a known solution; the
enumerator walks rows and lists every completion of a partial board.
"""

import os
import sys
from itertools import combinations

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from star_engine import BoardSnapshot, CellState


# ==============================================================================
# Puzzles
# ==============================================================================

PUZZLE_5 = [
    [0, 0, 1, 1, 2],
    [0, 1, 1, 2, 2],
    [0, 3, 3, 2, 2],
    [3, 3, 4, 4, 2],
    [3, 4, 4, 4, 4],
]
SOLUTION_5 = [(0, 0), (1, 2), (2, 4), (3, 1), (4, 3)]

PUZZLE_5B = [
    [0, 0, 1, 1, 1],
    [0, 0, 1, 1, 2],
    [3, 3, 3, 2, 2],
    [3, 4, 4, 4, 2],
    [3, 4, 4, 4, 2],
]
SOLUTION_5B = [(0, 3), (1, 0), (2, 2), (3, 4), (4, 1)]

PUZZLE_6 = [
    [0, 0, 0, 1, 1, 1],
    [0, 0, 1, 1, 2, 2],
    [3, 0, 1, 2, 2, 2],
    [3, 3, 4, 4, 2, 5],
    [3, 4, 4, 5, 5, 5],
    [3, 4, 4, 4, 5, 5],
]
SOLUTION_6 = [(0, 1), (1, 3), (2, 5), (3, 0), (4, 2), (5, 4)]

PUZZLES = [
    (PUZZLE_5, SOLUTION_5),
    (PUZZLE_5B, SOLUTION_5B),
    (PUZZLE_6, SOLUTION_6),
]


def empty_board(regions, **kwargs) -> BoardSnapshot:
    return BoardSnapshot(regions, **kwargs)


def board_with(regions, stars=(), excluded=(), **kwargs) -> BoardSnapshot:
    """Board with the given (r, c) stars and exclusions committed."""
    n = len(regions)
    states = [[int(CellState.UNKNOWN)] * n for _ in range(n)]
    for r, c in stars:
        states[r][c] = int(CellState.STAR)
    for r, c in excluded:
        states[r][c] = int(CellState.EXCLUDED)
    return BoardSnapshot(regions, states, **kwargs)


def partial_states(regions, solution):
    """
    Partial boards consistent with `solution`:
    empty, one and two solution stars, and a board with scattered exclusions.
    """
    n = len(regions)
    sol = set(solution)
    off = [(r, c) for r in range(n) for c in range(n) if (r, c) not in sol]
    return [
        board_with(regions),
        board_with(regions, stars=solution[:1]),
        board_with(regions, stars=[solution[0], solution[-1]]),
        board_with(regions, excluded=off[::3]),
        board_with(regions, stars=solution[1:2], excluded=off[1::4]),
    ]


# ==============================================================================
# Brute force
# ==============================================================================

def completions(snapshot):
    """All valid completions of a partial board, as frozensets of star cell ids."""
    n = snapshot.size
    spl = snapshot.stars_per_line
    st = snapshot.cell_states
    region_of = snapshot.region_of
    quotas = snapshot.region_quotas
    col_counts = [0] * n
    region_counts = [0] * len(quotas)
    out = []

    def rec(r, prev_cols, chosen):
        if r == n:
            if all(k == spl for k in col_counts) and all(
                    region_counts[i] == quotas[i] for i in range(len(quotas))):
                out.append(frozenset(chosen))
            return
        for cols in combinations(range(n), spl):
            cells = [r * n + c for c in cols]
            if any(st[cell] == CellState.EXCLUDED for cell in cells):
                continue
            if any(st[r * n + c] == CellState.STAR and c not in cols for c in range(n)):
                continue
            if any(b - a <= 1 for a, b in zip(cols, cols[1:])):
                continue
            if any(abs(c - p) <= 1 for c in cols for p in prev_cols):
                continue
            ok = True
            for c, cell in zip(cols, cells):
                col_counts[c] += 1
                region_counts[region_of[cell]] += 1
            if any(col_counts[c] > spl for c in cols) or any(
                    region_counts[region_of[cell]] > quotas[region_of[cell]] for cell in cells):
                ok = False
            if ok:
                rec(r + 1, cols, chosen + cells)
            for c, cell in zip(cols, cells):
                col_counts[c] -= 1
                region_counts[region_of[cell]] -= 1

    rec(0, (), [])
    return out


def agreed_cells(snapshot):
    """(always-star, never-star) cell sets over all completions."""
    sols = completions(snapshot)
    assert sols, "test board has no completion"
    always = frozenset.intersection(*sols)
    ever = frozenset.union(*sols)
    never = frozenset(range(snapshot.num_cells)) - ever
    return always, never


def band_counts(snapshot, cells):
    """(min, max) stars among `cells` over all completions."""
    cell_set = set(cells)
    counts = [len(cell_set & s) for s in completions(snapshot)]
    return min(counts), max(counts)
