"""
Placement oracle tests.

can_place is compared against a direct rule check on every cell of several
partial boards, with and without a trial star.
"""

import pytest

from boards import PUZZLES, PUZZLE_5, SOLUTION_5, board_with, partial_states

from star_engine import (
    PlacementValidator, PlacementError, CellState,
    candidate_mask, is_star_candidate, assignments_are_valid
)


def direct_can_place(snapshot, stars, cell):
    """Rule check from scratch: `stars` is the full set of star cells."""
    n = snapshot.size
    if snapshot.cell_states[cell] != CellState.UNKNOWN or cell in stars:
        return False
    r, c = divmod(cell, n)
    if sum(1 for s in stars if s // n == r) >= snapshot.stars_per_line:
        return False
    if sum(1 for s in stars if s % n == c) >= snapshot.stars_per_line:
        return False
    rid = snapshot.region_of[cell]
    if sum(1 for s in stars if snapshot.region_of[s] == rid) >= snapshot.region_quotas[rid]:
        return False
    for s in stars:
        sr, sc = divmod(s, n)
        if max(abs(sr - r), abs(sc - c)) <= 1:
            return False
    return True


def test_oracle_matches_rules():
    for regions, solution in PUZZLES:
        for snap in partial_states(regions, solution):
            committed = set(snap.star_cells())
            validator = PlacementValidator(snap)
            for cell in range(snap.num_cells):
                assert validator.can_place(cell) == direct_can_place(snap, committed, cell), \
                    f"cell {cell} on {snap}"


def test_oracle_with_trial_star():
    for regions, solution in PUZZLES:
        snap = board_with(regions)
        n = snap.size
        r, c = solution[0]
        trial = r * n + c
        validator = PlacementValidator(snap)
        validator.place(trial)
        for cell in range(snap.num_cells):
            assert validator.can_place(cell) == direct_can_place(snap, {trial}, cell)
        validator.remove(trial)
        assert validator.placed == ()
        for cell in range(snap.num_cells):
            assert validator.can_place(cell) == direct_can_place(snap, set(), cell)


def test_stack_discipline():
    snap = board_with(PUZZLE_5)
    validator = PlacementValidator(snap)
    validator.place(0)
    validator.place(7)
    assert validator.placed == (0, 7)
    with pytest.raises(PlacementError):
        validator.remove(0)
    validator.remove(7)
    validator.remove(0)
    with pytest.raises(PlacementError):
        validator.remove(0)


def test_illegal_place_raises():
    snap = board_with(PUZZLE_5, stars=[(0, 0)], excluded=[(4, 4)])
    validator = PlacementValidator(snap)
    with pytest.raises(PlacementError):
        validator.place(0)      # already a star
    with pytest.raises(PlacementError):
        validator.place(6)      # touches (0,0)
    with pytest.raises(PlacementError):
        validator.place(24)     # excluded
    validator.place(7)
    with pytest.raises(PlacementError):
        validator.place(7)      # already trial-placed
    validator.reset()
    assert validator.placed == ()


def test_snapshot_untouched_by_trials():
    snap = board_with(PUZZLE_5)
    key = snap.key
    validator = PlacementValidator(snap)
    validator.place(0)
    assert snap.key == key
    assert snap.state(0) == CellState.UNKNOWN


def test_candidate_helpers():
    snap = board_with(PUZZLE_5, stars=[(0, 0)])
    mask = candidate_mask(snap)
    assert mask is candidate_mask(snap)
    assert not is_star_candidate(snap, 0)
    assert not is_star_candidate(snap, 1)
    assert is_star_candidate(snap, 7)
    assert sum(mask) == 25 - 10     # row 0, column 0 and (1,1)

    n = snap.size
    rest = [r * n + c for r, c in SOLUTION_5[1:]]
    assert assignments_are_valid(snap, rest)
    assert not assignments_are_valid(snap, [7, 8])
