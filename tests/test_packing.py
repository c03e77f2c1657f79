"""
Cage packer and block helper tests.
"""

from dataclasses import FrozenInstanceError
from math import comb

import pytest

from boards import PUZZLE_5, PUZZLE_6, board_with

from star_engine import (
    Band, find_cage_packings, get_valid_blocks_in_band, get_valid_blocks_in_region,
    find_max_non_overlapping_blocks, blocks_overlap, get_quota_in_block, is_block_valid,
    get_block_candidates, get_groups_intersecting_cells
)


def block_at(snap, r, c):
    return snap.blocks[r * (snap.size - 1) + c]


def test_disjoint_blocks_give_binomial_count():
    snap = board_with(PUZZLE_6)
    blocks = [block_at(snap, r, c) for r, c in [(0, 0), (0, 2), (0, 4), (2, 0), (2, 2)]]
    for k in range(0, 6):
        result = find_cage_packings(blocks, k)
        assert len(result.solutions) == comb(5, k)
        assert result.mandatory_cells <= result.possible_cells
        assert not result.truncated


def test_zero_target():
    snap = board_with(PUZZLE_5)
    result = find_cage_packings(snap.blocks, 0)
    assert result.solutions == ((),)
    assert result.possible_cells == frozenset()
    assert result.mandatory_cells == frozenset()


def test_not_enough_blocks():
    snap = board_with(PUZZLE_5)
    result = find_cage_packings([block_at(snap, 0, 0)], 2)
    assert result.solutions == ()
    assert result.possible_cells == frozenset()


def test_overlapping_chain():
    snap = board_with(PUZZLE_5)
    chain = [block_at(snap, 0, c) for c in range(4)]     # (0,0)..(0,3)
    assert blocks_overlap(chain[0], chain[1])
    assert not blocks_overlap(chain[0], chain[2])

    two = find_cage_packings(chain, 2)
    # {0,2}, {0,3}, {1,3}
    assert len(two.solutions) == 3
    assert two.mandatory_cells <= two.possible_cells
    # columns 1 and 3 are covered by every packing
    assert two.mandatory_cells == frozenset({1, 3, 6, 8})

    # max independent set is 2
    assert find_cage_packings(chain, 3).solutions == ()

    pair = find_cage_packings(chain[:3], 2)
    assert len(pair.solutions) == 1
    assert pair.mandatory_cells == pair.possible_cells
    assert pair.possible_cells == frozenset(chain[0].cells + chain[2].cells)


def test_allow_block_and_truncation():
    snap = board_with(PUZZLE_6)
    blocks = [block_at(snap, r, c) for r, c in [(0, 0), (0, 2), (0, 4), (2, 0), (2, 2)]]
    only_top = find_cage_packings(blocks, 2, allow_block=lambda b: b.row == 0)
    assert len(only_top.solutions) == 3

    capped = find_cage_packings(blocks, 2, max_solutions=4)
    assert capped.truncated
    assert len(capped.solutions) == 4


def test_valid_blocks_in_band():
    snap = board_with(PUZZLE_5, stars=[(0, 0)])
    band = Band('row', 0, 1)
    blocks = get_valid_blocks_in_band(snap, band)
    # block (0,0) holds the star
    assert [b.col for b in blocks] == [1, 2, 3]
    assert all(b.row == 0 for b in blocks)
    assert get_valid_blocks_in_band(snap, Band('row', 2, 2)) == []
    assert not is_block_valid(snap, block_at(snap, 0, 0))
    # (0,1),(0,2) are on the star's row; (1,1) touches it
    assert get_block_candidates(snap, block_at(snap, 0, 1)) == [7]


def test_valid_blocks_in_region():
    snap = board_with(PUZZLE_5)
    # region 2 holds the full block at (1,3)
    assert [(b.row, b.col) for b in get_valid_blocks_in_region(snap, snap.regions[2])] == [(1, 3)]
    assert get_valid_blocks_in_region(snap, snap.regions[0]) == []


def test_max_non_overlapping_blocks():
    snap = board_with(PUZZLE_5)
    band = Band('row', 0, 1)
    blocks = get_valid_blocks_in_band(snap, band)
    best = find_max_non_overlapping_blocks(snap, blocks)
    assert len(best) == 2
    assert not blocks_overlap(best[0], best[1])
    # greedy path
    greedy = find_max_non_overlapping_blocks(snap, blocks, exact_limit=0)
    assert len(greedy) == 2


def test_quota_in_block_and_groups():
    snap = board_with(PUZZLE_5, excluded=[(0, 2), (0, 3), (0, 4), (1, 2), (1, 3)])
    # row 0 candidates: (0,0),(0,1) -> all inside block (0,0)
    assert get_quota_in_block(snap, snap.rows[0], block_at(snap, 0, 0)) == 1
    assert get_quota_in_block(snap, snap.rows[1], block_at(snap, 0, 0)) == 0
    groups = get_groups_intersecting_cells(snap, [0, 1])
    assert [g.group_id for g in groups] == ['row_0', 'column_0', 'column_1', 'region_0']


def test_packing_result_is_frozen():
    snap = board_with(PUZZLE_5)
    result = find_cage_packings([block_at(snap, 0, 0), block_at(snap, 0, 2)], 1)
    assert isinstance(result.solutions, tuple)
    with pytest.raises(FrozenInstanceError):
        result.truncated = True
