"""
Schema tests: soundness against brute force, targeted triggers, and the
exact-cage band scenario.
"""

from dataclasses import replace

from boards import (PUZZLES, PUZZLE_5, PUZZLE_5B, SOLUTION_5, board_with, partial_states,
                    agreed_cells)

from star_engine import (
    Band, BoardSnapshot, CellState, DEFAULT_LIMITS, SearchBudget, default_registry,
    explanation_text, verify_application
)
from star_engine.bands import region_placement_band_range
from star_engine.schemas import SchemaContext, exact_cage_bands

LIMITS = replace(DEFAULT_LIMITS, schema_time_ms=None)


def run_schema(schema_id, snapshot):
    schema = default_registry(LIMITS).get(schema_id)
    ctx = SchemaContext(snapshot, LIMITS, SearchBudget(LIMITS))
    ctx.budget.start_schema()
    return schema.apply(ctx)


def assert_sound(snapshot, apps, agreed=None):
    always, never = agreed if agreed is not None else agreed_cells(snapshot)
    for app in apps:
        for d in app.deductions:
            if d.value == CellState.STAR:
                assert d.cell in always, f"{app.schema_id} wrongly stars {d.cell}\n{explanation_text(app)}"
            else:
                assert d.cell in never, f"{app.schema_id} wrongly excludes {d.cell}\n{explanation_text(app)}"


# ==============================================================================
# Soundness
# ==============================================================================

def test_every_schema_is_sound():
    registry = default_registry(LIMITS)
    for regions, solution in PUZZLES:
        for snap in partial_states(regions, solution):
            agreed = agreed_cells(snap)
            for _, apps in registry.iter_run(snap):
                assert_sound(snap, apps, agreed)


def test_schemas_are_read_only():
    snap = board_with(PUZZLE_5, stars=SOLUTION_5[:1])
    key = snap.key
    default_registry(LIMITS).run(snap)
    assert snap.key == key
    assert snap.star_cells() == [0]


def test_applications_verify():
    for regions, solution in PUZZLES:
        snap = board_with(regions, stars=solution[:1])
        for app in default_registry(LIMITS).run(snap):
            assert verify_application(snap, app), explanation_text(app)


def test_hint_loop_follows_solution():
    registry = default_registry(LIMITS)
    for regions, solution in PUZZLES:
        snap = board_with(regions)
        n = snap.size
        sol = {r * n + c for r, c in solution}
        for _ in range(4 * n * n):
            app = registry.find_first(snap)
            if app is None:
                break
            for d in app.deductions:
                assert (d.value == CellState.STAR) == (d.cell in sol)
            snap = snap.apply(app.deductions)
        assert set(snap.star_cells()) <= sol


# ==============================================================================
# Targeted triggers
# ==============================================================================

def test_candidate_deficit_forces_last_candidate():
    snap = board_with(PUZZLE_5, excluded=[(0, 1), (0, 2), (0, 3), (0, 4)])
    apps = run_schema("E1_candidate_deficit", snap)
    row0 = [a for a in apps if a.params["group"] == "row_0"]
    assert row0 and row0[0].forced_stars == [0]


def test_candidate_deficit_clears_full_group():
    snap = board_with(PUZZLE_5, stars=[(0, 0)])
    apps = run_schema("E1_candidate_deficit", snap)
    row0 = [a for a in apps if a.params["group"] == "row_0"][0]
    assert row0.forced_excluded == [1, 2, 3, 4]
    assert row0.forced_stars == []


def test_exclusive_regions_own_band():
    # regions 0 and 1 fill rows 0-1 apart from (1,4)
    snap = board_with(PUZZLE_5B)
    apps = run_schema("B1_exclusive_regions_row_band", snap)
    band = [a for a in apps if a.params["band"] == "r:0-1"]
    assert band and band[0].forced_excluded == [9]
    assert_sound(snap, apps)


def test_line_region_intersection():
    # row 0 candidates all in region 1 -> rest of region 1 excluded
    snap = board_with(PUZZLE_5, excluded=[(0, 0), (0, 1), (0, 4)])
    apps = run_schema("D1_line_region_intersection", snap)
    hit = [a for a in apps if a.params["line"] == "row_0" and a.params["region"] == 1]
    assert hit
    assert hit[0].forced_excluded == [6, 7]
    assert_sound(snap, apps)


def test_exclusivity_chain_rejects_illegal_cells():
    snap = board_with(PUZZLE_5, stars=[(0, 0)])
    apps = run_schema("F2_exclusivity_chains", snap)
    illegal = [a for a in apps if a.params["kind"] == "illegal_now"]
    assert illegal
    assert 6 in illegal[0].forced_excluded
    assert_sound(snap, apps)


# ==============================================================================
# Exact-cage band scenario
# ==============================================================================

def cage_scenario() -> BoardSnapshot:
    """
    Rows 0-3: region X = row 0 plus columns 0-1, region Y = columns 2-4.
    Row 4 is region Z. Quotas X=2, Y=2, Z=1, one star per line.
    Rows 0-3 are excluded except the four corners (0,0),(0,4),(3,0),(3,4).
    The board has no completion; only the counting is checked on it.
    """
    regions = [
        [0, 0, 0, 0, 0],
        [0, 0, 1, 1, 1],
        [0, 0, 1, 1, 1],
        [0, 0, 1, 1, 1],
        [2, 2, 2, 2, 2],
    ]
    x, u = int(CellState.EXCLUDED), int(CellState.UNKNOWN)
    states = [
        [u, x, x, x, u],
        [x, x, x, x, x],
        [x, x, x, x, x],
        [u, x, x, x, u],
        [u, u, u, u, u],
    ]
    return BoardSnapshot(regions, states, stars_per_line=1, region_quotas={0: 2, 1: 2, 2: 1})


def test_exact_cages_pigeonhole():
    snap = cage_scenario()
    apps = run_schema("C1_band_exact_cages", snap)
    band = [a for a in apps if a.params["band"] == "r:0-3"]
    assert len(band) == 1
    app = band[0]
    assert app.deductions == ()
    assert app.params["remaining_stars"] == 4
    assert app.params["solution_count"] >= 1
    assert app.params["rows"] == [0, 1, 2, 3]
    assert len(app.params["blocks"]) == 4


def test_cages_region_quota_excludes_rest():
    snap = cage_scenario()
    apps = run_schema("C2_cages_region_quota", snap)
    hit = [a for a in apps if a.params["band"] == "r:0-3" and a.params["region"] == 0]
    assert len(hit) == 1
    assert hit[0].forced_excluded == [4]
    assert len(hit[0].params["blocks"]) == 2


def test_cage_exclusion_single_candidate_block():
    snap = cage_scenario()
    apps = run_schema("C4_cage_exclusion", snap)
    stars = {c for a in apps if a.params["band"] == "r:0-3" for c in a.forced_stars}
    # every cage in rows 0-3 has exactly one candidate
    assert stars == {0, 4, 15, 19}


def cage_board() -> BoardSnapshot:
    """
    6x6, one star per line. Region 0 is row 0 plus (1,0),(1,1); region 1 is
    the rest of row 1; rows 2-5 are one region each. In rows 0-1 only
    (0,0), (0,5) and (1,5) are open, so blocks (0,0) and (0,4) are the
    only valid cages there.
    """
    regions = [
        [0, 0, 0, 0, 0, 0],
        [0, 0, 1, 1, 1, 1],
        [2, 2, 2, 2, 2, 2],
        [3, 3, 3, 3, 3, 3],
        [4, 4, 4, 4, 4, 4],
        [5, 5, 5, 5, 5, 5],
    ]
    excluded = [(0, 1), (0, 2), (0, 3), (0, 4), (1, 0), (1, 1), (1, 2), (1, 3), (1, 4)]
    return board_with(regions, excluded=excluded)


def test_cage_board_has_completions():
    always, never = agreed_cells(cage_board())
    assert {0, 11} <= always
    assert 5 in never


def test_exact_cages_on_open_board():
    snap = cage_board()
    apps = run_schema("C1_band_exact_cages", snap)
    band = [a for a in apps if a.params["band"] == "r:0-1"]
    assert len(band) == 1
    assert band[0].params["blocks"] == [0, 4]
    assert band[0].params["solution_count"] == 1


def test_cages_region_quota_is_sound():
    snap = cage_board()
    apps = run_schema("C2_cages_region_quota", snap)
    hit = [a for a in apps if a.params["band"] == "r:0-1" and a.params["region"] == 0]
    assert len(hit) == 1
    assert hit[0].forced_excluded == [5]
    assert_sound(snap, apps)


def test_cage_exclusion_is_sound():
    snap = cage_board()
    apps = run_schema("C4_cage_exclusion", snap)
    stars = {c for a in apps if a.params["band"] == "r:0-1" for c in a.forced_stars}
    assert stars == {0}
    assert_sound(snap, apps)


def test_exact_cage_bands_cached_per_limits():
    snap = cage_board()
    tiny = replace(LIMITS, max_nodes=1)
    ctx = SchemaContext(snap, tiny, SearchBudget(tiny))
    ctx.budget.start_schema()
    # the packing search is cut short, so the band is not reported
    assert "r:0-1" not in [band.key for band, _, _, _ in exact_cage_bands(ctx)]

    ctx = SchemaContext(snap, LIMITS, SearchBudget(LIMITS))
    ctx.budget.start_schema()
    assert "r:0-1" in [band.key for band, _, _, _ in exact_cage_bands(ctx)]


# ==============================================================================
# Region-local cages
# ==============================================================================

LOCAL_CAGE_REGIONS = [
    [0, 0, 0, 0, 0],
    [0, 0, 1, 0, 0],
    [2, 2, 1, 3, 3],
    [2, 2, 1, 3, 3],
    [2, 2, 1, 3, 3],
]


def local_cage_board(excluded=()) -> BoardSnapshot:
    """Region 0 covers rows 0-1 except (1,2) and needs two stars."""
    return board_with(LOCAL_CAGE_REGIONS, excluded=excluded, region_quotas={0: 2})


def test_local_cages_exclude_unpackable_cell():
    # (0,2) sits outside both cages, and every other region 0 cell shares
    # its row or touches it
    snap = local_cage_board(excluded=[(1, 0), (1, 4)])
    apps = run_schema("C3_region_local_cages", snap)
    hit = [a for a in apps if a.params["band"] == "r:0-1" and a.params["region"] == 0]
    assert len(hit) == 1
    assert hit[0].params["k"] == 2
    assert hit[0].forced_excluded == [2]
    assert_sound(snap, apps)


def test_local_cages_keep_searchable_cell():
    # packer misses (0,2) but (0,2) + (1,0) is a legal region placement
    snap = local_cage_board()
    region = snap.regions[0]
    band = Band('row', 0, 1)
    _, hi, aborted = region_placement_band_range(snap, region, band, forced=(2,))
    assert (hi, aborted) == (2, False)

    apps = run_schema("C3_region_local_cages", snap)
    for app in apps:
        if app.params["region"] == 0:
            assert 2 not in app.forced_excluded
    assert_sound(snap, apps)
