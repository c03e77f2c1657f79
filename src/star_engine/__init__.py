"""
Star Engine - schema-based deductions for star-placement puzzles

Board snapshots, a placement oracle, region-band quotas, a 2×2 cage packer
and a priority-ordered registry of deduction schemas.
"""

from .types import (
    CellState, Group, Region, Band, Block, Deduction,
    ExplanationStep, Explanation, SchemaApplication, QuotaBounds, CagePackingResult
)
from .errors import (
    StarEngineError, InvalidBoardError, PlacementError,
    SnapshotMutationError, SearchCancelled
)
from .config import SearchLimits, DEFAULT_LIMITS
from .utils import G, cell_id, coords, log_receipt, application_sha
from .board import BoardSnapshot
from .cache import SNAPSHOT_CACHE, cache_for
from .budget import CancelToken, SearchBudget
from .placement import (
    PlacementValidator,
    is_star_candidate, candidate_mask, assignments_are_valid
)
from .bands import (
    enumerate_row_bands, enumerate_column_bands, enumerate_bands, complement_bands,
    get_regions_intersecting_band, compute_remaining_stars_in_band,
    get_all_cells_of_region_in_band, get_cells_of_region_in_band, region_fully_inside_band,
    compute_max_stars_in_cells, upper_bound_max_stars_in_cells,
    get_region_band_quota, get_region_band_bounds, all_have_known_band_quota
)
from .blocks import (
    get_valid_blocks_in_band, get_valid_blocks_in_region, is_block_valid,
    get_block_candidates, blocks_overlap, find_max_non_overlapping_blocks,
    get_groups_intersecting_cells, get_quota_in_block
)
from .packing import find_cage_packings
from .receipts import explanation_text, verify_application, board_violations, application_record
from .registry import SchemaRegistry, default_registry
from .logger import get_logger, configure_logging

__all__ = [
    # Types
    'CellState', 'Group', 'Region', 'Band', 'Block', 'Deduction',
    'ExplanationStep', 'Explanation', 'SchemaApplication', 'QuotaBounds', 'CagePackingResult',

    # Errors
    'StarEngineError', 'InvalidBoardError', 'PlacementError',
    'SnapshotMutationError', 'SearchCancelled',

    # Config / utils
    'SearchLimits', 'DEFAULT_LIMITS',
    'G', 'cell_id', 'coords', 'log_receipt', 'application_sha',

    # Board
    'BoardSnapshot', 'SNAPSHOT_CACHE', 'cache_for',
    'CancelToken', 'SearchBudget',

    # Oracle
    'PlacementValidator',
    'is_star_candidate', 'candidate_mask', 'assignments_are_valid',

    # Bands / quota
    'enumerate_row_bands', 'enumerate_column_bands', 'enumerate_bands', 'complement_bands',
    'get_regions_intersecting_band', 'compute_remaining_stars_in_band',
    'get_all_cells_of_region_in_band', 'get_cells_of_region_in_band', 'region_fully_inside_band',
    'compute_max_stars_in_cells', 'upper_bound_max_stars_in_cells',
    'get_region_band_quota', 'get_region_band_bounds', 'all_have_known_band_quota',

    # Blocks / packing
    'get_valid_blocks_in_band', 'get_valid_blocks_in_region', 'is_block_valid',
    'get_block_candidates', 'blocks_overlap', 'find_max_non_overlapping_blocks',
    'get_groups_intersecting_cells', 'get_quota_in_block',
    'find_cage_packings',

    # Receipts
    'explanation_text', 'verify_application', 'board_violations', 'application_record',

    # Registry
    'SchemaRegistry', 'default_registry',

    # Logging
    'get_logger', 'configure_logging',
]
