"""
Schema families.

E: core counting, A: band budget, B: exclusivity, C: 2×2 cages,
D: intersections, F: chains.
"""

from .base import Schema, SchemaContext, make_application
from .counting import CANDIDATE_DEFICIT_Schema, PARTITIONED_CANDIDATES_Schema
from .band_budget import BAND_REGION_BUDGET_Schema, REGION_BAND_PARTITION_Schema
from .exclusivity import EXCLUSIVE_REGIONS_IN_BAND_Schema, EXCLUSIVE_LINES_IN_REGIONS_Schema
from .cages import (
    BAND_EXACT_CAGES_Schema, CAGES_REGION_QUOTA_Schema,
    REGION_LOCAL_CAGES_Schema, CAGE_EXCLUSION_Schema,
    exact_cage_bands
)
from .intersections import (
    LINE_REGION_INTERSECTION_Schema, REGION_BAND_INTERSECTION_Schema,
    REGION_BAND_SQUEEZE_Schema
)
from .chains import REGION_PAIR_EXCLUSION_Schema, EXCLUSIVITY_CHAINS_Schema

__all__ = [
    'Schema', 'SchemaContext', 'make_application',
    'CANDIDATE_DEFICIT_Schema', 'PARTITIONED_CANDIDATES_Schema',
    'BAND_REGION_BUDGET_Schema', 'REGION_BAND_PARTITION_Schema',
    'EXCLUSIVE_REGIONS_IN_BAND_Schema', 'EXCLUSIVE_LINES_IN_REGIONS_Schema',
    'BAND_EXACT_CAGES_Schema', 'CAGES_REGION_QUOTA_Schema',
    'REGION_LOCAL_CAGES_Schema', 'CAGE_EXCLUSION_Schema', 'exact_cage_bands',
    'LINE_REGION_INTERSECTION_Schema', 'REGION_BAND_INTERSECTION_Schema',
    'REGION_BAND_SQUEEZE_Schema',
    'REGION_PAIR_EXCLUSION_Schema', 'EXCLUSIVITY_CHAINS_Schema',
]
