"""
Search limits and engine constants.
"""

from dataclasses import dataclass
from typing import Optional


# Node budget for one bounded backtracking search
MAX_BACKTRACK_NODES = 200_000

# Exact max-stars search only below this many unknown cells; capacity bound above
MAX_UNKNOWN_FOR_EXACT = 20

# Exact region placement search only below this many region candidates
MAX_CANDIDATES_FOR_QUOTA = 16

# Quota recursion cap (depth 0 may consult depth-1 quotas, nothing deeper)
MAX_QUOTA_DEPTH = 1

# Expensive quota calls per schema invocation
MAX_QUOTA_CALLS = 400

# Wall-clock budget per schema invocation (milliseconds, None = unlimited)
SCHEMA_TIME_MS = 250

# Suspension point every N search nodes
YIELD_INTERVAL = 500

# Packer enumeration guard
MAX_PACKING_SOLUTIONS = 10_000

# Forced-star propagation steps for exclusivity chains
MAX_CHAIN_STEPS = 64

# Exhaustive max-packing search up to this many blocks, greedy above
MAX_BLOCKS_FOR_EXACT_PACKING = 15


@dataclass(frozen=True)
class SearchLimits:
    """
    Budgets shared by every search in one registry run.

    Override with dataclasses.replace(DEFAULT_LIMITS, ...).
    """
    max_nodes: int = MAX_BACKTRACK_NODES
    max_unknown_for_exact: int = MAX_UNKNOWN_FOR_EXACT
    max_candidates_for_quota: int = MAX_CANDIDATES_FOR_QUOTA
    max_quota_depth: int = MAX_QUOTA_DEPTH
    max_quota_calls: int = MAX_QUOTA_CALLS
    schema_time_ms: Optional[float] = SCHEMA_TIME_MS
    yield_interval: int = YIELD_INTERVAL
    max_packing_solutions: int = MAX_PACKING_SOLUTIONS
    max_chain_steps: int = MAX_CHAIN_STEPS


DEFAULT_LIMITS = SearchLimits()
