"""
Schema registry.

Holds schemas ordered by (priority, registration order) and runs them
against a snapshot under one shared SearchBudget.
"""

import time
from typing import Callable, Iterator, List, Optional, Tuple

from .types import SchemaApplication
from .config import SearchLimits, DEFAULT_LIMITS
from .budget import CancelToken, SearchBudget
from .errors import SearchCancelled
from .receipts import application_record
from .utils import log_receipt
from .logger import get_logger
from .schemas.base import Schema, SchemaContext
from .schemas.counting import CANDIDATE_DEFICIT_Schema, PARTITIONED_CANDIDATES_Schema
from .schemas.band_budget import BAND_REGION_BUDGET_Schema, REGION_BAND_PARTITION_Schema
from .schemas.exclusivity import EXCLUSIVE_REGIONS_IN_BAND_Schema, EXCLUSIVE_LINES_IN_REGIONS_Schema
from .schemas.cages import (BAND_EXACT_CAGES_Schema, CAGES_REGION_QUOTA_Schema,
                            REGION_LOCAL_CAGES_Schema, CAGE_EXCLUSION_Schema)
from .schemas.intersections import (LINE_REGION_INTERSECTION_Schema, REGION_BAND_INTERSECTION_Schema,
                                    REGION_BAND_SQUEEZE_Schema)
from .schemas.chains import REGION_PAIR_EXCLUSION_Schema, EXCLUSIVITY_CHAINS_Schema

log = get_logger("registry")


class SchemaRegistry:
    """
    Ordered schema collection.

    Args:
        limits: SearchLimits used for every run
    """

    def __init__(self, limits: SearchLimits = DEFAULT_LIMITS):
        self.limits = limits
        self._entries: List[Tuple[int, int, Schema]] = []

    def register(self, schema: Schema) -> Schema:
        if any(s.schema_id == schema.schema_id for _, _, s in self._entries):
            raise ValueError(f"Schema {schema.schema_id} already registered")
        self._entries.append((schema.priority, len(self._entries), schema))
        return schema

    @property
    def schemas(self) -> List[Schema]:
        return [s for _, _, s in sorted(self._entries, key=lambda e: (e[0], e[1]))]

    def get(self, schema_id: str) -> Schema:
        for _, _, s in self._entries:
            if s.schema_id == schema_id:
                return s
        raise KeyError(schema_id)

    def __len__(self) -> int:
        return len(self._entries)

    def iter_run(self,
                 snapshot,
                 cancel: Optional[CancelToken] = None,
                 yield_hook: Optional[Callable[[], None]] = None,
                 budget: Optional[SearchBudget] = None
                 ) -> Iterator[Tuple[Schema, List[SchemaApplication]]]:
        """
        Run schemas one at a time, yielding (schema, applications).

        Each yield is a suspension point. Raises SearchCancelled when the
        cancel token fires; run() and find_first() turn that into [].
        """
        if budget is None:
            budget = SearchBudget(self.limits, cancel, yield_hook)
        ctx = SchemaContext(snapshot, self.limits, budget)

        for schema in self.schemas:
            budget.start_schema()
            budget.check()
            t0 = time.perf_counter()
            apps = schema.apply(ctx)
            elapsed = (time.perf_counter() - t0) * 1000
            if budget.expired:
                log.warning(f"{schema.schema_id}: budget exhausted after {elapsed:.1f}ms, "
                            f"keeping {len(apps)} application(s)")
            log.debug(f"{schema.schema_id}: {len(apps)} application(s) in {elapsed:.1f}ms "
                      f"(snapshot v{snapshot.version})")
            yield schema, apps
            budget.suspend()

    def run(self,
            snapshot,
            cancel: Optional[CancelToken] = None,
            yield_hook: Optional[Callable[[], None]] = None,
            stop_at_first: bool = False,
            receipts_dir: Optional[str] = None) -> List[SchemaApplication]:
        """
        Collect applications from every schema in priority order.

        Args:
            snapshot: BoardSnapshot
            cancel: optional CancelToken; a cancelled run returns []
            yield_hook: called at suspension points
            stop_at_first: stop after the first schema yielding a deduction
            receipts_dir: when set, append receipts for applications with deductions

        Returns:
            List of SchemaApplication
        """
        results: List[SchemaApplication] = []
        try:
            for _, apps in self.iter_run(snapshot, cancel, yield_hook):
                results.extend(apps)
                if stop_at_first and any(a.deductions for a in apps):
                    break
        except SearchCancelled:
            log.info(f"run cancelled on snapshot v{snapshot.version}; discarding results")
            return []
        if cancel is not None and cancel.cancelled:
            log.info(f"run cancelled on snapshot v{snapshot.version}; discarding results")
            return []

        if receipts_dir is not None:
            for app in results:
                if app.deductions:
                    log_receipt(application_record(app, snapshot), receipts_dir)
        return results

    def find_first(self,
                   snapshot,
                   cancel: Optional[CancelToken] = None,
                   yield_hook: Optional[Callable[[], None]] = None) -> Optional[SchemaApplication]:
        """First application (in priority order) carrying at least one deduction."""
        for app in self.run(snapshot, cancel, yield_hook, stop_at_first=True):
            if app.deductions:
                return app
        return None


def default_registry(limits: SearchLimits = DEFAULT_LIMITS) -> SchemaRegistry:
    """Registry with every schema, in the fixed registration order."""
    reg = SchemaRegistry(limits)
    reg.register(CANDIDATE_DEFICIT_Schema("E1_candidate_deficit", "core", 1))
    reg.register(PARTITIONED_CANDIDATES_Schema("E2_partitioned_candidates", "core", 1))
    reg.register(BAND_REGION_BUDGET_Schema("A1_row_band_region_budget", "band_budget", 2, 'row'))
    reg.register(BAND_REGION_BUDGET_Schema("A2_col_band_region_budget", "band_budget", 2, 'col'))
    reg.register(REGION_BAND_PARTITION_Schema("A3_region_row_band_partition", "band_budget", 2, 'row'))
    reg.register(REGION_BAND_PARTITION_Schema("A4_region_col_band_partition", "band_budget", 2, 'col'))
    reg.register(EXCLUSIVE_REGIONS_IN_BAND_Schema("B1_exclusive_regions_row_band", "exclusivity", 3, 'row'))
    reg.register(EXCLUSIVE_REGIONS_IN_BAND_Schema("B2_exclusive_regions_col_band", "exclusivity", 3, 'col'))
    reg.register(EXCLUSIVE_LINES_IN_REGIONS_Schema("B3_exclusive_rows_in_region", "exclusivity", 3, 'row'))
    reg.register(EXCLUSIVE_LINES_IN_REGIONS_Schema("B4_exclusive_cols_in_region", "exclusivity", 3, 'col'))
    reg.register(BAND_EXACT_CAGES_Schema("C1_band_exact_cages", "cage2x2", 4))
    reg.register(REGION_BAND_SQUEEZE_Schema("D3_region_band_squeeze", "intersection", 4))
    reg.register(CAGES_REGION_QUOTA_Schema("C2_cages_region_quota", "cage2x2", 4))
    reg.register(REGION_LOCAL_CAGES_Schema("C3_region_local_cages", "cage2x2", 5))
    reg.register(CAGE_EXCLUSION_Schema("C4_cage_exclusion", "cage2x2", 5))
    reg.register(LINE_REGION_INTERSECTION_Schema("D1_line_region_intersection", "intersection", 6))
    reg.register(REGION_BAND_INTERSECTION_Schema("D2_region_band_intersection", "intersection", 6))
    reg.register(REGION_PAIR_EXCLUSION_Schema("F1_region_pair_exclusion", "chain", 7))
    reg.register(EXCLUSIVITY_CHAINS_Schema("F2_exclusivity_chains", "chain", 7))
    return reg
