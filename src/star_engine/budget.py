"""
Cooperative search budgets.

Every bounded search asks a NodeCounter for permission before expanding a
node. The counter enforces the per-search node cap and, every
`yield_interval` nodes, checks the cancel token, calls the host's yield hook
(suspension point) and checks the schema's wall-clock deadline.
"""

import time
from typing import Callable, Optional

from .config import SearchLimits, DEFAULT_LIMITS
from .errors import SearchCancelled


class CancelToken:
    """Abort signal raised by the caller (e.g. new user input)."""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class SearchBudget:
    """
    Shared budget for one registry run.

    Args:
        limits: SearchLimits
        cancel: optional CancelToken
        yield_hook: optional zero-arg callable invoked at suspension points
        clock: time source in seconds
    """

    def __init__(self,
                 limits: SearchLimits = DEFAULT_LIMITS,
                 cancel: Optional[CancelToken] = None,
                 yield_hook: Optional[Callable[[], None]] = None,
                 clock: Callable[[], float] = time.perf_counter):
        self.limits = limits
        self.cancel = cancel
        self.yield_hook = yield_hook
        self.clock = clock
        self.deadline: Optional[float] = None
        self.quota_calls = 0
        self.refused_calls = 0
        self.nodes_total = 0
        self._expired = False

    @classmethod
    def unlimited(cls, limits: SearchLimits = DEFAULT_LIMITS) -> 'SearchBudget':
        """Budget with node caps only (no deadline, no cancellation)."""
        return cls(limits)

    def start_schema(self):
        """Reset the wall-clock deadline and quota-call count for the next schema."""
        ms = self.limits.schema_time_ms
        self.deadline = None if ms is None else self.clock() + ms / 1000.0
        self.quota_calls = 0
        self._expired = False

    @property
    def expired(self) -> bool:
        if not self._expired and self.deadline is not None and self.clock() > self.deadline:
            self._expired = True
        return self._expired

    def check(self):
        """Raise SearchCancelled if the caller cancelled."""
        if self.cancel is not None and self.cancel.cancelled:
            raise SearchCancelled("search cancelled by caller")

    def suspend(self):
        """Suspension point: check cancel, yield to host, check cancel again."""
        self.check()
        if self.yield_hook is not None:
            self.yield_hook()
            self.check()

    def take_quota_call(self) -> bool:
        """Reserve one expensive quota call; False once the per-schema cap is hit."""
        if self.quota_calls >= self.limits.max_quota_calls:
            self.refused_calls += 1
            return False
        self.quota_calls += 1
        return True

    def nodes(self, max_nodes: Optional[int] = None) -> 'NodeCounter':
        return NodeCounter(self, self.limits.max_nodes if max_nodes is None else max_nodes)


class NodeCounter:
    """Node budget of one backtracking search."""

    def __init__(self, budget: SearchBudget, max_nodes: int):
        self.budget = budget
        self.max_nodes = max_nodes
        self.interval = max(1, budget.limits.yield_interval)
        self.count = 0
        self.aborted = False

    def tick(self) -> bool:
        """Count one node; False means stop (budget exhausted)."""
        if self.aborted:
            return False
        self.count += 1
        self.budget.nodes_total += 1
        if self.count > self.max_nodes:
            self.aborted = True
            return False
        if self.count % self.interval == 0:
            self.budget.suspend()
            if self.budget.expired:
                self.aborted = True
                return False
        return True
