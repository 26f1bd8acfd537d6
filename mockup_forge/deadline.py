"""Per-job deadline enforcement.

A job gets a fixed time budget. Every external call checks the budget
before it starts and is given an HTTP timeout no larger than what is left,
so a hung catalog or CDN call cannot hold a worker slot indefinitely.
Running out raises JobTimeoutError, which is distinct from transport errors.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from mockup_forge.errors import JobTimeoutError

logger = logging.getLogger(__name__)

# Never hand httpx a zero/negative timeout
_MIN_TIMEOUT = 0.05


@dataclass
class JobDeadline:
    """Time budget for one job, measured on a monotonic clock."""

    budget_seconds: float
    clock: Callable[[], float] = time.monotonic
    started_at: float = field(default=-1.0)

    def __post_init__(self) -> None:
        if self.started_at < 0:
            self.started_at = self.clock()

    @property
    def elapsed(self) -> float:
        return self.clock() - self.started_at

    @property
    def remaining(self) -> float:
        return self.budget_seconds - self.elapsed

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    def check(self, operation: str) -> None:
        """Raise JobTimeoutError if the budget is spent."""
        if self.expired:
            logger.warning(
                "Job deadline exceeded before %s (%.1fs of %.1fs)",
                operation,
                self.elapsed,
                self.budget_seconds,
            )
            raise JobTimeoutError(operation, self.elapsed, self.budget_seconds)

    def timeout_for(self, default: float) -> float:
        """HTTP timeout for the next call: the default, capped by what is left."""
        return max(_MIN_TIMEOUT, min(default, self.remaining))

    def report(self) -> dict:
        return {
            "elapsed_seconds": round(self.elapsed, 1),
            "budget_seconds": self.budget_seconds,
        }
