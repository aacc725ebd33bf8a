"""Visit budget that bounds the length of a random walk."""

import threading
from typing import Optional

from randomwalk.exceptions import VisitBudgetExceededError
from randomwalk.logging_config import get_logger

logger = get_logger("budget")


class VisitBudget:
    """Monotonic visit counter with an optional ceiling.

    A limit of None means the walk is unbounded. With a limit of n, visits
    1..n succeed and visit n + 1 raises VisitBudgetExceededError.
    """

    def __init__(self, limit: Optional[int] = None):
        self._lock = threading.Lock()
        self._count = 0
        self._limit: Optional[int] = None
        self.set_limit(limit)

    @property
    def count(self) -> int:
        return self._count

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def remaining(self) -> Optional[int]:
        with self._lock:
            if self._limit is None:
                return None
            return max(self._limit - self._count, 0)

    def set_limit(self, limit: Optional[int]) -> None:
        if limit is not None:
            if isinstance(limit, bool) or not isinstance(limit, int):
                raise ValueError(f"Visit limit must be an int or None, got {limit!r}")
            if limit < 0:
                raise ValueError(f"Visit limit must be >= 0, got {limit}")
        with self._lock:
            self._limit = limit

    def record_visit(self) -> int:
        """Count one node visit and return the new count."""
        with self._lock:
            self._count += 1
            count = self._count
            limit = self._limit
        if limit is not None and count > limit:
            logger.debug(
                f"Visited max number ({limit}) of nodes",
                extra={"visit_count": count, "visit_limit": limit},
            )
            raise VisitBudgetExceededError(limit)
        return count
