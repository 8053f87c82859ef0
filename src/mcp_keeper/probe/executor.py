"""Run independent async jobs with a ceiling on how many are in flight."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Hashable, Mapping, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

DEFAULT_CONCURRENCY = 5


@dataclass
class TaskOutcome(Generic[T]):
    """Result or exception of one job, keyed by the job's identity."""
    key: Hashable
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    tasks: Mapping[K, Callable[[], Awaitable[T]]],
    limit: int = DEFAULT_CONCURRENCY,
) -> Dict[K, TaskOutcome[T]]:
    """
    Run every job in ``tasks`` with at most ``limit`` running at once.

    Jobs start in mapping order; as one finishes the next queued job starts.
    An exception from one job is captured in its outcome and does not cancel
    the others.

    Returns:
        Outcomes keyed like ``tasks``, in the same order.
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    queue = deque(tasks.items())
    outcomes: Dict[K, TaskOutcome[T]] = {}

    async def worker() -> None:
        while queue:
            key, factory = queue.popleft()
            try:
                outcomes[key] = TaskOutcome(key=key, value=await factory())
            except Exception as e:
                logger.debug(f"Task {key!r} failed: {e}")
                outcomes[key] = TaskOutcome(key=key, error=e)

    workers = min(limit, len(queue))
    await asyncio.gather(*(worker() for _ in range(workers)))

    return {key: outcomes[key] for key in tasks}
