"""
Cooperative deferred-task scheduler used for debounced draft writes.

Single threaded: the host pumps run_due() from its event loop. Tasks are keyed by id;
scheduling an id that is already pending replaces it, and cancellation is synchronous.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..util.logging import logger


class ManualClock:
    """Monotonic clock advanced by hand (tests and deterministic hosts)."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class DeferredTask:
    task_id: str
    due_at: float
    func: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class DeferredTaskScheduler:
    """Keyed one-shot timers with synchronous, total cancellation."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock or time.monotonic
        self._tasks: Dict[str, DeferredTask] = {}

    def schedule(self, task_id: str, delay: float, func: Callable[[], None]) -> DeferredTask:
        """Schedule func after delay seconds, replacing any pending task with the same id."""
        if not callable(func):
            raise ValueError(f"Task function must be callable: {func}")
        if delay < 0:
            raise ValueError(f"Delay must be >= 0: {delay}")

        self.cancel(task_id)
        task = DeferredTask(task_id=task_id, due_at=self.clock() + delay, func=func)
        self._tasks[task_id] = task
        return task

    def cancel(self, task_id: str) -> bool:
        """Cancel a pending task; returns True if one was pending."""
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self, prefix: str = "") -> int:
        """Cancel every pending task whose id starts with prefix."""
        doomed = [task_id for task_id in self._tasks if task_id.startswith(prefix)]
        for task_id in doomed:
            self.cancel(task_id)
        return len(doomed)

    def pending(self, prefix: str = "") -> List[str]:
        """Ids of pending tasks, optionally filtered by prefix."""
        return [task_id for task_id in self._tasks if task_id.startswith(prefix)]

    def next_due_in(self) -> Optional[float]:
        """Seconds until the earliest pending task, or None when idle."""
        if not self._tasks:
            return None
        earliest = min(task.due_at for task in self._tasks.values())
        return max(0.0, earliest - self.clock())

    def run_due(self) -> int:
        """Run every task whose deadline has passed, in deadline order."""
        now = self.clock()
        due = sorted(
            (task for task in self._tasks.values() if task.due_at <= now),
            key=lambda task: task.due_at
        )

        ran = 0
        for task in due:
            # An earlier task may have cancelled this one
            if task.cancelled or self._tasks.get(task.task_id) is not task:
                continue
            del self._tasks[task.task_id]
            try:
                task.func()
                ran += 1
            except Exception as e:
                # Error isolation - log error but keep draining
                logger.error(f"Deferred task '{task.task_id}' failed: {e}")
        return ran
