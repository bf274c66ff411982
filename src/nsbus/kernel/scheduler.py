"""Schedulers used for deferred dispatch."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Optional

from nsbus.kernel.types import Task

DEFAULT_DEFERRED_DELAY_SEC = 0.004


class TaskQueue:
    """FIFO macrotask queue drained explicitly by the embedding application."""

    def __init__(self) -> None:
        self._tasks: Deque[Task] = deque()
        self._draining = False

    def __len__(self) -> int:
        return len(self._tasks)

    def submit(self, task: Task) -> None:
        self._tasks.append(task)

    def run_pending(self) -> int:
        """Run queued tasks, including ones queued while draining.

        Calls made from inside a running task return 0 and leave the work to the
        outer drain.
        """
        if self._draining:
            return 0
        ran = 0
        self._draining = True
        try:
            while self._tasks:
                task = self._tasks.popleft()
                task()
                ran += 1
        finally:
            self._draining = False
        return ran


class AsyncioScheduler:
    """Schedules each task as a later turn of an asyncio event loop.

    Timer handles with equal deadlines have no ordering guarantee, so every timer
    pops the oldest task from a local FIFO instead of carrying its own task.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        delay: float = DEFAULT_DEFERRED_DELAY_SEC,
    ) -> None:
        self._loop = loop
        self._delay = max(0.0, float(delay))
        self._tasks: Deque[Task] = deque()

    def __len__(self) -> int:
        return len(self._tasks)

    def submit(self, task: Task) -> None:
        loop = self._loop or asyncio.get_running_loop()
        self._tasks.append(task)
        loop.call_later(self._delay, self._run_next)

    def _run_next(self) -> None:
        if self._tasks:
            self._tasks.popleft()()
