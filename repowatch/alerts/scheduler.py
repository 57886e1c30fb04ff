"""
Delayed task scheduler with cancellation by alert key.
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledTask:
    """Pending delayed action"""
    when: float
    seq: int
    key: Hashable = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    description: str = field(default='', compare=False)
    cancelled: bool = field(default=False, compare=False)


class TaskScheduler:
    """
    Single-thread scheduler for many pending delayed actions.

    Tasks live in a heap ordered by due time. Cancelling a key marks its
    tasks and drops them from the index; marked tasks are discarded
    when they reach the top of the heap.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_wait: float = 1.0):
        """
        Initialize task scheduler.

        Args:
            clock: Time source (epoch seconds)
            max_wait: Upper bound on a single idle wait of the worker thread
        """
        self.clock = clock
        self.max_wait = max_wait

        self._heap: List[ScheduledTask] = []
        self._by_key: Dict[Hashable, Set[int]] = {}
        self._tasks: Dict[int, ScheduledTask] = {}
        self._counter = itertools.count()
        self._cond = threading.Condition()

        self.running = False
        self._thread: Optional[threading.Thread] = None

    def schedule(self, when: float, key: Hashable, callback: Callable[[], None],
                 description: str = '') -> ScheduledTask:
        """
        Schedule callback to run at time ``when`` on behalf of ``key``.

        A task due now or in the past still runs on the worker (or the
        next ``run_pending`` call), never inline.
        """
        with self._cond:
            task = ScheduledTask(when, next(self._counter), key, callback, description)
            heapq.heappush(self._heap, task)
            self._tasks[task.seq] = task
            self._by_key.setdefault(key, set()).add(task.seq)
            self._cond.notify()
        return task

    def cancel(self, key: Hashable) -> int:
        """Cancel every pending task for key, returning how many were cancelled"""
        with self._cond:
            seqs = self._by_key.pop(key, set())
            for seq in seqs:
                task = self._tasks.pop(seq, None)
                if task is not None:
                    task.cancelled = True
            # Rebuild once cancelled tasks dominate the heap
            if len(self._heap) > 2 * len(self._tasks) + 64:
                self._heap = [t for t in self._heap if not t.cancelled]
                heapq.heapify(self._heap)
        if seqs:
            logger.debug(f"Cancelled {len(seqs)} pending tasks for {key}")
        return len(seqs)

    def pending(self, key: Optional[Hashable] = None) -> int:
        with self._cond:
            if key is None:
                return len(self._tasks)
            return len(self._by_key.get(key, ()))

    def next_due(self) -> Optional[float]:
        with self._cond:
            self._discard_cancelled()
            return self._heap[0].when if self._heap else None

    def run_pending(self) -> int:
        """
        Run every task that is due, in due-time order.

        Returns:
            Number of tasks executed
        """
        executed = 0
        while True:
            with self._cond:
                self._discard_cancelled()
                if not self._heap or self._heap[0].when > self.clock():
                    return executed
                task = heapq.heappop(self._heap)
                self._forget(task)

            try:
                task.callback()
            except Exception as e:
                logger.error(f"Scheduled task failed ({task.description or task.key}): {e}", exc_info=True)
            executed += 1

    def start(self) -> None:
        """Start the worker thread"""
        if self.running:
            return
        self.running = True
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="alert-scheduler")
        self._thread.start()
        logger.info("Alert scheduler started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker thread; pending tasks are kept but not run"""
        if not self.running:
            return
        with self._cond:
            self.running = False
            self._cond.notify_all()
        if self._thread:
            self._thread.join(timeout=timeout)
        logger.info(f"Alert scheduler stopped ({self.pending()} tasks pending)")

    def clear(self) -> None:
        with self._cond:
            for task in self._tasks.values():
                task.cancelled = True
            self._heap.clear()
            self._tasks.clear()
            self._by_key.clear()

    def _run_loop(self) -> None:
        while self.running:
            self.run_pending()
            with self._cond:
                if not self.running:
                    break
                self._discard_cancelled()
                wait = self.max_wait
                if self._heap:
                    wait = min(wait, max(0.0, self._heap[0].when - self.clock()))
                if wait > 0:
                    self._cond.wait(timeout=wait)

    def _discard_cancelled(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)

    def _forget(self, task: ScheduledTask) -> None:
        self._tasks.pop(task.seq, None)
        seqs = self._by_key.get(task.key)
        if seqs is not None:
            seqs.discard(task.seq)
            if not seqs:
                del self._by_key[task.key]
