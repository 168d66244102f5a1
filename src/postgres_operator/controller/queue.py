"""Delayed, de-duplicating reconcile queue with per-key backoff."""

from __future__ import annotations

import heapq
import itertools
import random
import threading
import time
from typing import Callable, Generic, Hashable, TypeVar

from .. import metrics

K = TypeVar("K", bound=Hashable)


class ReconcileQueue(Generic[K]):
    """Queue of keys waiting to be reconciled.

    - A key is held at most once; adding it again keeps the earliest due time.
    - A key handed out by get() is in flight until done(); adding it meanwhile
      schedules one more pass that starts only after done().
    - add_rate_limited() applies exponential backoff per key until forget().
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        factor: float = 2.0,
        jitter: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.factor = factor
        self.jitter = jitter
        self._clock = clock

        self._cond = threading.Condition()
        self._heap: list[tuple[float, int, K]] = []
        self._seq = itertools.count()
        self._due: dict[K, float] = {}
        self._processing: set[K] = set()
        self._dirty: set[K] = set()
        self._failures: dict[K, int] = {}
        self._shutting_down = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._due) + len(self._dirty)

    def _push(self, key: K, due: float) -> None:
        current = self._due.get(key)
        if current is not None and current <= due:
            return
        self._due[key] = due
        heapq.heappush(self._heap, (due, next(self._seq), key))
        metrics.queue_depth.set(len(self._due) + len(self._dirty))
        self._cond.notify()

    def add(self, key: K, delay: float = 0.0) -> None:
        """Schedule a key to be handed out after delay seconds."""
        with self._cond:
            if self._shutting_down:
                return
            self._push(key, self._clock() + max(delay, 0.0))

    def add_rate_limited(self, key: K) -> float:
        """Schedule a key after its backoff delay and return that delay."""
        with self._cond:
            failures = self._failures.get(key, 0) + 1
            self._failures[key] = failures
        delay = min(self.base_delay * self.factor ** (failures - 1), self.max_delay)
        if self.jitter:
            delay *= 1.0 + random.uniform(-self.jitter, self.jitter)
        self.add(key, delay)
        return delay

    def forget(self, key: K) -> None:
        """Reset the backoff of a key."""
        with self._cond:
            self._failures.pop(key, None)

    def failures(self, key: K) -> int:
        with self._cond:
            return self._failures.get(key, 0)

    def get(self, timeout: float | None = None) -> K | None:
        """Hand out the next due key that is not in flight.

        Returns None on timeout or once the queue is shut down.
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while not self._shutting_down:
                now = self._clock()
                wait: float | None = None
                while self._heap:
                    due, _, key = self._heap[0]
                    if self._due.get(key) != due:
                        # Superseded by an earlier add
                        heapq.heappop(self._heap)
                        continue
                    if due > now:
                        wait = due - now
                        break
                    heapq.heappop(self._heap)
                    del self._due[key]
                    if key in self._processing:
                        self._dirty.add(key)
                        continue
                    self._processing.add(key)
                    metrics.queue_depth.set(len(self._due) + len(self._dirty))
                    return key

                if deadline is not None:
                    remaining = deadline - now
                    if remaining <= 0:
                        return None
                    wait = remaining if wait is None else min(wait, remaining)
                self._cond.wait(wait)
            return None

    def done(self, key: K) -> None:
        """Mark a key as no longer in flight."""
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._dirty.discard(key)
                self._push(key, self._clock())

    def shutdown(self) -> None:
        """Stop handing out keys and wake every waiting worker."""
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()
