"""Worker pool that drains the reconcile queue."""

from __future__ import annotations

import contextvars
import logging
import threading
from typing import Protocol

from .. import metrics
from ..models import ObjectKey, ReconcileResult
from ..utils.context import new_correlation_id, with_correlation_id
from ..utils.errors import ReconcileAborted, sanitize_exception
from .queue import ReconcileQueue

logger = logging.getLogger(__name__)

_manager: ControllerManager | None = None


class Reconciler(Protocol):
    """Anything that can run one reconcile pass for a key."""

    def reconcile(self, key: ObjectKey, stopped: threading.Event | None = None) -> ReconcileResult:
        ...


def set_manager(manager: ControllerManager | None) -> None:
    """Register the running manager for the event handlers."""
    global _manager
    _manager = manager


def get_manager() -> ControllerManager:
    """Get the running manager.

    Raises:
        RuntimeError: If the operator has not started one
    """
    if _manager is None:
        raise RuntimeError("Controller manager is not running")
    return _manager


class ControllerManager:
    """Runs reconcile passes on worker threads, one in flight per key."""

    def __init__(
        self,
        reconciler: Reconciler,
        queue: ReconcileQueue[ObjectKey] | None = None,
        worker_count: int = 4,
        poll_interval: float = 1.0,
    ) -> None:
        self.reconciler = reconciler
        self.queue: ReconcileQueue[ObjectKey] = queue if queue is not None else ReconcileQueue()
        self.worker_count = worker_count
        self.poll_interval = poll_interval
        self.stopped = threading.Event()
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        """Start the worker threads.

        Each thread runs in a copy of the caller's context so the kopf
        context variables needed to post Kubernetes events are visible.
        """
        for index in range(self.worker_count):
            ctx = contextvars.copy_context()
            thread = threading.Thread(
                target=ctx.run,
                args=(self._run_worker,),
                name=f"reconcile-worker-{index}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info(f"Started {self.worker_count} reconcile workers")

    def stop(self, timeout: float | None = 10.0) -> None:
        """Signal cancellation, stop handing out keys and join the workers."""
        self.stopped.set()
        self.queue.shutdown()
        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()
        logger.info("Stopped reconcile workers")

    def healthy(self) -> bool:
        """Check that every worker thread is alive."""
        return bool(self._threads) and all(thread.is_alive() for thread in self._threads)

    def enqueue(self, key: ObjectKey, delay: float = 0.0) -> None:
        """Request a reconcile pass for a key."""
        self.queue.add(key, delay)

    def _run_worker(self) -> None:
        while not self.stopped.is_set():
            key = self.queue.get(timeout=self.poll_interval)
            if key is None:
                continue
            try:
                self.process(key)
            finally:
                self.queue.done(key)

    def process(self, key: ObjectKey) -> None:
        """Run one reconcile pass and schedule the follow-up."""
        with with_correlation_id(new_correlation_id()):
            try:
                result = self.reconciler.reconcile(key, stopped=self.stopped)
            except ReconcileAborted:
                logger.info(f"Reconcile of {key} aborted by shutdown")
                return
            except Exception as e:
                delay = self.queue.add_rate_limited(key)
                metrics.requeue_total.labels(reason="error").inc()
                logger.warning(
                    f"Reconcile of {key} failed ({type(e).__name__}: {sanitize_exception(e)}), "
                    f"retrying in {delay:.1f}s"
                )
                return

        self.queue.forget(key)
        if result.requeue_after is not None:
            metrics.requeue_total.labels(reason=result.reason).inc()
            self.queue.add(key, result.requeue_after)
