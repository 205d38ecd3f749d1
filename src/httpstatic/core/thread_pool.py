"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads fed from one queue. The server uses it twice:

    1. CONNECTIONS - every accepted connection becomes one task; the worker
       runs that connection's keep-alive loop until it closes. The queue is
       bounded, so a flood of clients is refused (503) instead of piling up.

    2. PRELOADING  - the in-memory engine fans the file reads of one
       directory level out over a short-lived, unbounded pool and waits
       for the level to drain (join) before listing the next one.

=============================================================================
LIFECYCLE
=============================================================================

    start()                min_workers threads block on the queue
       │
    submit(func, args)     ──►  [task][task][task]  ──►  worker
       │                        all workers busy and tasks waiting?
       │                        → one more worker, up to max_workers
    join()                 every submitted task has finished
       │
    shutdown()             optionally drain, then one None per worker
                           (poison pill) and the threads exit

A task that raises is logged and counted. It never takes its worker down.

=============================================================================
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)

    def __call__(self) -> Any:
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """Daemon thread that runs tasks from its pool's queue until told to stop."""

    def __init__(self, pool: "ThreadPool", worker_id: int):
        super().__init__(name=f"httpstatic-worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self._stop_requested = threading.Event()

    def run(self):
        tasks = self.pool._tasks

        while not self._stop_requested.is_set():
            try:
                task = tasks.get(timeout=self.pool.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self.pool._run(task)
            finally:
                tasks.task_done()

        logger.debug(f"{self.name} exited")

    def stop(self):
        self._stop_requested.set()


class ThreadPool:
    """
    Thread pool with a bounded queue and on-demand growth.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=8)
        pool.start()
        if not pool.submit(handle_connection, args=(conn,), block=False):
            ...                            # queue full: refuse the client
        pool.shutdown(wait=True, timeout=10.0)

        with ThreadPool(4, 4, queue_size=0) as pool:
            for path in paths:
                pool.submit(read_file, args=(path,))
            pool.join()

    Args:
        min_workers: Workers created by start().
        max_workers: Upper bound when growing under load.
        queue_size: Bound on waiting tasks (0 = unbounded).
        idle_timeout: How often an idle worker re-checks for stop().
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0,
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(f"Invalid worker bounds: min={min_workers}, max={max_workers}")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._tasks: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []

        # Guards the worker list and the counters below
        self._lock = threading.Lock()
        self._busy = 0
        self._completed = 0
        self._failed = 0

        self._started = False
        self._stopping = False

    def __enter__(self) -> "ThreadPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=exc_type is None)
        return False

    def start(self):
        """Create the minimum number of workers."""
        if self._started:
            return

        with self._lock:
            for _ in range(self.min_workers):
                self._spawn()

        self._started = True
        self._stopping = False
        logger.debug(f"Thread pool started with {self.min_workers} workers (max {self.max_workers})")

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self, worker_id=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def _run(self, task: Task):
        with self._lock:
            self._busy += 1

        try:
            task()
        except Exception as e:
            logger.exception(f"Task {getattr(task.func, '__name__', task.func)!s} failed: {e}")
            with self._lock:
                self._failed += 1
        else:
            with self._lock:
                self._completed += 1
        finally:
            with self._lock:
                self._busy -= 1

    # =========================================================================
    # SUBMITTING
    # =========================================================================

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs).

        Args:
            block: Wait for room in a full queue (up to queue_timeout).

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._stopping:
            raise RuntimeError("Thread pool is not running")

        try:
            self._tasks.put(Task(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        """One more worker when every worker is busy and work is waiting."""
        with self._lock:
            if (
                self._busy >= len(self._workers)
                and len(self._workers) < self.max_workers
                and not self._tasks.empty()
            ):
                worker = self._spawn()
                logger.debug(f"All workers busy, added {worker.name} ({len(self._workers)} total)")

    # =========================================================================
    # WAITING AND STOPPING
    # =========================================================================

    def join(self):
        """Block until every submitted task has finished."""
        self._tasks.join()

    def _wait_drained(self, timeout: Optional[float]) -> bool:
        done = self._tasks.all_tasks_done
        with done:
            return done.wait_for(lambda: self._tasks.unfinished_tasks == 0, timeout)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool. New submissions fail from here on.

        Args:
            wait: Let queued and running tasks finish first.
            timeout: Upper bound on that wait (None = no bound).
        """
        if not self._started:
            return

        self._stopping = True

        if wait and not self._wait_drained(timeout):
            logger.warning(f"Thread pool still busy after {timeout}s, stopping anyway")

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.stop()
            try:
                self._tasks.put_nowait(None)
            except queue.Full:
                pass  # stop() is noticed at the next idle_timeout

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.debug("Thread pool stopped")

    @property
    def stats(self) -> dict:
        """Worker and task counters for logging."""
        with self._lock:
            return {
                "workers": {"total": len(self._workers), "busy": self._busy},
                "tasks": {
                    "queued": self._tasks.qsize(),
                    "completed": self._completed,
                    "failed": self._failed,
                },
            }
