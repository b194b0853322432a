"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of worker threads pulling connections off a bounded queue.
Used only when ServerConfig.workers > 1; with one worker the server
handles connections inline and never starts a pool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit(conn)──► [ queue (bounded) ] ──► Worker-0    │
    │                                                    ├──► Worker-1    │
    │        blocks when the queue is full               └──► Worker-N    │
    │        (backpressure instead of unbounded memory)                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each task owns its connection from start to finish. Workers share nothing
but the queue, so no connection can see another connection's data.

Shutdown uses "poison pills": one None per worker, queued behind any
pending work, so every connection already accepted is still served.

=============================================================================
"""

import threading
import queue
import logging
from typing import Any, Callable, Optional, Tuple


logger = logging.getLogger(__name__)

Task = Tuple[Callable[..., Any], tuple]


class Worker(threading.Thread):
    """Worker thread that runs tasks from the queue until it gets None."""

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                func, args = task
                func(*args)
            except Exception as e:
                # Don't let one failed task kill the worker
                logger.exception(f"Worker {self.worker_id} task failed: {e}")
            finally:
                self.task_queue.task_done()

        logger.debug(f"Worker {self.worker_id} stopped")


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

        pool = ThreadPool(workers=4, queue_size=64)
        pool.start()
        pool.submit(handler, conn)
        pool.shutdown()             # waits for queued work
    """

    def __init__(self, workers: int = 4, queue_size: int = 64):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.num_workers = workers
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self) -> None:
        """Start the worker threads. Calling it twice is a no-op."""
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting thread pool with {self.num_workers} workers")
            for worker_id in range(self.num_workers):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()
            self._started = True

    def submit(self, func: Callable[..., Any], *args: Any) -> None:
        """
        Queue ``func(*args)`` for a worker.

        Blocks while the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")
        self._task_queue.put((func, args))

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop the pool after the queued tasks have run.

        Args:
            wait: Join the worker threads before returning.
            timeout: Per-worker join timeout in seconds.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")
        for _ in self._workers:
            self._task_queue.put(None)

        if wait:
            for worker in self._workers:
                worker.join(timeout)
                if worker.is_alive():
                    logger.warning(f"{worker.name} did not stop within {timeout}s")

        logger.info("Thread pool stopped")
