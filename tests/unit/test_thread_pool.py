"""
Unit tests for the worker thread pool.
"""

import threading

import pytest

from minihttp.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    pool = ThreadPool(workers=3, queue_size=8)
    pool.start()
    yield pool
    pool.shutdown(timeout=5.0)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            ThreadPool(workers=0)

    def test_submit_before_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool(workers=1).submit(print)

    def test_runs_every_task(self, pool):
        results = []
        lock = threading.Lock()

        def record(value):
            with lock:
                results.append(value)

        for i in range(20):
            pool.submit(record, i)
        pool.shutdown(timeout=5.0)

        assert sorted(results) == list(range(20))

    def test_tasks_run_concurrently(self, pool):
        """Three tasks that wait for each other can only finish on three threads."""
        barrier = threading.Barrier(3, timeout=5.0)
        done = []

        def meet():
            barrier.wait()
            done.append(True)

        for _ in range(3):
            pool.submit(meet)
        pool.shutdown(timeout=5.0)

        assert len(done) == 3

    def test_failing_task_does_not_kill_worker(self):
        pool = ThreadPool(workers=1)
        pool.start()
        results = []

        def fail():
            raise RuntimeError("boom")

        pool.submit(fail)
        pool.submit(results.append, "still alive")
        pool.shutdown(timeout=5.0)

        assert results == ["still alive"]

    def test_start_and_shutdown_are_idempotent(self):
        pool = ThreadPool(workers=2)
        pool.start()
        pool.start()
        assert pool.is_running

        pool.shutdown(timeout=5.0)
        pool.shutdown(timeout=5.0)
        assert not pool.is_running

    def test_submit_after_shutdown(self, pool):
        pool.shutdown(timeout=5.0)
        with pytest.raises(RuntimeError):
            pool.submit(print)
