"""
=============================================================================
WORKER POOL
=============================================================================

Serves accepted connections on a fixed set of reusable threads, so the
accept loop can go straight back to accept() while earlier clients are
still being answered.

=============================================================================
LAYOUT
=============================================================================

    accept loop                 task queue (bounded)             workers
    ───────────                 ────────────────────             ───────

    submit(handle, conn) ──►  [ task ][ task ][ task ] ──►  Worker-0  (busy)
                                                       ──►  Worker-1  (idle)
                                                       ──►  Worker-2  (busy)

    queue full  →  submit() returns False, the caller closes the connection

=============================================================================
WORKER LOOP AND THE POISON PILL
=============================================================================

    while not stopped:
        task = queue.get(timeout=idle_timeout)
        if task is None:      ← shutdown() puts one None per worker
            break
        run(task)             ← exceptions are logged, never kill the worker
        queue.task_done()

=============================================================================
SCALING
=============================================================================

min_workers threads start with the pool. When a submit finds every worker
busy and tasks still waiting, one more is spawned, up to max_workers.
Workers are never retired while the pool is running.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs) on some worker, later."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Daemon thread pulling tasks off the shared queue until told to stop."""

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._stop_event = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._stop_event.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue  # Re-check the stop flag

            if task is None:
                self.task_queue.task_done()
                break

            try:
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stop_event.set()


class ThreadPool:
    """
    Fixed-then-growing pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()

        if not pool.submit(server.handle_connection, args=(conn,)):
            conn.close()      # Queue full

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            min_workers: Threads started by start().
            max_workers: Upper bound reached by scaling up under load.
            queue_size: Tasks held before submit() starts refusing.
            idle_timeout: How often an idle worker re-checks for shutdown.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._next_worker_id = 0

        self._started = False
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._started and not self._stopping

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_worker()
        self._started = True

    def _spawn_worker(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue func(*args, **kwargs) without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self.running:
            raise RuntimeError("Thread pool is not running")

        task = Task(func=func, args=args, kwargs=kwargs or {})
        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            logger.warning(f"Task queue full ({self.queue_size}), rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            total = len(self._workers)
            if total >= self.max_workers or self._task_queue.qsize() == 0:
                return
            if all(w.state == WorkerState.BUSY for w in self._workers):
                logger.debug(f"Scaling up: {total} -> {total + 1} workers")
                self._spawn_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first. With False they are dropped.
            timeout: Upper bound on the wait for the queue to drain.
        """
        if not self._started or self._stopping:
            return

        logger.info("Shutting down thread pool...")
        self._stopping = True

        if not wait:
            self._drain()
        elif timeout is None:
            self._task_queue.join()
        else:
            deadline = time.time() + timeout
            while self._task_queue.unfinished_tasks and time.time() < deadline:
                time.sleep(0.05)
            if self._task_queue.unfinished_tasks:
                logger.warning("Shutdown timeout, abandoning queued tasks")
                self._drain()

        with self._lock:
            workers = list(self._workers)

        for worker in workers:
            worker.stop()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # Worker exits on its stop flag instead

        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        self._started = False
        self._stopping = False
        logger.info("Thread pool shutdown complete")

    def _drain(self):
        """Discard every queued task."""
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    @property
    def stats(self) -> dict:
        """Worker and task counters."""
        with self._lock:
            workers = list(self._workers)
        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
                "idle": sum(1 for w in workers if w.state == WorkerState.IDLE),
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
