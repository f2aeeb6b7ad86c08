"""Per-job-type subscription workers and the pool that runs them.

Each job type gets its own `SubscriptionWorker` running on its own thread:
long-poll the gateway, hand every activated job to the dispatch handler,
repeat until closed. Workers share only the handler (stateless) and the
clients.

A `DispatchError` stops the worker that raised it and is reported on the
pool's failure channel; the other workers keep going.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from zeebe_nomad_trigger.config import TriggerSettings
from zeebe_nomad_trigger.dispatch.handler import DispatchHandler
from zeebe_nomad_trigger.zeebe.client import WorkflowEngineError, WorkflowJob, ZeebeClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkerFailure:
    """A worker that stopped because handling a job raised."""

    task_type: str
    error: Exception


class SubscriptionWorker:
    """Long-polling subscriber for a single Zeebe job type."""

    def __init__(
        self,
        *,
        task_type: str,
        engine: ZeebeClient,
        handler: DispatchHandler,
        worker_name: str,
        job_timeout: float,
        request_timeout: float = 10.0,
        max_jobs: int = 1,
        poll_backoff: float = 1.0,
    ) -> None:
        self._task_type = task_type
        self._engine = engine
        self._handler = handler
        self._worker_name = worker_name
        self._job_timeout = job_timeout
        self._request_timeout = request_timeout
        self._max_jobs = max_jobs
        self._poll_backoff = poll_backoff
        self._closed = threading.Event()

    @property
    def task_type(self) -> str:
        return self._task_type

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Stop polling. A job being handled right now is finished first."""

        self._closed.set()

    def _poll(self) -> list[WorkflowJob]:
        try:
            return self._engine.activate_jobs(
                self._task_type,
                worker=self._worker_name,
                timeout=self._job_timeout,
                max_jobs=self._max_jobs,
                request_timeout=self._request_timeout,
            )
        except WorkflowEngineError as e:
            logger.warning(
                "Polling for jobs failed; backing off",
                extra={"task_type": self._task_type, "code": e.code, "error": str(e)},
            )
            self._closed.wait(self._poll_backoff)
            return []

    def run(self) -> None:
        """Poll and dispatch until `close()` is called.

        Raises:
            DispatchError: Propagated from the handler; ends this worker's loop.
        """

        logger.info("Starting job worker", extra={"task_type": self._task_type})
        while not self._closed.is_set():
            for job in self._poll():
                self._handler.handle(job)
        logger.info("Job worker closed", extra={"task_type": self._task_type})


class WorkerPool:
    """Runs one thread per worker and waits for all of them to stop."""

    def __init__(
        self,
        workers: Iterable[SubscriptionWorker],
        *,
        restart_failed: bool = False,
        restart_delay: float = 5.0,
    ) -> None:
        self._workers = {worker.task_type: worker for worker in workers}
        if not self._workers:
            raise ValueError("At least one worker is required")

        self._restart_failed = restart_failed
        self._restart_delay = restart_delay
        self._threads: dict[str, threading.Thread] = {}
        self._failures: queue.Queue[WorkerFailure] = queue.Queue()
        self._closing = threading.Event()

    @property
    def task_types(self) -> list[str]:
        return list(self._workers)

    def start(self) -> None:
        for worker in self._workers.values():
            self._spawn(worker)

    def _spawn(self, worker: SubscriptionWorker) -> None:
        thread = threading.Thread(
            target=self._run_worker,
            args=(worker,),
            name=f"zeebe-worker-{worker.task_type}",
            daemon=True,
        )
        self._threads[worker.task_type] = thread
        thread.start()

    def _run_worker(self, worker: SubscriptionWorker) -> None:
        try:
            worker.run()
        except Exception as e:
            logger.exception(
                "Job worker stopped after a dispatch failure",
                extra={"task_type": worker.task_type},
            )
            self._failures.put(WorkerFailure(task_type=worker.task_type, error=e))

    def _any_alive(self) -> bool:
        return any(thread.is_alive() for thread in self._threads.values())

    def close(self) -> None:
        """Ask every worker to stop after its current job."""

        self._closing.set()
        for worker in self._workers.values():
            worker.close()

    def wait(self, poll_interval: float = 0.5) -> list[WorkerFailure]:
        """Block until every worker has stopped; return the failures seen."""

        failures: list[WorkerFailure] = []
        # A failing thread enqueues its failure before it exits, so an empty
        # queue plus no live threads means nothing is left to collect.
        while self._any_alive() or not self._failures.empty():
            try:
                failure = self._failures.get(timeout=poll_interval)
            except queue.Empty:
                continue

            failures.append(failure)
            if not self._restart_failed or self._closing.is_set():
                continue
            if self._closing.wait(self._restart_delay):
                continue

            logger.info("Restarting job worker", extra={"task_type": failure.task_type})
            self._spawn(self._workers[failure.task_type])

        for thread in self._threads.values():
            thread.join()
        return failures


def create_worker_pool(
    settings: TriggerSettings, *, engine: ZeebeClient, handler: DispatchHandler
) -> WorkerPool:
    workers = [
        SubscriptionWorker(
            task_type=task_type,
            engine=engine,
            handler=handler,
            worker_name=settings.worker_name,
            job_timeout=settings.job_timeout_seconds,
            request_timeout=settings.poll_request_timeout_seconds,
            max_jobs=settings.max_jobs_to_activate,
            poll_backoff=settings.poll_backoff_seconds,
        )
        for task_type in settings.job_type_list
    ]
    return WorkerPool(
        workers,
        restart_failed=settings.restart_failed_workers,
        restart_delay=settings.worker_restart_delay_seconds,
    )
