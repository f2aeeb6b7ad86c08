"""Dispatch of Zeebe jobs to Nomad."""

from zeebe_nomad_trigger.dispatch.handler import DispatchError, DispatchHandler, DispatchOutcome
from zeebe_nomad_trigger.dispatch.worker import (
    SubscriptionWorker,
    WorkerFailure,
    WorkerPool,
    create_worker_pool,
)

__all__ = [
    "DispatchError",
    "DispatchHandler",
    "DispatchOutcome",
    "SubscriptionWorker",
    "WorkerFailure",
    "WorkerPool",
    "create_worker_pool",
]
