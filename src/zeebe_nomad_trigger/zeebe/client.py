"""Zeebe gateway client wrapper.

This intentionally wraps the generated gRPC stubs so that worker and dispatch
code only deal with `WorkflowJob` values and `WorkflowEngineError`, and tests
can swap in a mock stub.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import grpc
from zeebe_grpc import gateway_pb2, gateway_pb2_grpc

logger = logging.getLogger(__name__)

# Extra time granted to the gRPC call on top of the gateway-side long poll.
_LONG_POLL_GRACE_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class JobHeaders:
    """Which workflow, which running instance and which step emitted a job."""

    process_id: str
    workflow_instance_key: int
    element_id: str


@dataclass(frozen=True, slots=True)
class WorkflowJob:
    """A job activated from the Zeebe gateway.

    `key` is globally unique and stays valid across timeouts and redeliveries.
    `variables` is the raw JSON document as delivered by the broker.
    """

    key: int
    type: str
    headers: JobHeaders
    variables: str = "{}"
    retries: int = 0
    worker: str = ""

    @classmethod
    def from_activated_job(cls, job: Any) -> WorkflowJob:
        return cls(
            key=int(job.key),
            type=job.type,
            headers=JobHeaders(
                process_id=job.bpmnProcessId,
                workflow_instance_key=int(job.processInstanceKey),
                element_id=job.elementId,
            ),
            variables=job.variables,
            retries=int(job.retries),
            worker=job.worker,
        )


class WorkflowEngineError(RuntimeError):
    """Raised when a Zeebe gateway call fails."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


def _describe_rpc_error(e: grpc.RpcError) -> tuple[str, str | None]:
    # Errors raised by stub calls also implement grpc.Call (code/details).
    code_fn = getattr(e, "code", None)
    details_fn = getattr(e, "details", None)
    code = code_fn() if callable(code_fn) else None
    details = details_fn() if callable(details_fn) else str(e)
    name = getattr(code, "name", None)
    return f"{name or 'UNKNOWN'}: {details}", name


class ZeebeClient:
    """Small wrapper around the Zeebe gateway gRPC API for the calls we need."""

    def __init__(
        self,
        *,
        address: str,
        channel: grpc.Channel | None = None,
        stub: Any | None = None,
    ) -> None:
        if not address:
            raise ValueError("Zeebe gateway address is required")

        self._address = address
        self._channel = channel or grpc.insecure_channel(address)
        self._stub = stub or gateway_pb2_grpc.GatewayStub(self._channel)
        logger.debug("Zeebe gateway channel created", extra={"address": address})

    @property
    def address(self) -> str:
        return self._address

    def activate_jobs(
        self,
        job_type: str,
        *,
        worker: str,
        timeout: float,
        max_jobs: int = 1,
        request_timeout: float = 10.0,
    ) -> list[WorkflowJob]:
        """Long-poll the gateway for up to `max_jobs` jobs of `job_type`.

        `timeout` is how long (seconds) activated jobs stay locked to this worker
        before the broker hands them out again. `request_timeout` bounds the long
        poll itself; an empty list means nothing arrived in that window.
        """

        request = gateway_pb2.ActivateJobsRequest(
            type=job_type,
            worker=worker,
            timeout=int(timeout * 1000),
            maxJobsToActivate=max_jobs,
            requestTimeout=int(request_timeout * 1000),
        )

        jobs: list[WorkflowJob] = []
        try:
            for response in self._stub.ActivateJobs(
                request, timeout=request_timeout + _LONG_POLL_GRACE_SECONDS
            ):
                jobs.extend(WorkflowJob.from_activated_job(job) for job in response.jobs)
        except grpc.RpcError as e:
            message, code = _describe_rpc_error(e)
            if code == "DEADLINE_EXCEEDED" and jobs:
                return jobs
            raise WorkflowEngineError(f"ActivateJobs failed: {message}", code=code) from e

        if jobs:
            logger.debug(
                "Activated jobs", extra={"task_type": job_type, "count": len(jobs)}
            )
        return jobs

    def complete_job(self, job_key: int, variables: str) -> None:
        """Complete a job, merging `variables` (a JSON object) into the process scope."""

        try:
            self._stub.CompleteJob(
                gateway_pb2.CompleteJobRequest(jobKey=job_key, variables=variables)
            )
        except grpc.RpcError as e:
            message, code = _describe_rpc_error(e)
            raise WorkflowEngineError(f"CompleteJob failed: {message}", code=code) from e

        logger.debug("Completed job", extra={"job_key": job_key})

    def fail_job(self, job_key: int, *, retries: int, error_message: str = "") -> None:
        """Fail a job the native way (retry only, no branching)."""

        try:
            self._stub.FailJob(
                gateway_pb2.FailJobRequest(
                    jobKey=job_key, retries=retries, errorMessage=error_message
                )
            )
        except grpc.RpcError as e:
            message, code = _describe_rpc_error(e)
            raise WorkflowEngineError(f"FailJob failed: {message}", code=code) from e

    def close(self) -> None:
        self._channel.close()
        logger.debug("Zeebe gateway channel closed", extra={"address": self._address})
