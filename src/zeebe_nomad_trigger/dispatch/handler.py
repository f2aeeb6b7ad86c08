"""Turn one Zeebe job into exactly one Nomad batch job.

Zeebe delivers jobs at-least-once: a job whose handler does not finish within
the activation timeout is handed out again. The handler therefore derives a
deterministic transaction id from the job, uses it as the Nomad job id, and
only registers the job when Nomad does not know that id yet.

The handler never completes a job on success. The batch job itself does that
once its work is done. The only completion sent from here is the
`error=true` completion of the fail-job fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from zeebe_nomad_trigger.batch_env import (
    ENV_BROKER_URL,
    ENV_DURATION,
    ENV_FAIL_JOB_FLAG,
    ENV_JOB_KEY,
    ENV_PAYLOAD,
)
from zeebe_nomad_trigger.nomad.client import NomadClient, SchedulerError
from zeebe_nomad_trigger.nomad.job_template import BatchJobSpec, JobTemplate
from zeebe_nomad_trigger.payload import JobPayload, PayloadDecodeError
from zeebe_nomad_trigger.transaction import derive_transaction_id
from zeebe_nomad_trigger.zeebe.client import WorkflowEngineError, WorkflowJob, ZeebeClient

logger = logging.getLogger(__name__)

DispatchAction = Literal["exists", "registered", "failed"]


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """What the handler did with one job."""

    transaction_id: str
    action: DispatchAction
    status: str | None = None
    eval_id: str | None = None


class DispatchError(RuntimeError):
    """Raised when a job can be neither dispatched nor failed.

    Carries enough context to find the job again in Zeebe and Nomad.
    """

    def __init__(
        self,
        message: str,
        *,
        transaction_id: str,
        job_key: int,
        element_id: str,
    ) -> None:
        super().__init__(f"{message} (transaction {transaction_id}, job {job_key})")
        self.transaction_id = transaction_id
        self.job_key = job_key
        self.element_id = element_id


class DispatchHandler:
    """Existence-check-then-register dispatch of workflow jobs to Nomad.

    One instance is shared by all subscription workers. It holds no mutable
    state: the template is cloned per job and the fail set is a frozenset.
    """

    def __init__(
        self,
        *,
        nomad: NomadClient,
        zeebe: ZeebeClient,
        template: JobTemplate,
        broker_url: str,
        duration: str,
        tasks_to_fail: frozenset[str] = frozenset(),
    ) -> None:
        self._nomad = nomad
        self._zeebe = zeebe
        self._template = template
        self._broker_url = broker_url
        self._duration = duration
        self._tasks_to_fail = frozenset(tasks_to_fail)

    def build_spec(self, job: WorkflowJob, transaction_id: str, payload: JobPayload) -> BatchJobSpec:
        """Clone the template and parameterise it for `job`."""

        spec = self._template.clone()
        spec.id = transaction_id
        spec.name = transaction_id

        env = spec.env
        env[ENV_JOB_KEY] = str(job.key)
        env[ENV_PAYLOAD] = payload.encode()
        env[ENV_BROKER_URL] = self._broker_url
        env[ENV_FAIL_JOB_FLAG] = "false"
        env[ENV_DURATION] = self._duration

        if job.headers.element_id in self._tasks_to_fail:
            env[ENV_FAIL_JOB_FLAG] = "true"

        return spec

    def handle(self, job: WorkflowJob) -> DispatchOutcome:
        """Dispatch one activated job.

        Raises:
            DispatchError: If Nomad could not be queried or the job could not be
                registered, or if the fail-job fallback itself failed.
        """

        transaction_id = derive_transaction_id(job.headers, job.key)
        context = {
            "transaction_id": transaction_id,
            "job_key": job.key,
            "element_id": job.headers.element_id,
            "task_type": job.type,
        }

        try:
            payload = JobPayload.decode(job.variables)
        except PayloadDecodeError as e:
            logger.warning(
                "Job variables could not be decoded", extra={**context, "error": str(e)}
            )
            return self.fail_job(job, transaction_id=transaction_id)

        payload = payload.with_error(False)
        spec = self.build_spec(job, transaction_id, payload)
        logger.debug("Built Nomad job spec", extra={**context, "env": dict(spec.env)})

        logger.info("Querying Nomad for job", extra=context)
        try:
            existing = self._nomad.get_job(transaction_id)
        except SchedulerError as e:
            logger.error("Nomad job lookup failed", extra=context)
            raise DispatchError(
                f"Error querying Nomad job: {e}",
                transaction_id=transaction_id,
                job_key=job.key,
                element_id=job.headers.element_id,
            ) from e

        if existing is not None:
            logger.info(
                "Nomad job already exists; not registering again",
                extra={**context, "status": existing.status},
            )
            return DispatchOutcome(
                transaction_id=transaction_id, action="exists", status=existing.status
            )

        logger.info(
            "Registering Nomad job",
            extra={**context, "fail_flag": spec.env[ENV_FAIL_JOB_FLAG]},
        )
        try:
            registration = self._nomad.register_job(spec)
        except SchedulerError as e:
            logger.error("Nomad job registration failed", extra=context)
            raise DispatchError(
                f"Error creating Nomad job: {e}",
                transaction_id=transaction_id,
                job_key=job.key,
                element_id=job.headers.element_id,
            ) from e

        logger.info(
            "Nomad job registered", extra={**context, "eval_id": registration.eval_id}
        )
        return DispatchOutcome(
            transaction_id=transaction_id, action="registered", eval_id=registration.eval_id
        )

    def fail_job(self, job: WorkflowJob, *, transaction_id: str | None = None) -> DispatchOutcome:
        """Complete `job` with `error=true` so the process can branch to its error path.

        Zeebe's FailJob would only allow a retry; completing with the flag set lets
        an exclusive gateway route on it instead.
        """

        transaction_id = transaction_id or derive_transaction_id(job.headers, job.key)
        context = {
            "transaction_id": transaction_id,
            "job_key": job.key,
            "element_id": job.headers.element_id,
            "task_type": job.type,
        }

        try:
            payload = JobPayload.decode_lenient(job.variables)
        except PayloadDecodeError as e:
            raise DispatchError(
                f"Error getting payload: {e}",
                transaction_id=transaction_id,
                job_key=job.key,
                element_id=job.headers.element_id,
            ) from e

        payload = payload.with_error(True)
        try:
            self._zeebe.complete_job(job.key, payload.encode())
        except WorkflowEngineError as e:
            raise DispatchError(
                f"Error completing job: {e}",
                transaction_id=transaction_id,
                job_key=job.key,
                element_id=job.headers.element_id,
            ) from e

        logger.info("Failed job via error payload", extra=context)
        return DispatchOutcome(transaction_id=transaction_id, action="failed")
