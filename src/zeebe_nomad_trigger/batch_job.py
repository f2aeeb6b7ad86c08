"""The long-running batch job that Nomad runs for each workflow job.

It simulates work by sleeping for `DURATION`, then completes the Zeebe job
with the payload it was given, setting `error=true` when
`ZEEBE_FAIL_JOB_FLAG` asks it to fail.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from zeebe_nomad_trigger.batch_env import BATCH_ENV_VARS
from zeebe_nomad_trigger.config import BatchJobSettings
from zeebe_nomad_trigger.payload import JobPayload
from zeebe_nomad_trigger.zeebe.client import ZeebeClient

logger = logging.getLogger(__name__)


def run_batch_job(
    settings: BatchJobSettings,
    *,
    zeebe: ZeebeClient,
    sleep: Callable[[float], None] = time.sleep,
) -> JobPayload:
    """Sleep, then report the result back to Zeebe.

    Returns:
        The payload the job was completed with.

    Raises:
        PayloadDecodeError: If `ZEEBE_PAYLOAD` is not a valid payload.
        WorkflowEngineError: If the completion could not be sent.
    """

    payload = JobPayload.decode(settings.payload)

    logger.info(
        "Sleeping to simulate work",
        extra={"job_key": settings.job_key, "duration": settings.duration},
    )
    sleep(settings.duration_seconds)

    if settings.fail_job:
        logger.info("Setting error flag to true", extra={"job_key": settings.job_key})
        payload = payload.with_error(True)

    variables = payload.encode()
    logger.info(
        "Sending payload", extra={"job_key": settings.job_key, "payload": variables}
    )
    zeebe.complete_job(settings.job_key, variables)

    logger.info("Completed job", extra={"job_key": settings.job_key})
    return payload


def describe_environment(environ: dict[str, str]) -> dict[str, str]:
    """The batch-related subset of `environ`, for the startup log line."""

    return {name: environ[name] for name in BATCH_ENV_VARS if name in environ}
