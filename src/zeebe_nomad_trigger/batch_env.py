"""Environment variable names handed from the trigger to the Nomad batch job.

The trigger writes these into the first task's `Env` map of every job it
registers; the batch job reads them back at startup.
"""

from __future__ import annotations

ENV_JOB_KEY = "ZEEBE_JOB_KEY"
ENV_PAYLOAD = "ZEEBE_PAYLOAD"
ENV_BROKER_URL = "ZEEBE_BROKER_URL"
ENV_FAIL_JOB_FLAG = "ZEEBE_FAIL_JOB_FLAG"
ENV_DURATION = "DURATION"

BATCH_ENV_VARS: tuple[str, ...] = (
    ENV_JOB_KEY,
    ENV_PAYLOAD,
    ENV_BROKER_URL,
    ENV_FAIL_JOB_FLAG,
    ENV_DURATION,
)
