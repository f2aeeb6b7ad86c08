"""Configuration for the trigger and the batch job.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Variable names match the ones the deployed containers already use
(`ZEEBE_BROKER_URL`, `NOMAD_SERVER_URL`, ...), hence no env prefix.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zeebe_nomad_trigger.batch_env import (
    ENV_BROKER_URL,
    ENV_DURATION,
    ENV_FAIL_JOB_FLAG,
    ENV_JOB_KEY,
    ENV_PAYLOAD,
)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """Parse a Go-style duration string ("2m", "1h30m", "500ms") into seconds."""

    text = value.strip()
    if not text:
        raise ValueError("duration must not be empty")
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class TriggerSettings(BaseSettings):
    """Settings for the Zeebe -> Nomad trigger process.

    Environment variables:
    - ZEEBE_BROKER_URL      (required)
    - NOMAD_SERVER_URL      (required)
    - NOMAD_JOB_JSON_PATH   (required)
    - ZEEBE_TASKS_TO_FAIL   (optional, comma-separated element ids)
    - JOB_DURATION          (optional, simulated run time handed to the batch job)
    - LOG_LEVEL             (optional)

    Notes:
        The model is frozen: it is built once in `main` and passed to every
        component that needs it.
    """

    # Required values default to "" so the validator below can report every
    # missing variable at once.
    zeebe_broker_url: str = Field(
        default="",
        validation_alias="ZEEBE_BROKER_URL",
        description="Zeebe gateway address (host:port)",
    )
    nomad_server_url: str = Field(
        default="",
        validation_alias="NOMAD_SERVER_URL",
        description="Nomad HTTP API address",
    )
    nomad_job_json_path: Path | None = Field(
        default=None,
        validation_alias="NOMAD_JOB_JSON_PATH",
        description="Path to the Nomad job definition used as template",
    )

    zeebe_tasks_to_fail: str = Field(
        default="",
        validation_alias="ZEEBE_TASKS_TO_FAIL",
        description="Comma-separated BPMN element ids whose batch jobs are forced to fail",
    )
    job_duration: str = Field(
        default="2m",
        validation_alias="JOB_DURATION",
        description="Simulated run time passed to the batch job as DURATION",
    )
    batch_broker_url: str = Field(
        default="",
        validation_alias="BATCH_ZEEBE_BROKER_URL",
        description=(
            "Zeebe gateway address as seen from inside Nomad allocations. "
            "Defaults to ZEEBE_BROKER_URL."
        ),
    )

    job_types: str = Field(
        default="action,test,rollback",
        validation_alias="ZEEBE_JOB_TYPES",
        description="Comma-separated Zeebe job types to subscribe to, one worker each",
    )
    worker_name: str = Field(
        default="zeebe-nomad-trigger",
        validation_alias="ZEEBE_WORKER_NAME",
    )
    job_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        validation_alias="ZEEBE_JOB_TIMEOUT_SECONDS",
        description="How long an activated job stays locked to this worker before redelivery",
    )
    poll_request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias="ZEEBE_POLL_TIMEOUT_SECONDS",
        description="Long-poll duration of a single ActivateJobs request",
    )
    max_jobs_to_activate: int = Field(
        default=1,
        ge=1,
        le=100,
        validation_alias="ZEEBE_MAX_JOBS",
    )
    poll_backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        validation_alias="ZEEBE_POLL_BACKOFF_SECONDS",
        description="Wait before polling again after the gateway rejected a poll",
    )

    restart_failed_workers: bool = Field(
        default=False,
        validation_alias="RESTART_FAILED_WORKERS",
        description=(
            "If true, a worker stopped by a dispatch failure is restarted; otherwise it "
            "stays down while the other workers keep running."
        ),
    )
    worker_restart_delay_seconds: float = Field(
        default=5.0,
        ge=0,
        validation_alias="WORKER_RESTART_DELAY_SECONDS",
    )

    nomad_token: str | None = Field(default=None, validation_alias="NOMAD_TOKEN")
    nomad_namespace: str | None = Field(default=None, validation_alias="NOMAD_NAMESPACE")
    nomad_region: str | None = Field(default=None, validation_alias="NOMAD_REGION")
    nomad_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="NOMAD_TIMEOUT_SECONDS",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    @field_validator("job_duration")
    @classmethod
    def _validate_duration(cls, value: str) -> str:
        parse_duration(value)
        return value.strip()

    @model_validator(mode="after")
    def _require_endpoints(self) -> TriggerSettings:
        missing = [
            name
            for name, value in (
                ("ZEEBE_BROKER_URL", self.zeebe_broker_url),
                ("NOMAD_SERVER_URL", self.nomad_server_url),
                ("NOMAD_JOB_JSON_PATH", str(self.nomad_job_json_path or "")),
            )
            if value.strip() in {"", "."}
        ]
        if missing:
            raise ValueError(f"{', '.join(missing)} required")
        if not self.job_type_list:
            raise ValueError("ZEEBE_JOB_TYPES must name at least one job type")
        return self

    @property
    def tasks_to_fail(self) -> frozenset[str]:
        """Element ids whose batch jobs get `ZEEBE_FAIL_JOB_FLAG=true`."""

        return frozenset(_split_csv(self.zeebe_tasks_to_fail))

    @property
    def job_type_list(self) -> list[str]:
        # dict.fromkeys keeps order while dropping duplicates
        return list(dict.fromkeys(_split_csv(self.job_types)))

    @property
    def batch_broker_address(self) -> str:
        return self.batch_broker_url.strip() or self.zeebe_broker_url


class BatchJobSettings(BaseSettings):
    """Settings of the long-running batch job, as written by the trigger.

    All values are required; the batch job cannot do anything useful without them.
    """

    duration: str = Field(validation_alias=ENV_DURATION)
    zeebe_broker_url: str = Field(validation_alias=ENV_BROKER_URL)
    fail_job: bool = Field(validation_alias=ENV_FAIL_JOB_FLAG)
    job_key: int = Field(validation_alias=ENV_JOB_KEY)
    payload: str = Field(validation_alias=ENV_PAYLOAD)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    @field_validator("duration")
    @classmethod
    def _validate_duration(cls, value: str) -> str:
        parse_duration(value)
        return value.strip()

    @field_validator("zeebe_broker_url", "payload")
    @classmethod
    def _require_value(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("value must not be empty")
        return value

    @property
    def duration_seconds(self) -> float:
        return parse_duration(self.duration)
