"""Test configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from zeebe_nomad_trigger.nomad.job_template import JobTemplate
from zeebe_nomad_trigger.zeebe.client import JobHeaders, WorkflowJob

_SETTINGS_ENV_VARS = (
    "ZEEBE_BROKER_URL",
    "NOMAD_SERVER_URL",
    "NOMAD_JOB_JSON_PATH",
    "ZEEBE_TASKS_TO_FAIL",
    "JOB_DURATION",
    "BATCH_ZEEBE_BROKER_URL",
    "ZEEBE_JOB_TYPES",
    "ZEEBE_WORKER_NAME",
    "ZEEBE_JOB_TIMEOUT_SECONDS",
    "ZEEBE_POLL_TIMEOUT_SECONDS",
    "ZEEBE_MAX_JOBS",
    "ZEEBE_POLL_BACKOFF_SECONDS",
    "RESTART_FAILED_WORKERS",
    "WORKER_RESTART_DELAY_SECONDS",
    "NOMAD_TOKEN",
    "NOMAD_NAMESPACE",
    "NOMAD_REGION",
    "NOMAD_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "DURATION",
    "ZEEBE_FAIL_JOB_FLAG",
    "ZEEBE_JOB_KEY",
    "ZEEBE_PAYLOAD",
)


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with none of our variables set."""
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def job_document() -> dict[str, Any]:
    """Provide a minimal Nomad batch job definition."""
    return {
        "ID": "long-running-process",
        "Name": "long-running-process",
        "Type": "batch",
        "Datacenters": ["dc1"],
        "TaskGroups": [
            {
                "Name": "process",
                "Count": 1,
                "Tasks": [
                    {
                        "Name": "process",
                        "Driver": "docker",
                        "Config": {"image": "long-running-process:latest"},
                        "Env": {"EXISTING": "kept"},
                    }
                ],
            }
        ],
    }


@pytest.fixture
def template_path(tmp_path: Path, job_document: dict[str, Any]) -> Path:
    path = tmp_path / "job.json"
    path.write_text(json.dumps(job_document), encoding="utf-8")
    return path


@pytest.fixture
def template(job_document: dict[str, Any]) -> JobTemplate:
    return JobTemplate(job_document)


@pytest.fixture
def make_job() -> Callable[..., WorkflowJob]:
    """Build workflow jobs; defaults match the p1/7/step1/42 example."""

    def _make(
        *,
        key: int = 42,
        job_type: str = "action",
        process_id: str = "p1",
        workflow_instance_key: int = 7,
        element_id: str = "step1",
        variables: str = '{"x": 1}',
    ) -> WorkflowJob:
        return WorkflowJob(
            key=key,
            type=job_type,
            headers=JobHeaders(
                process_id=process_id,
                workflow_instance_key=workflow_instance_key,
                element_id=element_id,
            ),
            variables=variables,
        )

    return _make
