"""Zeebe gateway access."""

from zeebe_nomad_trigger.zeebe.client import (
    JobHeaders,
    WorkflowEngineError,
    WorkflowJob,
    ZeebeClient,
)

__all__ = [
    "JobHeaders",
    "WorkflowEngineError",
    "WorkflowJob",
    "ZeebeClient",
]
