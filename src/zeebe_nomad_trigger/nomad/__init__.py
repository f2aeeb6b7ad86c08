"""Nomad HTTP API access and job templates."""

from zeebe_nomad_trigger.nomad.client import (
    JobRegistration,
    JobStatus,
    NomadClient,
    SchedulerError,
)
from zeebe_nomad_trigger.nomad.job_template import BatchJobSpec, JobTemplate, JobTemplateError

__all__ = [
    "BatchJobSpec",
    "JobRegistration",
    "JobStatus",
    "JobTemplate",
    "JobTemplateError",
    "NomadClient",
    "SchedulerError",
]
