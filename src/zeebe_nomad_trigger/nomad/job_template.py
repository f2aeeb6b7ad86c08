"""Nomad job template loaded once at startup.

The template is a Nomad job in API JSON form (what `nomad job run -output`
prints). Every dispatch gets its own deep copy, so setting the id, name and
environment of one job never leaks into the template or another job.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JobTemplateError(ValueError):
    """Raised when the job definition document is missing or malformed."""


@dataclass
class BatchJobSpec:
    """One Nomad job, parameterised for a single workflow job."""

    document: dict[str, Any]

    @property
    def id(self) -> str | None:  # noqa: A003 (Nomad field name)
        return self.document.get("ID")

    @id.setter
    def id(self, value: str) -> None:  # noqa: A003
        self.document["ID"] = value

    @property
    def name(self) -> str | None:
        return self.document.get("Name")

    @name.setter
    def name(self, value: str) -> None:
        self.document["Name"] = value

    @property
    def task(self) -> dict[str, Any]:
        """The first task of the first task group, which runs the batch workload."""

        return self.document["TaskGroups"][0]["Tasks"][0]

    @property
    def env(self) -> dict[str, str]:
        task = self.task
        env = task.get("Env")
        if env is None:
            env = task["Env"] = {}
        return env


def _validate(document: Any) -> dict[str, Any]:
    # Accept both a bare job and the {"Job": {...}} envelope used by the API.
    if isinstance(document, dict) and isinstance(document.get("Job"), dict):
        document = document["Job"]

    if not isinstance(document, dict):
        raise JobTemplateError("Job definition must be a JSON object")

    groups = document.get("TaskGroups")
    if not isinstance(groups, list) or not groups or not isinstance(groups[0], dict):
        raise JobTemplateError("Job definition needs at least one task group")

    tasks = groups[0].get("Tasks")
    if not isinstance(tasks, list) or not tasks or not isinstance(tasks[0], dict):
        raise JobTemplateError("First task group needs at least one task")

    env = tasks[0].get("Env")
    if env is None:
        tasks[0]["Env"] = {}
    elif not isinstance(env, dict):
        raise JobTemplateError("Task Env must be a JSON object")

    return document


class JobTemplate:
    """Immutable holder of the Nomad job definition."""

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = _validate(copy.deepcopy(document))

    @classmethod
    def load(cls, path: Path) -> JobTemplate:
        """Read the job definition from `path`.

        Raises:
            JobTemplateError: If the file is missing, not JSON, or has no task to run.
        """

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise JobTemplateError(f"Cannot read job definition {path}: {e}") from e

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise JobTemplateError(f"Job definition {path} is not valid JSON: {e}") from e

        template = cls(document)
        logger.info(
            "Loaded Nomad job template",
            extra={"path": str(path), "job_type": template.job_type},
        )
        return template

    @property
    def job_type(self) -> str | None:
        return self._document.get("Type")

    def clone(self) -> BatchJobSpec:
        return BatchJobSpec(copy.deepcopy(self._document))
