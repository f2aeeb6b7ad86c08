"""Nomad HTTP API client wrapper.

Only the two calls the trigger needs: read a job by id, and register a job.
Registering an id that already exists updates that job in place; Nomad does
not start a second batch run for it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from zeebe_nomad_trigger.nomad.job_template import BatchJobSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class JobStatus:
    """Minimal Nomad job metadata returned by a lookup."""

    id: str  # noqa: A003
    name: str
    status: str
    type: str | None = None  # noqa: A003
    modify_index: int | None = None


@dataclass(frozen=True, slots=True)
class JobRegistration:
    """Result of a job register call."""

    eval_id: str | None
    job_modify_index: int | None
    warnings: str = ""


class SchedulerError(RuntimeError):
    """Raised for any Nomad API failure other than "job not found"."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def normalize_address(address: str) -> str:
    """Return `address` as a base URL, defaulting to http:// like the Nomad CLI."""

    value = address.strip().rstrip("/")
    if not value:
        raise ValueError("Nomad address is required")
    if "://" not in value:
        value = f"http://{value}"
    return value


def _check_response(resp: requests.Response, action: str) -> Any:
    if resp.status_code >= 400:
        body = resp.text.strip()[:500]
        raise SchedulerError(
            f"{action} failed (HTTP {resp.status_code}): {body}",
            status_code=resp.status_code,
        )
    try:
        return resp.json()
    except ValueError as e:
        raise SchedulerError(f"{action} returned invalid JSON", status_code=resp.status_code) from e


def _optional_int(value: Any) -> int | None:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


class NomadClient:
    """Small wrapper around the Nomad HTTP API."""

    def __init__(
        self,
        *,
        address: str,
        token: str | None = None,
        namespace: str | None = None,
        region: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = normalize_address(address)
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "zeebe-nomad-trigger",
            }
        )
        if token:
            self._session.headers["X-Nomad-Token"] = token

        self._params: dict[str, str] = {}
        if namespace:
            self._params["namespace"] = namespace
        if region:
            self._params["region"] = region

    @property
    def address(self) -> str:
        return self._base_url

    def _job_url(self, job_id: str) -> str:
        if not job_id.strip():
            raise ValueError("job_id is required")
        return f"{self._base_url}/v1/job/{quote(job_id, safe='')}"

    def get_job(self, job_id: str) -> JobStatus | None:
        """Look up a job by id.

        Returns:
            The job status, or None when Nomad answers 404 (no such job yet).

        Raises:
            SchedulerError: For transport errors and any other non-2xx answer.
        """

        url = self._job_url(job_id)
        try:
            resp = self._session.get(url, params=self._params or None, timeout=self._timeout)
        except requests.RequestException as e:
            raise SchedulerError(f"Nomad job lookup failed: {e}") from e

        if resp.status_code == 404:
            logger.debug("Nomad job not found", extra={"job_id": job_id})
            return None

        data = _check_response(resp, "Nomad job lookup")
        if not isinstance(data, dict):
            raise SchedulerError("Unexpected job response: not an object")

        status = data.get("Status")
        if not isinstance(status, str):
            raise SchedulerError("Unexpected job response: missing Status")

        return JobStatus(
            id=str(data.get("ID") or job_id),
            name=str(data.get("Name") or job_id),
            status=status,
            type=data.get("Type") if isinstance(data.get("Type"), str) else None,
            modify_index=_optional_int(data.get("JobModifyIndex")),
        )

    def register_job(self, spec: BatchJobSpec) -> JobRegistration:
        """Register (create or update) the job described by `spec`."""

        if not spec.id:
            raise ValueError("Job spec needs an ID before it can be registered")

        url = f"{self._base_url}/v1/jobs"
        try:
            resp = self._session.put(
                url,
                json={"Job": spec.document},
                params=self._params or None,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise SchedulerError(f"Nomad job register failed: {e}") from e

        data = _check_response(resp, "Nomad job register")
        if not isinstance(data, dict):
            raise SchedulerError("Unexpected register response: not an object")

        registration = JobRegistration(
            eval_id=data.get("EvalID") or None,
            job_modify_index=_optional_int(data.get("JobModifyIndex")),
            warnings=str(data.get("Warnings") or ""),
        )
        if registration.warnings:
            logger.warning(
                "Nomad returned warnings for job registration",
                extra={"job_id": spec.id, "warnings": registration.warnings},
            )
        return registration

    def close(self) -> None:
        self._session.close()
