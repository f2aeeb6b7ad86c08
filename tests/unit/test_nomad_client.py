"""Unit tests for the Nomad HTTP client (mocked transport)."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from zeebe_nomad_trigger.nomad.client import (
    JobStatus,
    NomadClient,
    SchedulerError,
    normalize_address,
)
from zeebe_nomad_trigger.nomad.job_template import JobTemplate


def _response(status_code: int, payload: Any = None, *, text: str | None = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    if text is not None:
        resp._content = text.encode("utf-8")
    elif payload is not None:
        resp._content = json.dumps(payload).encode("utf-8")
    else:
        resp._content = b""
    resp.encoding = "utf-8"
    return resp


def _client(session: requests.Session, **kwargs: Any) -> NomadClient:
    return NomadClient(address="http://nomad:4646", session=session, **kwargs)


def test_get_job_returns_none_on_404() -> None:
    session = requests.Session()
    session.get = Mock(return_value=_response(404, text="job not found"))  # type: ignore[method-assign]

    assert _client(session).get_job("p1_7_step1_42") is None


def test_get_job_returns_status() -> None:
    session = requests.Session()
    session.get = Mock(  # type: ignore[method-assign]
        return_value=_response(
            200,
            {
                "ID": "p1_7_step1_42",
                "Name": "p1_7_step1_42",
                "Type": "batch",
                "Status": "running",
                "JobModifyIndex": 17,
            },
        )
    )

    status = _client(session).get_job("p1_7_step1_42")

    assert status == JobStatus(
        id="p1_7_step1_42",
        name="p1_7_step1_42",
        status="running",
        type="batch",
        modify_index=17,
    )


def test_get_job_quotes_id_and_sends_scope() -> None:
    session = requests.Session()
    session.get = Mock(return_value=_response(404))  # type: ignore[method-assign]

    client = _client(session, token="secret", namespace="batch", region="eu")
    client.get_job("a/b c")

    args, kwargs = session.get.call_args
    assert args[0] == "http://nomad:4646/v1/job/a%2Fb%20c"
    assert kwargs["params"] == {"namespace": "batch", "region": "eu"}
    assert session.headers["X-Nomad-Token"] == "secret"


@pytest.mark.parametrize("status_code", [400, 403, 500, 503])
def test_get_job_other_http_errors_raise(status_code: int) -> None:
    session = requests.Session()
    session.get = Mock(return_value=_response(status_code, text="boom"))  # type: ignore[method-assign]

    with pytest.raises(SchedulerError) as excinfo:
        _client(session).get_job("p1_7_step1_42")

    assert excinfo.value.status_code == status_code


def test_get_job_transport_error_raises() -> None:
    session = requests.Session()
    session.get = Mock(side_effect=requests.ConnectionError("refused"))  # type: ignore[method-assign]

    with pytest.raises(SchedulerError) as excinfo:
        _client(session).get_job("p1_7_step1_42")

    assert excinfo.value.status_code is None


def test_get_job_malformed_body_raises() -> None:
    session = requests.Session()
    session.get = Mock(return_value=_response(200, text="<html>"))  # type: ignore[method-assign]

    with pytest.raises(SchedulerError, match="invalid JSON"):
        _client(session).get_job("p1_7_step1_42")


def test_get_job_missing_status_raises() -> None:
    session = requests.Session()
    session.get = Mock(return_value=_response(200, {"ID": "x"}))  # type: ignore[method-assign]

    with pytest.raises(SchedulerError, match="missing Status"):
        _client(session).get_job("x")


def test_register_job_puts_job_envelope(template: JobTemplate) -> None:
    session = requests.Session()
    session.put = Mock(  # type: ignore[method-assign]
        return_value=_response(200, {"EvalID": "eval-1", "JobModifyIndex": 3, "Warnings": ""})
    )
    spec = template.clone()
    spec.id = "p1_7_step1_42"

    registration = _client(session).register_job(spec)

    assert registration.eval_id == "eval-1"
    assert registration.job_modify_index == 3
    args, kwargs = session.put.call_args
    assert args[0] == "http://nomad:4646/v1/jobs"
    assert kwargs["json"] == {"Job": spec.document}


def test_register_job_failure_raises(template: JobTemplate) -> None:
    session = requests.Session()
    session.put = Mock(return_value=_response(500, text="rpc error"))  # type: ignore[method-assign]
    spec = template.clone()
    spec.id = "p1_7_step1_42"

    with pytest.raises(SchedulerError, match="HTTP 500"):
        _client(session).register_job(spec)


def test_register_job_requires_id(template: JobTemplate) -> None:
    session = requests.Session()
    spec = template.clone()
    spec.id = ""

    with pytest.raises(ValueError):
        _client(session).register_job(spec)


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("http://127.0.0.1:4646/", "http://127.0.0.1:4646"),
        ("https://nomad.example.com", "https://nomad.example.com"),
        ("10.0.2.2:4646", "http://10.0.2.2:4646"),
    ],
)
def test_normalize_address(address: str, expected: str) -> None:
    assert normalize_address(address) == expected


def test_normalize_address_requires_value() -> None:
    with pytest.raises(ValueError):
        normalize_address("  ")
