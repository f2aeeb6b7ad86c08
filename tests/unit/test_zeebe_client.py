"""Unit tests for the Zeebe gateway client (mocked stub)."""

from __future__ import annotations

import json
from unittest.mock import Mock

import grpc
import pytest
from zeebe_grpc import gateway_pb2

from zeebe_nomad_trigger.zeebe.client import (
    JobHeaders,
    WorkflowEngineError,
    WorkflowJob,
    ZeebeClient,
)


class FakeRpcError(grpc.RpcError):
    def __init__(self, code: grpc.StatusCode, details: str = "gateway unavailable") -> None:
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self) -> grpc.StatusCode:
        return self._code

    def details(self) -> str:
        return self._details


def _client(stub: Mock) -> ZeebeClient:
    return ZeebeClient(address="zeebe:26500", channel=Mock(), stub=stub)


def _activated_job(**overrides: object) -> gateway_pb2.ActivatedJob:
    fields: dict[str, object] = {
        "key": 42,
        "type": "action",
        "bpmnProcessId": "p1",
        "processInstanceKey": 7,
        "elementId": "step1",
        "variables": '{"x": 1}',
        "retries": 3,
        "worker": "zeebe-nomad-trigger",
    }
    fields.update(overrides)
    return gateway_pb2.ActivatedJob(**fields)


def test_activate_jobs_maps_activated_jobs() -> None:
    stub = Mock()
    stub.ActivateJobs.return_value = iter(
        [gateway_pb2.ActivateJobsResponse(jobs=[_activated_job()])]
    )

    jobs = _client(stub).activate_jobs(
        "action", worker="zeebe-nomad-trigger", timeout=2.0, max_jobs=1, request_timeout=10.0
    )

    assert jobs == [
        WorkflowJob(
            key=42,
            type="action",
            headers=JobHeaders(process_id="p1", workflow_instance_key=7, element_id="step1"),
            variables='{"x": 1}',
            retries=3,
            worker="zeebe-nomad-trigger",
        )
    ]

    request = stub.ActivateJobs.call_args.args[0]
    assert request.type == "action"
    assert request.worker == "zeebe-nomad-trigger"
    assert request.timeout == 2000
    assert request.maxJobsToActivate == 1
    assert request.requestTimeout == 10000


def test_activate_jobs_returns_empty_list_when_nothing_arrives() -> None:
    stub = Mock()
    stub.ActivateJobs.return_value = iter([])

    assert _client(stub).activate_jobs("test", worker="w", timeout=2.0) == []


def test_activate_jobs_wraps_rpc_errors() -> None:
    stub = Mock()
    stub.ActivateJobs.side_effect = FakeRpcError(grpc.StatusCode.UNAVAILABLE)

    with pytest.raises(WorkflowEngineError) as excinfo:
        _client(stub).activate_jobs("action", worker="w", timeout=2.0)

    assert excinfo.value.code == "UNAVAILABLE"
    assert "gateway unavailable" in str(excinfo.value)


def test_complete_job_sends_variables() -> None:
    stub = Mock()

    _client(stub).complete_job(42, json.dumps({"x": 1, "error": True}))

    request = stub.CompleteJob.call_args.args[0]
    assert request.jobKey == 42
    assert json.loads(request.variables) == {"x": 1, "error": True}


def test_complete_job_wraps_rpc_errors() -> None:
    stub = Mock()
    stub.CompleteJob.side_effect = FakeRpcError(grpc.StatusCode.NOT_FOUND, "job not found")

    with pytest.raises(WorkflowEngineError, match="CompleteJob failed: NOT_FOUND"):
        _client(stub).complete_job(42, "{}")


def test_fail_job_sends_retries() -> None:
    stub = Mock()

    _client(stub).fail_job(42, retries=2, error_message="nope")

    request = stub.FailJob.call_args.args[0]
    assert request.jobKey == 42
    assert request.retries == 2
    assert request.errorMessage == "nope"


def test_client_requires_address() -> None:
    with pytest.raises(ValueError):
        ZeebeClient(address="", channel=Mock(), stub=Mock())
