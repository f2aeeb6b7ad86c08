"""Deterministic transaction ids for Nomad job registration."""

from __future__ import annotations

from zeebe_nomad_trigger.zeebe.client import JobHeaders


def derive_transaction_id(headers: JobHeaders, key: int) -> str:
    """Return the Nomad job id for one workflow job.

    The id is `{processId}_{workflowInstanceKey}_{elementId}_{key}`. Redeliveries of
    the same Zeebe job produce the same id, so Nomad sees them as one job.
    Fields are joined as-is; values containing `_` are not escaped.
    """

    return f"{headers.process_id}_{headers.workflow_instance_key}_{headers.element_id}_{key}"
