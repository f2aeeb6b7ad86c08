"""Zeebe job variables with the reserved `error` flag.

Zeebe's native fail-job command only supports retries, it cannot route a
process instance to a different path. Instead, jobs are completed with
`error=true` in their variables and the BPMN model branches on that flag with
an exclusive gateway. Every other variable passes through untouched.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class PayloadDecodeError(ValueError):
    """Raised when job variables cannot be turned into a payload."""


class JobPayload(BaseModel):
    """Job variables: the typed `error` flag plus an open bag of business fields."""

    model_config = ConfigDict(extra="allow")

    error: bool = Field(default=False, strict=True)

    @field_validator("error", mode="before")
    @classmethod
    def _null_means_unset(cls, value: Any) -> Any:
        return False if value is None else value

    @classmethod
    def decode(cls, raw: str | None) -> JobPayload:
        """Strictly decode a variables document.

        The document must be a JSON object, and a present `error` field must be a
        boolean (or null). Anything else is treated as a malformed payload.
        """

        text = (raw or "").strip() or "{}"
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise PayloadDecodeError(f"Invalid job variables: {e}") from e

    @classmethod
    def decode_lenient(cls, raw: str | None) -> JobPayload:
        """Decode any JSON object, discarding whatever the `error` field held."""

        text = (raw or "").strip() or "{}"
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PayloadDecodeError(f"Job variables are not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise PayloadDecodeError(
                f"Job variables must be a JSON object, got {type(data).__name__}"
            )

        data.pop("error", None)
        return cls.model_validate(data)

    def with_error(self, error: bool) -> JobPayload:
        return self.model_copy(update={"error": error})

    def encode(self) -> str:
        return self.model_dump_json()
