"""CallableResult model for the kiosk-form callable protocol."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, model_validator


class CallableResult(BaseModel):
    """Result returned by the kiosk-form execute() interface.

    Attributes:
        schema_version: Version of the CallableResult schema.
        operation: The operation that produced this result.
        data: Operation output, serialized with camelCase keys.
    """

    schema_version: str = "1.0"
    operation: str
    data: dict[str, Any]

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_operation(self) -> CallableResult:
        """Ensure the operation name is set."""
        if not self.operation.strip():
            raise ValueError("'operation' must not be empty")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "operation": self.operation,
            "data": self.data,
        }
