"""Structured operation results for the engine boundary.

Every public MapGridSystem operation returns either ``Ok(value)`` or an
``ErrorResponse``; never a value that could be read as both.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tactical_grid.grid.errors import ErrorKind, GridError


class Ok(BaseModel):
    """Successful result; ``value`` is None for commands."""

    value: Any = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def is_ok(self) -> bool:
        return True


class ErrorResponse(BaseModel):
    """Failed result: numeric code, message, kind and the error's typed fields.

    Serializes as ``{"errorCode": .., "errorMessage": .., "kind": .., "details": ..}``.
    """

    error_code: int
    error_message: str
    kind: ErrorKind
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @property
    def is_ok(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: GridError) -> "ErrorResponse":
        return cls(
            error_code=error.code,
            error_message=str(error),
            kind=error.kind,
            details=error.details(),
        )


Result = Ok | ErrorResponse
