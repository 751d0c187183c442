"""Common models and exceptions: response envelope, errors, metrics."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AsonError(Exception):
    """Base class for every codec failure."""


class EncodeError(AsonError):
    """Raised when a value falls outside the JSON data model."""


class DecodeError(AsonError):
    """Raised when ASON text cannot be turned back into a value."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class StructuralError(DecodeError):
    """Block boundaries or literals cannot be determined."""


class UnresolvedReferenceError(DecodeError):
    """A ``$ref``, ``&objN`` or ``#N`` token has no definition (strict mode only)."""


class Target(BaseModel):
    """Identifies the input/output documents of a command."""

    input: str | None = None
    output: str | None = None
    mode: str | None = None


class WarningDetail(BaseModel):
    """Structured warning."""

    code: str
    message: str


class ErrorDetail(BaseModel):
    """Structured error."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class Metrics(BaseModel):
    """Execution metrics."""

    duration_ms: int = 0


class ResponseEnvelope(BaseModel):
    """Standard response envelope returned by every command."""

    ok: bool = True
    command: str = ""
    target: Target = Field(default_factory=Target)
    result: Any = None
    warnings: list[WarningDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
