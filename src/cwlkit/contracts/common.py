"""Common Pydantic models: response envelope, errors, warnings, metrics."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CwlError(Exception):
    """Base class for every error raised by cwlkit."""

    code = "ERR_INTERNAL"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class DecodeError(CwlError):
    """Raised when a document tree cannot be decoded into a Root."""

    code = "ERR_DECODE_FAILED"


class ResolveError(CwlError):
    """Raised when a Root cannot be resolved into commands."""

    code = "ERR_RESOLVE_FAILED"


class MissingInputError(ResolveError):
    """Raised when an unbound, non-optional input has neither a provided value nor a default."""

    code = "ERR_MISSING_INPUT"

    def __init__(self, input_id: str) -> None:
        super().__init__(
            f"Input '{input_id}' has no default and was not provided",
            details={"input": input_id},
        )
        self.input_id = input_id


class ScatterError(ResolveError):
    """Raised for scatter declarations that cannot be expanded."""

    code = "ERR_SCATTER_INVALID"


class EntryNotFoundError(ResolveError):
    """Raised when a $graph entry or run reference cannot be found."""

    code = "ERR_ENTRY_NOT_FOUND"


class UnsupportedConstructError(CwlError):
    """Raised for language features cwlkit does not implement."""

    code = "ERR_UNSUPPORTED_CONSTRUCT"


class ExpressionEvaluationError(CwlError):
    """Raised when an embedded expression fails to evaluate."""

    code = "ERR_EXPRESSION_FAILED"

    def __init__(self, expression: str, message: str) -> None:
        super().__init__(
            f"Cannot evaluate {expression!r}: {message}",
            details={"expression": expression},
        )
        self.expression = expression


class PendingValueError(ExpressionEvaluationError):
    """Raised when an expression needs a value another step has not produced yet."""


class FileOperationError(CwlError):
    """Raised when staging, stat or copy operations fail."""

    code = "ERR_IO_FAILED"


class Target(BaseModel):
    """Identifies the document and parameter files a command worked on."""

    file: str | None = None
    params: str | None = None
    entry: str | None = None


class WarningDetail(BaseModel):
    """Structured warning."""

    code: str
    message: str
    path: str | None = None


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
