"""Response envelope helpers and exit-code mapping."""

from __future__ import annotations

import sys
from typing import Any

import orjson

from cwlkit.contracts.common import (
    CwlError,
    ErrorDetail,
    Metrics,
    ResponseEnvelope,
    Target,
    WarningDetail,
)

# Exit code mapping
EXIT_CODES = {
    "success": 0,
    "validation": 10,
    "decode": 20,
    "input": 30,
    "expression": 40,
    "io": 50,
    "unsupported": 70,
    "internal": 90,
}

VALIDATION_CODE_MARKERS = (
    "VALIDATION",
    "DOCUMENT_INVALID",
    "SCATTER",
    "USAGE",
    "ENTRY_NOT_FOUND",
    "EMPTY_COMMAND",
    "RESOLVE_FAILED",
    "CONFIG",
)


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    warnings: list[WarningDetail] | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=True,
        command=command,
        target=target or Target(),
        result=result,
        warnings=warnings or [],
        metrics=Metrics(duration_ms=duration_ms),
    )


def error_envelope(
    command: str,
    code: str,
    message: str,
    *,
    target: Target | None = None,
    details: dict | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        ok=False,
        command=command,
        target=target or Target(),
        errors=[ErrorDetail(code=code, message=message, details=details)],
        metrics=Metrics(duration_ms=duration_ms),
    )


def envelope_for_error(
    command: str,
    exc: CwlError,
    *,
    target: Target | None = None,
    duration_ms: int = 0,
) -> ResponseEnvelope:
    """Build an error envelope from a cwlkit exception."""
    return error_envelope(
        command,
        exc.code,
        str(exc),
        target=target,
        details=exc.details or None,
        duration_ms=duration_ms,
    )


def output_json(envelope: ResponseEnvelope) -> str:
    """Serialize envelope to JSON string using orjson."""
    data = envelope.model_dump(mode="json", by_alias=True)
    return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()


def print_response(envelope: ResponseEnvelope) -> None:
    """Print response as JSON to stdout."""
    sys.stdout.write(output_json(envelope) + "\n")


def exit_code_for(envelope: ResponseEnvelope) -> int:
    """Determine exit code from envelope errors."""
    if envelope.ok:
        return 0
    if not envelope.errors:
        return EXIT_CODES["internal"]
    code = envelope.errors[0].code.upper()
    if "UNSUPPORTED" in code:
        return EXIT_CODES["unsupported"]
    if "DECODE" in code or "PARSE" in code:
        return EXIT_CODES["decode"]
    if "MISSING_INPUT" in code or "PARAMS" in code:
        return EXIT_CODES["input"]
    if "EXPRESSION" in code:
        return EXIT_CODES["expression"]
    if any(marker in code for marker in VALIDATION_CODE_MARKERS):
        return EXIT_CODES["validation"]
    if code.startswith("ERR_IO") or "LOCK" in code or code.endswith("NOT_FOUND"):
        return EXIT_CODES["io"]
    return EXIT_CODES["internal"]
