"""Command dispatch and response envelope helpers."""

from __future__ import annotations

import sys
from typing import Any

import orjson

from ason.contracts.common import (
    AsonError,
    DecodeError,
    EncodeError,
    ErrorDetail,
    Metrics,
    ResponseEnvelope,
    Target,
    UnresolvedReferenceError,
)

# Exit code mapping
EXIT_CODES = {
    "success": 0,
    "validation": 10,
    "decode": 30,
    "io": 50,
    "internal": 90,
}

VALIDATION_CODE_MARKERS = (
    "VALIDATION",
    "USAGE",
    "INVALID_ARGUMENT",
    "OPTION",
    "CONFIG",
    "ENCODE",
    "INPUT_EMPTY",
    "JSON_INVALID",
)

DECODE_CODE_MARKERS = ("DECODE", "STRUCTURAL", "UNRESOLVED")

IO_CODE_MARKERS = ("LOCK",)

# Most specific first
CODEC_ERROR_CODES: tuple[tuple[type[AsonError], str], ...] = (
    (UnresolvedReferenceError, "ERR_UNRESOLVED_REFERENCE"),
    (DecodeError, "ERR_STRUCTURAL"),
    (EncodeError, "ERR_ENCODE"),
)


def success_envelope(
    command: str,
    result: Any,
    *,
    target: Target | None = None,
    warnings: list | None = None,
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


def error_code_for(exc: AsonError) -> str:
    """Map a codec exception to its envelope error code."""
    for exc_type, code in CODEC_ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "ERR_INTERNAL"


def codec_error_envelope(command: str, exc: AsonError, *, target: Target | None = None) -> ResponseEnvelope:
    """Error envelope for a codec failure; decode errors carry their line number."""
    details = {"line": exc.line} if isinstance(exc, DecodeError) and exc.line is not None else None
    return error_envelope(command, error_code_for(exc), str(exc), target=target, details=details)


def output_json(envelope: ResponseEnvelope) -> str:
    """Serialize envelope to JSON string using orjson."""
    data = envelope.model_dump(mode="json")
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
    if any(marker in code for marker in DECODE_CODE_MARKERS):
        return EXIT_CODES["decode"]
    if any(marker in code for marker in VALIDATION_CODE_MARKERS):
        return EXIT_CODES["validation"]
    if any(marker in code for marker in IO_CODE_MARKERS):
        return EXIT_CODES["io"]
    if code.startswith("ERR_IO") or code.endswith("NOT_FOUND"):
        return EXIT_CODES["io"]
    return EXIT_CODES["internal"]
