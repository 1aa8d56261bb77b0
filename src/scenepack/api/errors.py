"""Mapping from scenepack errors to HTTP errors."""

from fastapi import HTTPException

from scenepack.utils.errors import (
    GenerationFailed,
    InvalidState,
    MalformedResponse,
    PollTimeout,
    PreconditionFailed,
    TransientIOFailure,
)

STATUS_CODES: list[tuple[type[Exception], int]] = [
    (PreconditionFailed, 400),
    (KeyError, 404),
    (InvalidState, 409),
    (MalformedResponse, 502),
    (GenerationFailed, 502),
    (TransientIOFailure, 502),
    (PollTimeout, 504),
]


def to_http_exception(error: Exception) -> HTTPException:
    """Build the HTTPException for an error raised by the orchestrator."""
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            # KeyError wraps its message in quotes
            detail = error.args[0] if isinstance(error, KeyError) and error.args else str(error)
            return HTTPException(status_code=status_code, detail=str(detail))
    return HTTPException(status_code=500, detail=str(error))
