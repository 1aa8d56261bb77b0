# Shared utilities for scenepack
from .cancellation import CancellationToken
from .errors import (
    GenerationFailed,
    InvalidState,
    MalformedResponse,
    PollTimeout,
    PreconditionFailed,
    ScenePackError,
    TransientIOFailure,
)

__all__ = [
    "CancellationToken",
    "ScenePackError",
    "PreconditionFailed",
    "MalformedResponse",
    "GenerationFailed",
    "TransientIOFailure",
    "PollTimeout",
    "InvalidState",
]
