"""Orchestrator state and result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .scene import MediaKind


class PipelineState(str, Enum):
    """Lifecycle of one production run."""

    IDLE = "idle"
    PLANNING = "planning"
    PLAN_READY = "plan_ready"
    PRODUCING = "producing"


class LoadingType(str, Enum):
    """What the busy indicator is currently showing."""

    NONE = "none"
    PLANNING = "planning"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ZIP = "zip"
    UPSCALE = "upscale"
    SINGLE = "single"


@dataclass
class ProgressUpdate:
    """Progress notification pushed to the outer surface."""

    loading_type: LoadingType
    percent: int
    message: str

    def to_dict(self) -> dict:
        return {
            "type": "progress",
            "loading_type": self.loading_type.value,
            "percent": self.percent,
            "message": self.message,
        }


@dataclass
class BatchResult:
    """Outcome of one batch operation.

    Partial success is the normal outcome. Only ``last_error`` is surfaced to
    the user; ``failed`` is kept for logs and tests.
    """

    kind: MediaKind
    attempted: list[int] = field(default_factory=list)
    succeeded: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    cancelled: bool = False
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "last_error": self.last_error,
        }


@dataclass
class ThumbnailText:
    """Two-line thumbnail caption."""

    top_text: str
    bottom_text: str

    def to_dict(self) -> dict:
        return {"topText": self.top_text, "bottomText": self.bottom_text}
