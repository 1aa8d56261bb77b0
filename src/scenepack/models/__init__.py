# Data models for scenepack
from .pipeline import BatchResult, LoadingType, PipelineState, ProgressUpdate, ThumbnailText
from .project import DEFAULT_ART_STYLE, DEFAULT_ASPECT_RATIO, ProjectSummary, SavedProject
from .scene import MediaKind, PlannedSegment, Scene

__all__ = [
    "Scene",
    "PlannedSegment",
    "MediaKind",
    "SavedProject",
    "ProjectSummary",
    "DEFAULT_ASPECT_RATIO",
    "DEFAULT_ART_STYLE",
    # Orchestrator
    "PipelineState",
    "LoadingType",
    "ProgressUpdate",
    "BatchResult",
    "ThumbnailText",
]
