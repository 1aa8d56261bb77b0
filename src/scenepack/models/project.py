"""Saved production runs."""

from dataclasses import dataclass, field

from .scene import Scene

DEFAULT_ASPECT_RATIO = "16:9"
DEFAULT_ART_STYLE = "stickman"


@dataclass
class SavedProject:
    """A snapshot of one production run.

    ``scenes`` is always a deep copy taken at save time, never the live
    collection the orchestrator is mutating.
    """

    id: str
    timestamp: int  # milliseconds since epoch
    script: str
    scenes: list[Scene] = field(default_factory=list)
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    art_style: str = DEFAULT_ART_STYLE
    falai_key: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for storage and API responses."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "script": self.script,
            "media": [s.to_dict() for s in self.scenes],
            "aspectRatio": self.aspect_ratio,
            "artStyle": self.art_style,
            "falAiKey": self.falai_key,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SavedProject":
        return cls(
            id=str(data["id"]),
            timestamp=int(data.get("timestamp", 0)),
            script=data.get("script", ""),
            scenes=[Scene.from_dict(s) for s in data.get("media", data.get("scenes", []))],
            aspect_ratio=data.get("aspectRatio", DEFAULT_ASPECT_RATIO),
            art_style=data.get("artStyle", DEFAULT_ART_STYLE),
            falai_key=data.get("falAiKey") or "",
        )

    def summary(self) -> "ProjectSummary":
        preview = self.script[:100] + "..." if len(self.script) > 100 else self.script
        return ProjectSummary(
            id=self.id,
            timestamp=self.timestamp,
            scene_count=len(self.scenes),
            image_count=sum(1 for s in self.scenes if s.media_url),
            script_preview=preview,
        )


@dataclass
class ProjectSummary:
    """Listing entry for a saved project."""

    id: str
    timestamp: int
    scene_count: int
    image_count: int
    script_preview: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "scene_count": self.scene_count,
            "image_count": self.image_count,
            "script_preview": self.script_preview,
        }
