"""Scene models for the production pipeline."""

from dataclasses import dataclass
from enum import Enum


class MediaKind(str, Enum):
    """A media capability that can be pending on a scene."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    UPSCALE = "upscale"

    @property
    def pending_field(self) -> str:
        return f"{self.value}_pending"

    @property
    def result_field(self) -> str:
        """Scene field the capability writes. Upscale overwrites the image."""
        return {
            MediaKind.IMAGE: "media_url",
            MediaKind.VIDEO: "video_url",
            MediaKind.AUDIO: "audio_url",
            MediaKind.UPSCALE: "media_url",
        }[self]


@dataclass
class PlannedSegment:
    """Normalized prompt-analyzer output for one scene."""

    source_text: str
    visual_prompt: str
    motion_prompt: str

    def to_dict(self) -> dict:
        return {
            "source_text": self.source_text,
            "visual_prompt": self.visual_prompt,
            "motion_prompt": self.motion_prompt,
        }


@dataclass
class Scene:
    """One unit of the production pipeline.

    ``index`` is 1-based and fixed once the plan is confirmed. ``original_text``
    is the verbatim source segment and is never rewritten downstream.
    """

    index: int
    original_text: str
    visual_prompt: str = ""
    motion_prompt: str = ""
    is_intro_segment: bool = False
    media_url: str = ""
    video_url: str = ""
    audio_url: str = ""
    # Processing flags, at most one of each kind per scene
    image_pending: bool = False
    video_pending: bool = False
    audio_pending: bool = False
    upscale_pending: bool = False

    def has(self, kind: MediaKind) -> bool:
        """Whether the result field for ``kind`` is populated."""
        return bool(getattr(self, kind.result_field))

    def is_pending(self, kind: MediaKind) -> bool:
        return getattr(self, kind.pending_field)

    def to_dict(self) -> dict:
        """Convert to the saved-project wire format."""
        return {
            "index": self.index,
            "originalScriptSegment": self.original_text,
            "prompt": self.visual_prompt,
            "videoMotionPrompt": self.motion_prompt,
            "isIntro": self.is_intro_segment,
            "mediaUrl": self.media_url,
            "videoUrl": self.video_url,
            "audioUrl": self.audio_url,
            "isProcessing": self.image_pending,
            "isVideoProcessing": self.video_pending,
            "isAudioProcessing": self.audio_pending,
            "isUpscaling": self.upscale_pending,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Scene":
        """Create a scene from the wire format (camelCase or snake_case keys)."""

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls(
            index=int(pick("index")),
            original_text=str(pick("originalScriptSegment", "original_text", default="")),
            visual_prompt=str(pick("prompt", "visual_prompt", default="")),
            motion_prompt=str(pick("videoMotionPrompt", "motion_prompt", default="")),
            is_intro_segment=bool(pick("isIntro", "is_intro_segment", default=False)),
            media_url=str(pick("mediaUrl", "media_url", default="")),
            video_url=str(pick("videoUrl", "video_url", default="")),
            audio_url=str(pick("audioUrl", "audio_url", default="")),
            image_pending=bool(pick("isProcessing", "image_pending", default=False)),
            video_pending=bool(pick("isVideoProcessing", "video_pending", default=False)),
            audio_pending=bool(pick("isAudioProcessing", "audio_pending", default=False)),
            upscale_pending=bool(pick("isUpscaling", "upscale_pending", default=False)),
        )
