"""Batched visual/motion prompt planning for scene texts."""

import logging
from typing import Any, Awaitable, Callable, Optional

from scenepack.models.scene import PlannedSegment
from scenepack.services.ai_service import AIService
from scenepack.services.prompts import (
    CHARACTER_DESCRIPTION,
    SCENE_ANALYZER_V1,
    STICKMAN_STYLE_INSTRUCTION,
    format_segments,
)
from scenepack.utils.errors import MalformedResponse

logger = logging.getLogger(__name__)

ANALYZER_BATCH_SIZE = 4

# Accepted response keys per logical field, in resolution order
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "source_text": ("scriptSegment", "korean_segment", "text", "script_segment"),
    "visual_prompt": ("image_prompt", "imagePrompt", "visual_prompt"),
    "motion_prompt": ("motion_prompt", "videoMotionPrompt", "video_motion_prompt"),
}

# Used when no alias is present.
# source_text: only when the caller has no source text for this position.
# visual_prompt: empty; the image generator still adds the style constraints.
# motion_prompt: a neutral slide animation.
FIELD_FALLBACKS: dict[str, str] = {
    "source_text": "Script text missing",
    "visual_prompt": "",
    "motion_prompt": "Simple 2D animation slide.",
}


def resolve_field(item: dict, field_name: str) -> Optional[str]:
    """Return the first non-empty alias value for ``field_name``, or None."""
    for alias in FIELD_ALIASES[field_name]:
        value = item.get(alias)
        if isinstance(value, str) and value.strip():
            return value
        if value is not None and not isinstance(value, str) and str(value).strip():
            return str(value)
    return None


def normalize_segment(item: Any, source_text: Optional[str] = None) -> PlannedSegment:
    """Normalize one response item into a PlannedSegment.

    Args:
        item: One element of the model's JSON array
        source_text: The scene text sent for this position, used when the
            model omitted the script field

    Returns:
        PlannedSegment with every field filled
    """
    if not isinstance(item, dict):
        item = {}

    source = resolve_field(item, "source_text")
    if source is None:
        source = source_text if source_text else FIELD_FALLBACKS["source_text"]

    visual = resolve_field(item, "visual_prompt")
    motion = resolve_field(item, "motion_prompt")

    return PlannedSegment(
        source_text=source,
        visual_prompt=visual if visual is not None else FIELD_FALLBACKS["visual_prompt"],
        motion_prompt=motion if motion is not None else FIELD_FALLBACKS["motion_prompt"],
    )


def normalize_batch(data: Any, batch: list[str]) -> list[PlannedSegment]:
    """Normalize a batch response so it has exactly one item per input scene."""
    if isinstance(data, dict):
        # Some responses wrap the array: {"scenes": [...]}
        nested = next((v for v in data.values() if isinstance(v, list)), None)
        data = nested if nested is not None else [data]
    if not isinstance(data, list):
        raise MalformedResponse("Scene analysis response is not a JSON array", raw_text=str(data))

    if len(data) != len(batch):
        logger.warning(
            f"Scene analysis returned {len(data)} items for a batch of {len(batch)}"
        )

    return [
        normalize_segment(data[i] if i < len(data) else None, source_text)
        for i, source_text in enumerate(batch)
    ]


class PromptAnalyzer:
    """Turns scene texts into visual and motion prompts, a few scenes per call."""

    def __init__(self, ai_service: AIService, batch_size: int = ANALYZER_BATCH_SIZE):
        self.ai_service = ai_service
        self.batch_size = batch_size

    async def analyze(
        self,
        scene_texts: list[str],
        on_progress: Optional[Callable[[str], Awaitable[None]]] = None,
    ) -> list[PlannedSegment]:
        """Plan prompts for every scene text.

        A failed batch fails the whole analysis; nothing partial is returned.

        Args:
            scene_texts: Scene texts in final order
            on_progress: Async callback with an "N/total" status after each batch

        Returns:
            One PlannedSegment per input text, same order
        """
        results: list[PlannedSegment] = []
        total = len(scene_texts)

        for start in range(0, total, self.batch_size):
            batch = scene_texts[start : start + self.batch_size]
            prompt = SCENE_ANALYZER_V1.format(
                style_instruction=STICKMAN_STYLE_INSTRUCTION,
                character=CHARACTER_DESCRIPTION,
                segments=format_segments(batch, offset=start),
            )

            data = await self.ai_service.generate_json(prompt)
            results.extend(normalize_batch(data, batch))

            done = min(start + self.batch_size, total)
            logger.info(f"Analyzed scenes {done}/{total}")
            if on_progress:
                await on_progress(f"Analyzing visuals... ({done}/{total})")

        return results
