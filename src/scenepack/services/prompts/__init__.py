"""Prompts module - centralized prompt templates for AI services.

Re-exports all prompt constants and utilities for easy importing:
    from scenepack.services.prompts import robust_json_parse, SCENE_ANALYZER_V1
"""

from scenepack.services.prompts._base import robust_json_parse, strip_markdown_code_blocks
from scenepack.services.prompts.storyboard import (
    CHARACTER_DESCRIPTION,
    IMAGE_PROMPT_TEMPLATE,
    IMAGE_STYLE_SUFFIX,
    SCENE_ANALYZER_V1,
    SCRIPT_REFINER_V1,
    STICKMAN_STYLE_INSTRUCTION,
    THUMBNAIL_TEXT_V1,
    format_segments,
)

__all__ = [
    # Utilities
    "robust_json_parse",
    "strip_markdown_code_blocks",
    "format_segments",
    # Storyboard prompts
    "CHARACTER_DESCRIPTION",
    "STICKMAN_STYLE_INSTRUCTION",
    "SCENE_ANALYZER_V1",
    "IMAGE_STYLE_SUFFIX",
    "IMAGE_PROMPT_TEMPLATE",
    "THUMBNAIL_TEXT_V1",
    "SCRIPT_REFINER_V1",
]
