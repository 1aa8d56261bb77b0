"""Storyboard prompt templates.

Contains prompts for:
- STICKMAN_STYLE_INSTRUCTION: Fixed art-style directive embedded in every plan request
- SCENE_ANALYZER_V1: Visual + motion prompt planning for a batch of scenes
- IMAGE_PROMPT_TEMPLATE: Style and language constraints appended to image prompts
- THUMBNAIL_TEXT_V1: Two-line thumbnail caption
- SCRIPT_REFINER_V1: Free-text script revision
"""

CHARACTER_DESCRIPTION = (
    "A simple 2D stick figure with a black line body and a distinct round red cartoon helmet."
)

STICKMAN_STYLE_INSTRUCTION = """[STYLE RULE: 2D CARTOON STICKMAN]
1. STYLE DEFINITION: 2D Cartoon & Flash Animation style. BOLD outlines, FLAT colors, vibrant saturation. NO photorealism, NO 3D rendering.
2. CHARACTER: Protagonist is a "Helmet-wearing Stick Figure". Body is a simple black line circle-man. The helmet is a simple, cute round red helmet. Avoid complex mechanical designs.
3. ADAPTIVE BACKGROUND (Choose one):
   - Style A (Info-driven): If the text segment contains data/facts, use stylized cartoon infographics, charts, graphs, and cute Korean hand-drawn style typography (Hangul).
   - Style B (Atmospheric): If the text segment is descriptive, use simple graphic cartoon scenery."""

# Scene Analyzer v1 prompt
# Template placeholders: {style_instruction}, {character}, {segments}
SCENE_ANALYZER_V1 = """{style_instruction}

[TASK: CONTINUOUS CARTOON STORYBOARD]
Protagonist: {character}

Analyze the context of each scene and choose the better treatment, [Style A: info-driven] or [Style B: atmospheric], then write an English image prompt for it.
Every scene MUST copy its original script text, unchanged, into the "scriptSegment" field.
Return exactly one item per scene, in the same order.

Segments:
{segments}

JSON response format: [{{"scriptSegment": "original script", "image_prompt": "English Visual Prompt", "videoMotionPrompt": "Motion description"}}]"""

# Image prompt constraints
# Template placeholders: {prompt}
IMAGE_STYLE_SUFFIX = """{prompt}. Style: 2D cartoon illustration, bold black outlines, flat colors, flash animation style, simple graphic background, high quality, no photorealism, no 3D effects. Character is a stick man with a red round helmet.
IMPORTANT: If there is any text inside the image, it MUST be written in Korean (Hangul). Do not use English text in the image."""

# Template placeholders: {styled_prompt}
IMAGE_PROMPT_TEMPLATE = (
    "High-quality masterpiece, {styled_prompt}. Clean and sharp lines, no blurry parts, no watermarks."
)

# Thumbnail Text v1 prompt
# Template placeholders: {script}
THUMBNAIL_TEXT_V1 = """Write an eye-catching two-line YouTube thumbnail caption for this script.
Keep each line short and punchy, in the script's language.

Script: {script}

Return ONLY JSON: {{"topText": "line 1", "bottomText": "line 2"}}"""

# Script Refiner v1 prompt
# Template placeholders: {instruction}, {script}
SCRIPT_REFINER_V1 = """Revise the script below according to the instruction. Return only the revised script text.

Instruction: {instruction}

Script:
{script}"""


def format_segments(segments: list[str], offset: int = 0) -> str:
    """Render a batch of scene texts as ``[Scene n]: text`` lines."""
    return "\n".join(f"[Scene {offset + i}]: {s}" for i, s in enumerate(segments))
