"""Script segmentation into scene-sized text groups."""

import re

# Intro: high detail, Body: semantic grouping of 3-4 sentences
INTRO_GROUP_SIZE = 2
BODY_GROUP_SIZE = 4

PARAGRAPH_SPLIT = re.compile(r"\n\s*\n|\n")
# Terminal punctuation with an optional closing quote, or a trailing fragment
SENTENCE_PATTERN = re.compile(r"""[^.!?]+[.!?]+["']?|[^.!?]+$""")


def split_sentences(paragraph: str) -> list[str]:
    """Split one paragraph into trimmed, non-empty sentences."""
    sentences = SENTENCE_PATTERN.findall(paragraph) or [paragraph]
    return [s.strip() for s in sentences if s.strip()]


def segment(text: str, max_group_size: int) -> list[str]:
    """Split text into scene texts of at most ``max_group_size`` sentences.

    Paragraphs are split on line boundaries and groups never span two
    paragraphs. Sentences inside a group are joined with a single space.

    Args:
        text: Raw script text
        max_group_size: Maximum sentences per scene (>= 1)

    Returns:
        Ordered list of scene texts, empty for blank input
    """
    if max_group_size < 1:
        raise ValueError(f"max_group_size must be >= 1, got {max_group_size}")
    if not text or not text.strip():
        return []

    paragraphs = [p for p in PARAGRAPH_SPLIT.split(text) if p.strip()]

    segments: list[str] = []
    for paragraph in paragraphs:
        group: list[str] = []
        for sentence in split_sentences(paragraph):
            group.append(sentence)
            if len(group) >= max_group_size:
                segments.append(" ".join(group))
                group = []
        # Remainder of this paragraph
        if group:
            segments.append(" ".join(group))

    return segments


def segment_script(intro: str, body: str) -> list[tuple[str, bool]]:
    """Segment the intro and body and concatenate them, intro first.

    Returns:
        List of ``(scene_text, is_intro_segment)`` in final scene order
    """
    intro_segments = segment(intro, INTRO_GROUP_SIZE)
    body_segments = segment(body, BODY_GROUP_SIZE)
    return [(s, True) for s in intro_segments] + [(s, False) for s in body_segments]
