"""Base utilities for prompts module.

Contains shared helpers for reading structured model output.
"""

import json
import logging
import re
from typing import Any

from scenepack.utils.errors import MalformedResponse

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```json\s*|```")


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code fences from AI response text.

    Every ```` ```json ```` and ```` ``` ```` marker is removed, wherever it
    appears, so fenced JSON surrounded by prose keeps only the prose and
    the JSON body.

    Args:
        text: Raw text that may contain markdown code blocks

    Returns:
        Cleaned text with code fence markers removed
    """
    return CODE_FENCE.sub("", text).strip()


def robust_json_parse(text: str | None) -> Any:
    """Parse model output that should be JSON but may be wrapped in prose.

    Strict parse first. Otherwise every code fence is removed and the
    outermost array (preferred when it starts before any object) or object
    is parsed on its own.

    Args:
        text: Raw response text

    Returns:
        Parsed JSON value

    Raises:
        MalformedResponse: If no JSON structure can be recovered
    """
    if not text or not text.strip():
        raise MalformedResponse("AI response is empty", raw_text=text)

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    cleaned = strip_markdown_code_blocks(text)
    start_arr = cleaned.find("[")
    end_arr = cleaned.rfind("]")
    start_obj = cleaned.find("{")
    end_obj = cleaned.rfind("}")

    if start_arr != -1 and end_arr != -1 and (start_obj == -1 or start_arr < start_obj):
        candidate = cleaned[start_arr : end_arr + 1]
    elif start_obj != -1 and end_obj != -1:
        candidate = cleaned[start_obj : end_obj + 1]
    else:
        logger.error(f"No JSON structure in AI response: {text[:500]}")
        raise MalformedResponse("No JSON structure found in AI response", raw_text=text)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing failed for AI response: {e}")
        logger.debug(f"Raw response: {text}")
        raise MalformedResponse(
            f"AI response is not valid JSON: {e}", raw_text=text
        ) from e
