"""Unit tests for structured output parsing and prompt templates."""

import pytest

from scenepack.services.prompts import (
    format_segments,
    robust_json_parse,
    strip_markdown_code_blocks,
)
from scenepack.utils.errors import MalformedResponse


@pytest.mark.unit
class TestRobustJsonParse:
    """Tests for tolerant JSON recovery."""

    def test_plain_json(self):
        assert robust_json_parse('[{"a": 1}]') == [{"a": 1}]

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n[{"image_prompt": "x"}]\n```\nDone.'
        assert robust_json_parse(text) == [{"image_prompt": "x"}]

    def test_object_in_prose(self):
        text = 'Sure! {"topText": "A", "bottomText": "B"} Hope that helps.'
        assert robust_json_parse(text) == {"topText": "A", "bottomText": "B"}

    def test_array_preferred_when_first(self):
        text = 'Result: [{"a": 1}, {"b": 2}] trailing'
        assert robust_json_parse(text) == [{"a": 1}, {"b": 2}]

    def test_no_brackets_raises(self):
        with pytest.raises(MalformedResponse) as exc_info:
            robust_json_parse("I could not do that.")
        assert exc_info.value.raw_text == "I could not do that."

    def test_empty_raises(self):
        with pytest.raises(MalformedResponse):
            robust_json_parse("")
        with pytest.raises(MalformedResponse):
            robust_json_parse(None)

    def test_broken_json_raises(self):
        with pytest.raises(MalformedResponse):
            robust_json_parse('[{"a": 1,, }]')


@pytest.mark.unit
def test_format_segments_numbers_with_offset():
    rendered = format_segments(["First.", "Second."], offset=4)
    assert rendered.splitlines() == ["[Scene 4]: First.", "[Scene 5]: Second."]


@pytest.mark.unit
class TestStripMarkdownCodeBlocks:
    """Tests for code fence removal."""

    def test_json_fence(self):
        assert strip_markdown_code_blocks('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_markdown_code_blocks("```\n[1, 2]\n```") == "[1, 2]"

    def test_fence_inside_prose(self):
        text = "Here:\n```json\n[1]\n```\nDone."
        assert strip_markdown_code_blocks(text) == "Here:\n[1]\n\nDone."

    def test_plain_text_untouched(self):
        assert strip_markdown_code_blocks("  no fences  ") == "no fences"
