"""
LLM response parsing tests.
"""

import pytest

from services.llm_response_parser import (
    LLMParseError,
    filter_new_tags,
    parse_tag_suggestion,
    strip_code_fences,
    try_parse_json,
)


class TestParsing:

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('`{"a": 1}`') == '{"a": 1}'
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_try_parse_json_recovers_embedded_object(self):
        text = 'Sure! Here you go: {"tags": ["a", "b",], "reasoning": "x"} Hope it helps.'
        assert try_parse_json(text) == {"tags": ["a", "b"], "reasoning": "x"}

    def test_try_parse_json_without_raise(self):
        assert try_parse_json("not json at all", raise_on_error=False) is None

    def test_parse_tag_suggestion(self):
        tags, reasoning = parse_tag_suggestion(
            '{"tags": [" Quantum ", "", 3, "Materials"], "reasoning": "Physics paper"}'
        )
        assert tags == ["Quantum", "Materials"]
        assert reasoning == "Physics paper"

    def test_parse_tag_suggestion_reasoning_optional(self):
        tags, reasoning = parse_tag_suggestion('```json\n{"tags": ["A"]}\n```')
        assert tags == ["A"]
        assert reasoning == ""

    @pytest.mark.parametrize("content", [
        "I think the tags are physics and chemistry",
        '{"reasoning": "no tags key"}',
        '{"tags": "physics"}',
        '["physics"]',
    ])
    def test_parse_tag_suggestion_rejects_bad_shapes(self, content):
        with pytest.raises(LLMParseError):
            parse_tag_suggestion(content)


class TestFilterNewTags:

    def test_drops_current_tags_and_duplicates(self):
        result = filter_new_tags(["Physics", "Quantum", "Quantum", "Materials"], ["Physics"])
        assert result == ["Quantum", "Materials"]

    def test_restricts_to_allowed(self):
        result = filter_new_tags(["Quantum", "Invented"], [], allowed={"Quantum", "Physics"})
        assert result == ["Quantum"]

    def test_filter_is_idempotent(self):
        current = ["Physics"]
        allowed = {"Physics", "Quantum", "Materials"}
        once = filter_new_tags(["Quantum", "Physics", "Materials", "Quantum", "X"], current, allowed)
        twice = filter_new_tags(once, current, allowed)
        assert once == twice == ["Quantum", "Materials"]
