"""Unit tests for webdigest.output."""

from __future__ import annotations

from webdigest.output import clean_output, extract_output_text


class TestExtractOutputText:
    def test_flat_output_text(self) -> None:
        assert extract_output_text({"output_text": "Hello"}) == "Hello"

    def test_nested_output_segments_are_concatenated(self) -> None:
        payload = {
            "output": [
                {"type": "reasoning", "summary": []},
                {
                    "type": "message",
                    "content": [
                        {"type": "output_text", "text": "Part one. "},
                        {"type": "output_text", "text": "Part two."},
                    ],
                },
            ]
        }
        assert extract_output_text(payload) == "Part one. Part two."

    def test_chat_choices_joined_by_newline(self) -> None:
        payload = {
            "choices": [
                {"message": {"content": "first"}},
                {"message": {"content": "second"}},
            ]
        }
        assert extract_output_text(payload) == "first\nsecond"

    def test_flat_text_takes_precedence(self) -> None:
        payload = {
            "output_text": "flat",
            "output": [{"content": [{"text": "nested"}]}],
        }
        assert extract_output_text(payload) == "flat"

    def test_empty_nested_falls_through_to_choices(self) -> None:
        payload = {"output": [{"content": []}], "choices": [{"message": {"content": "chat"}}]}
        assert extract_output_text(payload) == "chat"

    def test_no_text_anywhere(self) -> None:
        assert extract_output_text({"status": "completed"}) == ""


class TestCleanOutput:
    def test_plain_text_passthrough(self) -> None:
        assert clean_output("  Just a summary.  ") == "Just a summary."

    def test_strips_json_fence_and_joins_list(self) -> None:
        raw = '```json\n["First paragraph.", "Second paragraph."]\n```'
        assert clean_output(raw) == "First paragraph.\n\nSecond paragraph."

    def test_strips_bare_fence(self) -> None:
        assert clean_output("```\nFenced text\n```") == "Fenced text"

    def test_json_string_is_unwrapped(self) -> None:
        assert clean_output('"quoted summary"') == "quoted summary"

    def test_json_object_left_as_text(self) -> None:
        assert clean_output('{"summary": "x"}') == '{"summary": "x"}'

    def test_json_number_left_as_text(self) -> None:
        assert clean_output("42") == "42"

    def test_list_items_render_as_json_values(self) -> None:
        assert clean_output('["a", null, true]') == "a\n\n\n\ntrue"
        assert clean_output("[1, 2.5, false]") == "1\n\n2.5\n\nfalse"
