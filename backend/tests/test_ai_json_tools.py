"""Tests for insight_api.services.ai.common.json_tools."""

import json
import unittest

from insight_api.services.ai.common.errors import ExtractionError
from insight_api.services.ai.common.json_tools import (
    OutputShape,
    extract_structured,
    repair_escapes,
    strip_code_fence,
    strip_leading_reasoning,
    strip_reasoning,
)


class StripTests(unittest.TestCase):
    def test_strip_code_fence_with_language_tag(self):
        self.assertEqual(strip_code_fence('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_strip_code_fence_leaves_plain_text(self):
        self.assertEqual(strip_code_fence('  {"a": 1}  '), '{"a": 1}')

    def test_strip_reasoning_block(self):
        self.assertEqual(strip_reasoning("<think>plan the answer</think>\nFinal answer"), "Final answer")

    def test_strip_reasoning_multiline_case_insensitive(self):
        text = "<THINK>\nline one\nline two\n</THINK>Answer"
        self.assertEqual(strip_reasoning(text), "Answer")

    def test_strip_leading_reasoning_keeps_tags_inside_payload(self):
        payload = '{"a": "<think>x</think>"}'
        self.assertEqual(strip_leading_reasoning("<think>plan</think>\n" + payload), payload)
        self.assertEqual(strip_leading_reasoning(payload), payload)

    def test_strip_leading_reasoning_several_blocks(self):
        self.assertEqual(strip_leading_reasoning("<think>a</think>\n<think>b</think> answer"), "answer")


class RepairEscapesTests(unittest.TestCase):
    def test_legal_escapes_untouched(self):
        span = r'{"a": "line\nnext \"q\" \\ \/ \t é"}'
        self.assertEqual(repair_escapes(span), span)

    def test_illegal_backslash_doubled(self):
        self.assertEqual(repair_escapes(r'"\s+\d"'), r'"\\s+\\d"')

    def test_unicode_escape_consumed_as_unit(self):
        # Six characters form one legal escape; the backslash after it is illegal.
        self.assertEqual(repair_escapes('"\\u0041\\q"'), '"\\u0041\\\\q"')

    def test_escaped_backslash_before_illegal_escape(self):
        self.assertEqual(repair_escapes('"\\\\\\d"'), '"\\\\\\\\d"')

    def test_short_unicode_escape_is_repaired(self):
        self.assertEqual(repair_escapes(r'"\u12"'), r'"\\u12"')

    def test_trailing_backslash_doubled(self):
        self.assertEqual(repair_escapes("abc\\"), "abc\\\\")

    def test_latex_survives(self):
        raw = r'{"formula": "\frac{a}{b} + \alpha"}'
        parsed = json.loads(repair_escapes(raw))
        # \f is a legal escape and parses as a form feed.
        self.assertEqual(parsed["formula"], "\frac{a}{b} + \\alpha")


class ExtractStructuredTests(unittest.TestCase):
    def test_fenced_json_inside_prose(self):
        raw = 'prefix ```json\n{"a":1}\n``` suffix'
        self.assertEqual(extract_structured(raw, OutputShape.JSON_OBJECT), {"a": 1})

    def test_regex_backslashes_repaired_without_breaking_newline(self):
        raw = '{"pattern": "regex: \\s+\\d", "text": "one\\ntwo"}'
        result = extract_structured(raw, OutputShape.JSON_OBJECT)
        self.assertEqual(result["pattern"], "regex: \\s+\\d")
        self.assertEqual(result["text"], "one\ntwo")

    def test_array_shape_slices_brackets(self):
        raw = 'Here you go: [{"question": "Q?"}] hope it helps'
        self.assertEqual(extract_structured(raw, OutputShape.JSON_ARRAY), [{"question": "Q?"}])

    def test_shape_detected_when_not_given(self):
        self.assertEqual(extract_structured("[1, 2, 3]"), [1, 2, 3])
        self.assertEqual(extract_structured('x {"k": [1]} y'), {"k": [1]})

    def test_reasoning_block_removed_first(self):
        raw = '<think>{"draft": true}</think>{"final": true}'
        self.assertEqual(extract_structured(raw, OutputShape.JSON_OBJECT), {"final": True})

    def test_reasoning_tags_inside_json_values_preserved(self):
        content = "Models wrap thoughts in <think>...</think> tags before answering."
        raw = json.dumps({"chapters": [{"content": content}]})

        self.assertEqual(extract_structured(raw), {"chapters": [{"content": content}]})
        self.assertEqual(extract_structured("<think>draft</think>" + raw), {"chapters": [{"content": content}]})

    def test_unclosed_reasoning_block_skipped(self):
        raw = "<think>let me think about it\n{\"final\": true}"
        self.assertEqual(extract_structured(raw, OutputShape.JSON_OBJECT), {"final": True})

    def test_raw_newlines_inside_strings_tolerated(self):
        raw = '{"content": "line one\nline two"}'
        self.assertEqual(extract_structured(raw, OutputShape.JSON_OBJECT)["content"], "line one\nline two")

    def test_no_delimiters(self):
        with self.assertRaises(ExtractionError) as ctx:
            extract_structured("plain text only", OutputShape.JSON_OBJECT)
        self.assertEqual(ctx.exception.kind, ExtractionError.NO_DELIMITERS)

    def test_closing_before_opening_is_no_delimiters(self):
        with self.assertRaises(ExtractionError) as ctx:
            extract_structured("} oops {", OutputShape.JSON_OBJECT)
        self.assertEqual(ctx.exception.kind, ExtractionError.NO_DELIMITERS)

    def test_parse_failed(self):
        with self.assertRaises(ExtractionError) as ctx:
            extract_structured("{invalid json}", OutputShape.JSON_OBJECT)
        self.assertEqual(ctx.exception.kind, ExtractionError.PARSE_FAILED)
        self.assertTrue(ctx.exception.reason)

    def test_idempotent_on_own_output(self):
        samples = [
            '{"a": "x\\\\y", "b": [1, 2, {"c": "\\u00e9"}], "d": "tab\\there"}',
            '```json\n{"regex": "\\d+\\w"}\n```',
            '[{"q": "1+1?", "options": ["1", "2"], "answer": "2"}]',
        ]
        for raw in samples:
            first = extract_structured(raw)
            second = extract_structured(json.dumps(first))
            self.assertEqual(first, second)
