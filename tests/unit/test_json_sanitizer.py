"""tests for json recovery from llm replies, including the brace-scan failure modes"""

from chainsage.utils.json_sanitizer import (
    extract_json_object,
    parse_json_object,
    repair_json,
    strip_code_fence,
)


def test_strip_code_fence_json_and_plain():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('text\n```\n{"b": 2}\n```\nmore') == '{"b": 2}'
    assert strip_code_fence("no fence here") is None


def test_extract_uses_first_brace_before_marker():
    text = 'Here you go: {"summary": "ok", "risks": [{"severity": "high"}]} hope that helps'
    assert extract_json_object(text, '"summary"') == '{"summary": "ok", "risks": [{"severity": "high"}]}'


def test_extract_skips_spans_that_close_before_marker():
    text = 'Context {note} then {"summary": "real"}'
    # "{note}" closes before the marker, so the scan moves on
    assert extract_json_object(text, '"summary"') == '{"summary": "real"}'


def test_extract_without_marker_returns_first_balanced_span():
    assert extract_json_object('prefix {"a": {"b": 1}} suffix') == '{"a": {"b": 1}}'


def test_extract_missing_marker_falls_back_to_first_span():
    assert extract_json_object('x {"a": 1} y', '"summary"') == '{"a": 1}'


def test_extract_unbalanced_returns_none():
    assert extract_json_object('{"summary": "cut off', '"summary"') is None
    assert extract_json_object("") is None
    assert extract_json_object("no braces at all") is None


def test_extract_open_brace_inside_string_never_balances():
    # known limitation: braces in string values are counted
    text = '{"summary": "use { carefully", "risks": []}'
    # the outer object never closes, so only the fragment from the inner brace balances
    assert extract_json_object(text, '"summary"') == '{ carefully", "risks": []}'
    assert parse_json_object(text, '"summary"') is None


def test_extract_close_brace_inside_string_cuts_span_short():
    text = 'answer: {"summary": "a } b", "x": 1}'
    span = extract_json_object(text, '"summary"')
    assert span == '{"summary": "a }'


def test_parse_json_object_whole_reply():
    assert parse_json_object('{"summary": "s"}') == {"summary": "s"}


def test_parse_json_object_fenced():
    assert parse_json_object('Sure!\n```json\n{"summary": "s"}\n```', '"summary"') == {"summary": "s"}


def test_parse_json_object_embedded_in_prose():
    reply = 'Analysis follows. {"summary": "vault", "securityScore": 80} End.'
    assert parse_json_object(reply, '"summary"') == {"summary": "vault", "securityScore": 80}


def test_parse_json_object_repairs_trailing_commas():
    assert parse_json_object('{"summary": "s", "risks": [1, 2,],}') == {"summary": "s", "risks": [1, 2]}


def test_parse_json_object_rejects_non_objects():
    assert parse_json_object("[1, 2, 3]") is None
    assert parse_json_object("42") is None
    assert parse_json_object('"just a string"') is None


def test_parse_json_object_truncated_span_is_a_miss():
    # the scan returns a short span that does not decode
    assert parse_json_object('answer: {"summary": "a } b", "x": 1} trailing', '"summary"') is None


def test_parse_json_object_empty():
    assert parse_json_object("") is None
    assert parse_json_object("   ") is None


def test_repair_json_strips_comments():
    assert repair_json('{"a": 1, // comment\n"b": 2}') == '{"a": 1, \n"b": 2}'


def test_extract_marker_quoted_in_prose_before_the_object():
    reply = 'I filled in the "summary" field below.\n{"summary": "vault", "securityScore": 80}'
    assert extract_json_object(reply, '"summary"') == '{"summary": "vault", "securityScore": 80}'
    assert parse_json_object(reply, '"summary"') == {"summary": "vault", "securityScore": 80}


def test_extract_no_span_reaches_marker_falls_back_to_first_span():
    assert extract_json_object('{"a": 1} then "summary" in prose', '"summary"') == '{"a": 1}'


def test_repair_json_keeps_slashes_inside_strings():
    reply = '{"summary": "see https://docs.x.io", "securityScore": 80,}'
    assert parse_json_object(reply, '"summary"') == {"summary": "see https://docs.x.io", "securityScore": 80}


def test_repair_json_strips_block_comments_and_keeps_escaped_quotes():
    text = '{"a": "say \\"//hi\\"", /* note */ "b": 2}'
    assert repair_json(text) == '{"a": "say \\"//hi\\"",  "b": 2}'
