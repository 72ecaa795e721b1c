from __future__ import annotations

from notequiz.core.responses import parse_json_reply, strip_code_fence


def test_strip_code_fence_with_language_tag():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_code_fence_without_fence_returns_trimmed_text():
    assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'


def test_strip_code_fence_takes_first_block_amid_prose():
    reply = 'Here you go:\n```\n[1, 2]\n```\nAnything else?'
    assert strip_code_fence(reply) == "[1, 2]"


def test_parse_json_reply_success():
    result = parse_json_reply('```json\n{"questions": []}\n```', expect=dict)
    assert result.ok
    assert result.value == {"questions": []}


def test_parse_json_reply_reports_invalid_json():
    result = parse_json_reply("not json at all")
    assert not result.ok
    assert "invalid JSON" in result.error


def test_parse_json_reply_checks_expected_type():
    result = parse_json_reply("[1, 2]", expect=dict)
    assert not result.ok
    assert "expected dict" in result.error


def test_parse_json_reply_empty():
    assert parse_json_reply("").error == "empty reply"
