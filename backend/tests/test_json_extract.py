import json

import pytest

from foodlens.utils.json_extract import (
    ExtractionError,
    ParseError,
    extract_json,
    safe_json_parse,
    strip_trailing_commas,
)


def test_clean_json_is_returned_unchanged():
    text = '{"foods": [{"name": "apple", "calories": 95}], "total_calories": 95}'
    assert extract_json(text) == text
    assert extract_json(extract_json(text)) == text


def test_fenced_block_is_unwrapped():
    text = '```json\n{"foods":[],"total_calories":0}\n```'
    assert extract_json(text) == '{"foods":[],"total_calories":0}'


def test_bare_fence_and_prose_are_dropped():
    text = 'Here is the result:\n```\n{"foods": []}\n```\nHope this helps!'
    assert extract_json(text) == '{"foods": []}'


def test_span_runs_from_first_to_last_brace():
    text = 'a {"x": 1} b {"y": 2} c'
    assert extract_json(text) == '{"x": 1} b {"y": 2}'


def test_no_json_raises():
    with pytest.raises(ExtractionError, match="no JSON found"):
        extract_json("I cannot determine the contents.")


def test_non_string_raises():
    with pytest.raises(ExtractionError):
        extract_json(None)


def test_strict_parse():
    assert safe_json_parse('{"a": [1, 2]}') == {"a": [1, 2]}


def test_trailing_commas_are_repaired():
    broken = '{"foods": [{"name":"apple","calories":95,},],"total_calories":95,}'
    clean = '{"foods": [{"name":"apple","calories":95}],"total_calories":95}'
    assert safe_json_parse(broken) == json.loads(clean)


def test_trailing_comma_with_whitespace():
    assert safe_json_parse('{"a": [1, 2 ,\n ] ,\n}') == {"a": [1, 2]}


def test_strip_trailing_commas_leaves_other_commas():
    assert strip_trailing_commas('[1, 2,]') == "[1, 2]"


def test_single_repair_does_not_fix_other_problems():
    with pytest.raises(ParseError):
        safe_json_parse("{'foods': [],}")


def test_garbage_raises_parse_error():
    with pytest.raises(ParseError) as exc:
        safe_json_parse("{not json at all}")
    assert isinstance(exc.value.__cause__, ValueError)


def test_nan_is_not_accepted():
    with pytest.raises(ParseError):
        safe_json_parse('{"calories": NaN}')


def test_deep_nesting_raises_parse_error():
    text = '{"foods": ' + "[" * 100000 + "]" * 100000 + "}"
    with pytest.raises(ParseError):
        safe_json_parse(text)
