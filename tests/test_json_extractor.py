import json

import pytest

from coursepilot.utils.json_extractor import (
    StructuredResponseError,
    clean_json_text,
    extract_json,
    extract_json_or_fallback,
)

VALID_DOCUMENTS = [
    '{"a": 1}',
    '{"modules": [{"module_title": "Intro", "lessons": []}]}',
    '{"nested": {"list": [1, 2.5, null, true, false], "text": "plain ascii"}}',
    '[{"id": "x"}, {"id": "y"}]',
    '{"escaped": "line\\nbreak \\"quoted\\""}',
]


@pytest.mark.parametrize('document', VALID_DOCUMENTS)
def test_valid_json_is_returned_unchanged(document):
    assert extract_json(document) == json.loads(document)


@pytest.mark.parametrize('fence', ['```json\n{body}\n```', '```\n{body}\n```', '```JSON {body}```'])
def test_code_fences_are_removed(fence):
    body = '{"title": "Course", "count": 3}'
    assert extract_json(fence.format(body=body)) == json.loads(body)


def test_prose_around_object_is_dropped():
    body = '{"weaknesses": ["loops"], "should_advance": false}'
    text = f"Here is the feedback you asked for:\n{body}\nLet me know if you need more."
    assert extract_json(text) == json.loads(body)


def test_typographic_delimiters_and_dashes_are_normalized():
    text = '{“title”: “Part 1 – Basics”, ‘note’: 1}'.replace('‘note’', '“note”')
    assert extract_json(text) == {'title': 'Part 1 - Basics', 'note': 1}


def test_smart_quotes_inside_a_value_become_straight_quotes():
    result = extract_json('{"title": "He said “hi”"}')
    assert result['title'] == 'He said "hi"'


def test_fenced_trailing_comma_is_repaired():
    assert extract_json('Sure! ```json\n{"a":1,}\n```', repair=True) == {'a': 1}


def test_trailing_comma_in_array_is_repaired():
    assert extract_json('{"items": [1, 2, 3,]}', repair=True) == {'items': [1, 2, 3]}


def test_missing_comma_between_objects_is_repaired():
    text = '{"modules": [{"module_title": "A"} {"module_title": "B"}]}'
    assert extract_json(text, repair=True) == {'modules': [{'module_title': 'A'}, {'module_title': 'B'}]}


def test_trailing_comma_fails_without_repair():
    with pytest.raises(StructuredResponseError):
        extract_json('{"a": 1,}')


def test_non_ascii_is_stripped_when_requested():
    assert extract_json('{"word": "café"}', strip_non_ascii=True) == {'word': 'caf'}
    assert extract_json('{"word": "café"}') == {'word': 'café'}


def test_control_characters_are_removed():
    assert extract_json('{"a":\x07 1}') == {'a': 1}


def test_text_without_braces_fails():
    with pytest.raises(StructuredResponseError) as excinfo:
        extract_json('not json')
    assert excinfo.value.cleaned_text == 'not json'


@pytest.mark.parametrize('text', ['', '   ', None])
def test_empty_completion_fails(text):
    with pytest.raises(StructuredResponseError):
        extract_json(text)


def test_structured_response_error_is_a_value_error():
    assert issubclass(StructuredResponseError, ValueError)


def test_fallback_is_returned_unchanged_on_failure():
    fallback = {'modules': [{'module_title': 'Fallback'}]}
    assert extract_json_or_fallback('not json', fallback) is fallback


def test_fallback_is_not_used_on_success():
    assert extract_json_or_fallback('{"a": 2}', {'a': 1}) == {'a': 2}


def test_clean_json_text_only_trims_and_normalizes():
    assert clean_json_text('```json\n{"a": 1}\n```') == '{"a": 1}'


@pytest.mark.parametrize('literal', ['NaN', 'Infinity', '-Infinity'])
def test_non_finite_constants_are_rejected(literal):
    with pytest.raises(StructuredResponseError, match=literal) as excinfo:
        extract_json('{"relevanceScore": %s}' % literal)
    assert excinfo.value.cleaned_text == '{"relevanceScore": %s}' % literal
