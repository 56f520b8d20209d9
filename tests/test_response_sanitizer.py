import pytest

from targets.exceptions import MalformedVerifierResponse, VerifierParseError
from targets.services.response_sanitizer import parse_verdict, remove_trailing_commas, sanitize_response


def test_fenced_json_with_prose():
    raw = 'Here is the result:\n```json\n{"isValid":true}\n```\nLet me know if you need more.'
    assert sanitize_response(raw) == '{"isValid":true}'


def test_plain_fence():
    assert sanitize_response('```\n{"isValid": false}\n```') == '{"isValid": false}'


@pytest.mark.parametrize('raw', [None, '', 'no json at all', '} backwards {'])
def test_missing_object_is_malformed(raw):
    with pytest.raises(MalformedVerifierResponse):
        sanitize_response(raw)


def test_parse_verdict_with_mismatches():
    verdict = parse_verdict(
        '{"isValid": false, "message": "AM differs", "mismatches": ['
        '{"field": "AM Name", "expectedValue": "ASHISH BHATT", "pdfValue": "ASHOK", "reason": "different"}]}'
    )
    assert verdict.is_valid is False
    assert verdict.message == 'AM differs'
    assert len(verdict.mismatches) == 1
    assert verdict.mismatches[0].observed_value == 'ASHOK'


def test_trailing_commas_are_tolerated():
    verdict = parse_verdict(
        '{"isValid": false, "mismatches": [{"field": "BRAKE PARTS Target", '
        '"expectedValue": 7000000, "pdfValue": "70,00,000", "reason": "format",},],}'
    )
    assert verdict.mismatches[0].expected_value == '7000000'


def test_keys_are_case_insensitive():
    verdict = parse_verdict('{"IsValid": true, "Message": "ok"}')
    assert verdict.is_valid is True
    assert verdict.message == 'ok'
    assert verdict.mismatches == []


@pytest.mark.parametrize('raw', [
    '{"message": "no flag"}',
    '{"isValid": "yes"}',
    '{not json}',
    '{"isValid": true, "mismatches": {"field": "AM Name"}}',
    '{"isValid": false, "mismatches": [{"expectedValue": "A"}]}',
])
def test_bad_shape_raises_parse_error(raw):
    with pytest.raises(VerifierParseError):
        parse_verdict(raw)


def test_fence_inside_string_value_is_kept():
    raw = '```json\n{"isValid": false, "message": "see the ```json block"}\n```'
    assert sanitize_response(raw) == '{"isValid": false, "message": "see the ```json block"}'


def test_trailing_comma_repair_leaves_strings_alone():
    verdict = parse_verdict(
        '{"isValid": false, "message": "a, }", "mismatches": [{"field": "AM Name", "reason": "x, ]",},],}'
    )
    assert verdict.message == 'a, }'
    assert verdict.mismatches[0].reason == 'x, ]'


def test_remove_trailing_commas():
    assert remove_trailing_commas('{"a": [1, 2, ], "b": "c\\", }",\n}') == '{"a": [1, 2 ], "b": "c\\", }"\n}'
