"""
Verifier response handling.
Turns the verifier's raw answer into a JSON object and then into
mismatch candidates.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import MalformedVerifierResponse, VerifierParseError
from .reconciliation import FieldMismatchCandidate

logger = logging.getLogger(__name__)

_LEADING_FENCE_RE = re.compile(r'^```(?:json)?', re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r'```$')


@dataclass
class VerifierVerdict:
    """The verifier's answer, before reconciliation."""
    is_valid: bool
    message: str = ''
    mismatches: List[FieldMismatchCandidate] = field(default_factory=list)


def sanitize_response(raw: Optional[str]) -> str:
    """
    Cut the JSON object out of a verifier answer.

    A markdown code fence opening or closing the answer is removed, then
    everything from the first ``{`` to the last ``}`` is kept. Surrounding
    prose, including fences around it, is dropped. Text inside the object,
    string values included, is left as it is, and brackets are not checked
    for balance.

    Raises:
        MalformedVerifierResponse: if there is no ``{`` ... ``}`` pair
    """
    text = (raw or '').strip()
    text = _TRAILING_FENCE_RE.sub('', _LEADING_FENCE_RE.sub('', text)).strip()

    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end == -1 or end < start:
        raise MalformedVerifierResponse("Verifier response did not contain a JSON object")

    return text[start:end + 1]


def remove_trailing_commas(text: str) -> str:
    """
    Drop commas that directly precede ``}`` or ``]``.

    Commas inside string values are kept: '{"reason": "a, }",}' becomes
    '{"reason": "a, }"}'.
    """
    out = []
    in_string = False
    escaped = False

    for pos, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == ',' and text[pos + 1:].lstrip()[:1] in ('}', ']'):
            continue
        out.append(char)

    return ''.join(out)


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Retry once without trailing commas
    try:
        return json.loads(remove_trailing_commas(text))
    except json.JSONDecodeError as e:
        raise VerifierParseError(f"Verifier response is not valid JSON: {e}") from e


def _get(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Case-insensitive key lookup."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return default


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value).strip()


def _parse_mismatch(entry: Any, index: int) -> FieldMismatchCandidate:
    if not isinstance(entry, dict):
        raise VerifierParseError(f"Mismatch #{index} is not an object")

    field_name = _as_text(_get(entry, 'field'))
    if not field_name:
        raise VerifierParseError(f"Mismatch #{index} has no field name")

    return FieldMismatchCandidate(
        field=field_name,
        expected_value=_as_text(_get(entry, 'expectedValue')),
        observed_value=_as_text(_get(entry, 'pdfValue')),
        reason=_as_text(_get(entry, 'reason')),
    )


def parse_verdict(raw: Optional[str], log: Optional[logging.Logger] = None) -> VerifierVerdict:
    """
    Sanitize and parse a verifier answer.

    Expected shape::

        {"isValid": bool, "message": str,
         "mismatches": [{"field", "expectedValue", "pdfValue", "reason"}]}

    ``isValid`` is required; ``message`` and ``mismatches`` may be omitted.

    Raises:
        MalformedVerifierResponse: no JSON object in the answer
        VerifierParseError: invalid JSON or wrong shape
    """
    log = log or logger

    data = _load_json(sanitize_response(raw))
    if not isinstance(data, dict):
        raise VerifierParseError("Verifier response is not a JSON object")

    is_valid = _get(data, 'isValid')
    if not isinstance(is_valid, bool):
        raise VerifierParseError("Verifier response is missing boolean 'isValid'")

    message = _get(data, 'message', '')
    if message is not None and not isinstance(message, str):
        raise VerifierParseError("Verifier 'message' must be a string")

    entries = _get(data, 'mismatches', [])
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise VerifierParseError("Verifier 'mismatches' must be a list")

    verdict = VerifierVerdict(
        is_valid=is_valid,
        message=(message or '').strip(),
        mismatches=[_parse_mismatch(entry, i) for i, entry in enumerate(entries, start=1)],
    )
    log.info(f"Verifier verdict: isValid={verdict.is_valid}, {len(verdict.mismatches)} mismatch candidates")
    return verdict
