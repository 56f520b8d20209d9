"""
Verifier client.
Asks a language model to compare a normalized sales target document with
the expected record and returns its raw answer.

The answer is not trusted as-is: it goes through the response sanitizer
and the reconciliation engine.
"""

import json
import logging
from typing import Optional, Protocol

from django.core.exceptions import ImproperlyConfigured
from openai import OpenAI, OpenAIError

from ..conf import get_setting
from ..exceptions import TransportError
from .field_extractor import ExtractedFieldSet
from .reconciliation import ExpectedRecord

logger = logging.getLogger(__name__)


class Verifier(Protocol):
    def verify(self, document_text: str, expected: ExpectedRecord, fields: ExtractedFieldSet) -> str:
        ...


def _expected_mismatch_example(expected: ExpectedRecord) -> str:
    example = {
        'isValid': False,
        'message': 'Brief summary message',
        'mismatches': [
            {
                'field': 'AM Name',
                'expectedValue': expected.agent_name,
                'pdfValue': 'Value read from the document',
                'reason': 'Why the values differ',
            },
            {
                'field': 'Customer Name',
                'expectedValue': expected.customer_name,
                'pdfValue': 'Value read from the document',
                'reason': 'Why the values differ',
            },
        ] + [
            {
                'field': f'{target.product} Target',
                'expectedValue': str(target.target_amount),
                'pdfValue': 'Value read from the document',
                'reason': 'Why the values differ',
            }
            for target in expected.targets
        ],
    }
    return json.dumps(example, indent=2)


def build_validation_prompt(
    document_text: str,
    expected: ExpectedRecord,
    fields: Optional[ExtractedFieldSet] = None,
) -> str:
    """
    Build the verification prompt.

    The rule-based field extraction is included as a hint only; the model
    is asked to read the document itself.
    """
    targets = '\n'.join(
        f"   - {target.product}: {target.target_amount}" for target in expected.targets
    ) or '   (none)'

    hints = ''
    if fields is not None:
        hints = (
            "=== PRE-EXTRACTED HINTS (may be wrong) ===\n"
            f"{json.dumps(fields.to_dict(), indent=2)}\n\n"
        )

    return (
        "You are a PDF validation assistant. Compare the document below with the expected values.\n\n"
        "=== EXPECTED VALUES ===\n"
        f"1. AM Name: {expected.agent_name}\n"
        f"2. Customer Name: {expected.customer_name}\n"
        "3. Target 2026 values:\n"
        f"{targets}\n\n"
        f"{hints}"
        "=== DOCUMENT TEXT ===\n"
        f"{document_text}\n\n"
        "=== HOW TO READ THE DOCUMENT ===\n"
        "1. AM Name: the text after \"AM:\". Stop at \"Sales Office\" or any other field label.\n"
        "   \"AM:ASHISH BHATTSales Office:\" means \"ASHISH BHATT\".\n"
        "2. Customer Name: the text after \"Customer:\" without the code prefix.\n"
        "   \"[S]-29870 - A M AUTO SALES\" means \"A M AUTO SALES\".\n"
        "3. Target 2026: the value in the Target 2026 column of each product row.\n"
        "   Ignore the \"Over All\" summary row. Remove commas before comparing;\n"
        "   Indian grouping \"70,00,000\" is 7000000.\n\n"
        "=== OUTPUT ===\n"
        "Return ONLY a JSON object, no markdown and no other text, shaped like:\n"
        f"{_expected_mismatch_example(expected)}\n\n"
        "List only fields that do not match. If everything matches, return\n"
        "\"isValid\": true, \"message\": \"All fields match successfully\" and an empty \"mismatches\" list.\n"
    )


class OpenAIVerifier:
    """Verifier backed by the OpenAI chat completions API."""

    def __init__(
        self,
        client: OpenAI,
        model: str = 'gpt-4o-mini',
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def verify(self, document_text: str, expected: ExpectedRecord, fields: ExtractedFieldSet) -> str:
        """
        Send the verification prompt and return the raw answer text.

        Raises:
            TransportError: if the API call fails
        """
        prompt = build_validation_prompt(document_text, expected, fields)
        logger.debug(f"Verifier prompt length: {len(prompt)} chars")

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[{'role': 'user', 'content': prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={'type': 'json_object'},
            )
        except OpenAIError as e:
            logger.error(f"Verifier call failed ({self.model}): {e}")
            raise TransportError(f"Verifier call failed: {e}") from e

        answer = completion.choices[0].message.content or ''
        logger.debug(f"Verifier answer: {answer}")
        return answer


def build_openai_client() -> OpenAI:
    """OpenAI client from TARGET_VALIDATOR settings."""
    api_key = get_setting('OPENAI_API_KEY')
    if not api_key:
        raise ImproperlyConfigured("TARGET_VALIDATOR['OPENAI_API_KEY'] is not set")

    return OpenAI(
        api_key=api_key,
        base_url=get_setting('OPENAI_BASE_URL'),
        timeout=get_setting('VERIFIER_TIMEOUT'),
    )


def get_verifier() -> OpenAIVerifier:
    """Get a verifier configured from settings."""
    return OpenAIVerifier(
        client=build_openai_client(),
        model=get_setting('VERIFIER_MODEL'),
        temperature=get_setting('VERIFIER_TEMPERATURE'),
        max_tokens=get_setting('VERIFIER_MAX_TOKENS'),
    )
