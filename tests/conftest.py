import json

import pytest

from targets.services.reconciliation import ExpectedRecord, ProductTarget

SAMPLE_PAGE = (
    "Region:West AM:ASHISH BHATTSales Office:Ahmedabad\n"
    "Customer:[S]-29870 - A M AUTO SALES\n"
    "Product Group Target 2026\n"
    "BRAKE PARTS 40,00,000\n"
    "BRAKE FLUID 5,00,000\n"
    "OTHERS 25,00,000\n"
    "Over All 70,00,000\n"
)


class FakeVerifier:
    """Returns a canned answer and remembers what it was asked."""

    def __init__(self, answer='', error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    def verify(self, document_text, expected, fields):
        self.calls.append((document_text, expected, fields))
        if self.error is not None:
            raise self.error
        return self.answer


class FakeSignatureDetector:
    def __init__(self, detected):
        self.detected = detected
        self.calls = 0

    def detect(self, pdf_bytes):
        self.calls += 1
        return self.detected


def verdict(is_valid=True, message='', mismatches=()):
    return json.dumps({
        'isValid': is_valid,
        'message': message,
        'mismatches': [
            {'field': f, 'expectedValue': e, 'pdfValue': p, 'reason': r}
            for f, e, p, r in mismatches
        ],
    })


@pytest.fixture
def expected():
    return ExpectedRecord(
        agent_name='ASHISH BHATT',
        customer_name='A M AUTO SALES',
        targets=(
            ProductTarget('BRAKE PARTS', 4000000),
            ProductTarget('BRAKE FLUID', 500000),
            ProductTarget('OTHERS', 2500000),
        ),
    )


@pytest.fixture
def signed_expected(expected):
    return ExpectedRecord(
        agent_name=expected.agent_name,
        customer_name=expected.customer_name,
        targets=expected.targets,
        signature_required=True,
    )
