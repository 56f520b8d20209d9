import json
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from targets.exceptions import TransportError
from targets.services.text_extractor import PageText

from .conftest import SAMPLE_PAGE, FakeSignatureDetector, FakeVerifier, verdict

PDF_BYTES = b'%PDF-1.4 fake target document'


@pytest.fixture
def pdf_path(tmp_path):
    path = tmp_path / 'target.pdf'
    path.write_bytes(PDF_BYTES)
    return path


def write_record(tmp_path, **overrides):
    record = {
        'amName': 'ASHISH BHATT',
        'customerName': 'A M AUTO SALES',
        'targets': [
            {'product': 'BRAKE PARTS', 'target2026': '40,00,000'},
            {'product': 'BRAKE FLUID', 'target2026': 500000},
            {'product': 'OTHERS', 'target2026': '2500000'},
        ],
        'signatureRequired': False,
    }
    record.update(overrides)
    path = tmp_path / 'expected.json'
    path.write_text(json.dumps(record), encoding='utf-8')
    return path


@pytest.fixture
def pages(monkeypatch):
    pages = [PageText(page_number=1, text=SAMPLE_PAGE, extraction_method='pdfplumber', has_content=True)]
    monkeypatch.setattr('targets.validation.extract_text_with_pages', lambda file_obj, use_ocr_fallback=True: pages)
    return pages


@pytest.fixture
def verifier(monkeypatch):
    fake = FakeVerifier(verdict(True, 'All fields match'))
    monkeypatch.setattr('targets.management.commands.validate_pdf.get_verifier', lambda: fake)
    return fake


def run(*args):
    out = StringIO()
    call_command('validate_pdf', *[str(arg) for arg in args], stdout=out)
    return json.loads(out.getvalue())


def test_valid_document(tmp_path, pdf_path, pages, verifier):
    body = run(pdf_path, '--expected', write_record(tmp_path))

    assert body == {
        'success': True,
        'isValid': True,
        'message': 'All fields match successfully',
        'mismatches': [],
    }
    expected = verifier.calls[0][1]
    assert [t.target_amount for t in expected.targets] == [4000000, 500000, 2500000]


def test_signature_outcome_from_option(tmp_path, pdf_path, pages, verifier, monkeypatch):
    detector = FakeSignatureDetector(detected=True)
    monkeypatch.setattr('targets.management.commands.validate_pdf.get_signature_detector', lambda: detector)

    body = run(pdf_path, '--expected', write_record(tmp_path, signatureRequired=True), '--no-signature-detected')

    assert body['isValid'] is False
    assert body['mismatches'][0]['field'] == 'Signature'
    assert detector.calls == 0


def test_signature_detector_runs_when_required(tmp_path, pdf_path, pages, verifier, monkeypatch):
    detector = FakeSignatureDetector(detected=True)
    monkeypatch.setattr('targets.management.commands.validate_pdf.get_signature_detector', lambda: detector)

    body = run(pdf_path, '--expected', write_record(tmp_path, signatureRequired=True))

    assert body['isValid'] is True
    assert detector.calls == 1


def test_invalid_record(tmp_path, pdf_path, verifier):
    record = write_record(tmp_path, targets=[{'product': 'BRAKE PARTS', 'target2026': 'lots'}])
    with pytest.raises(CommandError, match='Invalid expected record'):
        run(pdf_path, '--expected', record)


def test_missing_pdf(tmp_path, verifier):
    with pytest.raises(CommandError, match='Could not open PDF'):
        run(tmp_path / 'missing.pdf', '--expected', write_record(tmp_path))


def test_verifier_failure(tmp_path, pdf_path, pages, verifier):
    verifier.error = TransportError('Verifier call failed: timeout')
    with pytest.raises(CommandError, match='timeout'):
        run(pdf_path, '--expected', write_record(tmp_path))
